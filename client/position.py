"""
Position acquisition.

Providers return a single position fix. They raise UnsupportedCapability
when no position source exists and PermissionDenied when the source refuses
or cannot produce a usable fix. Manual entry bypasses providers entirely.
"""

import asyncio
import json
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from logic.errors import InvalidLocation, PermissionDenied, UnsupportedCapability
from logic.report import Position, is_number

_LOGGER = logging.getLogger(__name__)

# gpsd TPV keys mapped onto Position fields
TPV_KEYS = {
    "lat": "latitude",
    "lon": "longitude",
    "eph": "accuracy",
    "alt": "altitude",
    "track": "heading",
    "speed": "speed",
}


@dataclass(frozen=True)
class PositionOptions:
    """Options for a single position request.

    Attributes:
        enable_high_accuracy: Prefer the most accurate source available.
        timeout: Seconds to wait for a fix.
        maximum_age: Age in milliseconds of a cached fix that may be reused;
            0 means a fresh fix is always required.
    """

    enable_high_accuracy: bool = True
    timeout: float = 10.0
    maximum_age: int = 0


def now_ms() -> float:
    """Current time in epoch milliseconds."""
    return time.time() * 1000.0


class PositionProvider:
    """Base class for position sources."""

    async def get_current_position(self, options: PositionOptions) -> Position:
        """Return a single position fix.

        Raises:
            UnsupportedCapability: If this source cannot produce positions.
            PermissionDenied: If a fix could not be obtained.
        """
        raise UnsupportedCapability()


def _parse_fix_time(value: Any) -> Optional[float]:
    if value is None:
        return None
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp() * 1000.0
    return None


def position_from_fix(fix: Dict[str, Any]) -> Position:
    """Build a Position from a fix dictionary.

    Accepts gpsd TPV keys (lat, lon, alt, track, speed, eph, time) or the
    Position field names directly.

    Args:
        fix: Decoded fix object.

    Returns:
        Position built from the fix.

    Raises:
        PermissionDenied: If the fix lacks numeric coordinates.
    """
    values: Dict[str, Any] = {}
    for key, value in fix.items():
        name = TPV_KEYS.get(key, key)
        if name in ("latitude", "longitude", "accuracy", "altitude", "heading", "speed"):
            values[name] = value if is_number(value) else None

    timestamp = _parse_fix_time(fix.get("timestamp", fix.get("time")))

    if values.get("latitude") is None or values.get("longitude") is None:
        raise PermissionDenied("Position unavailable: fix has no coordinates.")

    return Position(timestamp=timestamp, **values)


class FixFileProvider(PositionProvider):
    """Read the latest fix from a JSON file written by a GPS daemon or tool."""

    def __init__(self, path) -> None:
        self.path = Path(path)

    def _read_fix(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise UnsupportedCapability(f"No position source at {self.path}.")
        except PermissionError:
            raise PermissionDenied(f"Permission denied reading {self.path}.")
        except json.JSONDecodeError as err:
            raise PermissionDenied(f"Position unavailable: {err}")
        if not isinstance(data, dict):
            raise PermissionDenied("Position unavailable: fix is not an object.")
        return data

    async def get_current_position(self, options: PositionOptions) -> Position:
        fix = await asyncio.to_thread(self._read_fix)
        position = position_from_fix(fix)

        if options.maximum_age > 0 and position.timestamp is not None:
            age = now_ms() - position.timestamp
            if age > options.maximum_age:
                raise PermissionDenied(f"Position unavailable: fix is {age:.0f} ms old.")

        _LOGGER.debug("Read fix from %s: %s", self.path, position)
        return position


def parse_manual_entry(latitude: str, longitude: str) -> Position:
    """Build a Position from user-typed coordinates.

    Ranges are not checked.

    Args:
        latitude: Latitude as typed.
        longitude: Longitude as typed.

    Returns:
        Position with no accuracy and the current time as timestamp.

    Raises:
        InvalidLocation: If either value is empty or not a number.
    """
    if not latitude or not longitude or not latitude.strip() or not longitude.strip():
        raise InvalidLocation("Please enter latitude and longitude.")
    try:
        lat = float(latitude)
        lng = float(longitude)
    except ValueError:
        raise InvalidLocation("Latitude and longitude must be numbers.")
    if not math.isfinite(lat) or not math.isfinite(lng):
        raise InvalidLocation("Latitude and longitude must be numbers.")
    return Position(latitude=lat, longitude=lng, accuracy=None, timestamp=now_ms())
