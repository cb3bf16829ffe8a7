"""
Location report models.

This module defines the value objects exchanged between the capture client
and the submission server, plus the identifier and coordinate checks that
decide whether a report may be transmitted.

Date: 2026-10-19
"""

import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from logic.errors import InvalidIdentifierFormat, InvalidLocation, MissingIdentifier

IDENTIFIER_PATTERN = re.compile(r"^\d+$")

LOCATION_FIELDS = (
    "latitude",
    "longitude",
    "accuracy",
    "altitude",
    "heading",
    "speed",
    "timestamp",
)


def is_number(value: Any) -> bool:
    """Check whether a value is a finite JSON number.

    Booleans are rejected even though they subclass int, and so are integers
    too large to convert to a float.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def is_valid_identifier(value: Any) -> bool:
    """Check that an identifier is a non-empty string of digits.

    Args:
        value: Identifier as received (string, integer or None).

    Returns:
        True if the identifier matches ^\\d+$, False otherwise.
    """
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, int):
        try:
            value = str(value)
        except ValueError:
            return False
    if not isinstance(value, str) or not value:
        return False
    return IDENTIFIER_PATTERN.fullmatch(value) is not None


@dataclass(frozen=True)
class Position:
    """A single position fix, without an identifier.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        accuracy: Horizontal accuracy in meters.
        altitude: Altitude in meters.
        heading: Direction of travel in degrees from true north.
        speed: Ground speed in meters per second.
        timestamp: Time of the fix in epoch milliseconds.
    """

    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    altitude: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None
    timestamp: Optional[float] = None


class LocationReport(BaseModel):
    """A position associated with the identifier of the subject it describes."""

    model_config = ConfigDict(frozen=True, strict=True)

    identifier: str
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    altitude: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None
    timestamp: Optional[float] = None

    @field_validator("identifier", mode="before")
    @classmethod
    def _identifier_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @classmethod
    def from_position(cls, identifier: str, position: Position) -> "LocationReport":
        """Attach an identifier to a position fix."""
        return cls(identifier=identifier, **asdict(position))

    def location(self) -> Dict[str, Optional[float]]:
        """Return the coordinate part of the report."""
        return {name: getattr(self, name) for name in LOCATION_FIELDS}

    def to_payload(self) -> Dict[str, Any]:
        """Build the JSON body posted to the submission endpoint.

        Returns:
            Dictionary of the form {"identifier": ..., "location": {...}}.
        """
        return {"identifier": self.identifier, "location": self.location()}

    def is_transmittable(self) -> bool:
        """Check that the identifier and both coordinates are usable."""
        return (
            is_valid_identifier(self.identifier)
            and is_number(self.latitude)
            and is_number(self.longitude)
        )


def check_transmittable(payload: Dict[str, Any]) -> None:
    """Ensure a submission payload may be sent.

    Args:
        payload: Body of the form {"identifier": ..., "location": {...}}.

    Raises:
        MissingIdentifier: If the identifier is absent or empty.
        InvalidIdentifierFormat: If the identifier is not an integer string.
        InvalidLocation: If latitude or longitude is not a finite number.
    """
    identifier = payload.get("identifier")
    if identifier is None or identifier == "":
        raise MissingIdentifier()
    if not is_valid_identifier(identifier):
        raise InvalidIdentifierFormat()

    location = payload.get("location")
    if not isinstance(location, dict):
        raise InvalidLocation()
    if not is_number(location.get("latitude")) or not is_number(location.get("longitude")):
        raise InvalidLocation()


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of submitting one report.

    Attributes:
        ok: Whether the server acknowledged the report.
        status: HTTP status of the last response, None if none was received.
        error: Last error observed across attempts.
        attempts: Number of transmission attempts made.
    """

    ok: bool
    status: Optional[int] = None
    error: Optional[BaseException] = None
    attempts: int = 0

    def error_message(self) -> str:
        """Describe the failure for display, "Unknown error" when none was recorded."""
        if self.error is None:
            return "Unknown error"
        return str(self.error) or type(self.error).__name__
