"""
Validation and sanitization utilities.

This module checks incoming submission bodies and turns them into
LocationReport objects. Validation failures are raised as LocationError
subclasses which the application maps to HTTP 400 responses.

Date: 2026-10-19
"""

import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from logic.errors import InvalidLocation, InvalidPayload, MissingIdentifier
from logic.report import LOCATION_FIELDS, LocationReport, is_number

_LOGGER = logging.getLogger(__name__)

IDENTIFIER_FIELD = "identifier"
LEGACY_IDENTIFIER_FIELD = "crate_int_id"

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def parse_body(raw: bytes) -> Dict[str, Any]:
    """Decode a request body into a JSON object.

    Args:
        raw: Raw request body bytes.

    Returns:
        The decoded JSON object.

    Raises:
        InvalidPayload: If the body is not valid JSON or not an object.
    """
    try:
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        raise InvalidPayload()
    if not isinstance(data, dict):
        raise InvalidPayload()
    return data


def get_identifier(data: Dict[str, Any]) -> Any:
    """Return the identifier, falling back to the legacy crate_int_id field."""
    if IDENTIFIER_FIELD in data:
        return data[IDENTIFIER_FIELD]
    return data.get(LEGACY_IDENTIFIER_FIELD)


def sanitise_optional_number(value: Any) -> Optional[float]:
    """Keep numeric metadata, drop anything else.

    Args:
        value: Raw metadata value.

    Returns:
        The value if it is a number, None otherwise.
    """
    if is_number(value):
        return value
    return None


def coordinates_in_range(latitude: float, longitude: float) -> bool:
    """Check that coordinates fall inside the valid WGS84 ranges."""
    return (
        LATITUDE_RANGE[0] <= latitude <= LATITUDE_RANGE[1]
        and LONGITUDE_RANGE[0] <= longitude <= LONGITUDE_RANGE[1]
    )


def validate_submission(data: Any) -> LocationReport:
    """Validate a submission body and build the report it describes.

    Checks run in order: identifier presence, then location shape. Ranges are
    not enforced; out-of-range coordinates are accepted and logged.

    Args:
        data: Decoded JSON body.

    Returns:
        LocationReport built from the body.

    Raises:
        InvalidPayload: If the body is not a JSON object.
        MissingIdentifier: If the identifier is absent or falsy.
        InvalidLocation: If the location is absent or its coordinates are not numeric.
    """
    if not isinstance(data, dict):
        raise InvalidPayload()

    identifier = get_identifier(data)
    if not identifier:
        raise MissingIdentifier()

    location = data.get("location")
    if not isinstance(location, dict):
        raise InvalidLocation()

    latitude = location.get("latitude")
    longitude = location.get("longitude")
    if not is_number(latitude) or not is_number(longitude):
        raise InvalidLocation()

    if not coordinates_in_range(latitude, longitude):
        _LOGGER.warning(
            "Coordinates out of range for %s: latitude=%s longitude=%s",
            identifier,
            latitude,
            longitude,
        )

    fields = {
        name: sanitise_optional_number(location.get(name))
        for name in LOCATION_FIELDS
        if name not in ("latitude", "longitude")
    }
    try:
        return LocationReport(
            identifier=str(identifier),
            latitude=latitude,
            longitude=longitude,
            **fields,
        )
    except ValidationError:
        raise InvalidLocation()
