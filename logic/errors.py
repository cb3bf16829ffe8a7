"""
Error taxonomy shared by the submission server and client.

Every error carries a human-readable message and the HTTP status the server
answers with when the error is raised while handling a request.
"""

from typing import Optional


class LocationError(Exception):
    """Base class for location capture and submission errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingIdentifier(LocationError):
    """No identifier was supplied."""

    def __init__(self, message: str = "missing identifier"):
        super().__init__(message)


class InvalidIdentifierFormat(LocationError):
    """The identifier is not an integer string."""

    def __init__(self, message: str = "invalid identifier"):
        super().__init__(message)


class InvalidLocation(LocationError):
    """The location is absent or its coordinates are not numeric."""

    def __init__(self, message: str = "invalid location"):
        super().__init__(message)


class InvalidPayload(LocationError):
    """The request body is not a JSON object."""

    def __init__(self, message: str = "invalid JSON payload"):
        super().__init__(message)


class UnsupportedCapability(LocationError):
    """No position source is available on this device."""

    def __init__(self, message: str = "Geolocation is not supported by this device."):
        super().__init__(message)


class PermissionDenied(LocationError):
    """The position source refused or failed to provide a fix."""

    status_code = 403

    def __init__(self, message: str = "Permission to read the position was denied."):
        super().__init__(message)


class TransmissionFailure(LocationError):
    """A submission was rejected or could not be delivered.

    Attributes:
        status: HTTP status of the rejecting response, or None when no
            response was received.
    """

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
