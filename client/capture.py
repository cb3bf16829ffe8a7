"""
Capture flow for a single subject.

CaptureFlow walks a report from identifier check through position
acquisition to submission, recording every step in a CaptureState. The same
state is handed to TeardownFlush, which sends the last captured report once
more when the client shuts down.

Date: 2026-10-19
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Set

import aiohttp

from client.position import PositionOptions, PositionProvider, parse_manual_entry
from client.submission import submit
from client.transport import AiohttpTransport, Transport
from logic.config import get_settings
from logic.errors import (
    InvalidIdentifierFormat,
    LocationError,
    MissingIdentifier,
    UnsupportedCapability,
)
from logic.report import LocationReport, SubmissionResult, is_valid_identifier

_LOGGER = logging.getLogger(__name__)

MISSING_ID_MESSAGE = "Missing crate_int_id in URL. Example: ?crate_int_id=12345"
INVALID_ID_MESSAGE = "Crate ID appears invalid. Expected integer."
NO_CAPABILITY_MESSAGE = "Geolocation is not supported by this device."

Submitter = Callable[..., Awaitable[SubmissionResult]]


class CaptureStatus(Enum):
    """Steps and outcomes of a capture."""

    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    SENDING = "sending"
    SENT = "sent"
    SEND_FAILED = "send_failed"
    MISSING_ID = "missing_crate_id"
    INVALID_ID = "invalid_crate_id"
    NO_CAPABILITY = "no_geolocation"
    PERMISSION_DENIED = "permission_denied"


class CaptureState:
    """Mutable state shared by a capture flow and its teardown flush.

    Attributes:
        identifier: Identifier of the subject being located.
        status: Current CaptureStatus.
        error: Message describing the last failure, if any.
        last_report: Most recently captured report, if any.
    """

    def __init__(self, identifier: str = "") -> None:
        self.identifier = identifier
        self.status = CaptureStatus.IDLE
        self.error: Optional[str] = None
        self.last_report: Optional[LocationReport] = None

    def transition(self, status: CaptureStatus, error: Optional[str] = None) -> None:
        """Move to a new status, replacing the error message."""
        _LOGGER.debug("Capture status %s -> %s", self.status.value, status.value)
        self.status = status
        self.error = error


class CaptureFlow:
    """Capture a position for one identifier and submit it.

    Reports go through submitter, submit() by default. Extra keyword
    arguments are forwarded to it (retries, url, transport, sleep).
    """

    def __init__(
        self,
        identifier: str,
        provider: Optional[PositionProvider] = None,
        state: Optional[CaptureState] = None,
        options: Optional[PositionOptions] = None,
        submitter: Optional[Submitter] = None,
        **submit_options: Any,
    ) -> None:
        self.provider = provider
        self.submitter = submitter or submit
        self.state = state or CaptureState(identifier)
        self.state.identifier = identifier
        self.options = options or PositionOptions()
        self.submit_options = submit_options

    def check_identifier(self) -> bool:
        """Validate the identifier, moving to MISSING_ID or INVALID_ID on failure."""
        identifier = self.state.identifier
        if not identifier:
            self.state.transition(CaptureStatus.MISSING_ID, MISSING_ID_MESSAGE)
            return False
        if not is_valid_identifier(identifier):
            self.state.transition(CaptureStatus.INVALID_ID, INVALID_ID_MESSAGE)
            return False
        return True

    async def run(self) -> CaptureStatus:
        """Acquire a position from the provider and submit it.

        Returns:
            The final CaptureStatus.
        """
        if not self.check_identifier():
            return self.state.status

        if self.provider is None:
            self.state.transition(CaptureStatus.NO_CAPABILITY, NO_CAPABILITY_MESSAGE)
            return self.state.status

        self.state.transition(CaptureStatus.REQUESTING_PERMISSION)
        try:
            async with asyncio.timeout(self.options.timeout):
                position = await self.provider.get_current_position(self.options)
        except TimeoutError:
            self.state.transition(
                CaptureStatus.PERMISSION_DENIED,
                f"Timed out after {self.options.timeout:g}s waiting for a position.",
            )
            return self.state.status
        except LocationError as err:
            status = CaptureStatus.PERMISSION_DENIED
            if isinstance(err, UnsupportedCapability):
                status = CaptureStatus.NO_CAPABILITY
            self.state.transition(status, err.message)
            return self.state.status

        report = LocationReport.from_position(self.state.identifier, position)
        await self._send(report)
        return self.state.status

    async def submit_manual(self, latitude: str, longitude: str) -> CaptureStatus:
        """Submit coordinates typed by the user.

        A parse failure keeps the current status and only sets the error.

        Returns:
            The CaptureStatus after the attempt.
        """
        self.state.error = None
        if not self.check_identifier():
            return self.state.status

        try:
            position = parse_manual_entry(latitude, longitude)
        except LocationError as err:
            self.state.error = err.message
            return self.state.status

        report = LocationReport.from_position(self.state.identifier, position)
        await self._send(report)
        return self.state.status

    async def _send(self, report: LocationReport) -> SubmissionResult:
        if not report.is_transmittable():
            self.state.transition(CaptureStatus.INVALID_ID, INVALID_ID_MESSAGE)
            return SubmissionResult(ok=False, error=InvalidIdentifierFormat(INVALID_ID_MESSAGE))

        self.state.last_report = report
        self.state.transition(CaptureStatus.SENDING)

        result = await self.submitter(report, **self.submit_options)

        if result.ok:
            self.state.transition(CaptureStatus.SENT)
        elif isinstance(result.error, MissingIdentifier):
            self.state.transition(CaptureStatus.MISSING_ID, MISSING_ID_MESSAGE)
        elif isinstance(result.error, InvalidIdentifierFormat):
            self.state.transition(CaptureStatus.INVALID_ID, INVALID_ID_MESSAGE)
        else:
            self.state.transition(CaptureStatus.SEND_FAILED, result.error_message())
        return result


class TeardownFlush:
    """Send the last captured report once, without retries, on shutdown."""

    def __init__(
        self,
        state: CaptureState,
        url: Optional[str] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        settings = get_settings()
        self.state = state
        self.url = url or settings.submit_url
        self.transport = transport or AiohttpTransport(timeout=settings.timeout)
        self._pending: Set[asyncio.Task] = set()

    def flush(self) -> bool:
        """Queue a beacon carrying the last captured report.

        Returns:
            True if a beacon was queued, False if there was nothing to send
            or no running event loop.
        """
        report = self.state.last_report
        if report is None or not report.is_transmittable():
            return False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _LOGGER.debug("No running event loop, teardown beacon not sent")
            return False

        task = loop.create_task(self._beacon(report.to_payload()))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def _beacon(self, payload) -> None:
        try:
            response = await self.transport(self.url, payload)
        except (TimeoutError, aiohttp.ClientError, OSError) as err:
            _LOGGER.debug("Teardown beacon to %s failed: %s", self.url, err)
            return
        _LOGGER.debug("Teardown beacon to %s answered %s", self.url, response.status)

    async def drain(self) -> None:
        """Wait for queued beacons to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
