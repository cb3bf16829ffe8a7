"""
Tests for the capture flow and the teardown flush.

Run with: python -m pytest tests/test_capture.py -v
"""

import asyncio
from unittest.mock import AsyncMock

import aiohttp
import pytest

from client.capture import (
    INVALID_ID_MESSAGE,
    MISSING_ID_MESSAGE,
    CaptureFlow,
    CaptureState,
    CaptureStatus,
    TeardownFlush,
)
from client.position import PositionOptions, PositionProvider
from client.transport import TransportResponse
from logic.errors import MissingIdentifier, PermissionDenied, UnsupportedCapability
from logic.report import LocationReport, Position, SubmissionResult

URL = "http://testserver/api/submit-location"


class StaticProvider(PositionProvider):
    def __init__(self, position=None, error=None, delay=0.0):
        self.position = position or Position(latitude=48.8566, longitude=2.3522, accuracy=15.0)
        self.error = error
        self.delay = delay
        self.requests = []

    async def get_current_position(self, options):
        self.requests.append(options)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.position


class RecordingTransport:
    def __init__(self, status=200, error=None):
        self.status = status
        self.error = error
        self.calls = []

    async def __call__(self, url, payload):
        self.calls.append((url, payload))
        if self.error is not None:
            raise self.error
        return TransportResponse(status=self.status)


def make_flow(identifier, provider=None, transport=None, **kwargs):
    transport = transport or RecordingTransport()
    flow = CaptureFlow(
        identifier,
        provider=provider,
        url=URL,
        transport=transport,
        sleep=AsyncMock(),
        retries=1,
        **kwargs,
    )
    return flow, transport


class TestCaptureFlow:
    """Test the automatic capture path."""

    @pytest.mark.asyncio
    async def test_missing_identifier(self):
        flow, transport = make_flow("", provider=StaticProvider())

        status = await flow.run()

        assert status is CaptureStatus.MISSING_ID
        assert flow.state.error == MISSING_ID_MESSAGE
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_invalid_identifier(self):
        flow, transport = make_flow("abc", provider=StaticProvider())

        status = await flow.run()

        assert status is CaptureStatus.INVALID_ID
        assert flow.state.error == INVALID_ID_MESSAGE
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_no_provider_means_no_capability(self):
        flow, transport = make_flow("12345")

        status = await flow.run()

        assert status is CaptureStatus.NO_CAPABILITY
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_provider(self):
        flow, _ = make_flow("12345", provider=StaticProvider(error=UnsupportedCapability()))

        assert await flow.run() is CaptureStatus.NO_CAPABILITY

    @pytest.mark.asyncio
    async def test_permission_denied(self):
        provider = StaticProvider(error=PermissionDenied("User denied Geolocation"))
        flow, transport = make_flow("12345", provider=provider)

        status = await flow.run()

        assert status is CaptureStatus.PERMISSION_DENIED
        assert flow.state.error == "User denied Geolocation"
        assert flow.state.last_report is None
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_acquisition_timeout(self):
        provider = StaticProvider(delay=1.0)
        flow, transport = make_flow(
            "12345", provider=provider, options=PositionOptions(timeout=0.01)
        )

        status = await flow.run()

        assert status is CaptureStatus.PERMISSION_DENIED
        assert "Timed out" in flow.state.error
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_default_options_request_fresh_accurate_fix(self):
        provider = StaticProvider()
        flow, _ = make_flow("12345", provider=provider)

        await flow.run()

        options = provider.requests[0]
        assert options.enable_high_accuracy is True
        assert options.timeout == 10.0
        assert options.maximum_age == 0

    @pytest.mark.asyncio
    async def test_successful_capture_is_sent(self):
        flow, transport = make_flow("12345", provider=StaticProvider())

        status = await flow.run()

        assert status is CaptureStatus.SENT
        assert flow.state.error is None
        assert flow.state.last_report.latitude == 48.8566
        url, payload = transport.calls[0]
        assert url == URL
        assert payload["identifier"] == "12345"
        assert payload["location"]["accuracy"] == 15.0

    @pytest.mark.asyncio
    async def test_rejected_submission(self):
        flow, transport = make_flow(
            "12345", provider=StaticProvider(), transport=RecordingTransport(status=400)
        )

        status = await flow.run()

        assert status is CaptureStatus.SEND_FAILED
        assert flow.state.error.startswith("HTTP 400")
        assert len(transport.calls) == 1
        # The report is kept for the teardown flush even though it failed
        assert flow.state.last_report is not None

    @pytest.mark.asyncio
    async def test_custom_submitter_receives_options(self):
        submitter = AsyncMock(return_value=SubmissionResult(ok=True, status=200, attempts=1))
        flow = CaptureFlow(
            "12345", provider=StaticProvider(), submitter=submitter, retries=0, url=URL
        )

        status = await flow.run()

        assert status is CaptureStatus.SENT
        submitter.assert_awaited_once_with(flow.state.last_report, retries=0, url=URL)

    @pytest.mark.asyncio
    async def test_server_missing_identifier_maps_to_status(self):
        submitter = AsyncMock(return_value=SubmissionResult(ok=False, error=MissingIdentifier()))
        flow = CaptureFlow("12345", provider=StaticProvider(), submitter=submitter)

        status = await flow.run()

        assert status is CaptureStatus.MISSING_ID
        assert flow.state.error == MISSING_ID_MESSAGE


class TestManualEntry:
    """Test the manual entry path."""

    @pytest.mark.asyncio
    async def test_empty_values_keep_status(self):
        flow, transport = make_flow("12345")

        status = await flow.submit_manual("", "2.35")

        assert status is CaptureStatus.IDLE
        assert flow.state.error == "Please enter latitude and longitude."
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_manual_entry_after_failure(self):
        flow, transport = make_flow("12345")
        await flow.run()
        assert flow.state.status is CaptureStatus.NO_CAPABILITY

        status = await flow.submit_manual("-33.9", "18.4")

        assert status is CaptureStatus.SENT
        assert flow.state.error is None
        report = flow.state.last_report
        assert report.latitude == -33.9
        assert report.longitude == 18.4
        assert report.accuracy is None
        assert report.timestamp is not None
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_manual_entry_failure(self):
        flow, _ = make_flow("12345", transport=RecordingTransport(error=OSError("down")))

        status = await flow.submit_manual("10", "20")

        assert status is CaptureStatus.SEND_FAILED
        assert flow.state.error == "down"

    @pytest.mark.asyncio
    async def test_invalid_identifier_not_sent(self):
        flow, transport = make_flow("abc")

        status = await flow.submit_manual("10", "20")

        assert status is CaptureStatus.INVALID_ID
        assert flow.state.error == INVALID_ID_MESSAGE
        assert flow.state.last_report is None
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_missing_identifier_not_sent(self):
        flow, transport = make_flow("")

        status = await flow.submit_manual("10", "20")

        assert status is CaptureStatus.MISSING_ID
        assert transport.calls == []


class TestTeardownFlush:
    """Test the best-effort flush of the last captured report."""

    @pytest.mark.asyncio
    async def test_nothing_captured(self):
        transport = RecordingTransport()
        teardown = TeardownFlush(CaptureState("12345"), url=URL, transport=transport)

        assert teardown.flush() is False
        await teardown.drain()
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_flushes_last_report_once(self):
        state = CaptureState("12345")
        state.last_report = LocationReport(identifier="12345", latitude=1.0, longitude=2.0)
        transport = RecordingTransport(status=500)
        teardown = TeardownFlush(state, url=URL, transport=transport)

        assert teardown.flush() is True
        await teardown.drain()

        assert transport.calls == [(URL, state.last_report.to_payload())]

    @pytest.mark.asyncio
    async def test_invalid_report_not_flushed(self):
        state = CaptureState("abc")
        state.last_report = LocationReport(identifier="abc", latitude=1.0, longitude=2.0)
        transport = RecordingTransport()
        teardown = TeardownFlush(state, url=URL, transport=transport)

        assert teardown.flush() is False
        await teardown.drain()
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_failed_beacon_is_not_raised(self):
        state = CaptureState("12345")
        state.last_report = LocationReport(identifier="12345", latitude=1.0, longitude=2.0)
        transport = RecordingTransport(error=aiohttp.ClientConnectionError("gone"))
        teardown = TeardownFlush(state, url=URL, transport=transport)

        assert teardown.flush() is True
        await teardown.drain()

        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_shares_state_with_flow(self):
        state = CaptureState()
        flow, _ = make_flow("12345", provider=StaticProvider(), state=state)
        beacon = RecordingTransport()
        teardown = TeardownFlush(state, url=URL, transport=beacon)

        await flow.run()
        teardown.flush()
        await teardown.drain()

        assert beacon.calls[0][1]["identifier"] == "12345"

    def test_no_event_loop(self):
        state = CaptureState("12345")
        state.last_report = LocationReport(identifier="12345", latitude=1.0, longitude=2.0)
        teardown = TeardownFlush(state, url=URL, transport=RecordingTransport())

        assert teardown.flush() is False
