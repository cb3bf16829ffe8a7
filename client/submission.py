"""
Location submission with bounded retries.

submit() posts a report to the submission endpoint. Successful responses
return immediately, 4xx responses stop retrying because the payload itself
was rejected, and every other failure (network error, timeout, 5xx) is
retried with exponential backoff. Failures are reported in the returned
SubmissionResult, never raised.

Date: 2026-10-19
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import aiohttp

from client.transport import AiohttpTransport, Transport
from logic.config import get_settings
from logic.errors import LocationError, TransmissionFailure
from logic.report import LocationReport, SubmissionResult, check_transmittable

_LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def backoff_delay(attempt: int, base_ms: int = 500) -> float:
    """Delay before the next attempt, in seconds.

    Args:
        attempt: Number of attempts made so far (1 after the first failure).
        base_ms: Backoff base in milliseconds.

    Returns:
        base_ms * 2 ** attempt milliseconds, expressed in seconds.
    """
    return base_ms * (2 ** attempt) / 1000.0


def is_client_error(status: Optional[int]) -> bool:
    """Whether a status marks the payload as rejected (not worth retrying)."""
    return status is not None and 400 <= status < 500


def _as_payload(report: Union[LocationReport, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(report, LocationReport):
        return report.to_payload()
    if isinstance(report, dict):
        return report
    raise TypeError(f"Cannot submit {type(report).__name__}; expected LocationReport or dict")


async def submit(
    report: Union[LocationReport, Dict[str, Any]],
    *,
    retries: Optional[int] = None,
    url: Optional[str] = None,
    transport: Optional[Transport] = None,
    sleep: Sleep = asyncio.sleep,
    backoff_base_ms: Optional[int] = None,
) -> SubmissionResult:
    """Submit a location report, retrying transient failures.

    Args:
        report: LocationReport or an already built payload dictionary.
        retries: Retries allowed after the first attempt (default from SUBMIT_RETRIES).
        url: Submission endpoint (default from SUBMIT_URL).
        transport: Async callable performing the POST (default AiohttpTransport).
        sleep: Coroutine used to wait between attempts.
        backoff_base_ms: Backoff base in milliseconds (default from BACKOFF_BASE_MS).

    Returns:
        SubmissionResult describing the outcome. Reports whose identifier or
        coordinates are unusable are refused without any transmission attempt.

    Raises:
        TypeError: If the report is neither a LocationReport nor a dict.
        ValueError: If retries is negative.
    """
    settings = get_settings()
    payload = _as_payload(report)
    retries = settings.retries if retries is None else retries
    if retries < 0:
        raise ValueError("retries must be zero or more")
    url = url or settings.submit_url
    base_ms = settings.backoff_base_ms if backoff_base_ms is None else backoff_base_ms
    if transport is None:
        transport = AiohttpTransport(timeout=settings.timeout)

    try:
        check_transmittable(payload)
    except LocationError as err:
        _LOGGER.error("Refusing to submit report: %s", err.message)
        return SubmissionResult(ok=False, error=err, attempts=0)

    attempt = 0
    last_error: Optional[BaseException] = None
    last_status: Optional[int] = None

    while attempt <= retries:
        _LOGGER.debug("Submitting location to %s (attempt %d)", url, attempt + 1)
        try:
            response = await transport(url, payload)
        except (TimeoutError, aiohttp.ClientError, OSError) as err:
            last_error = err
        else:
            last_status = response.status
            if response.ok:
                return SubmissionResult(ok=True, status=response.status, attempts=attempt + 1)

            last_error = TransmissionFailure(
                f"HTTP {response.status} {response.text}".strip(),
                status=response.status,
            )
            if is_client_error(response.status):
                _LOGGER.error("Submission rejected by %s: %s", url, last_error)
                return SubmissionResult(
                    ok=False, status=response.status, error=last_error, attempts=attempt + 1
                )

        attempt += 1
        if attempt > retries:
            break

        delay = backoff_delay(attempt, base_ms)
        _LOGGER.warning(
            "Submission attempt %d failed (%s), retrying in %.1fs",
            attempt,
            last_error,
            delay,
        )
        await sleep(delay)

    _LOGGER.error("Submission to %s failed after %d attempts: %s", url, attempt, last_error)
    return SubmissionResult(ok=False, status=last_status, error=last_error, attempts=attempt)
