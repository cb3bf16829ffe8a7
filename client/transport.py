"""
HTTP transports used to deliver location reports.

A transport is an async callable taking the target URL and the JSON payload
and returning a TransportResponse. Network failures and timeouts propagate
as exceptions; the submission routine decides what to retry.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

_LOGGER = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass(frozen=True)
class TransportResponse:
    """Status and body text of an HTTP response."""

    status: int
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


Transport = Callable[[str, Dict[str, Any]], Awaitable[TransportResponse]]


class AiohttpTransport:
    """POST JSON payloads with aiohttp.

    When constructed without a session, a session is opened for each request
    and closed afterwards.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 10.0,
    ) -> None:
        self._session = session
        self._timeout = timeout

    async def __call__(self, url: str, payload: Dict[str, Any]) -> TransportResponse:
        if self._session is not None:
            return await self._post(self._session, url, payload)

        async with aiohttp.ClientSession() as session:
            return await self._post(session, url, payload)

    async def _post(
        self,
        session: aiohttp.ClientSession,
        url: str,
        payload: Dict[str, Any],
    ) -> TransportResponse:
        async with asyncio.timeout(self._timeout):
            async with session.post(url, json=payload, headers=JSON_HEADERS) as resp:
                try:
                    text = await resp.text()
                except (aiohttp.ClientPayloadError, UnicodeDecodeError) as err:
                    _LOGGER.debug("Could not read response body from %s: %s", url, err)
                    text = ""
                return TransportResponse(status=resp.status, text=text)
