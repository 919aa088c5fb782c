import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp


class RemoteTransportError(Exception):
    """The remote call never produced an HTTP response (network failure or timeout)."""


@dataclass
class RemoteResponse:
    status: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class GoogleHttpClient:
    """Shared aiohttp session for every outbound Google call, with a bounded overall timeout."""

    def __init__(self, timeout: int) -> None:
        self._logger = logging.getLogger(__name__)
        self._timeout = timeout
        self._http_session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def init_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._http_session is None or self._http_session.closed:
                self._http_session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._timeout))
            return self._http_session

    async def close_session(self) -> None:
        if self._http_session:
            await self._http_session.close()
            self._http_session = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        access_token: str | None = None,
        params: list[tuple[str, str]] | dict[str, str] | None = None,
        data: dict[str, str] | None = None,
    ) -> RemoteResponse:
        """Perform a request and decode its JSON body. Non-JSON bodies decode to an empty dict."""
        session = await self.init_session()
        headers = {"Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            async with session.request(method, url, params=params, data=data, headers=headers) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
                return RemoteResponse(status=response.status, body=body if isinstance(body, dict) else {})
        except asyncio.TimeoutError as e:
            self._logger.warning(f"Timed out calling {method} {url}")
            raise RemoteTransportError(f"Timed out after {self._timeout}s") from e
        except aiohttp.ClientError as e:
            self._logger.warning(f"Network error calling {method} {url}: {e}")
            raise RemoteTransportError(str(e)) from e
