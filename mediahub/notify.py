"""HTTP callbacks fired when streams are published, played or stopped."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

log = logging.getLogger(__name__)


class Notifier:
    """Posts an event body to the configured URL of each hook; unset hooks do nothing."""

    def __init__(
        self,
        on_publish_url: Optional[str] = None,
        on_unpublish_url: Optional[str] = None,
        on_play_url: Optional[str] = None,
        on_stop_url: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.on_publish_url = on_publish_url
        self.on_unpublish_url = on_unpublish_url
        self.on_play_url = on_play_url
        self.on_stop_url = on_stop_url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> Notifier:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _client(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _post(self, url: Optional[str], body: str, label: str) -> None:
        if url is None:
            return
        try:
            async with self._client().post(url, data=body) as response:
                log.info("%s success: %s", label, response.status)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as err:
            log.error("%s error: %s", label, err)

    async def on_publish_notify(self, body: str) -> None:
        await self._post(self.on_publish_url, body, "on_publish")

    async def on_unpublish_notify(self, body: str) -> None:
        await self._post(self.on_unpublish_url, body, "on_unpublish")

    async def on_play_notify(self, body: str) -> None:
        await self._post(self.on_play_url, body, "on_play")

    async def on_stop_notify(self, body: str) -> None:
        await self._post(self.on_stop_url, body, "on_stop")

    async def close(self) -> None:
        """Release the HTTP session; a later notification opens a new one."""
        if self._session is not None:
            await self._session.close()
            self._session = None