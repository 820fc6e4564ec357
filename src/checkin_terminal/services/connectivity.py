from __future__ import annotations

import asyncio
import logging

from checkin_terminal.services.roster_api import RosterApiClient
from checkin_terminal.services.sync_dispatcher import SyncDispatcher

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Probes the roster authority and feeds online/offline transitions to the dispatcher."""

    def __init__(self, client: RosterApiClient, dispatcher: SyncDispatcher, *, interval_seconds: float = 15.0) -> None:
        self._client = client
        self._dispatcher = dispatcher
        self._interval_seconds = interval_seconds

    async def check(self) -> bool:
        online = await self._client.probe()
        if online != self._dispatcher.online:
            logger.debug("Connectivity probe against %s: %s", self._client.base_url, "online" if online else "offline")
        await self._dispatcher.set_online(online)
        return online

    async def run(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self._interval_seconds)
