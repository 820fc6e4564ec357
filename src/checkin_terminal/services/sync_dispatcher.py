from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from checkin_terminal.services.pending_sync import PendingSyncQueue
from checkin_terminal.services.roster_api import RosterApiClient, RosterApiError

logger = logging.getLogger(__name__)


class SyncDispatcher:
    """Delivers queued check-ins to the roster authority.

    Failures leave the id queued for the next sweep; nothing is raised to the
    operator because the check-in has already succeeded locally.
    """

    def __init__(
        self,
        client: RosterApiClient,
        queue: PendingSyncQueue,
        *,
        pacing_seconds: float = 0.1,
        online: bool = True,
        on_synced: Optional[Callable[[int], None]] = None,
    ) -> None:
        self._client = client
        self._queue = queue
        self._pacing_seconds = pacing_seconds
        self._online = online
        self._on_synced = on_synced
        self._sweep_lock = asyncio.Lock()
        self._in_flight: set[asyncio.Task] = set()

    @property
    def online(self) -> bool:
        return self._online

    async def set_online(self, online: bool) -> None:
        was_online = self._online
        self._online = online
        if online and not was_online:
            logger.info("Connectivity restored; syncing %d pending check-ins", self._queue.size())
            await self.sweep()
        elif was_online and not online:
            logger.warning("Connectivity lost; check-ins will be kept locally")

    async def dispatch(self, participant_id: int) -> bool:
        """Deliver one id. Returns True once the authority acknowledged it."""
        if not self._online:
            logger.info("Offline: participant %s will be synced later", participant_id)
            return False
        if participant_id not in self._queue:
            return True

        try:
            await self._client.mark_attended(participant_id)
        except RosterApiError as exc:
            if exc.status_code is not None:
                logger.warning(
                    "Failed to sync participant %s: HTTP %s", participant_id, exc.status_code
                )
            else:
                logger.warning("Network error syncing participant %s: %s", participant_id, exc)
            return False

        self._queue.remove(participant_id)
        logger.info("Synced participant %s", participant_id)
        if self._on_synced is not None:
            self._on_synced(participant_id)
        return True

    def dispatch_soon(self, participant_id: int) -> asyncio.Task:
        """Start a dispatch without waiting for it; the task is tracked until done."""
        task = asyncio.get_running_loop().create_task(self.dispatch(participant_id))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def wait_in_flight(self, timeout: float | None = None) -> None:
        if not self._in_flight:
            return
        await asyncio.wait(set(self._in_flight), timeout=timeout)

    async def sweep(self) -> int:
        """Attempt every queued id once, in insertion order. Returns the number synced."""
        if not self._online or self._sweep_lock.locked():
            return 0

        async with self._sweep_lock:
            pending = self._queue.all()
            if not pending:
                return 0

            logger.info("Syncing %d pending participants...", len(pending))
            synced = 0
            for index, participant_id in enumerate(pending):
                if not self._online:
                    break
                if await self.dispatch(participant_id):
                    synced += 1
                if index < len(pending) - 1:
                    await asyncio.sleep(self._pacing_seconds)
            return synced

    async def run_periodic(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            await self.sweep()
