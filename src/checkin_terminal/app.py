from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Callable, Optional, Protocol

import httpx

from checkin_terminal.config.settings import Settings
from checkin_terminal.data import Database, StateStore
from checkin_terminal.models import Participant
from checkin_terminal.services import (
    CheckInService,
    CheckInStats,
    ConnectivityMonitor,
    PayloadFeed,
    PendingSyncQueue,
    QRScanner,
    RosterApiClient,
    RosterCache,
    ScanDecision,
    ScanLedger,
    StatsAggregator,
    SyncDispatcher,
)

logger = logging.getLogger(__name__)


class PayloadSource(Protocol):
    lossy: bool

    def start(self, feed: PayloadFeed) -> None: ...

    def stop(self) -> None: ...


class CameraSource:
    """Adapts :class:`QRScanner` to the feed interface."""

    lossy = True

    def __init__(self, scanner: QRScanner) -> None:
        self.scanner = scanner

    def start(self, feed: PayloadFeed) -> None:
        def _on_error(message: str) -> None:
            feed.close_threadsafe()

        if not self.scanner.start(feed.push_threadsafe, on_error=_on_error):
            feed.close()

    def stop(self) -> None:
        self.scanner.stop()

    def suspend(self) -> None:
        self.scanner.suspend()

    def resume(self) -> None:
        self.scanner.resume()


class CheckInTerminal:
    def __init__(
        self,
        config: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_decision: Optional[Callable[[ScanDecision], None]] = None,
        on_stats: Optional[Callable[[CheckInStats], None]] = None,
    ) -> None:
        self._settings = config
        self._on_decision = on_decision

        self.store = StateStore(Database(config.database_path))
        self.store.initialize()

        self.client = RosterApiClient(
            config.roster_api_base_url,
            roster_path=config.roster_path,
            mark_attended_path=config.mark_attended_path,
            mark_attended_method=config.mark_attended_method,
            timeout=config.request_timeout_seconds,
            transport=transport,
        )
        self.roster = RosterCache(self.store, self.client)
        self.ledger = ScanLedger(self.store)
        self.queue = PendingSyncQueue(self.store)
        self.stats = StatsAggregator(self.ledger, self.queue, on_change=on_stats)
        self.dispatcher = SyncDispatcher(
            self.client,
            self.queue,
            pacing_seconds=config.sync_pacing_seconds,
            on_synced=lambda _participant_id: self.stats.refresh(),
        )
        self.monitor = ConnectivityMonitor(
            self.client,
            self.dispatcher,
            interval_seconds=config.connectivity_probe_seconds,
        )
        self.service = CheckInService(self.store, self.roster, self.ledger, self.queue, self.dispatcher, self.stats)

        self._feed = PayloadFeed()
        self._source: PayloadSource | None = None
        self._background: list[asyncio.Task] = []

    async def load_roster(self) -> list[Participant]:
        """Load (or refresh) the roster; raises NoRosterAvailable when nothing is usable."""
        participants = await self.roster.load(checked_in=self.ledger.ids())
        self.stats.refresh()
        return participants

    async def start(self) -> None:
        await self.load_roster()
        await self.dispatcher.set_online(self.roster.loaded_from_remote)
        loop = asyncio.get_running_loop()
        self._background = [
            loop.create_task(self.dispatcher.run_periodic(self._settings.sync_interval_seconds)),
            loop.create_task(self.monitor.run()),
        ]
        if self.queue.size():
            self._background.append(loop.create_task(self.dispatcher.sweep()))

    def process(self, raw: str) -> ScanDecision:
        decision = self.service.check_in(raw)
        if self._on_decision is not None:
            self._on_decision(decision)
        return decision

    async def run(self, source: PayloadSource) -> None:
        """Start the terminal and consume payloads from ``source`` until it finishes."""
        self._feed.bind(asyncio.get_running_loop())
        self._feed.lossy = source.lossy
        self._source = source
        try:
            await self.start()
            source.start(self._feed)
            while True:
                payload = await self._feed.get()
                if payload is None:
                    break
                self.process(payload)
                await self._cooldown()
        finally:
            await self.stop()

    async def stop(self) -> None:
        if self._source is not None:
            self._source.stop()
            self._source = None

        for task in self._background:
            task.cancel()
        for task in self._background:
            with suppress(asyncio.CancelledError):
                await task
        self._background = []

        # Dispatches already sent are allowed to land before the client closes.
        await self.dispatcher.wait_in_flight(timeout=self._settings.request_timeout_seconds)
        await self.client.aclose()

    def reset(self) -> None:
        """Operator reset: forget roster, scan records and pending sync."""
        self.store.reset()
        self.roster.clear()
        self.ledger.reload()
        self.queue.reload()
        self.stats.refresh()
        logger.warning("Local terminal state cleared by operator")

    async def _cooldown(self) -> None:
        source = self._source
        self._feed.suspend()
        if isinstance(source, CameraSource):
            source.suspend()
        try:
            await asyncio.sleep(self._settings.scan_cooldown_seconds)
        finally:
            if isinstance(source, CameraSource):
                source.resume()
            self._feed.resume()
