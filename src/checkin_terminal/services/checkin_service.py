from __future__ import annotations

import asyncio
import logging
from typing import Optional

from checkin_terminal.data import StateStore
from checkin_terminal.models import ParticipantStatus, ScanRecord
from checkin_terminal.services.pending_sync import PendingSyncQueue
from checkin_terminal.services.roster_cache import RosterCache
from checkin_terminal.services.scan_ledger import ScanLedger
from checkin_terminal.services.scan_validator import ScanDecision, ScanValidator
from checkin_terminal.services.stats import StatsAggregator
from checkin_terminal.services.sync_dispatcher import SyncDispatcher

logger = logging.getLogger(__name__)


class CheckInService:
    def __init__(
        self,
        store: StateStore,
        roster: RosterCache,
        ledger: ScanLedger,
        queue: PendingSyncQueue,
        dispatcher: SyncDispatcher,
        stats: StatsAggregator,
    ) -> None:
        self._store = store
        self._roster = roster
        self._ledger = ledger
        self._queue = queue
        self._dispatcher = dispatcher
        self._stats = stats
        self._validator = ScanValidator(roster, ledger)
        self.last_dispatch: Optional[asyncio.Task] = None

    def check_in(self, raw: str) -> ScanDecision:
        """Validate a decoded payload and, when accepted, record the check-in locally.

        Must be called from the event loop: an accepted scan schedules an
        immediate best-effort dispatch for the participant.
        """
        decision = self._validator.validate(raw)
        if not decision.accepted:
            logger.info("Scan rejected (%s): %s", decision.outcome.value, decision.message)
            return decision

        participant = decision.participant
        assert participant is not None

        # Roster, scan record and pending entry are committed in one transaction;
        # the in-memory views follow only once it has succeeded.
        snapshot = self._roster.stage_status(participant.id, ParticipantStatus.ATTENDED)
        record = ScanRecord(participant.id)
        self._store.record_check_in(snapshot.values(), record)
        self._roster.adopt(snapshot)
        self._ledger.remember(record)
        self._queue.remember(participant.id)
        self._stats.refresh()
        updated = snapshot[participant.id]
        logger.info("Checked in participant %s (%s)", participant.id, participant.name)

        self.last_dispatch = self._dispatcher.dispatch_soon(participant.id)

        sync_note = "Data syncing now." if self._dispatcher.online else "Will sync when online."
        return ScanDecision(
            decision.outcome,
            decision.title,
            f"{decision.message} {sync_note}",
            payload=decision.payload,
            participant=updated,
        )
