from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from checkin_terminal.services.pending_sync import PendingSyncQueue
from checkin_terminal.services.scan_ledger import ScanLedger


@dataclass(frozen=True, slots=True)
class CheckInStats:
    checked_in: int
    pending_sync: int

    @property
    def synced(self) -> int:
        return self.checked_in - self.pending_sync


class StatsAggregator:
    def __init__(
        self,
        ledger: ScanLedger,
        queue: PendingSyncQueue,
        *,
        on_change: Optional[Callable[[CheckInStats], None]] = None,
    ) -> None:
        self._ledger = ledger
        self._queue = queue
        self._on_change = on_change

    def current(self) -> CheckInStats:
        return CheckInStats(checked_in=len(self._ledger), pending_sync=self._queue.size())

    def refresh(self) -> CheckInStats:
        stats = self.current()
        if self._on_change is not None:
            self._on_change(stats)
        return stats
