from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from checkin_terminal.data import SCAN_RECORDS_BUCKET, StateStore
from checkin_terminal.models import ScanRecord


class ScanLedger:
    """Append-only record of participants accepted at this terminal."""

    def __init__(self, store: StateStore) -> None:
        self._store = store
        self._records: dict[int, ScanRecord] = {}
        self.reload()

    def reload(self) -> None:
        stored = self._store.load_scan_records()
        if stored is None:
            self._store.ensure_bucket(SCAN_RECORDS_BUCKET)
            stored = []
        self._records = {record.participant_id: record for record in stored}

    def add(self, participant_id: int, scanned_at: Optional[datetime] = None) -> ScanRecord:
        existing = self._records.get(participant_id)
        if existing is not None:
            return existing
        record = ScanRecord(participant_id, scanned_at or datetime.now(timezone.utc))
        self._store.add_scan_record(record)
        self.remember(record)
        return record

    def remember(self, record: ScanRecord) -> None:
        """Track a record that has already been persisted."""
        self._records.setdefault(record.participant_id, record)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def ids(self) -> list[int]:
        return list(self._records)

    def records(self) -> list[ScanRecord]:
        return list(self._records.values())
