from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Iterable

from checkin_terminal.data.database import Database
from checkin_terminal.models import Participant, ParticipantStatus, Role, ScanRecord

ROSTER_BUCKET = "roster"
SCAN_RECORDS_BUCKET = "scan_records"
PENDING_SYNC_BUCKET = "pending_sync"

BUCKETS = (ROSTER_BUCKET, SCAN_RECORDS_BUCKET, PENDING_SYNC_BUCKET)


class StateStore:
    """Persisted terminal state split into three independent buckets.

    A bucket that was never saved is *absent* and its ``load_*`` method returns
    ``None``; a bucket that was saved with no entries loads as an empty list.
    Every write runs inside a single transaction so readers never see a
    partially written snapshot.
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    def initialize(self) -> None:
        self._database.initialize()

    def has_bucket(self, name: str) -> bool:
        with self._database.connect() as connection:
            return self._bucket_exists(connection, name)

    def ensure_bucket(self, name: str) -> None:
        """Mark ``name`` as present without touching its contents."""
        with self._database.connect() as connection:
            if not self._bucket_exists(connection, name):
                self._touch_bucket(connection, name)

    # ------------------------------------------------------------------
    # Roster snapshot
    # ------------------------------------------------------------------
    def load_roster(self) -> list[Participant] | None:
        with self._database.connect() as connection:
            if not self._bucket_exists(connection, ROSTER_BUCKET):
                return None
            rows = connection.execute(
                """
                SELECT id, name, email, mobile, role, status
                  FROM participants
              ORDER BY id ASC
                """
            ).fetchall()

        return [
            Participant(
                id=int(row["id"]),
                name=row["name"],
                email=row["email"],
                mobile=row["mobile"],
                role=Role(row["role"]),
                status=ParticipantStatus(row["status"]),
            )
            for row in rows
        ]

    def save_roster(self, participants: Iterable[Participant]) -> None:
        with self._database.connect() as connection:
            self._write_roster(connection, participants)

    # ------------------------------------------------------------------
    # Scan records
    # ------------------------------------------------------------------
    def load_scan_records(self) -> list[ScanRecord] | None:
        with self._database.connect() as connection:
            if not self._bucket_exists(connection, SCAN_RECORDS_BUCKET):
                return None
            rows = connection.execute(
                "SELECT participant_id, scanned_at FROM scan_records ORDER BY scanned_at ASC, participant_id ASC"
            ).fetchall()

        return [
            ScanRecord(
                participant_id=int(row["participant_id"]),
                scanned_at=datetime.fromisoformat(row["scanned_at"]),
            )
            for row in rows
        ]

    def add_scan_record(self, record: ScanRecord) -> None:
        with self._database.connect() as connection:
            self._insert_scan_record(connection, record)

    # ------------------------------------------------------------------
    # Pending sync
    # ------------------------------------------------------------------
    def load_pending(self) -> list[int] | None:
        with self._database.connect() as connection:
            if not self._bucket_exists(connection, PENDING_SYNC_BUCKET):
                return None
            rows = connection.execute(
                "SELECT participant_id FROM pending_sync ORDER BY seq ASC"
            ).fetchall()
        return [int(row["participant_id"]) for row in rows]

    def add_pending(self, participant_id: int) -> None:
        with self._database.connect() as connection:
            self._insert_pending(connection, participant_id)

    def remove_pending(self, participant_id: int) -> None:
        with self._database.connect() as connection:
            connection.execute(
                "DELETE FROM pending_sync WHERE participant_id = ?",
                (participant_id,),
            )
            self._touch_bucket(connection, PENDING_SYNC_BUCKET)

    # ------------------------------------------------------------------
    # Check-in
    # ------------------------------------------------------------------
    def record_check_in(self, roster: Iterable[Participant], record: ScanRecord) -> None:
        """Persist an accepted scan in one transaction.

        The roster snapshot (already carrying the attended status), the scan
        record and the pending-sync entry are committed together or not at all.
        """
        with self._database.connect() as connection:
            self._write_roster(connection, roster)
            self._insert_scan_record(connection, record)
            self._insert_pending(connection, record.participant_id)

    # ------------------------------------------------------------------
    # Operator reset
    # ------------------------------------------------------------------
    def reset(self) -> None:
        with self._database.connect() as connection:
            connection.execute("DELETE FROM participants")
            connection.execute("DELETE FROM scan_records")
            connection.execute("DELETE FROM pending_sync")
            connection.execute("DELETE FROM state_buckets")

    def _write_roster(self, connection: sqlite3.Connection, participants: Iterable[Participant]) -> None:
        connection.execute("DELETE FROM participants")
        connection.executemany(
            """
            INSERT INTO participants (id, name, email, mobile, role, status)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    participant.id,
                    participant.name,
                    participant.email,
                    participant.mobile,
                    participant.role.value,
                    participant.status.value,
                )
                for participant in participants
            ],
        )
        self._touch_bucket(connection, ROSTER_BUCKET)

    def _insert_scan_record(self, connection: sqlite3.Connection, record: ScanRecord) -> None:
        scanned_at = record.scanned_at
        if scanned_at.tzinfo is None:
            scanned_at = scanned_at.replace(tzinfo=timezone.utc)
        connection.execute(
            "INSERT OR IGNORE INTO scan_records (participant_id, scanned_at) VALUES (?, ?)",
            (record.participant_id, scanned_at.isoformat()),
        )
        self._touch_bucket(connection, SCAN_RECORDS_BUCKET)

    def _insert_pending(self, connection: sqlite3.Connection, participant_id: int) -> None:
        connection.execute(
            "INSERT OR IGNORE INTO pending_sync (participant_id) VALUES (?)",
            (participant_id,),
        )
        self._touch_bucket(connection, PENDING_SYNC_BUCKET)

    @staticmethod
    def _bucket_exists(connection: sqlite3.Connection, name: str) -> bool:
        row = connection.execute(
            "SELECT 1 FROM state_buckets WHERE name = ?",
            (name,),
        ).fetchone()
        return row is not None

    @staticmethod
    def _touch_bucket(connection: sqlite3.Connection, name: str) -> None:
        connection.execute(
            """
            INSERT INTO state_buckets (name) VALUES (?)
            ON CONFLICT(name) DO UPDATE SET saved_at = datetime('now')
            """,
            (name,),
        )
