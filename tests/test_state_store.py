from __future__ import annotations

from datetime import datetime, timezone

from checkin_terminal.data import PENDING_SYNC_BUCKET, ROSTER_BUCKET, SCAN_RECORDS_BUCKET
from checkin_terminal.models import Participant, ParticipantStatus, Role, ScanRecord


def test_absent_buckets_load_as_none(store):
    assert store.load_roster() is None
    assert store.load_scan_records() is None
    assert store.load_pending() is None
    assert not store.has_bucket(ROSTER_BUCKET)


def test_empty_buckets_are_distinct_from_absent(store):
    store.save_roster([])
    store.ensure_bucket(SCAN_RECORDS_BUCKET)
    store.ensure_bucket(PENDING_SYNC_BUCKET)

    assert store.load_roster() == []
    assert store.load_scan_records() == []
    assert store.load_pending() == []


def test_save_roster_replaces_whole_snapshot(store):
    store.save_roster(
        [
            Participant(id=1, name="One", role=Role.ORGANIZER, status=ParticipantStatus.APPROVED),
            Participant(id=2, name="Two"),
        ]
    )
    store.save_roster([Participant(id=3, name="Three", email="three@example.com")])

    roster = store.load_roster()
    assert [participant.id for participant in roster] == [3]
    assert roster[0].email == "three@example.com"
    assert roster[0].status is ParticipantStatus.PENDING


def test_pending_keeps_insertion_order_without_duplicates(store):
    for participant_id in (5, 2, 5, 9):
        store.add_pending(participant_id)
    store.remove_pending(2)
    store.remove_pending(42)

    assert store.load_pending() == [5, 9]


def test_scan_records_round_trip_timestamp(store):
    scanned_at = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
    store.add_scan_record(ScanRecord(7, scanned_at))
    store.add_scan_record(ScanRecord(7, datetime.now(timezone.utc)))

    records = store.load_scan_records()
    assert records == [ScanRecord(7, scanned_at)]


def test_reset_clears_every_bucket(store):
    store.save_roster([Participant(id=1, name="One")])
    store.add_scan_record(ScanRecord(1))
    store.add_pending(1)

    store.reset()

    assert store.load_roster() is None
    assert store.load_scan_records() is None
    assert store.load_pending() is None
