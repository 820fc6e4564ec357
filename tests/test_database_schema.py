from __future__ import annotations

from pathlib import Path

from checkin_terminal.data import Database


def test_initialize_creates_tables(tmp_path: Path) -> None:
    db_path = tmp_path / "checkin.db"
    database = Database(db_path)
    database.initialize()

    with database.connect() as connection:
        tables = {
            row[0]
            for row in connection.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            )
        }

    expected_tables = {
        "participants",
        "scan_records",
        "pending_sync",
        "state_buckets",
        "schema_migrations",
    }

    assert expected_tables.issubset(tables)


def test_initialize_is_repeatable(tmp_path: Path) -> None:
    database = Database(tmp_path / "nested" / "checkin.db")
    database.initialize()
    database.initialize()

    with database.connect() as connection:
        applied = connection.execute("SELECT COUNT(*) FROM schema_migrations").fetchone()[0]

    assert applied == 1
