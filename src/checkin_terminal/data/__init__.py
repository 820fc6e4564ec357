from .database import Database
from .state_store import (
    BUCKETS,
    PENDING_SYNC_BUCKET,
    ROSTER_BUCKET,
    SCAN_RECORDS_BUCKET,
    StateStore,
)

__all__ = [
    "BUCKETS",
    "Database",
    "PENDING_SYNC_BUCKET",
    "ROSTER_BUCKET",
    "SCAN_RECORDS_BUCKET",
    "StateStore",
]
