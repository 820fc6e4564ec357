from .checkin_service import CheckInService
from .connectivity import ConnectivityMonitor
from .feed import LineReader, PayloadFeed
from .payload import PayloadFormatError, ScanPayload, parse_payload
from .pending_sync import PendingSyncQueue
from .qr_scanner import QRScanner
from .roster_api import MalformedRosterError, RosterApiClient, RosterApiError
from .roster_cache import NoRosterAvailable, RosterCache, UnknownParticipantError
from .scan_ledger import ScanLedger
from .scan_validator import ScanDecision, ScanOutcome, ScanValidator
from .stats import CheckInStats, StatsAggregator
from .sync_dispatcher import SyncDispatcher

__all__ = [
    "CheckInService",
    "CheckInStats",
    "ConnectivityMonitor",
    "LineReader",
    "MalformedRosterError",
    "NoRosterAvailable",
    "PayloadFeed",
    "PayloadFormatError",
    "PendingSyncQueue",
    "QRScanner",
    "RosterApiClient",
    "RosterApiError",
    "RosterCache",
    "ScanDecision",
    "ScanLedger",
    "ScanOutcome",
    "ScanPayload",
    "ScanValidator",
    "StatsAggregator",
    "SyncDispatcher",
    "UnknownParticipantError",
    "parse_payload",
]
