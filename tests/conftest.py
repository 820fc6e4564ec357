# Ensure src/ is importable when the package has not been installed.
import sys
from pathlib import Path

import httpx
import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from checkin_terminal.data import Database, StateStore  # noqa: E402
from checkin_terminal.services import RosterApiClient  # noqa: E402

BASE_URL = "http://authority.test/dev"

ROSTER = [
    {"id": 1, "name": "Shubham Gupta", "email": "shubham@example.com", "mobile": None, "role": "Organizer", "status": "approved"},
    {"id": 2, "name": "Kiran Choudhary", "email": "kiran@example.com", "mobile": None, "role": "Volunteer", "status": "pending"},
    {"id": 3, "name": "Ojas Joshi", "email": "ojas@example.com", "mobile": "8824427953", "role": "Volunteer", "status": "approved"},
    {"id": 4, "name": "Priyanka Jangid", "email": "priyanka@example.com", "mobile": "9352634485", "role": "Attendee", "status": "attended"},
]


class FakeAuthority:
    """In-memory roster authority served through httpx.MockTransport."""

    def __init__(self, participants=None) -> None:
        self.participants = [dict(record) for record in (participants if participants is not None else ROSTER)]
        self.roster_status = 200
        self.mark_status = 200
        self.reachable = True
        self.marked: list[tuple[str, int]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if not self.reachable:
            raise httpx.ConnectError("authority unreachable", request=request)

        path = request.url.path
        if path.endswith("/admin/participants"):
            return httpx.Response(self.roster_status, json=self.participants)
        if "/admin/participant/mark-attended/" in path:
            participant_id = int(path.rsplit("/", 1)[1])
            self.marked.append((request.method, participant_id))
            return httpx.Response(self.mark_status, json={"id": participant_id})
        return httpx.Response(200, text="ok")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def store(tmp_path: Path) -> StateStore:
    state_store = StateStore(Database(tmp_path / "checkin.db"))
    state_store.initialize()
    return state_store


@pytest.fixture
def authority() -> FakeAuthority:
    return FakeAuthority()


@pytest.fixture
def client(authority: FakeAuthority) -> RosterApiClient:
    return RosterApiClient(BASE_URL, timeout=1.0, transport=authority.transport)
