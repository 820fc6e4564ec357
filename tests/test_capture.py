import asyncio
import io
from dataclasses import replace
from types import SimpleNamespace

import pytest

from checkin_terminal.app import CameraSource, CheckInTerminal
from checkin_terminal.config.settings import Settings
from checkin_terminal.models import ParticipantStatus
from checkin_terminal.services import LineReader, NoRosterAvailable, PayloadFeed, QRScanner, ScanOutcome
from checkin_terminal.services.qr_scanner import decode_symbol_data


class FakeCapture:
    def __init__(self, scanner, frames):
        self._scanner = scanner
        self._frames = list(frames)
        self.released = False

    def isOpened(self):
        return True

    def read(self):
        if not self._frames:
            self._scanner._stop_event.set()
            return False, None
        return True, self._frames.pop(0)

    def release(self):
        self.released = True


def fake_zxing():
    def read_barcodes(frame, **kwargs):
        if frame is None:
            return []
        return [SimpleNamespace(valid=True, text=frame, bytes=b"")]

    return SimpleNamespace(
        read_barcodes=read_barcodes,
        BarcodeFormat=SimpleNamespace(QRCode="QRCode"),
    )


def test_decode_symbol_data_normalizes_bytes_and_text():
    assert decode_symbol_data(b"  id : 1  ") == "id : 1"
    assert decode_symbol_data(b"id : 2\xff") == "id : 2"
    assert decode_symbol_data("") == ""


def test_scanner_loop_emits_payloads_and_skips_repeats():
    scanner = QRScanner(camera_index=1)
    capture = FakeCapture(scanner, ["id : 1", "id : 1", "", "id : 2"])
    fake_cv2 = SimpleNamespace(VideoCapture=lambda index, *args: capture)
    payloads = []

    scanner._run_loop(payloads.append, None, fake_cv2, fake_zxing())

    assert payloads == ["id : 1", "id : 2"]
    assert capture.released
    assert not scanner.is_running


def test_scanner_reports_unavailable_camera():
    class ClosedCapture:
        def isOpened(self):
            return False

        def release(self):
            pass

    errors = []
    scanner = QRScanner(camera_index=3)
    fake_cv2 = SimpleNamespace(VideoCapture=lambda index, *args: ClosedCapture())

    scanner._run_loop(lambda payload: None, errors.append, fake_cv2, fake_zxing())

    assert len(errors) == 1
    assert "camera 3" in errors[0]


@pytest.mark.asyncio
async def test_lossy_feed_drops_payloads_during_cooldown():
    feed = PayloadFeed()
    feed.push("id : 1")
    feed.suspend()
    feed.push("id : 2")
    feed.resume()
    feed.push("id : 3")
    feed.close()

    assert await feed.get() == "id : 3"
    assert await feed.get() is None


@pytest.mark.asyncio
async def test_lossless_feed_queues_payloads_during_cooldown():
    feed = PayloadFeed(lossy=False)
    feed.suspend()
    feed.push("id : 1")
    feed.push("")
    feed.resume()

    assert await feed.get() == "id : 1"


@pytest.mark.asyncio
async def test_line_reader_feeds_each_line_then_finishes():
    feed = PayloadFeed(lossy=False)
    feed.bind(asyncio.get_running_loop())

    LineReader(io.StringIO("id : 1\n\n  id : 2  \n")).start(feed)

    assert await asyncio.wait_for(feed.get(), timeout=2) == "id : 1"
    assert await asyncio.wait_for(feed.get(), timeout=2) == "id : 2"
    assert await asyncio.wait_for(feed.get(), timeout=2) is None


@pytest.fixture
def terminal_settings(tmp_path):
    return replace(
        Settings.from_env(),
        database_path=tmp_path / "checkin.db",
        roster_api_base_url="http://authority.test/dev",
        roster_path="/admin/participants",
        mark_attended_path="/admin/participant/mark-attended",
        mark_attended_method="PUT",
        request_timeout_seconds=1.0,
        scan_cooldown_seconds=0.0,
        sync_pacing_seconds=0.0,
    )


@pytest.mark.asyncio
async def test_terminal_run_processes_line_source(terminal_settings, authority):
    decisions = []
    terminal = CheckInTerminal(terminal_settings, transport=authority.transport, on_decision=decisions.append)

    source = LineReader(io.StringIO("id : 1, status : approved\nid : 1, status : approved\nid : 2\n"))
    await asyncio.wait_for(terminal.run(source), timeout=5)

    assert [decision.outcome for decision in decisions] == [
        ScanOutcome.ACCEPTED,
        ScanOutcome.ALREADY_CHECKED_IN,
        ScanOutcome.NOT_APPROVED,
    ]
    assert ("PUT", 1) in authority.marked
    assert terminal.queue.all() == []


class FakeCameraScanner:
    """Hands out one payload per resume and decodes a stray frame during every cooldown."""

    def __init__(self, payloads):
        self._payloads = list(payloads)
        self._on_payload = None
        self._on_error = None
        self.events = []

    def start(self, on_payload, *, on_error=None):
        self._on_payload = on_payload
        self._on_error = on_error
        self._emit_next()
        return True

    def stop(self):
        self.events.append("stop")

    def suspend(self):
        self.events.append("suspend")
        self._on_payload("id : 3, status : approved")

    def resume(self):
        self.events.append("resume")
        self._emit_next()

    def _emit_next(self):
        if self._payloads:
            self._on_payload(self._payloads.pop(0))
        else:
            self._on_error("camera closed")


@pytest.mark.asyncio
async def test_cooldown_pauses_camera_after_every_decision(terminal_settings, authority):
    decisions = []
    terminal = CheckInTerminal(terminal_settings, transport=authority.transport, on_decision=decisions.append)
    scanner = FakeCameraScanner(["id : 1, status : approved", "id : 2"])

    await asyncio.wait_for(terminal.run(CameraSource(scanner)), timeout=5)

    assert [decision.outcome for decision in decisions] == [ScanOutcome.ACCEPTED, ScanOutcome.NOT_APPROVED]
    assert scanner.events == ["suspend", "resume", "suspend", "resume", "stop"]
    # Frames decoded while suspended never reach the validator.
    assert 3 not in terminal.ledger
    assert terminal.roster.lookup(3).status is ParticipantStatus.APPROVED


@pytest.mark.asyncio
async def test_line_reader_closes_file_it_opened(terminal_settings, authority, tmp_path):
    payloads = tmp_path / "payloads.txt"
    payloads.write_text("id : 3, status : approved\n", encoding="utf-8")
    terminal = CheckInTerminal(terminal_settings, transport=authority.transport)
    source = LineReader.open(payloads)

    await asyncio.wait_for(terminal.run(source), timeout=5)

    assert source.closed
    assert terminal.ledger.ids() == [3]


@pytest.mark.asyncio
async def test_line_reader_file_is_closed_when_startup_fails(terminal_settings, authority, tmp_path):
    payloads = tmp_path / "payloads.txt"
    payloads.write_text("id : 1\n", encoding="utf-8")
    authority.reachable = False
    terminal = CheckInTerminal(terminal_settings, transport=authority.transport)
    source = LineReader.open(payloads)

    with pytest.raises(NoRosterAvailable):
        await terminal.run(source)

    assert source.closed


def test_line_reader_leaves_borrowed_stream_open():
    stream = io.StringIO("id : 1\n")
    reader = LineReader(stream)

    reader.stop()

    assert not stream.closed
