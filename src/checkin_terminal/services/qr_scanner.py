from __future__ import annotations

import logging
import threading
import time
import unicodedata
from contextlib import suppress
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SCAN_INTERVAL_SECONDS = 0.08
DEDUP_INTERVAL_SECONDS = 0.8


def decode_symbol_data(raw: bytes | str) -> str:
    if not raw:
        return ""

    if isinstance(raw, str):
        decoded = raw
    else:
        try:
            decoded = raw.decode("utf-8")
        except UnicodeDecodeError:
            decoded = raw.decode("utf-8", errors="ignore")

    normalized = unicodedata.normalize("NFC", decoded)
    return normalized.strip()


class QRScanner:
    """Camera capture loop producing decoded QR payload strings.

    Frames are grabbed with OpenCV and decoded with zxing-cpp on a background
    thread. ``suspend()`` skips decoding until ``resume()``; switching cameras
    restarts only this loop.
    """

    def __init__(self, camera_index: int = 0) -> None:
        self._camera_index = camera_index
        self._running = False
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._suspend_event = threading.Event()
        self._lock = threading.Lock()
        self._on_payload: Optional[Callable[[str], None]] = None
        self._on_error: Optional[Callable[[str], None]] = None

    @property
    def camera_index(self) -> int:
        return self._camera_index

    @property
    def is_running(self) -> bool:
        return self._running

    def start(
        self,
        on_payload: Callable[[str], None],
        *,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> bool:
        """Start the background scanner loop."""

        with self._lock:
            if self._running:
                return True

            try:
                import cv2  # type: ignore[import-not-found]
                import zxingcpp  # type: ignore[import-not-found]
            except ImportError:
                message = "Missing QR scanner dependencies. Install the 'camera' extra (opencv-python, zxing-cpp)."
                logger.error(message)
                if on_error:
                    on_error(message)
                return False

            self._on_payload = on_payload
            self._on_error = on_error
            self._stop_event.clear()

            def _runner() -> None:
                self._run_loop(on_payload, on_error, cv2, zxingcpp)

            self._thread = threading.Thread(target=_runner, daemon=True)
            self._running = True
            self._thread.start()
            return True

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.5)
        self._thread = None

    def switch_camera(self, camera_index: int) -> bool:
        on_payload, on_error = self._on_payload, self._on_error
        self.stop()
        self._camera_index = camera_index
        if on_payload is None:
            return False
        return self.start(on_payload, on_error=on_error)

    def suspend(self) -> None:
        self._suspend_event.set()

    def resume(self) -> None:
        self._suspend_event.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run_loop(
        self,
        on_payload: Callable[[str], None],
        on_error: Optional[Callable[[str], None]],
        cv2_module,
        zxing_module,
    ) -> None:
        capture = None
        last_payload: Optional[str] = None
        last_timestamp: float = 0.0

        try:
            capture = self._open_capture(cv2_module, on_error)
            if capture is None:
                return

            while not self._stop_event.is_set():
                ok, frame = capture.read()
                if not ok or self._suspend_event.is_set():
                    time.sleep(SCAN_INTERVAL_SECONDS)
                    continue

                now = time.time()

                try:
                    decoded = zxing_module.read_barcodes(
                        frame,
                        formats=zxing_module.BarcodeFormat.QRCode,
                        try_rotate=True,
                        try_downscale=True,
                    )
                except Exception:
                    logger.debug("QR decode failed for frame", exc_info=True)
                    decoded = []

                for obj in decoded or []:
                    if hasattr(obj, "valid") and not obj.valid:
                        continue

                    payload = decode_symbol_data(getattr(obj, "text", ""))
                    if not payload:
                        payload_bytes = getattr(obj, "bytes", b"") or b""
                        if not isinstance(payload_bytes, (bytes, bytearray)):
                            payload_bytes = bytes(payload_bytes)
                        payload = decode_symbol_data(bytes(payload_bytes))
                    if not payload:
                        continue

                    if last_payload == payload and (now - last_timestamp) < DEDUP_INTERVAL_SECONDS:
                        continue

                    last_payload = payload
                    last_timestamp = now
                    on_payload(payload)

                time.sleep(SCAN_INTERVAL_SECONDS)
        finally:
            if capture is not None:
                with suppress(Exception):
                    capture.release()
            self._stop_event.clear()
            with self._lock:
                self._running = False

    def _open_capture(self, cv2_module, on_error: Optional[Callable[[str], None]]):
        backend_preferences = [getattr(cv2_module, "CAP_DSHOW", None), getattr(cv2_module, "CAP_ANY", None)]

        for backend in backend_preferences:
            if backend is None:
                capture = cv2_module.VideoCapture(self._camera_index)
            else:
                capture = cv2_module.VideoCapture(self._camera_index, backend)

            if capture.isOpened():
                return capture

            capture.release()

        message = f"Unable to access camera {self._camera_index}. Check that it is connected and not used by another app."
        logger.error(message)
        if on_error:
            on_error(message)
        return None
