from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Optional, TextIO


class PayloadFeed:
    """Hands decoded payloads from capture threads to the event loop.

    While suspended (the post-decision cooldown) payloads from a lossy source
    such as a camera are dropped rather than queued; payloads from a lossless
    source wait until the cooldown ends. Either way only one decision is ever
    in flight.
    """

    def __init__(self, *, lossy: bool = True) -> None:
        self.lossy = lossy
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._suspended = False

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def suspended(self) -> bool:
        return self._suspended

    def push(self, payload: str) -> None:
        if not payload or (self._suspended and self.lossy):
            return
        self._queue.put_nowait(payload)

    def push_threadsafe(self, payload: str) -> None:
        self._require_loop().call_soon_threadsafe(self.push, payload)

    def close(self) -> None:
        self._queue.put_nowait(None)

    def close_threadsafe(self) -> None:
        self._require_loop().call_soon_threadsafe(self.close)

    def suspend(self) -> None:
        self._suspended = True

    def resume(self) -> None:
        self._suspended = False
        if not self.lossy:
            return
        # Frames decoded before the cooldown started are stale by now; the
        # end-of-input marker is the only thing worth keeping.
        closed = False
        while not self._queue.empty():
            if self._queue.get_nowait() is None:
                closed = True
        if closed:
            self._queue.put_nowait(None)

    async def get(self) -> Optional[str]:
        """Next payload, or None once the source has finished."""
        return await self._queue.get()

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise RuntimeError("PayloadFeed is not bound to an event loop")
        return self._loop


class LineReader:
    """Reads one payload per line from a text stream (stdin or a file)."""

    lossy = False

    def __init__(self, stream: TextIO, *, owns_stream: bool = False) -> None:
        self._stream = stream
        self._owns_stream = owns_stream
        self._thread: threading.Thread | None = None

    @classmethod
    def open(cls, path: Path | str) -> "LineReader":
        """Read payloads from a file; the file is closed once it is exhausted or on stop."""
        return cls(Path(path).open("r", encoding="utf-8"), owns_stream=True)

    @property
    def closed(self) -> bool:
        return self._stream.closed

    def start(self, feed: PayloadFeed) -> None:
        def _runner() -> None:
            try:
                for line in self._stream:
                    payload = line.strip()
                    if payload:
                        feed.push_threadsafe(payload)
            finally:
                if self._owns_stream:
                    self._stream.close()
                feed.close_threadsafe()

        self._thread = threading.Thread(target=_runner, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        # Blocking reads cannot be interrupted; the daemon thread dies with the process.
        thread, self._thread = self._thread, None
        if self._owns_stream and (thread is None or not thread.is_alive()):
            self._stream.close()
