"""Terminal spinner shown while waiting for the first bytes of a reply."""

from __future__ import annotations

import sys
import threading
from typing import TextIO

_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
_INTERVAL = 0.08  # seconds between frames
_CLEAR_LINE = "\033[2K\r"


class Spinner:
    """Braille-dot spinner drawn from a daemon thread.

    ``start`` is a no-op while already spinning and ``stop`` is a no-op
    when idle, so both can be called freely from the stream loop.  Nothing
    is drawn when *stream* is not a TTY.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stderr
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._is_tty: bool = hasattr(self._stream, "isatty") and self._stream.isatty()
        self.message = ""

    @property
    def running(self) -> bool:
        return self._thread is not None

    def start(self, message: str = "Claude is thinking...") -> None:
        self.message = message
        if not self._is_tty or self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._spin, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop.set()
        thread.join(timeout=1.0)
        self._thread = None
        self._stream.write(_CLEAR_LINE)
        self._stream.flush()

    def _spin(self) -> None:
        idx = 0
        while not self._stop.is_set():
            frame = _FRAMES[idx % len(_FRAMES)]
            self._stream.write(f"{_CLEAR_LINE}{frame} {self.message}")
            self._stream.flush()
            idx += 1
            self._stop.wait(_INTERVAL)
