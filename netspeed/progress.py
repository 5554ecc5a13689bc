"""User-facing progress narration."""

from __future__ import annotations

import sys
import threading
from typing import Optional, TextIO


class ProgressReporter:
    """Writes progress lines to a stream unless running quiet.

    Worker threads emit dots concurrently, so writes are serialized.
    """

    def __init__(self, stream: Optional[TextIO] = None, quiet: bool = False):
        self.stream = stream if stream is not None else sys.stdout
        self.quiet = quiet
        self._lock = threading.Lock()

    def say(self, message: str) -> None:
        self._write(message + "\n")

    def begin(self, message: str) -> None:
        self._write(message)

    def tick(self) -> None:
        self._write(".")

    def end(self) -> None:
        self._write("\n")

    def _write(self, text: str) -> None:
        if self.quiet:
            return
        with self._lock:
            self.stream.write(text)
            self.stream.flush()
