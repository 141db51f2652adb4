from __future__ import annotations

from threading import Lock


class RequestSequencer:
    """Monotonic request tags used to drop responses that were superseded."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._latest = 0

    def issue(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_latest(self, sequence: int) -> bool:
        with self._lock:
            return sequence == self._latest

    @property
    def latest(self) -> int:
        with self._lock:
            return self._latest
