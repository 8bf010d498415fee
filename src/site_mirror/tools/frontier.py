"""Frontier queue and visited sets shared by concurrent page tasks."""

from collections import deque
from threading import Lock
from typing import Iterable


class VisitedSet:
    """Set of normalized URLs claimed for processing."""

    def __init__(self, init: Iterable[str] | None = None):
        self._s: set[str] = set(init or [])
        self._lock = Lock()

    def claim(self, url: str) -> bool:
        """Check-and-insert as one step. True only for the first caller."""
        with self._lock:
            if url in self._s:
                return False
            self._s.add(url)
            return True

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self._s

    def __len__(self) -> int:
        with self._lock:
            return len(self._s)


class Frontier:
    """
    FIFO queue of page URLs awaiting a fetch attempt.
    A URL is accepted at most once: push is a no-op when the URL is already
    visited or already waiting in the queue.
    """

    def __init__(self, visited: VisitedSet):
        self._queue: deque[str] = deque()
        self._queued: set[str] = set()
        self._visited = visited
        self._lock = Lock()

    def push(self, url: str) -> bool:
        with self._lock:
            if url in self._queued or url in self._visited:
                return False
            self._queue.append(url)
            self._queued.add(url)
            return True

    def take_wave(self, size: int) -> list[str]:
        """Remove up to `size` URLs from the head of the queue."""
        with self._lock:
            wave: list[str] = []
            while self._queue and len(wave) < size:
                url = self._queue.popleft()
                self._queued.discard(url)
                wave.append(url)
            return wave

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def __bool__(self) -> bool:
        return len(self) > 0
