"""Translation lookaside buffer with FIFO and LRU replacement."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum


class TlbAlgorithm(Enum):
    """Replacement policy used once the TLB is full."""

    FIFO = "FIFO"
    LRU = "LRU"


def find_tlb_algorithm(name: str) -> TlbAlgorithm:
    """Return the algorithm called ``name``; raise ValueError if unknown."""
    try:
        return TlbAlgorithm(name)
    except ValueError:
        raise ValueError(f"invalid TLB algorithm: {name!r}") from None


@dataclass
class TlbEntry:
    """One cached page-to-frame mapping."""

    pid: int
    page_number: int
    frame_number: int
    time: int = 0


class Tlb:
    """A fixed-capacity cache of page translations, safe to share between threads."""

    def __init__(self, capacity: int, algorithm: TlbAlgorithm) -> None:
        self.capacity = capacity
        self.algorithm = algorithm
        self._entries: list[TlbEntry] = []
        self._timestamp = 0
        self._fifo_index = 0
        self._lock = threading.Lock()

    def _tick(self) -> int:
        now = self._timestamp
        self._timestamp += 1
        return now

    def lookup(self, pid: int, page_number: int) -> int | None:
        """Return the cached frame for the page, or None on a miss."""
        with self._lock:
            for entry in self._entries:
                if entry.pid == pid and entry.page_number == page_number:
                    if self.algorithm is TlbAlgorithm.LRU:
                        entry.time = self._tick()
                    return entry.frame_number
            return None

    def insert(self, pid: int, page_number: int, frame_number: int) -> None:
        """Cache a translation, replacing a victim when the TLB is full.

        A TLB with no capacity caches nothing.
        """
        if self.capacity <= 0:
            return
        with self._lock:
            if len(self._entries) < self.capacity:
                self._entries.append(TlbEntry(pid, page_number, frame_number, self._tick()))
                return
            victim = self._entries[self._victim_index()]
            victim.pid = pid
            victim.page_number = page_number
            victim.frame_number = frame_number
            victim.time = self._tick()

    def _victim_index(self) -> int:
        if self.algorithm is TlbAlgorithm.LRU:
            return min(range(len(self._entries)), key=lambda i: self._entries[i].time)
        index = self._fifo_index
        self._fifo_index = (index + 1) % len(self._entries)
        return index

    def remove_process(self, pid: int) -> None:
        """Drop every entry belonging to ``pid``."""
        with self._lock:
            self._entries = [entry for entry in self._entries if entry.pid != pid]

    def remove_on_resize(self, pid: int, resize_number: int) -> None:
        """Drop the entries of ``pid`` whose page is ``resize_number - 1`` or beyond."""
        threshold = resize_number - 1
        if threshold < 0:
            return
        with self._lock:
            self._entries = [
                entry
                for entry in self._entries
                if not (entry.pid == pid and entry.page_number >= threshold)
            ]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TlbEntry]:
        return iter(list(self._entries))