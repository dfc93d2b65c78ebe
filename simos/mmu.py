"""Logical-to-physical address translation backed by a TLB."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from simos.tlb import Tlb

logger = logging.getLogger(__name__)


class MemoryAccessError(Exception):
    """Memory refused a request or answered it with an error."""


class MemoryPort(Protocol):
    """The operations the CPU asks of the memory module."""

    def page_size(self) -> int:
        """Size of a page in bytes."""

    def fetch_instruction(self, pid: int, pc: int) -> str:
        """Text of instruction ``pc`` of process ``pid``."""

    def frame(self, pid: int, page_number: int) -> int:
        """Frame holding ``page_number``; raise MemoryAccessError if it has none."""

    def read(self, pid: int, addresses: Sequence[int], size: int) -> bytes:
        """Read ``size`` bytes spread over the physical ``addresses``."""

    def write(self, pid: int, addresses: Sequence[int], data: bytes) -> None:
        """Write ``data`` over the physical ``addresses``."""

    def copy(
        self,
        pid: int,
        source: Sequence[int],
        destination: Sequence[int],
        size: int,
    ) -> None:
        """Copy ``size`` bytes from ``source`` addresses to ``destination`` ones."""

    def resize(self, pid: int, size: int) -> None:
        """Resize the process; raise MemoryAccessError when out of memory."""


def pages_required(logical_address: int, size: int, page_size: int) -> int:
    """Number of pages touched by ``size`` bytes starting at ``logical_address``."""
    if page_size <= 0:
        raise ValueError(f"page size must be positive, got {page_size}")
    if logical_address < 0 or size < 0:
        raise ValueError("address and size must not be negative")
    pages = 0
    offset = logical_address % page_size
    if offset:
        room_in_first_page = page_size - offset
        if size <= room_in_first_page:
            return 1
        size -= room_in_first_page
        pages += 1
    pages += -(-size // page_size)
    return pages


class Mmu:
    """Splits a logical range into the physical address of each page it covers."""

    def __init__(
        self,
        page_size: int,
        tlb: Tlb,
        frame_lookup: Callable[[int, int], int],
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page size must be positive, got {page_size}")
        self.page_size = page_size
        self.tlb = tlb
        self.frame_lookup = frame_lookup

    def _frame(self, pid: int, page_number: int) -> int:
        frame = self.tlb.lookup(pid, page_number)
        if frame is not None:
            logger.debug("PID: %d - TLB HIT - PAGINA: %d", pid, page_number)
            return frame
        logger.debug("PID: %d - TLB MISS - PAGINA: %d", pid, page_number)
        frame = self.frame_lookup(pid, page_number)
        self.tlb.insert(pid, page_number, frame)
        return frame

    def translate(self, pid: int, logical_address: int, size: int) -> list[int]:
        """Physical addresses of each page covered, the first one carrying the offset.

        Raises MemoryAccessError when memory cannot supply a frame.
        """
        page_number, offset = divmod(logical_address, self.page_size)
        count = pages_required(logical_address, size, self.page_size)
        addresses = []
        for page in range(page_number, page_number + count):
            frame = self._frame(pid, page)
            logger.debug(
                "PID: %d - OBTENER MARCO - Pagina: %d - Marco: %d", pid, page, frame
            )
            addresses.append(frame * self.page_size + offset)
            offset = 0
        return addresses