"""DialFS: a contiguous-allocation file system kept in a block file and a bitmap."""

from __future__ import annotations

import logging
import math
import mmap
import os
import time
from dataclasses import dataclass
from pathlib import Path

from simos.config import get_int, load_config, save_config

logger = logging.getLogger(__name__)

BLOCKS_FILE = "bloques.dat"
BITMAP_FILE = "bitmap.dat"
METADATA_SUFFIX = ".txt"
INITIAL_BLOCK_KEY = "BLOQUE_INICIAL"
SIZE_KEY = "TAMAÑO_ARCHIVO"


class FsError(Exception):
    """A file system request could not be carried out."""


@dataclass
class FsFile:
    """A file's name, first block, number of blocks and size in bytes."""

    name: str
    initial_block: int
    length: int
    size: int

    @property
    def blocks(self) -> range:
        """The block numbers the file occupies."""
        return range(self.initial_block, self.initial_block + self.length)


def blocks_required(pointer: int, size: int, block_size: int) -> int:
    """Blocks spanned by ``size`` bytes from ``pointer``, counting only whole blocks after the first."""
    if block_size <= 0:
        raise ValueError(f"block size must be positive, got {block_size}")
    if pointer < 0 or size < 0:
        raise ValueError("pointer and size must not be negative")
    blocks = 0
    offset = pointer % block_size
    if offset:
        size = max(0, size - (block_size - offset))
        blocks += 1
    blocks += size // block_size
    return blocks


def _blocks_for_size(size: int, block_size: int) -> int:
    if size == 0:
        return 1
    return math.ceil(size / block_size)


def _open_mapped(path: Path, size: int):
    fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o600)
    handle = os.fdopen(fd, "r+b")
    try:
        handle.truncate(size)
        mapping = mmap.mmap(handle.fileno(), size)
    except Exception:
        handle.close()
        raise
    return handle, mapping


class DialFs:
    """Files stored contiguously in ``bloques.dat``, allocation tracked in ``bitmap.dat``.

    Each file also has a metadata file in the base directory holding its first
    block and its size. ``compaction_delay`` is in milliseconds.
    """

    def __init__(
        self,
        base_path: str | Path,
        block_size: int,
        block_count: int,
        compaction_delay: int = 0,
    ) -> None:
        if block_size <= 0 or block_count <= 0:
            raise ValueError("block size and block count must be positive")
        self.base_path = Path(base_path)
        self.block_size = block_size
        self.block_count = block_count
        self.compaction_delay = compaction_delay
        self._closed = True
        self._blocks_handle, self._blocks = _open_mapped(
            self.base_path / BLOCKS_FILE, block_size * block_count
        )
        try:
            self._bitmap_handle, self._bitmap = _open_mapped(
                self.base_path / BITMAP_FILE, math.ceil(block_count / 8)
            )
        except Exception:
            self._blocks.close()
            self._blocks_handle.close()
            raise
        self._closed = False
        self.files: list[FsFile] = self._load_files()
        logger.info("Blocks and bitmap mapped")

    def _load_files(self) -> list[FsFile]:
        files = []
        for entry in sorted(self.base_path.iterdir()):
            if not entry.is_file() or entry.suffix != METADATA_SUFFIX:
                continue
            values = load_config(entry)
            size = get_int(values, SIZE_KEY)
            files.append(
                FsFile(
                    name=entry.name,
                    initial_block=get_int(values, INITIAL_BLOCK_KEY),
                    length=_blocks_for_size(size, self.block_size),
                    size=size,
                )
            )
        return files

    def __enter__(self) -> DialFs:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        """Flush and release the block and bitmap files."""
        if self._closed:
            return
        self._closed = True
        for mapping, handle in (
            (self._blocks, self._blocks_handle),
            (self._bitmap, self._bitmap_handle),
        ):
            mapping.flush()
            mapping.close()
            handle.close()

    def _check_open(self) -> None:
        if self._closed:
            raise FsError("file system is closed")

    def _test_bit(self, block: int) -> bool:
        return bool(self._bitmap[block >> 3] & (1 << (block & 7)))

    def _set_bit(self, block: int, used: bool) -> None:
        byte = self._bitmap[block >> 3]
        mask = 1 << (block & 7)
        self._bitmap[block >> 3] = (byte | mask) if used else (byte & ~mask & 0xFF)

    def _metadata_path(self, name: str) -> Path:
        return self.base_path / name

    def _write_metadata(self, file: FsFile) -> None:
        save_config(
            self._metadata_path(file.name),
            {INITIAL_BLOCK_KEY: file.initial_block, SIZE_KEY: file.size},
        )

    def _require(self, name: str) -> FsFile:
        file = self.find_file(name)
        if file is None:
            raise FsError(f"{name}: file not found")
        return file

    def find_file(self, name: str) -> FsFile | None:
        """The file called ``name``, or None."""
        return next((file for file in self.files if file.name == name), None)

    def first_free_block(self) -> int:
        """Lowest free block; raise FsError when every block is in use."""
        self._check_open()
        for block in range(self.block_count):
            if not self._test_bit(block):
                return block
        raise FsError("no free blocks")

    def free_block_count(self) -> int:
        """Number of blocks not in use."""
        self._check_open()
        return sum(1 for block in range(self.block_count) if not self._test_bit(block))

    def can_extend(self, initial_block: int, length: int, new_length: int) -> bool:
        """Whether the blocks right after a file are free up to ``new_length``."""
        self._check_open()
        end = initial_block + new_length
        if end > self.block_count:
            return False
        return not any(
            self._test_bit(block) for block in range(initial_block + length, end)
        )

    def create(self, name: str) -> FsFile:
        """Create an empty file in the first free block."""
        self._check_open()
        if self.find_file(name) is not None:
            raise FsError(f"{name}: file already exists")
        location = self.first_free_block()
        file = FsFile(name, location, 1, 0)
        self._write_metadata(file)
        self._set_bit(location, True)
        self._bitmap.flush()
        self.files.append(file)
        logger.debug("Created file %s at block %d", name, location)
        return file

    def delete(self, name: str) -> None:
        """Free the file's blocks and remove its metadata."""
        self._check_open()
        file = self._require(name)
        for block in file.blocks:
            self._set_bit(block, False)
        self._bitmap.flush()
        self.files.remove(file)
        self._metadata_path(name).unlink(missing_ok=True)
        logger.debug("Deleted file %s", name)

    def truncate(self, name: str, size: int) -> FsFile:
        """Grow or shrink a file to ``size`` bytes, compacting when needed."""
        self._check_open()
        if size < 0:
            raise ValueError(f"size must not be negative, got {size}")
        file = self._require(name)
        new_length = _blocks_for_size(size, self.block_size)
        if new_length < file.length:
            for block in range(file.initial_block + new_length, file.initial_block + file.length):
                self._set_bit(block, False)
        elif new_length > file.length:
            if self.can_extend(file.initial_block, file.length, new_length):
                for block in range(file.initial_block + file.length, file.initial_block + new_length):
                    self._set_bit(block, True)
            elif self.free_block_count() >= new_length:
                logger.debug("Compaction started for %s", name)
                self.compact(file, new_length, size)
                logger.debug("Compaction finished for %s", name)
                return file
            else:
                raise FsError(f"{name}: out of space, cannot assign {new_length} blocks")
        file.length = new_length
        file.size = size
        self._write_metadata(file)
        self._bitmap.flush()
        return file

    def _span(self, file: FsFile, pointer: int, size: int) -> slice:
        start = file.initial_block * self.block_size + pointer
        end = start + size
        limit = (file.initial_block + file.length) * self.block_size
        if pointer < 0 or size < 0 or end > limit:
            raise FsError(
                f"{file.name}: {size} bytes at {pointer} exceed the file's blocks"
            )
        return slice(start, end)

    def write(self, name: str, pointer: int, data: bytes) -> None:
        """Write ``data`` into the file starting at byte ``pointer``."""
        self._check_open()
        file = self._require(name)
        self._blocks[self._span(file, pointer, len(data))] = bytes(data)
        self._blocks.flush()

    def read(self, name: str, pointer: int, size: int) -> bytes:
        """Read ``size`` bytes of the file starting at byte ``pointer``."""
        self._check_open()
        file = self._require(name)
        return bytes(self._blocks[self._span(file, pointer, size)])

    def compact(self, file: FsFile, new_length: int, new_size: int) -> None:
        """Pack every other file to the start and move ``file``, resized, after them."""
        self._check_open()
        if file not in self.files:
            raise FsError(f"{file.name}: file not found")
        others = sorted((f for f in self.files if f is not file), key=lambda f: f.initial_block)
        if sum(f.length for f in others) + new_length > self.block_count:
            raise FsError(f"{file.name}: out of space, cannot assign {new_length} blocks")
        time.sleep(self.compaction_delay / 1000)
        size = self.block_size
        content = bytes(
            self._blocks[file.initial_block * size:(file.initial_block + file.length) * size]
        )
        position = 0
        for other in others:
            if other.initial_block != position:
                source = other.initial_block * size
                data = bytes(self._blocks[source:source + other.length * size])
                self._blocks[position * size:position * size + len(data)] = data
                other.initial_block = position
                self._write_metadata(other)
            position += other.length

        region = content[:new_length * size].ljust(new_length * size, b"\0")
        self._blocks[position * size:position * size + len(region)] = region
        file.initial_block = position
        file.length = new_length
        file.size = new_size
        self._write_metadata(file)

        self._bitmap[:] = bytes(len(self._bitmap))
        for block in range(position + new_length):
            self._set_bit(block, True)
        self._bitmap.flush()
        self._blocks.flush()