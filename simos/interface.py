"""I/O interfaces: generic sleep, console input/output and DialFS file access."""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TextIO

from simos.config import get_int, get_str, load_config
from simos.dialfs import DialFs, FsError
from simos.instructions import OpCode
from simos.mmu import MemoryPort

logger = logging.getLogger(__name__)


class IoType(Enum):
    """Kinds of interface, named as in the configuration file."""

    GENERIC = "GENERICA"
    STDIN = "STDIN"
    STDOUT = "STDOUT"
    DIALFS = "DIALFS"


class IoError(Exception):
    """An I/O operation could not be carried out by this interface."""


def find_io_type(name: str) -> IoType:
    """Return the interface type called ``name``; raise ValueError if unknown."""
    try:
        return IoType(name)
    except ValueError:
        raise ValueError(f"{name}: unknown interface type") from None


@dataclass(frozen=True)
class IoConfig:
    """Settings read from an interface's configuration file.

    ``work_unit_time`` and ``compaction_delay`` are in milliseconds.
    """

    io_type: IoType
    kernel_ip: str
    kernel_port: str
    work_unit_time: int = 0
    memory_ip: str | None = None
    memory_port: str | None = None
    dialfs_path: str | None = None
    block_size: int = 0
    block_count: int = 0
    compaction_delay: int = 0

    @classmethod
    def from_file(cls, path: str | Path) -> IoConfig:
        """Load the configuration, reading only the keys the interface type needs."""
        values = load_config(path)
        io_type = find_io_type(get_str(values, "TIPO_INTERFAZ"))
        settings: dict = {
            "io_type": io_type,
            "kernel_ip": get_str(values, "IP_KERNEL"),
            "kernel_port": get_str(values, "PUERTO_KERNEL"),
        }
        if io_type in (IoType.GENERIC, IoType.DIALFS):
            settings["work_unit_time"] = get_int(values, "TIEMPO_UNIDAD_TRABAJO")
        if io_type is not IoType.GENERIC:
            settings["memory_ip"] = get_str(values, "IP_MEMORIA")
            settings["memory_port"] = get_str(values, "PUERTO_MEMORIA")
        if io_type is IoType.DIALFS:
            settings["dialfs_path"] = get_str(values, "PATH_BASE_DIALFS")
            settings["block_size"] = get_int(values, "BLOCK_SIZE")
            settings["block_count"] = get_int(values, "BLOCK_COUNT")
            settings["compaction_delay"] = get_int(values, "RETRASO_COMPACTACION")
        return cls(**settings)


class IoInterface:
    """Carries out the I/O operations the kernel dispatches to one interface."""

    def __init__(
        self,
        config: IoConfig,
        memory: MemoryPort | None = None,
        stdin: TextIO | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if config.io_type is not IoType.GENERIC and memory is None:
            raise ValueError(f"a {config.io_type.value} interface needs memory")
        self.config = config
        self.memory = memory
        self.stdin = stdin if stdin is not None else sys.stdin
        self.sleep = sleep if sleep is not None else time.sleep
        self.fs: DialFs | None = None
        if config.io_type is IoType.DIALFS:
            if config.dialfs_path is None:
                raise ValueError("a DIALFS interface needs a base path")
            self.fs = DialFs(
                config.dialfs_path,
                config.block_size,
                config.block_count,
                config.compaction_delay,
            )
        self._operations: dict[OpCode, tuple[IoType, Callable]] = {
            OpCode.IO_GEN_SLEEP: (IoType.GENERIC, self._gen_sleep),
            OpCode.IO_STDIN_READ: (IoType.STDIN, self._stdin_read),
            OpCode.IO_STDOUT_WRITE: (IoType.STDOUT, self._stdout_write),
            OpCode.IO_FS_CREATE: (IoType.DIALFS, self._fs_create),
            OpCode.IO_FS_DELETE: (IoType.DIALFS, self._fs_delete),
            OpCode.IO_FS_TRUNCATE: (IoType.DIALFS, self._fs_truncate),
            OpCode.IO_FS_WRITE: (IoType.DIALFS, self._fs_write),
            OpCode.IO_FS_READ: (IoType.DIALFS, self._fs_read),
        }

    def execute(self, pid: int, opcode: OpCode, arguments: Sequence = ()):
        """Run one operation for ``pid``.

        ``arguments`` are the operation's arguments without the interface name.
        Returns the bytes moved for console operations and ``None`` otherwise;
        raises IoError when the operation is unknown, belongs to another kind of
        interface or fails.
        """
        try:
            io_type, operation = self._operations[OpCode(opcode)]
        except (KeyError, ValueError):
            raise IoError(f"{opcode}: IO operation not found") from None
        if io_type is not self.config.io_type:
            raise IoError(
                f"{OpCode(opcode).name}: cannot be performed by a "
                f"{self.config.io_type.value} interface"
            )
        try:
            return operation(pid, *arguments)
        except TypeError as error:
            raise IoError(f"{OpCode(opcode).name}: bad arguments: {error}") from None
        except FsError as error:
            raise IoError(str(error)) from error

    def close(self) -> None:
        """Release the file system, if the interface has one."""
        if self.fs is not None:
            self.fs.close()

    def _wait_work_unit(self, units: int = 1) -> None:
        self.sleep(self.config.work_unit_time * units / 1000)

    def _gen_sleep(self, pid: int, work_units) -> None:
        logger.debug("PID: <%d> - OPERACION <IO_GEN_SLEEP>", pid)
        try:
            units = int(work_units)
        except ValueError:
            raise IoError(f"{work_units}: not a number of work units") from None
        self._wait_work_unit(units)

    def _prompt(self, size: int) -> bytes:
        while True:
            logger.info("Escriba una cadena de %d caracteres", size)
            line = self.stdin.readline()
            if not line:
                raise IoError("end of input before a long enough line was given")
            data = line.rstrip("\n").encode("utf-8")
            if len(data) >= size and (size > 0 or not line.endswith("\n") or not data):
                return data[:size]
            if size == 0:
                return b""

    def _stdin_read(self, pid: int, size: int, addresses: Sequence[int]) -> bytes:
        logger.debug("PID: <%d> - OPERACION <IO_STDIN_READ>", pid)
        data = self._prompt(int(size))
        logger.info("[IO] Mensaje escrito: <%s>", data.decode("utf-8", "replace"))
        self.memory.write(pid, list(addresses), data)
        return data

    def _stdout_write(self, pid: int, size: int, addresses: Sequence[int]) -> bytes:
        logger.debug("PID: <%d> - OPERACION <IO_STDOUT_WRITE>", pid)
        data = bytes(self.memory.read(pid, list(addresses), int(size)))
        logger.info("[IO] Mensaje leido: <%s>", data.decode("utf-8", "replace"))
        return data

    def _fs_create(self, pid: int, name: str) -> None:
        self._wait_work_unit()
        logger.debug("PID: <%d> - Crear archivo: <%s>", pid, name)
        self.fs.create(name)

    def _fs_delete(self, pid: int, name: str) -> None:
        self._wait_work_unit()
        logger.debug("PID: <%d> - Eliminar archivo: <%s>", pid, name)
        self.fs.delete(name)

    def _fs_truncate(self, pid: int, name: str, size: int) -> None:
        self._wait_work_unit()
        self.fs.truncate(name, int(size))
        logger.debug("PID: <%d> - Truncar archivo: <%s> - Tamaño: <%d>", pid, name, size)

    def _fs_write(
        self, pid: int, name: str, pointer: int, size: int, addresses: Sequence[int]
    ) -> None:
        self._wait_work_unit()
        if self.fs.find_file(name) is None:
            raise IoError(f"{name}: file not found")
        data = bytes(self.memory.read(pid, list(addresses), int(size)))
        self.fs.write(name, int(pointer), data)
        logger.debug(
            "PID: <%d> - Escribir Archivo: <%s> - Tamaño a Escribir: <%d> - Puntero Archivo: <%d>",
            pid, name, size, pointer,
        )

    def _fs_read(
        self, pid: int, name: str, pointer: int, size: int, addresses: Sequence[int]
    ) -> None:
        self._wait_work_unit()
        data = self.fs.read(name, int(pointer), int(size))
        self.memory.write(pid, list(addresses), data)
        logger.debug(
            "PID: <%d> - Leer Archivo: <%s> - Tamaño a Leer: <%d> - Puntero Archivo: <%d>",
            pid, name, size, pointer,
        )