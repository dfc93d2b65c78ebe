"""Instruction set, decoding and the outcomes of executing instructions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, IntEnum, auto

MAX_ARGUMENTS = 1 + 5

_UNSIGNED = re.compile(r"\s*\+?\d+", re.ASCII)


class OpCode(IntEnum):
    """The CPU's instructions, named as they appear in program text."""

    SET = 0
    MOV_IN = auto()
    MOV_OUT = auto()
    SUM = auto()
    SUB = auto()
    JNZ = auto()
    RESIZE = auto()
    COPY_STRING = auto()
    WAIT = auto()
    SIGNAL = auto()
    IO_GEN_SLEEP = auto()
    IO_STDIN_READ = auto()
    IO_STDOUT_WRITE = auto()
    IO_FS_CREATE = auto()
    IO_FS_DELETE = auto()
    IO_FS_TRUNCATE = auto()
    IO_FS_WRITE = auto()
    IO_FS_READ = auto()
    EXIT = auto()


class EvictionReason(Enum):
    """Why a process left the CPU."""

    UNEXPECTED_ERROR = auto()
    OUT_OF_MEMORY = auto()
    EXIT = auto()
    KILL_KERNEL_INTERRUPT = auto()
    SYSCALL = auto()
    QUANTUM_KERNEL_INTERRUPT = auto()


class InstructionError(ValueError):
    """An instruction could not be decoded or executed."""

    def __init__(
        self,
        message: str,
        reason: EvictionReason = EvictionReason.UNEXPECTED_ERROR,
    ) -> None:
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class Syscall:
    """A request the CPU hands to the kernel along with the evicted process."""

    opcode: OpCode
    arguments: tuple = ()


def decode_instruction(name: str) -> OpCode:
    """Return the opcode called ``name``; raise InstructionError if unknown."""
    try:
        return OpCode[name]
    except (KeyError, TypeError):
        raise InstructionError(f"{name}: unknown instruction") from None


def parse_unsigned(text: str) -> int:
    """Parse a whole decimal unsigned number; raise InstructionError otherwise."""
    if not isinstance(text, str) or not _UNSIGNED.fullmatch(text):
        raise InstructionError(f"{text}: not a valid value")
    return int(text)


def split_instruction(line: str) -> list[str]:
    """Split an instruction line into its name and arguments."""
    argv = line.split()
    if not argv:
        raise InstructionError("empty instruction")
    if len(argv) > MAX_ARGUMENTS:
        raise InstructionError(f"{line.strip()}: too many arguments in instruction")
    return argv