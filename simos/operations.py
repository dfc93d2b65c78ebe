"""Execution of single decoded CPU instructions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from simos.instructions import (
    EvictionReason,
    InstructionError,
    OpCode,
    Syscall,
    decode_instruction,
    parse_unsigned,
)
from simos.mmu import MemoryAccessError, MemoryPort, Mmu
from simos.registers import ExecContext, Register, decode_register
from simos.tlb import Tlb

logger = logging.getLogger(__name__)


@dataclass
class CpuState:
    """What an instruction may touch: the running context, memory and the MMU."""

    context: ExecContext
    memory: MemoryPort
    mmu: Mmu

    @property
    def tlb(self) -> Tlb:
        return self.mmu.tlb


def _expect(argv: Sequence[str], count: int, usage: str) -> None:
    if len(argv) != count:
        raise InstructionError(f"usage: {usage}")


def _register(name: str) -> Register:
    try:
        return decode_register(name)
    except ValueError as error:
        raise InstructionError(str(error)) from None


def _translate(state: CpuState, logical_address: int, size: int) -> list[int]:
    try:
        addresses = state.mmu.translate(state.context.pid, logical_address, size)
    except MemoryAccessError as error:
        raise InstructionError(f"mmu: could not translate address: {error}") from error
    if not addresses:
        raise InstructionError("mmu: no physical addresses for the request")
    return addresses


def _advance(state: CpuState) -> None:
    state.context.set(Register.PC, state.context.pc + 1)


def _set(state: CpuState, argv: Sequence[str]) -> None:
    _expect(argv, 3, "SET <REGISTER> <VALUE>")
    register = _register(argv[1])
    value = parse_unsigned(argv[2])
    state.context.set(register, value)
    _advance(state)


def _mov_in(state: CpuState, argv: Sequence[str]) -> None:
    _expect(argv, 3, "MOV_IN <DATA REGISTER> <ADDRESS REGISTER>")
    data_register = _register(argv[1])
    address_register = _register(argv[2])
    size = data_register.size()
    addresses = _translate(state, state.context.get(address_register), size)
    data = state.memory.read(state.context.pid, addresses, size)
    state.context.load_bytes(data_register, bytes(data))
    _advance(state)


def _mov_out(state: CpuState, argv: Sequence[str]) -> None:
    _expect(argv, 3, "MOV_OUT <ADDRESS REGISTER> <DATA REGISTER>")
    address_register = _register(argv[1])
    data_register = _register(argv[2])
    data = state.context.to_bytes(data_register)
    addresses = _translate(state, state.context.get(address_register), len(data))
    state.memory.write(state.context.pid, addresses, data)
    _advance(state)


def _arithmetic(
    state: CpuState,
    argv: Sequence[str],
    name: str,
    combine: Callable[[int, int], int],
) -> None:
    _expect(argv, 3, f"{name} <DESTINATION REGISTER> <SOURCE REGISTER>")
    destination = _register(argv[1])
    source = _register(argv[2])
    result = combine(state.context.get(destination), state.context.get(source))
    state.context.set(destination, result & 0xFFFFFFFF)
    _advance(state)


def _sum(state: CpuState, argv: Sequence[str]) -> None:
    _arithmetic(state, argv, "SUM", lambda a, b: a + b)


def _sub(state: CpuState, argv: Sequence[str]) -> None:
    _arithmetic(state, argv, "SUB", lambda a, b: a - b)


def _jnz(state: CpuState, argv: Sequence[str]) -> None:
    _expect(argv, 3, "JNZ <REGISTER> <INSTRUCTION>")
    register = _register(argv[1])
    target = parse_unsigned(argv[2])
    if state.context.get(register):
        state.context.set(Register.PC, target)
    else:
        _advance(state)


def _resize(state: CpuState, argv: Sequence[str]) -> None:
    _expect(argv, 2, "RESIZE <SIZE>")
    size = parse_unsigned(argv[1])
    try:
        state.memory.resize(state.context.pid, size)
    except MemoryAccessError as error:
        raise InstructionError(
            f"RESIZE {size}: {error}", EvictionReason.OUT_OF_MEMORY
        ) from error
    _advance(state)


def _copy_string(state: CpuState, argv: Sequence[str]) -> None:
    _expect(argv, 2, "COPY_STRING <SIZE>")
    size = parse_unsigned(argv[1])
    source = _translate(state, state.context.get(Register.SI), size)
    destination = _translate(state, state.context.get(Register.DI), size)
    state.memory.copy(state.context.pid, source, destination, size)
    _advance(state)


def _resource_syscall(opcode: OpCode) -> Callable[[CpuState, Sequence[str]], Syscall]:
    def handler(state: CpuState, argv: Sequence[str]) -> Syscall:
        _expect(argv, 2, f"{opcode.name} <RESOURCE>")
        _advance(state)
        return Syscall(opcode, (argv[1],))

    return handler


def _io_gen_sleep(state: CpuState, argv: Sequence[str]) -> Syscall:
    _expect(argv, 3, "IO_GEN_SLEEP <INTERFACE> <WORK UNITS>")
    _advance(state)
    return Syscall(OpCode.IO_GEN_SLEEP, (argv[1], argv[2]))


def _io_stream(opcode: OpCode) -> Callable[[CpuState, Sequence[str]], Syscall]:
    def handler(state: CpuState, argv: Sequence[str]) -> Syscall:
        _expect(argv, 4, f"{opcode.name} <INTERFACE> <ADDRESS REGISTER> <SIZE REGISTER>")
        address_register = _register(argv[2])
        size_register = _register(argv[3])
        size = state.context.get(size_register)
        addresses = _translate(state, state.context.get(address_register), size)
        _advance(state)
        return Syscall(opcode, (argv[1], size, tuple(addresses)))

    return handler


def _io_fs_name(opcode: OpCode) -> Callable[[CpuState, Sequence[str]], Syscall]:
    def handler(state: CpuState, argv: Sequence[str]) -> Syscall:
        _expect(argv, 3, f"{opcode.name} <INTERFACE> <FILE NAME>")
        _advance(state)
        return Syscall(opcode, (argv[1], argv[2]))

    return handler


def _io_fs_truncate(state: CpuState, argv: Sequence[str]) -> Syscall:
    _expect(argv, 4, "IO_FS_TRUNCATE <INTERFACE> <FILE NAME> <SIZE REGISTER>")
    size_register = _register(argv[3])
    size = state.context.get(size_register)
    _advance(state)
    return Syscall(OpCode.IO_FS_TRUNCATE, (argv[1], argv[2], size))


def _io_fs_transfer(opcode: OpCode) -> Callable[[CpuState, Sequence[str]], Syscall]:
    def handler(state: CpuState, argv: Sequence[str]) -> Syscall:
        _expect(
            argv,
            6,
            f"{opcode.name} <INTERFACE> <FILE NAME> <ADDRESS REGISTER> "
            "<SIZE REGISTER> <FILE POINTER REGISTER>",
        )
        address_register = _register(argv[3])
        size_register = _register(argv[4])
        pointer_register = _register(argv[5])
        size = state.context.get(size_register)
        pointer = state.context.get(pointer_register)
        addresses = _translate(state, state.context.get(address_register), size)
        _advance(state)
        return Syscall(opcode, (argv[1], argv[2], pointer, size, tuple(addresses)))

    return handler


def _exit(state: CpuState, argv: Sequence[str]) -> Syscall:
    _expect(argv, 1, "EXIT")
    state.tlb.remove_process(state.context.pid)
    _advance(state)
    return Syscall(OpCode.EXIT)


_HANDLERS: dict[OpCode, Callable[[CpuState, Sequence[str]], Syscall | None]] = {
    OpCode.SET: _set,
    OpCode.MOV_IN: _mov_in,
    OpCode.MOV_OUT: _mov_out,
    OpCode.SUM: _sum,
    OpCode.SUB: _sub,
    OpCode.JNZ: _jnz,
    OpCode.RESIZE: _resize,
    OpCode.COPY_STRING: _copy_string,
    OpCode.WAIT: _resource_syscall(OpCode.WAIT),
    OpCode.SIGNAL: _resource_syscall(OpCode.SIGNAL),
    OpCode.IO_GEN_SLEEP: _io_gen_sleep,
    OpCode.IO_STDIN_READ: _io_stream(OpCode.IO_STDIN_READ),
    OpCode.IO_STDOUT_WRITE: _io_stream(OpCode.IO_STDOUT_WRITE),
    OpCode.IO_FS_CREATE: _io_fs_name(OpCode.IO_FS_CREATE),
    OpCode.IO_FS_DELETE: _io_fs_name(OpCode.IO_FS_DELETE),
    OpCode.IO_FS_TRUNCATE: _io_fs_truncate,
    OpCode.IO_FS_WRITE: _io_fs_transfer(OpCode.IO_FS_WRITE),
    OpCode.IO_FS_READ: _io_fs_transfer(OpCode.IO_FS_READ),
    OpCode.EXIT: _exit,
}


def execute(state: CpuState, argv: Sequence[str]) -> Syscall | None:
    """Run one instruction given as its name and arguments.

    Returns the syscall the instruction hands to the kernel, or None when it
    completes on the CPU. Raises InstructionError, carrying the eviction
    reason, when the instruction fails.
    """
    if not argv:
        raise InstructionError("empty instruction")
    opcode = decode_instruction(argv[0])
    logger.debug("%s", " ".join(argv))
    return _HANDLERS[opcode](state, argv)