"""The CPU: instruction cycle, kernel interrupts and eviction."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

from simos.config import get_int, get_str, load_config
from simos.instructions import (
    EvictionReason,
    InstructionError,
    OpCode,
    Syscall,
    split_instruction,
)
from simos.mmu import MemoryAccessError, MemoryPort, Mmu
from simos.operations import CpuState, execute
from simos.registers import ExecContext
from simos.tlb import Tlb, TlbAlgorithm, find_tlb_algorithm

logger = logging.getLogger(__name__)


class KernelInterrupt(IntEnum):
    """Interrupts the kernel sends; a higher value overrides a lower pending one."""

    NONE = 0
    QUANTUM = 1
    KILL = 2


@dataclass
class Eviction:
    """A process handed back to the kernel, why, and the syscall it made if any."""

    context: ExecContext
    reason: EvictionReason
    syscall: Syscall | None = None


@dataclass(frozen=True)
class CpuConfig:
    """Settings read from the CPU configuration file."""

    memory_ip: str
    memory_port: str
    dispatch_port: str
    interrupt_port: str
    tlb_entries: int
    tlb_algorithm: TlbAlgorithm

    @classmethod
    def from_file(cls, path: str | Path) -> CpuConfig:
        """Load the configuration; raise ValueError on an unknown TLB algorithm."""
        values = load_config(path)
        return cls(
            memory_ip=get_str(values, "IP_MEMORIA"),
            memory_port=get_str(values, "PUERTO_MEMORIA"),
            dispatch_port=get_str(values, "PUERTO_ESCUCHA_DISPATCH"),
            interrupt_port=get_str(values, "PUERTO_ESCUCHA_INTERRUPT"),
            tlb_entries=get_int(values, "CANTIDAD_ENTRADAS_TLB"),
            tlb_algorithm=find_tlb_algorithm(get_str(values, "ALGORITMO_TLB")),
        )


class Cpu:
    """Runs processes dispatched to it until they must be evicted."""

    def __init__(
        self,
        memory: MemoryPort,
        tlb_entries: int,
        tlb_algorithm: TlbAlgorithm | str,
    ) -> None:
        if isinstance(tlb_algorithm, str):
            tlb_algorithm = find_tlb_algorithm(tlb_algorithm)
        self.memory = memory
        self.tlb = Tlb(tlb_entries, tlb_algorithm)
        self.mmu = Mmu(memory.page_size(), self.tlb, memory.frame)
        self._lock = threading.Lock()
        self._running_pid: int | None = None
        self._pending = KernelInterrupt.NONE

    def interrupt(self, kind: KernelInterrupt, pid: int) -> bool:
        """Flag an interrupt for ``pid``; return False when it is not running."""
        with self._lock:
            if self._running_pid is None or self._running_pid != pid:
                return False
            if self._pending < kind:
                self._pending = KernelInterrupt(kind)
            return True

    def _take_interrupt(self, kind: KernelInterrupt) -> bool:
        with self._lock:
            return self._pending == kind

    def run(self, context: ExecContext) -> Eviction:
        """Execute ``context`` until it exits, makes a syscall, fails or is interrupted."""
        with self._lock:
            self._pending = KernelInterrupt.NONE
            self._running_pid = context.pid
        state = CpuState(context, self.memory, self.mmu)
        try:
            return self._cycle(state)
        finally:
            with self._lock:
                self._running_pid = None

    def _cycle(self, state: CpuState) -> Eviction:
        context = state.context
        logger.debug("Execution context received for process %d", context.pid)
        while True:
            logger.debug("PID: %d - FETCH - Program Counter: %d", context.pid, context.pc)
            try:
                line = self.memory.fetch_instruction(context.pid, context.pc)
            except MemoryAccessError as error:
                logger.error("Could not fetch instruction: %s", error)
                return Eviction(context, EvictionReason.UNEXPECTED_ERROR)
            if line is None:
                logger.error("Could not fetch instruction")
                return Eviction(context, EvictionReason.UNEXPECTED_ERROR)

            try:
                syscall = execute(state, split_instruction(line))
            except InstructionError as error:
                logger.error("%s", error)
                return Eviction(context, error.reason)

            if syscall is not None and syscall.opcode is OpCode.EXIT:
                return Eviction(context, EvictionReason.EXIT, syscall)
            if self._take_interrupt(KernelInterrupt.KILL):
                return Eviction(context, EvictionReason.KILL_KERNEL_INTERRUPT)
            if syscall is not None:
                return Eviction(context, EvictionReason.SYSCALL, syscall)
            if self._take_interrupt(KernelInterrupt.QUANTUM):
                return Eviction(context, EvictionReason.QUANTUM_KERNEL_INTERRUPT)