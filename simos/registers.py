"""CPU registers and the execution context that holds them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DataType(Enum):
    """Storage width of a register."""

    UINT8 = 1
    UINT32 = 4

    @property
    def size(self) -> int:
        return self.value

    @property
    def mask(self) -> int:
        return (1 << (8 * self.value)) - 1


class Register(Enum):
    """The registers of the CPU, in declaration order."""

    PC = ("PC", DataType.UINT32)
    AX = ("AX", DataType.UINT8)
    BX = ("BX", DataType.UINT8)
    CX = ("CX", DataType.UINT8)
    DX = ("DX", DataType.UINT8)
    EAX = ("EAX", DataType.UINT32)
    EBX = ("EBX", DataType.UINT32)
    ECX = ("ECX", DataType.UINT32)
    EDX = ("EDX", DataType.UINT32)
    RAX = ("RAX", DataType.UINT32)
    RBX = ("RBX", DataType.UINT32)
    RCX = ("RCX", DataType.UINT32)
    RDX = ("RDX", DataType.UINT32)
    SI = ("SI", DataType.UINT32)
    DI = ("DI", DataType.UINT32)

    def __init__(self, label: str, data_type: DataType) -> None:
        self.label = label
        self.data_type = data_type

    def size(self) -> int:
        """Width of the register in bytes."""
        return self.data_type.size


_BY_LABEL = {register.label: register for register in Register}


def decode_register(name: str) -> Register:
    """Return the register called ``name``; raise ValueError if there is none."""
    try:
        return _BY_LABEL[name]
    except (KeyError, TypeError):
        raise ValueError(f"{name}: register not found") from None


def _general_registers() -> dict[Register, int]:
    return {register: 0 for register in Register if register is not Register.PC}


@dataclass
class ExecContext:
    """A process's program counter and general registers."""

    pid: int = 0
    pc: int = 0
    registers: dict[Register, int] = field(default_factory=_general_registers)

    def get(self, register: Register) -> int:
        """Value of ``register`` as an unsigned integer."""
        if register is Register.PC:
            return self.pc
        return self.registers.get(register, 0)

    def set(self, register: Register, value: int) -> None:
        """Store ``value``, truncated to the register's width."""
        value &= register.data_type.mask
        if register is Register.PC:
            self.pc = value
        else:
            self.registers[register] = value

    def to_bytes(self, register: Register) -> bytes:
        """Little-endian bytes of the register, as laid out in memory."""
        return self.get(register).to_bytes(register.size(), "little")

    def load_bytes(self, register: Register, data: bytes) -> None:
        """Set the register from its little-endian memory image."""
        if len(data) != register.size():
            raise ValueError(
                f"register {register.label} takes {register.size()} bytes, got {len(data)}"
            )
        self.set(register, int.from_bytes(data, "little"))