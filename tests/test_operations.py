import pytest

from simos.instructions import EvictionReason, InstructionError, OpCode, Syscall
from simos.mmu import MemoryAccessError, Mmu
from simos.operations import CpuState, execute
from simos.registers import DataType, ExecContext, Register
from simos.tlb import Tlb, TlbAlgorithm

PAGE = 4
PID = 1


class FakeMemory:
    def __init__(self, frames=None, limit=64):
        self.data = bytearray(64)
        self.frames = dict(frames or {})
        self.limit = limit
        self.resized = []

    def page_size(self):
        return PAGE

    def frame(self, pid, page_number):
        try:
            return self.frames[(pid, page_number)]
        except KeyError:
            raise MemoryAccessError("no frame") from None

    def _spans(self, addresses, size):
        remaining = size
        for address in addresses:
            take = min(remaining, PAGE - address % PAGE)
            yield address, take
            remaining -= take

    def read(self, pid, addresses, size):
        out = bytearray()
        for address, take in self._spans(addresses, size):
            out += self.data[address:address + take]
        return bytes(out)

    def write(self, pid, addresses, data):
        position = 0
        for address, take in self._spans(addresses, len(data)):
            self.data[address:address + take] = data[position:position + take]
            position += take

    def copy(self, pid, source, destination, size):
        self.write(pid, destination, self.read(pid, source, size))

    def resize(self, pid, size):
        if size > self.limit:
            raise MemoryAccessError("out of memory")
        self.resized.append((pid, size))


def make_state(frames=None, limit=64, tlb_capacity=4):
    memory = FakeMemory(frames, limit)
    tlb = Tlb(tlb_capacity, TlbAlgorithm.FIFO)
    mmu = Mmu(PAGE, tlb, memory.frame)
    return CpuState(ExecContext(pid=PID), memory, mmu)


FRAMES = {(PID, 0): 3, (PID, 1): 5, (PID, 2): 7}


def test_set_stores_value_and_advances_pc():
    state = make_state()
    state.context.pc = 5
    assert execute(state, ["SET", "EAX", "7"]) is None
    assert state.context.get(Register.EAX) == 7
    assert state.context.pc == 5 + 1


def test_set_truncates_to_register_width():
    state = make_state()
    execute(state, ["SET", "AX", "256"])
    assert state.context.get(Register.AX) == 0


def test_set_unknown_register_fails_without_advancing():
    state = make_state()
    with pytest.raises(InstructionError) as info:
        execute(state, ["SET", "ZZ", "1"])
    assert info.value.reason is EvictionReason.UNEXPECTED_ERROR
    assert state.context.pc == 0


def test_set_rejects_non_numeric_value():
    state = make_state()
    with pytest.raises(InstructionError):
        execute(state, ["SET", "AX", "12a"])


def test_wrong_argument_count():
    state = make_state()
    with pytest.raises(InstructionError):
        execute(state, ["SET", "AX"])


def test_unknown_instruction():
    state = make_state()
    with pytest.raises(InstructionError):
        execute(state, ["NOPE"])


def test_sum_adds_registers():
    state = make_state()
    state.context.set(Register.EAX, 5)
    state.context.set(Register.EBX, 7)
    execute(state, ["SUM", "EAX", "EBX"])
    assert state.context.get(Register.EAX) == 5 + 7
    assert state.context.get(Register.EBX) == 7


def test_sub_wraps_within_register():
    state = make_state()
    state.context.set(Register.AX, 1)
    state.context.set(Register.BX, 2)
    execute(state, ["SUB", "AX", "BX"])
    assert state.context.get(Register.AX) == DataType.UINT8.mask


def test_jnz_jumps_when_nonzero():
    state = make_state()
    state.context.set(Register.AX, 1)
    execute(state, ["JNZ", "AX", "10"])
    assert state.context.pc == 10


def test_jnz_falls_through_when_zero():
    state = make_state()
    state.context.pc = 3
    execute(state, ["JNZ", "AX", "10"])
    assert state.context.pc == 3 + 1


def test_mov_out_then_mov_in_round_trip_across_pages():
    state = make_state(FRAMES)
    state.context.set(Register.SI, 2)
    state.context.set(Register.EAX, 0x11223344)
    execute(state, ["MOV_OUT", "SI", "EAX"])
    stored = state.memory.data[3 * PAGE + 2:4 * PAGE] + state.memory.data[5 * PAGE:5 * PAGE + 2]
    assert bytes(stored) == state.context.to_bytes(Register.EAX)
    execute(state, ["MOV_IN", "EBX", "SI"])
    assert state.context.get(Register.EBX) == 0x11223344
    assert state.context.pc == 2


def test_mov_in_without_frame_fails():
    state = make_state({})
    with pytest.raises(InstructionError) as info:
        execute(state, ["MOV_IN", "EAX", "SI"])
    assert info.value.reason is EvictionReason.UNEXPECTED_ERROR
    assert state.context.pc == 0


def test_resize_success_is_forwarded():
    state = make_state()
    execute(state, ["RESIZE", "8"])
    assert state.memory.resized == [(PID, 8)]
    assert state.context.pc == 1


def test_resize_out_of_memory():
    state = make_state(limit=4)
    with pytest.raises(InstructionError) as info:
        execute(state, ["RESIZE", "8"])
    assert info.value.reason is EvictionReason.OUT_OF_MEMORY
    assert state.context.pc == 0


def test_copy_string_copies_bytes():
    state = make_state(FRAMES)
    state.context.set(Register.SI, 0)
    state.context.set(Register.DI, 5)
    source = state.mmu.translate(PID, 0, 4)
    state.memory.write(PID, source, b"hola")
    execute(state, ["COPY_STRING", "4"])
    destination = state.mmu.translate(PID, 5, 4)
    assert state.memory.read(PID, destination, 4) == b"hola"


def test_wait_returns_syscall():
    state = make_state()
    result = execute(state, ["WAIT", "RA"])
    assert result == Syscall(OpCode.WAIT, ("RA",))
    assert state.context.pc == 1


def test_signal_returns_syscall():
    state = make_state()
    assert execute(state, ["SIGNAL", "RB"]) == Syscall(OpCode.SIGNAL, ("RB",))


def test_io_gen_sleep_returns_text_arguments():
    state = make_state()
    result = execute(state, ["IO_GEN_SLEEP", "Int1", "10"])
    assert result == Syscall(OpCode.IO_GEN_SLEEP, ("Int1", "10"))


def test_io_stdin_read_translates_addresses():
    state = make_state(FRAMES)
    state.context.set(Register.SI, 2)
    state.context.set(Register.AX, 4)
    result = execute(state, ["IO_STDIN_READ", "Int1", "SI", "AX"])
    assert result.opcode is OpCode.IO_STDIN_READ
    assert result.arguments == ("Int1", 4, tuple(state.mmu.translate(PID, 2, 4)))


def test_io_stdout_write_missing_frame_fails():
    state = make_state({})
    state.context.set(Register.AX, 4)
    with pytest.raises(InstructionError):
        execute(state, ["IO_STDOUT_WRITE", "Int1", "SI", "AX"])


def test_io_fs_create_and_delete():
    state = make_state()
    assert execute(state, ["IO_FS_CREATE", "FS", "a.txt"]) == Syscall(
        OpCode.IO_FS_CREATE, ("FS", "a.txt")
    )
    assert execute(state, ["IO_FS_DELETE", "FS", "a.txt"]) == Syscall(
        OpCode.IO_FS_DELETE, ("FS", "a.txt")
    )


def test_io_fs_truncate_reads_size_register():
    state = make_state()
    state.context.set(Register.ECX, 20)
    result = execute(state, ["IO_FS_TRUNCATE", "FS", "a.txt", "ECX"])
    assert result == Syscall(OpCode.IO_FS_TRUNCATE, ("FS", "a.txt", 20))


def test_io_fs_truncate_unknown_register():
    state = make_state()
    with pytest.raises(InstructionError):
        execute(state, ["IO_FS_TRUNCATE", "FS", "a.txt", "QQ"])


def test_io_fs_write_argument_order():
    state = make_state(FRAMES)
    state.context.set(Register.SI, 1)
    state.context.set(Register.AX, 3)
    state.context.set(Register.BX, 9)
    result = execute(state, ["IO_FS_WRITE", "FS", "a.txt", "SI", "AX", "BX"])
    assert result == Syscall(
        OpCode.IO_FS_WRITE,
        ("FS", "a.txt", 9, 3, tuple(state.mmu.translate(PID, 1, 3))),
    )


def test_io_fs_read_needs_six_arguments():
    state = make_state(FRAMES)
    with pytest.raises(InstructionError):
        execute(state, ["IO_FS_READ", "FS", "a.txt", "SI", "AX"])


def test_exit_clears_process_tlb_entries():
    state = make_state()
    state.tlb.insert(PID, 0, 3)
    state.tlb.insert(2, 0, 4)
    result = execute(state, ["EXIT"])
    assert result == Syscall(OpCode.EXIT)
    assert [entry.pid for entry in state.tlb] == [2]
    assert state.context.pc == 1