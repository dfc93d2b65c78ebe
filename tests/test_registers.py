import pytest

from simos.registers import DataType, ExecContext, Register, decode_register


@pytest.mark.parametrize("register", list(Register))
def test_decode_every_register_by_name(register):
    assert decode_register(register.label) is register


@pytest.mark.parametrize("name", ["ax", "XYZ", "", "EAX "])
def test_decode_unknown_register(name):
    with pytest.raises(ValueError):
        decode_register(name)


def test_register_sizes():
    assert Register.AX.size() == 1
    assert Register.DX.size() == 1
    assert Register.EAX.size() == 4
    assert Register.PC.size() == 4
    assert Register.SI.data_type is DataType.UINT32


def test_new_context_is_zeroed():
    context = ExecContext(pid=3)
    assert all(context.get(register) == 0 for register in Register)


def test_set_and_get():
    context = ExecContext()
    context.set(Register.EBX, 123456)
    context.set(Register.CX, 200)
    assert context.get(Register.EBX) == 123456
    assert context.get(Register.CX) == 200


def test_uint8_register_truncates():
    context = ExecContext()
    context.set(Register.AX, 256 + 7)
    assert context.get(Register.AX) == 7


def test_uint32_register_wraps_negative():
    context = ExecContext()
    context.set(Register.EAX, -1)
    assert context.get(Register.EAX) == 0xFFFFFFFF


def test_pc_register_is_the_program_counter():
    context = ExecContext(pc=5)
    assert context.get(Register.PC) == 5
    context.set(Register.PC, 9)
    assert context.pc == 9


def test_to_bytes_little_endian():
    context = ExecContext()
    context.set(Register.EAX, 1)
    context.set(Register.BX, 0x41)
    assert context.to_bytes(Register.EAX) == b"\x01\x00\x00\x00"
    assert context.to_bytes(Register.BX) == b"A"


@pytest.mark.parametrize("register,value", [(Register.DI, 0xDEADBEEF), (Register.DX, 0xAB)])
def test_bytes_round_trip(register, value):
    source = ExecContext()
    source.set(register, value)
    target = ExecContext()
    target.load_bytes(register, source.to_bytes(register))
    assert target.get(register) == value


def test_load_bytes_wrong_length():
    with pytest.raises(ValueError):
        ExecContext().load_bytes(Register.AX, b"\x00\x00")