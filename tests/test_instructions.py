import pytest

from simos.instructions import (
    MAX_ARGUMENTS,
    EvictionReason,
    InstructionError,
    OpCode,
    Syscall,
    decode_instruction,
    parse_unsigned,
    split_instruction,
)


@pytest.mark.parametrize("opcode", list(OpCode))
def test_decode_round_trip(opcode):
    assert decode_instruction(opcode.name) is opcode


@pytest.mark.parametrize("name", ["set", "NOP", "", "SET "])
def test_decode_unknown_raises(name):
    with pytest.raises(InstructionError) as info:
        decode_instruction(name)
    assert info.value.reason is EvictionReason.UNEXPECTED_ERROR


def test_decode_none_raises():
    with pytest.raises(InstructionError):
        decode_instruction(None)


def test_opcode_order_matches_table():
    opcodes = list(OpCode)
    assert decode_instruction("SET") is opcodes[0]
    assert decode_instruction("EXIT") is opcodes[-1]
    wait = decode_instruction("WAIT")
    sleep = decode_instruction("IO_GEN_SLEEP")
    assert opcodes.index(wait) < opcodes.index(sleep)


def test_instruction_error_is_value_error_with_reason():
    error = InstructionError("boom", EvictionReason.OUT_OF_MEMORY)
    assert isinstance(error, ValueError)
    assert error.reason is EvictionReason.OUT_OF_MEMORY
    assert str(error) == "boom"


@pytest.mark.parametrize("value", [0, 7, 4294967295])
def test_parse_unsigned_round_trip(value):
    assert parse_unsigned(str(value)) == value


def test_parse_unsigned_accepts_leading_space_and_plus():
    assert parse_unsigned("  +15") == 15


@pytest.mark.parametrize("text", ["", "12a", "abc", "+", " ", "1 ", "1.5", "\u0661"])
def test_parse_unsigned_rejects(text):
    with pytest.raises(InstructionError):
        parse_unsigned(text)


def test_split_instruction_words():
    assert split_instruction("SET AX 1\n") == ["SET", "AX", "1"]


def test_split_instruction_maximum_allowed():
    words = ["IO_FS_WRITE"] + [f"A{i}" for i in range(MAX_ARGUMENTS - 1)]
    assert split_instruction(" ".join(words)) == words


def test_split_instruction_too_many():
    words = ["X"] * (MAX_ARGUMENTS + 1)
    with pytest.raises(InstructionError):
        split_instruction(" ".join(words))


@pytest.mark.parametrize("line", ["", "   ", "\n"])
def test_split_instruction_empty(line):
    with pytest.raises(InstructionError):
        split_instruction(line)


def test_syscall_value_semantics():
    call = Syscall(OpCode.WAIT, ("RA",))
    assert call == Syscall(OpCode.WAIT, ("RA",))
    assert Syscall(OpCode.EXIT).arguments == ()
    with pytest.raises(AttributeError):
        call.opcode = OpCode.SIGNAL