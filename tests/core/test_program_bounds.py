# [TESTER] v1

"""Untrusted-bytecode safety: truncation, unknown opcodes and arbitrary bytes."""

from __future__ import annotations

import importlib.util

import pytest

from swapvm.core import DEFAULT_OPCODES, ProgramBuilder, iter_instructions, validate_program
from swapvm.core.context import ExecutionContext, SwapQuery, SwapRegisters
from swapvm.core.interpreter import run
from swapvm.core.opcodes import InstructionSpec, Opcode, OpcodeTable
from swapvm.core.program import decode_at
from swapvm.errors import ArgsExceedProgram, InvalidOpcode, MalformedInstruction, ProgramError, SwapVMError
from swapvm.state.store import OrderStateStore

TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20


def _program() -> bytes:
    return (
        ProgramBuilder()
        .static_balances({TOKEN_A: 1000, TOKEN_B: 1000})
        .flat_fee_amount_in(30)
        .constant_product_swap()
        .build()
    )


def _context(program: bytes, table: OpcodeTable = DEFAULT_OPCODES) -> ExecutionContext:
    query = SwapQuery(
        order_hash="0x" + "00" * 32,
        maker="0x" + "11" * 20,
        taker="0x" + "22" * 20,
        token_in=TOKEN_A,
        token_out=TOKEN_B,
        is_exact_in=True,
    )
    return ExecutionContext(
        query=query,
        registers=SwapRegisters(amount_in=100),
        program=program,
        opcodes=table,
        state=OrderStateStore().begin(query.order_hash),
        now=0,
    )


def test_every_truncation_fails_with_typed_error_at_the_cut_instruction() -> None:
    program = _program()
    boundaries = [d.pc for d in iter_instructions(program, DEFAULT_OPCODES)]
    for cut in range(1, len(program)):
        if cut in boundaries:
            continue
        truncated = program[:cut]
        start = max(b for b in boundaries if b < cut)
        expected = MalformedInstruction if cut - start == 1 else ArgsExceedProgram
        with pytest.raises(expected) as excinfo:
            run(_context(truncated))
        assert excinfo.value.pc == start
        with pytest.raises(expected):
            validate_program(truncated, DEFAULT_OPCODES)


def test_header_check_precedes_body_and_opcode_checks() -> None:
    # A lone unknown opcode byte is a header problem, not an opcode problem.
    with pytest.raises(MalformedInstruction):
        decode_at(b"\xff", 0, DEFAULT_OPCODES)
    # Body overrun is reported before the opcode is looked up.
    with pytest.raises(ArgsExceedProgram) as excinfo:
        decode_at(b"\xff\x05\x00", 0, DEFAULT_OPCODES)
    assert excinfo.value.args_length == 5


@pytest.mark.parametrize("opcode", [op for op in range(256) if op not in DEFAULT_OPCODES])
def test_unregistered_opcodes_are_invalid(opcode: int) -> None:
    with pytest.raises(InvalidOpcode) as excinfo:
        run(_context(bytes([opcode, 0])))
    assert excinfo.value.opcode == opcode
    assert excinfo.value.pc == 0


def test_small_table_rejects_opcodes_beyond_its_registrations() -> None:
    only_salt = OpcodeTable(
        [InstructionSpec(Opcode.SALT, "SALT", lambda data: bytes(data), lambda ctx, salt: None)]
    )
    run(_context(bytes([Opcode.SALT, 1, 7]), only_salt))
    with pytest.raises(InvalidOpcode):
        run(_context(bytes([Opcode.SALT, 0, Opcode.JUMP, 2, 0, 4]), only_salt))


def test_table_rejects_duplicate_and_out_of_range_registrations() -> None:
    spec = InstructionSpec(Opcode.SALT, "SALT", bytes, lambda ctx, salt: None)
    with pytest.raises(ValueError):
        OpcodeTable([spec, spec])
    with pytest.raises(ValueError):
        OpcodeTable([InstructionSpec(0, "ZERO", bytes, lambda ctx, salt: None)])


if importlib.util.find_spec("hypothesis") is not None:
    import hypothesis.strategies as st
    from hypothesis import given, settings

    @settings(max_examples=500, deadline=None)
    @given(program=st.binary(max_size=256))
    def test_arbitrary_bytes_decode_or_fail_with_program_error(program: bytes) -> None:
        try:
            for decoded in iter_instructions(program, DEFAULT_OPCODES):
                assert decoded.next_pc <= len(program)
        except ProgramError:
            pass

    @settings(max_examples=500, deadline=None)
    @given(program=st.binary(max_size=256))
    def test_arbitrary_bytes_never_escape_the_error_taxonomy(program: bytes) -> None:
        try:
            run(_context(program))
        except SwapVMError:
            pass
