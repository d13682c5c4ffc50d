"""
Program decoding and the build-time validation pass.

A program is a flat byte string of records `{opcode:u8, argsLength:u8, args}`.
`iter_instructions` decodes with the same three checks, in the same order, as
the interpreter (header in bounds, body in bounds, opcode registered), so a
program that passes `validate_program` cannot fail decoding at walk time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, List

from ..errors import ArgsExceedProgram, InvalidJumpTarget, MalformedInstruction, MissingSwapInstruction
from .opcodes import InstructionSpec, OpcodeTable

HEADER_SIZE = 2


@dataclass(frozen=True)
class DecodedInstruction:
    pc: int
    spec: InstructionSpec
    args: bytes

    @property
    def next_pc(self) -> int:
        return self.pc + HEADER_SIZE + len(self.args)


def decode_at(program: bytes, pc: int, table: OpcodeTable) -> DecodedInstruction:
    """Decode the record at `pc`; raises the first malformation found."""
    if pc + 1 >= len(program):
        raise MalformedInstruction(pc)
    opcode = program[pc]
    args_length = program[pc + 1]
    end = pc + HEADER_SIZE + args_length
    if end > len(program):
        raise ArgsExceedProgram(pc, args_length)
    spec = table.lookup(pc, opcode)
    return DecodedInstruction(pc=pc, spec=spec, args=program[pc + HEADER_SIZE : end])


def iter_instructions(program: bytes, table: OpcodeTable) -> Iterator[DecodedInstruction]:
    pc = 0
    while pc < len(program):
        decoded = decode_at(program, pc, table)
        yield decoded
        pc = decoded.next_pc


def validate_program(program: bytes, table: OpcodeTable) -> List[DecodedInstruction]:
    """
    Decode every instruction, parse every argument block, and check that jump
    targets land on an instruction boundary strictly ahead of the jump (or
    exactly at the end of the program).
    """
    decoded = list(iter_instructions(program, table))
    boundaries = {d.pc for d in decoded}
    boundaries.add(len(program))
    for d in decoded:
        parsed = d.spec.parse(d.args)
        if d.spec.jump_target is not None:
            target = d.spec.jump_target(parsed)
            if target <= d.pc or target not in boundaries:
                raise InvalidJumpTarget(d.pc, target)
    return decoded


def locate_swap_point(program: bytes, table: OpcodeTable) -> int:
    """pc of the first swap instruction; nothing is executed."""
    for d in iter_instructions(program, table):
        if d.spec.is_swap:
            return d.pc
    raise MissingSwapInstruction()


def parse_all(program: bytes, table: OpcodeTable) -> List[Any]:
    return [d.spec.parse(d.args) for d in iter_instructions(program, table)]


def disassemble(program: bytes, table: OpcodeTable) -> str:
    lines = []
    for d in iter_instructions(program, table):
        parsed = d.spec.parse(d.args)
        lines.append(f"{d.pc:04d}: {d.spec.name} {parsed!r}" if d.args else f"{d.pc:04d}: {d.spec.name}")
    return "\n".join(lines)


def encode_instruction(opcode: int, args: bytes = b"") -> bytes:
    if not (0 <= opcode <= 0xFF):
        raise ValueError(f"opcode out of range: {opcode}")
    if len(args) > 0xFF:
        raise ValueError(f"args too long: {len(args)}")
    return bytes((opcode, len(args))) + bytes(args)


def encode_program(instructions) -> bytes:
    """Concatenate `(opcode, args)` pairs into a program."""
    return b"".join(encode_instruction(int(opcode), args) for opcode, args in instructions)
