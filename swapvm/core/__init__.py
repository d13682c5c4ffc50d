"""
Program encoding, the interpreter and the instruction set.
"""

from .builder import ProgramBuilder
from .context import CurveSettings, ExecutionContext, Services, SwapQuery, SwapRegisters
from .instructions import DEFAULT_OPCODES
from .interpreter import run
from .opcodes import InstructionSpec, Opcode, OpcodeTable
from .program import (
    disassemble,
    encode_program,
    iter_instructions,
    locate_swap_point,
    validate_program,
)

__all__ = [
    "CurveSettings",
    "DEFAULT_OPCODES",
    "ExecutionContext",
    "InstructionSpec",
    "Opcode",
    "OpcodeTable",
    "ProgramBuilder",
    "Services",
    "SwapQuery",
    "SwapRegisters",
    "disassemble",
    "encode_program",
    "iter_instructions",
    "locate_swap_point",
    "run",
    "validate_program",
]
