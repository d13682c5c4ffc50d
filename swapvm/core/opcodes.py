"""
Opcode numbering and the immutable opcode table.

The table maps an opcode byte to an `InstructionSpec`. It is built once and
never mutated; the interpreter treats it as opaque and only asks it to resolve
a byte. Slots with no registered spec (including 0x00) are invalid.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, unique
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional, Tuple

from ..errors import InvalidOpcode

if TYPE_CHECKING:
    from .context import ExecutionContext

TABLE_SIZE = 256


@unique
class Opcode(IntEnum):
    # Controls
    JUMP = 0x01
    JUMP_IF_TOKEN_IN = 0x02
    JUMP_IF_TOKEN_OUT = 0x03
    DEADLINE = 0x04
    ONLY_TAKER_TOKEN_BALANCE_NON_ZERO = 0x05
    ONLY_TAKER_TOKEN_BALANCE_GTE = 0x06
    ONLY_TAKER_TOKEN_SUPPLY_SHARE_GTE = 0x07
    SALT = 0x08
    # Balances
    STATIC_BALANCES = 0x10
    DYNAMIC_BALANCES = 0x11
    # Virtual liquidity
    DECAY = 0x18
    CONCENTRATE = 0x19
    # Fees
    FLAT_FEE_AMOUNT_IN = 0x20
    FLAT_FEE_AMOUNT_OUT = 0x21
    DYNAMIC_FEE_AMOUNT_IN = 0x22
    # Swaps
    CONSTANT_PRODUCT_SWAP = 0x30
    PEGGED_SWAP = 0x31
    DENSITY_SWAP = 0x32


ParseFn = Callable[[bytes], Any]
ExecuteFn = Callable[["ExecutionContext", Any], None]


@dataclass(frozen=True)
class InstructionSpec:
    """
    One instruction: how to decode its arguments and how to run it.

    `parse` validates parameters and raises `InvalidArguments` (or a subclass);
    `execute` receives the parsed value. `jump_target` extracts the absolute
    target from parsed arguments for control-flow instructions so the
    validation pass can check it without executing anything.
    """

    opcode: int
    name: str
    parse: ParseFn
    execute: ExecuteFn
    is_swap: bool = False
    jump_target: Optional[Callable[[Any], int]] = None


class OpcodeTable:
    def __init__(self, specs: Iterable[InstructionSpec]) -> None:
        slots: list[Optional[InstructionSpec]] = [None] * TABLE_SIZE
        for spec in specs:
            if not (0 < spec.opcode < TABLE_SIZE):
                raise ValueError(f"opcode out of range: {spec.opcode}")
            if slots[spec.opcode] is not None:
                raise ValueError(f"duplicate opcode 0x{spec.opcode:02x}")
            slots[spec.opcode] = spec
        self._slots: Tuple[Optional[InstructionSpec], ...] = tuple(slots)

    def lookup(self, pc: int, opcode: int) -> InstructionSpec:
        spec = self._slots[opcode] if 0 <= opcode < TABLE_SIZE else None
        if spec is None:
            raise InvalidOpcode(pc, opcode)
        return spec

    def get(self, opcode: int) -> Optional[InstructionSpec]:
        return self._slots[opcode] if 0 <= opcode < TABLE_SIZE else None

    def __contains__(self, opcode: object) -> bool:
        return isinstance(opcode, int) and self.get(opcode) is not None

    def __len__(self) -> int:
        return sum(1 for spec in self._slots if spec is not None)

    def by_name(self) -> Mapping[str, InstructionSpec]:
        return {spec.name: spec for spec in self._slots if spec is not None}
