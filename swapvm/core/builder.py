"""
Program builder (assembler).

    program = (
        ProgramBuilder()
        .dynamic_balances({token_a: 1000, token_b: 1000})
        .jump_if_token_in(token_b, "b_to_a")
        .flat_fee_amount_in(30)
        .label("b_to_a")
        .constant_product_swap()
        .build()
    )

Jump targets are labels resolved to absolute pcs at `build()`; a label must be
defined exactly once.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from ..kernels.python.density_curve_v1 import Shape
from ..kernels.python.fixed_point import ONE
from .instructions import balances, concentrate, controls, decay, fees, swaps
from .opcodes import Opcode
from .program import HEADER_SIZE, encode_instruction

ArgsSource = Union[bytes, Callable[[Mapping[str, int]], bytes]]

# Placeholder sizes for label-bearing instructions (args are fixed width).
_JUMP_ARGS_SIZE = 2
_TOKEN_JUMP_ARGS_SIZE = 22


class ProgramBuilder:
    def __init__(self) -> None:
        self._items: List[Tuple[int, ArgsSource, int]] = []
        self._labels: Dict[str, int] = {}
        self._size = 0

    def _append(self, opcode: Opcode, args: ArgsSource, size: Optional[int] = None) -> "ProgramBuilder":
        if size is None:
            size = len(args)  # type: ignore[arg-type]
        self._items.append((int(opcode), args, size))
        self._size += HEADER_SIZE + size
        return self

    def raw(self, opcode: int, args: bytes = b"") -> "ProgramBuilder":
        self._items.append((opcode, bytes(args), len(args)))
        self._size += HEADER_SIZE + len(args)
        return self

    def label(self, name: str) -> "ProgramBuilder":
        if name in self._labels:
            raise ValueError(f"duplicate label: {name}")
        self._labels[name] = self._size
        return self

    # -- Controls ---------------------------------------------------------------

    def jump(self, label: str) -> "ProgramBuilder":
        return self._append(Opcode.JUMP, lambda labels: controls.encode_jump(labels[label]), _JUMP_ARGS_SIZE)

    def jump_if_token_in(self, token: str, label: str) -> "ProgramBuilder":
        return self._append(
            Opcode.JUMP_IF_TOKEN_IN,
            lambda labels: controls.encode_token_jump(token, labels[label]),
            _TOKEN_JUMP_ARGS_SIZE,
        )

    def jump_if_token_out(self, token: str, label: str) -> "ProgramBuilder":
        return self._append(
            Opcode.JUMP_IF_TOKEN_OUT,
            lambda labels: controls.encode_token_jump(token, labels[label]),
            _TOKEN_JUMP_ARGS_SIZE,
        )

    def deadline(self, timestamp: int) -> "ProgramBuilder":
        return self._append(Opcode.DEADLINE, controls.encode_deadline(timestamp))

    def only_taker_token_balance_non_zero(self, token: str) -> "ProgramBuilder":
        return self._append(Opcode.ONLY_TAKER_TOKEN_BALANCE_NON_ZERO, controls.encode_token(token))

    def only_taker_token_balance_gte(self, token: str, minimum: int) -> "ProgramBuilder":
        return self._append(Opcode.ONLY_TAKER_TOKEN_BALANCE_GTE, controls.encode_token_threshold(token, minimum))

    def only_taker_token_supply_share_gte(self, token: str, share: int) -> "ProgramBuilder":
        return self._append(
            Opcode.ONLY_TAKER_TOKEN_SUPPLY_SHARE_GTE,
            controls.encode_token_threshold(token, share),
        )

    def salt(self, value: bytes) -> "ProgramBuilder":
        return self._append(Opcode.SALT, bytes(value))

    # -- Balances and virtual liquidity -----------------------------------------

    def static_balances(self, entries) -> "ProgramBuilder":
        return self._append(Opcode.STATIC_BALANCES, balances.encode_balances(entries))

    def dynamic_balances(self, entries) -> "ProgramBuilder":
        return self._append(Opcode.DYNAMIC_BALANCES, balances.encode_balances(entries))

    def decay(self, period: int) -> "ProgramBuilder":
        return self._append(Opcode.DECAY, decay.encode_decay(period))

    def concentrate(
        self, token_a: str, delta_a: int, token_b: str, delta_b: int, initial_liquidity: int
    ) -> "ProgramBuilder":
        return self._append(
            Opcode.CONCENTRATE,
            concentrate.encode_concentrate(token_a, delta_a, token_b, delta_b, initial_liquidity),
        )

    # -- Fees -------------------------------------------------------------------

    def flat_fee_amount_in(self, fee_bps: int) -> "ProgramBuilder":
        return self._append(Opcode.FLAT_FEE_AMOUNT_IN, fees.encode_flat_fee(fee_bps))

    def flat_fee_amount_out(self, fee_bps: int) -> "ProgramBuilder":
        return self._append(Opcode.FLAT_FEE_AMOUNT_OUT, fees.encode_flat_fee(fee_bps))

    def dynamic_fee_amount_in(self, provider: str) -> "ProgramBuilder":
        return self._append(Opcode.DYNAMIC_FEE_AMOUNT_IN, fees.encode_fee_provider(provider))

    # -- Swaps ------------------------------------------------------------------

    def constant_product_swap(self, alpha: int = ONE) -> "ProgramBuilder":
        return self._append(Opcode.CONSTANT_PRODUCT_SWAP, swaps.encode_constant_product(alpha))

    def pegged_swap(self, rate: int = ONE) -> "ProgramBuilder":
        return self._append(Opcode.PEGGED_SWAP, swaps.encode_pegged(rate))

    def density_swap(
        self,
        capacity: int,
        base_price: int,
        strength: int,
        shape: Shape = Shape.LINEAR,
        spread_bps: int = 0,
    ) -> "ProgramBuilder":
        return self._append(
            Opcode.DENSITY_SWAP,
            swaps.encode_density(capacity, base_price, strength, shape, spread_bps),
        )

    # -- Output -----------------------------------------------------------------

    def build(self) -> bytes:
        out = []
        for opcode, args, size in self._items:
            if callable(args):
                try:
                    data = args(self._labels)
                except KeyError as exc:
                    raise ValueError(f"undefined label: {exc.args[0]}") from None
            else:
                data = args
            if len(data) != size:
                raise ValueError(f"opcode 0x{opcode:02x}: encoded {len(data)} bytes, reserved {size}")
            out.append(encode_instruction(opcode, data))
        return b"".join(out)
