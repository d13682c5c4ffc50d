"""
DECAY: temporary virtual offsets that fade linearly over `period` seconds.

Offsets live in persistent state per (order, token, direction) as a base value
and a start time; the current value is recomputed from those on every read:

    offset(now) = base * max(0, period - elapsed) / period

Before the swap, balance_in grows by the token_in IN-offset and balance_out
shrinks by the token_out OUT-offset, clamped so the balance never goes below
zero. After the swap, the traded amounts are added to the offsets that price
the reverse trade (token_out IN, token_in OUT), so an immediate back-swap is
quoted against the pre-trade price and the penalty fades over `period`.
"""

from __future__ import annotations

from ...errors import InvalidDecayPeriod
from ...state.store import DecayOffset, Direction
from ..args import ArgsReader, ArgsWriter
from ..context import ExecutionContext
from ..opcodes import InstructionSpec, Opcode


def parse_decay(data: bytes) -> int:
    r = ArgsReader(data)
    period = r.u32()
    r.finish()
    if period == 0:
        raise InvalidDecayPeriod("decay period must be positive")
    return period


def current_offset(ctx: ExecutionContext, token: str, direction: Direction, period: int) -> int:
    offset = ctx.state.decay_offset(token, direction)
    if offset is None:
        return 0
    return offset.value_at(ctx.now, period)


def apply_offset_down(balance: int, offset: int) -> int:
    """balance - offset, floored at zero."""
    return balance - min(offset, balance)


def execute_decay(ctx: ExecutionContext, period: int) -> None:
    token_in = ctx.query.token_in
    token_out = ctx.query.token_out
    reg = ctx.registers

    reg.balance_in += current_offset(ctx, token_in, Direction.IN, period)
    reg.balance_out = apply_offset_down(reg.balance_out, current_offset(ctx, token_out, Direction.OUT, period))

    ctx.run_loop()
    if not ctx.swap_computed:
        return

    reverse_in = current_offset(ctx, token_out, Direction.IN, period) + reg.amount_out
    reverse_out = current_offset(ctx, token_in, Direction.OUT, period) + reg.amount_in
    ctx.state.set_decay_offset(token_out, Direction.IN, DecayOffset(base=reverse_in, start=ctx.now))
    ctx.state.set_decay_offset(token_in, Direction.OUT, DecayOffset(base=reverse_out, start=ctx.now))


SPECS = (InstructionSpec(Opcode.DECAY, "DECAY", parse_decay, execute_decay),)


def encode_decay(period: int) -> bytes:
    return ArgsWriter().u32(period).to_bytes()
