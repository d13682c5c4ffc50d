"""
Balance instructions.

STATIC_BALANCES loads fixed balances from the program. DYNAMIC_BALANCES keeps
them in persistent per-order state: the first walk initializes them from the
program's arguments, later walks read what previous swaps left behind, and
after the rest of the program runs the swap is booked (in += amount_in,
out -= amount_out).
"""

from __future__ import annotations

from typing import Tuple

from ...errors import InsufficientBalance, MissingTokenBalance
from ..args import ArgsReader, ArgsWriter
from ..context import ExecutionContext
from ..opcodes import InstructionSpec, Opcode

Balances = Tuple[Tuple[str, int], ...]


def parse_balances(data: bytes) -> Balances:
    r = ArgsReader(data)
    entries = r.balances()
    r.finish()
    return entries


def _lookup(entries: Balances, token: str) -> int:
    for entry_token, amount in entries:
        if entry_token == token:
            return amount
    raise MissingTokenBalance(f"program lists no balance for {token}")


def execute_static_balances(ctx: ExecutionContext, entries: Balances) -> None:
    reg = ctx.registers
    reg.balance_in = _lookup(entries, ctx.query.token_in)
    reg.balance_out = _lookup(entries, ctx.query.token_out)


def execute_dynamic_balances(ctx: ExecutionContext, entries: Balances) -> None:
    state = ctx.state
    for token, amount in entries:
        if not state.has_balance(token):
            state.set_balance(token, amount)

    token_in = ctx.query.token_in
    token_out = ctx.query.token_out
    reg = ctx.registers
    reg.balance_in = state.balance(token_in)
    reg.balance_out = state.balance(token_out)

    ctx.run_loop()
    if not ctx.swap_computed:
        return

    new_out = state.balance(token_out) - reg.amount_out
    if new_out < 0:
        raise InsufficientBalance(f"order cannot deliver {reg.amount_out} of {token_out}")
    state.set_balance(token_in, state.balance(token_in) + reg.amount_in)
    state.set_balance(token_out, new_out)


SPECS = (
    InstructionSpec(Opcode.STATIC_BALANCES, "STATIC_BALANCES", parse_balances, execute_static_balances),
    InstructionSpec(Opcode.DYNAMIC_BALANCES, "DYNAMIC_BALANCES", parse_balances, execute_dynamic_balances),
)


def encode_balances(entries) -> bytes:
    return ArgsWriter().balances(entries).to_bytes()
