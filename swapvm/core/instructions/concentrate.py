"""
CONCENTRATE: virtual liquidity added on top of the real balances.

Each side gets a virtual delta. Before the first trade the deltas apply as
given; afterwards they are scaled by how far the order's liquidity has moved
from the program's `initial_liquidity` reference:

    effective = balance + delta * scale / initial_liquidity

After the trade the scale is recomputed from the post-trade effective
reserves, isqrt((eff_in + amount_in) * (eff_out - amount_out)), and persisted.
`initial_liquidity == 0` is rejected at parse time since every read after the
first trade divides by it.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import isqrt

from ...errors import InsufficientBalance, InvalidArguments, InvalidInitialLiquidity, MissingTokenBalance
from ..args import ArgsReader, ArgsWriter
from ..context import ExecutionContext
from ..opcodes import InstructionSpec, Opcode


@dataclass(frozen=True)
class ConcentrateArgs:
    token_a: str
    delta_a: int
    token_b: str
    delta_b: int
    initial_liquidity: int

    def delta_for(self, token: str) -> int:
        if token == self.token_a:
            return self.delta_a
        if token == self.token_b:
            return self.delta_b
        raise MissingTokenBalance(f"CONCENTRATE has no delta for {token}")


def parse_concentrate(data: bytes) -> ConcentrateArgs:
    r = ArgsReader(data)
    args = ConcentrateArgs(
        token_a=r.address(),
        delta_a=r.u256(),
        token_b=r.address(),
        delta_b=r.u256(),
        initial_liquidity=r.u256(),
    )
    r.finish()
    if args.token_a == args.token_b:
        raise InvalidArguments("CONCENTRATE tokens must differ")
    if args.initial_liquidity == 0:
        raise InvalidInitialLiquidity("initial liquidity must be positive")
    return args


def effective_balance(balance: int, delta: int, scale, initial_liquidity: int) -> int:
    if scale is None:
        return balance + delta
    return balance + delta * scale // initial_liquidity


def execute_concentrate(ctx: ExecutionContext, args: ConcentrateArgs) -> None:
    reg = ctx.registers
    scale = ctx.state.liquidity_scale
    real_in, real_out = reg.balance_in, reg.balance_out

    eff_in = effective_balance(real_in, args.delta_for(ctx.query.token_in), scale, args.initial_liquidity)
    eff_out = effective_balance(real_out, args.delta_for(ctx.query.token_out), scale, args.initial_liquidity)
    reg.balance_in, reg.balance_out = eff_in, eff_out

    ctx.run_loop()
    reg.balance_in, reg.balance_out = real_in, real_out
    if not ctx.swap_computed:
        return

    post_out = eff_out - reg.amount_out
    if post_out < 0:
        raise InsufficientBalance(f"concentrated reserve cannot deliver {reg.amount_out}")
    ctx.state.set_liquidity_scale(isqrt((eff_in + reg.amount_in) * post_out))


SPECS = (InstructionSpec(Opcode.CONCENTRATE, "CONCENTRATE", parse_concentrate, execute_concentrate),)


def encode_concentrate(token_a: str, delta_a: int, token_b: str, delta_b: int, initial_liquidity: int) -> bytes:
    return (
        ArgsWriter()
        .address(token_a)
        .u256(delta_a)
        .address(token_b)
        .u256(delta_b)
        .u256(initial_liquidity)
        .to_bytes()
    )
