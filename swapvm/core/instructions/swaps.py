"""
Swap instructions: the point where amounts are computed.

Exact-in walks fill amount_out from amount_in; exact-out walks fill
amount_in from amount_out. Each swap marks the swap point, which halts a
quote walk.
"""

from __future__ import annotations

from ...kernels.python import pegged_swap_v1, pow_curve_v1
from ...kernels.python.density_curve_v1 import DensityCurve, Shape
from ..args import ArgsReader, ArgsWriter
from ..context import ExecutionContext
from ..opcodes import InstructionSpec, Opcode


def parse_constant_product(data: bytes) -> int:
    r = ArgsReader(data)
    alpha = r.u64()
    r.finish()
    return pow_curve_v1.validate_alpha(alpha)


def parse_pegged(data: bytes) -> int:
    r = ArgsReader(data)
    rate = r.u256()
    r.finish()
    return pegged_swap_v1.validate_rate(rate)


def parse_density(data: bytes) -> DensityCurve:
    r = ArgsReader(data)
    capacity = r.u256()
    base_price = r.u256()
    strength = r.u256()
    shape = r.u8()
    spread_bps = r.u16()
    r.finish()
    return DensityCurve(
        capacity=capacity,
        base_price=base_price,
        strength=strength,
        shape=shape,
        spread_bps=spread_bps,
    )


def execute_constant_product(ctx: ExecutionContext, alpha: int) -> None:
    reg = ctx.registers
    if ctx.is_exact_in:
        reg.amount_out = pow_curve_v1.exact_in(
            balance_in=reg.balance_in,
            balance_out=reg.balance_out,
            amount_in=reg.amount_in,
            alpha=alpha,
        )
    else:
        quote = pow_curve_v1.exact_out(
            balance_in=reg.balance_in,
            balance_out=reg.balance_out,
            amount_out=reg.amount_out,
            alpha=alpha,
            max_iterations=ctx.curve.max_iterations,
            min_step=ctx.curve.min_step,
        )
        reg.amount_in = quote.amount_in
        ctx.record("corrections", quote.corrections)
    ctx.mark_swap_point()


def execute_pegged(ctx: ExecutionContext, rate: int) -> None:
    reg = ctx.registers
    if ctx.is_exact_in:
        reg.amount_out = pegged_swap_v1.exact_in(balance_out=reg.balance_out, amount_in=reg.amount_in, rate=rate)
    else:
        reg.amount_in = pegged_swap_v1.exact_out(balance_out=reg.balance_out, amount_out=reg.amount_out, rate=rate)
    ctx.mark_swap_point()


def execute_density(ctx: ExecutionContext, curve: DensityCurve) -> None:
    reg = ctx.registers
    if ctx.is_exact_in:
        reg.amount_out = curve.exact_in(balance_out=reg.balance_out, amount_in=reg.amount_in)
    else:
        reg.amount_in = curve.exact_out(balance_out=reg.balance_out, amount_out=reg.amount_out)
    ctx.mark_swap_point()


SPECS = (
    InstructionSpec(
        Opcode.CONSTANT_PRODUCT_SWAP,
        "CONSTANT_PRODUCT_SWAP",
        parse_constant_product,
        execute_constant_product,
        is_swap=True,
    ),
    InstructionSpec(Opcode.PEGGED_SWAP, "PEGGED_SWAP", parse_pegged, execute_pegged, is_swap=True),
    InstructionSpec(Opcode.DENSITY_SWAP, "DENSITY_SWAP", parse_density, execute_density, is_swap=True),
)


def encode_constant_product(alpha: int) -> bytes:
    return ArgsWriter().u64(alpha).to_bytes()


def encode_pegged(rate: int) -> bytes:
    return ArgsWriter().u256(rate).to_bytes()


def encode_density(capacity: int, base_price: int, strength: int, shape: Shape, spread_bps: int = 0) -> bytes:
    return (
        ArgsWriter()
        .u256(capacity)
        .u256(base_price)
        .u256(strength)
        .u8(int(shape))
        .u16(spread_bps)
        .to_bytes()
    )
