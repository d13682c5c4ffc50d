"""
Fee instructions (basis points, denominator `BPS_DENOM`).

All fees wrap the rest of the program:

- FLAT_FEE_AMOUNT_IN, exact-in: the curve sees amount_in minus the fee
  (fee rounded up); exact-out: the curve's amount_in is grossed up to
  ceil(amount_in * BPS / (BPS - fee)).
- FLAT_FEE_AMOUNT_OUT, exact-in: the taker receives
  floor(amount_out * (BPS - fee) / BPS); exact-out: the curve is asked for
  ceil(amount_out * BPS / (BPS - fee)).
- DYNAMIC_FEE_AMOUNT_IN: as FLAT_FEE_AMOUNT_IN with the fee read from an
  external provider; the returned value is checked before use.

A fee of `BPS_DENOM` or more would make `BPS - fee` a zero or negative
divisor, so it is rejected when the arguments are parsed (or, for dynamic
fees, when the provider answers).
"""

from __future__ import annotations

from ...errors import ExternalCallError, InvalidFee
from ...kernels.python.fixed_point import BPS_DENOM, mul_div_down, mul_div_up
from ..args import ArgsReader, ArgsWriter
from ..context import ExecutionContext, call_external
from ..opcodes import InstructionSpec, Opcode


def validate_fee_bps(fee_bps: int) -> int:
    if not isinstance(fee_bps, int) or isinstance(fee_bps, bool):
        raise InvalidFee(f"fee must be an int, got {fee_bps!r}")
    if not (0 <= fee_bps < BPS_DENOM):
        raise InvalidFee(f"fee {fee_bps} bps must be in [0, {BPS_DENOM})")
    return fee_bps


def parse_flat_fee(data: bytes) -> int:
    r = ArgsReader(data)
    fee_bps = r.u16()
    r.finish()
    return validate_fee_bps(fee_bps)


def parse_fee_provider(data: bytes) -> str:
    r = ArgsReader(data)
    provider = r.address()
    r.finish()
    return provider


def _fee_on_amount_in(ctx: ExecutionContext, fee_bps: int) -> None:
    reg = ctx.registers
    if ctx.is_exact_in:
        gross = reg.amount_in
        fee = mul_div_up(gross, fee_bps, BPS_DENOM)
        reg.amount_in = gross - fee
        ctx.run_loop()
        reg.amount_in = gross
    else:
        ctx.run_loop()
        if ctx.swap_computed:
            reg.amount_in = mul_div_up(reg.amount_in, BPS_DENOM, BPS_DENOM - fee_bps)


def execute_flat_fee_amount_in(ctx: ExecutionContext, fee_bps: int) -> None:
    _fee_on_amount_in(ctx, fee_bps)


def execute_flat_fee_amount_out(ctx: ExecutionContext, fee_bps: int) -> None:
    reg = ctx.registers
    if ctx.is_exact_in:
        ctx.run_loop()
        if ctx.swap_computed:
            reg.amount_out = mul_div_down(reg.amount_out, BPS_DENOM - fee_bps, BPS_DENOM)
    else:
        net = reg.amount_out
        reg.amount_out = mul_div_up(net, BPS_DENOM, BPS_DENOM - fee_bps)
        ctx.run_loop()
        reg.amount_out = net


def execute_dynamic_fee_amount_in(ctx: ExecutionContext, provider_address: str) -> None:
    provider = ctx.fee_provider(provider_address)
    fee_bps = call_external("fee provider", provider.get_fee_bps, ctx.query)
    try:
        validate_fee_bps(fee_bps)
    except InvalidFee as exc:
        raise ExternalCallError(f"fee provider {provider_address} returned an invalid fee: {exc}") from exc
    ctx.record("dynamic_fee", fee_bps)
    _fee_on_amount_in(ctx, fee_bps)


SPECS = (
    InstructionSpec(Opcode.FLAT_FEE_AMOUNT_IN, "FLAT_FEE_AMOUNT_IN", parse_flat_fee, execute_flat_fee_amount_in),
    InstructionSpec(Opcode.FLAT_FEE_AMOUNT_OUT, "FLAT_FEE_AMOUNT_OUT", parse_flat_fee, execute_flat_fee_amount_out),
    InstructionSpec(
        Opcode.DYNAMIC_FEE_AMOUNT_IN,
        "DYNAMIC_FEE_AMOUNT_IN",
        parse_fee_provider,
        execute_dynamic_fee_amount_in,
    ),
)


def encode_flat_fee(fee_bps: int) -> bytes:
    return ArgsWriter().u16(fee_bps).to_bytes()


def encode_fee_provider(provider: str) -> bytes:
    return ArgsWriter().address(provider).to_bytes()
