"""
Pegged swap kernel (v1): constant-sum at a fixed rate.

    amount_out = floor(amount_in * rate / ONE)          (exact-in)
    amount_in  = ceil(amount_out * ONE / rate)          (exact-out)

`rate` is output per input at 18 decimals. The output may never exceed the
maker's balance; there is no curvature, so the peg holds until the balance is
exhausted.
"""

from __future__ import annotations

from ...errors import InsufficientOutput, InvalidArguments, ParameterError
from .fixed_point import ONE, mul_div_down, mul_div_up


def validate_rate(rate: int) -> int:
    if not isinstance(rate, int) or isinstance(rate, bool):
        raise TypeError("rate must be an int")
    if rate <= 0:
        raise InvalidArguments(f"rate must be positive: {rate}")
    return rate


def exact_in(*, balance_out: int, amount_in: int, rate: int) -> int:
    validate_rate(rate)
    if amount_in <= 0:
        raise ParameterError(f"amount_in must be positive: {amount_in}")
    amount_out = mul_div_down(amount_in, rate, ONE)
    if amount_out > balance_out:
        raise InsufficientOutput(f"amount_out ({amount_out}) exceeds balance_out ({balance_out})")
    return amount_out


def exact_out(*, balance_out: int, amount_out: int, rate: int) -> int:
    validate_rate(rate)
    if amount_out <= 0:
        raise ParameterError(f"amount_out must be positive: {amount_out}")
    if amount_out > balance_out:
        raise InsufficientOutput(f"amount_out ({amount_out}) exceeds balance_out ({balance_out})")
    return mul_div_up(amount_out, ONE, rate)


def spot_price(*, rate: int) -> int:
    """Input per output (18 decimals, rounded up)."""
    validate_rate(rate)
    return mul_div_up(ONE, ONE, rate)
