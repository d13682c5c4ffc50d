"""
Pow-curve swap kernel (v1): fee-adjusted constant product.

Invariant family (all input is reinvested in the balance):
    balance_in^alpha * balance_out = const,   0 < alpha <= 1 (alpha = 1 - fee rate)

Exact-in:
    amount_out = floor(balance_out * (1 - (balance_in / (balance_in + amount_in))^alpha))

Exact-out:
    amount_in = ceil(balance_in * ((balance_out / (balance_out - amount_out))^(1/alpha) - 1))

Rounding is directional: every intermediate that feeds the taker's side is
rounded against the taker (ratios and powers rounded up for exact-in, up again
for exact-out).

Because ln/exp are approximations, an exact-out quote is re-checked by running
exact-in on it. If the round trip delivers less than requested, the quote is
raised by the shortfall divided by the curve's marginal rate (never less than
CORRECTION_MIN_STEP, and at least double the previous step) and re-checked, at
most CORRECTION_MAX_ITERATIONS times; then ConvergenceError. Once a raised
quote delivers, bisection against the last short quote trims the overshoot.

alpha == ONE uses the exact integer constant-product formulas.
"""

from __future__ import annotations

from dataclasses import dataclass

from ...errors import ConvergenceError, InsufficientOutput, InvalidAlpha, ParameterError
from .fixed_point import (
    ONE,
    ceil_div,
    div_up,
    mul_div_down,
    mul_div_up,
    pow_up,
)


# Tunable: the correction loop's iteration cap and minimum increment (in token units).
CORRECTION_MAX_ITERATIONS = 32
CORRECTION_MIN_STEP = 1


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def validate_alpha(alpha: int) -> int:
    _require_int("alpha", alpha)
    if not (0 < alpha <= ONE):
        raise InvalidAlpha(f"alpha must be in (0, {ONE}]: {alpha}")
    return alpha


def _validate_balances(balance_in: int, balance_out: int) -> None:
    _require_int("balance_in", balance_in)
    _require_int("balance_out", balance_out)
    if balance_in < 0 or balance_out < 0:
        raise ParameterError(f"balances must be non-negative: ({balance_in}, {balance_out})")
    if balance_in == 0 or balance_out == 0:
        raise InsufficientOutput("cannot swap against an empty balance")


@dataclass(frozen=True)
class SwapQuote:
    amount_in: int
    amount_out: int
    # Number of exact-out correction steps that were needed (0 for exact-in).
    corrections: int = 0


def exact_in(*, balance_in: int, balance_out: int, amount_in: int, alpha: int = ONE) -> int:
    """Output for a fixed input (floor)."""
    _validate_balances(balance_in, balance_out)
    validate_alpha(alpha)
    _require_int("amount_in", amount_in)
    if amount_in <= 0:
        raise ParameterError(f"amount_in must be positive: {amount_in}")

    if alpha == ONE:
        return mul_div_down(balance_out, amount_in, balance_in + amount_in)

    ratio = div_up(balance_in, balance_in + amount_in)
    power = min(pow_up(ratio, alpha), ONE)
    return mul_div_down(balance_out, ONE - power, ONE)


def _exact_out_estimate(*, balance_in: int, balance_out: int, amount_out: int, alpha: int) -> int:
    if alpha == ONE:
        return ceil_div(balance_in * amount_out, balance_out - amount_out)

    ratio = div_up(balance_out, balance_out - amount_out)
    inverse_alpha = div_up(ONE, alpha)
    power = pow_up(ratio, inverse_alpha)
    if power <= ONE:
        return 1
    return mul_div_up(balance_in, power - ONE, ONE)


def exact_out(
    *,
    balance_in: int,
    balance_out: int,
    amount_out: int,
    alpha: int = ONE,
    max_iterations: int = CORRECTION_MAX_ITERATIONS,
    min_step: int = CORRECTION_MIN_STEP,
) -> SwapQuote:
    """
    Input required for a fixed output (ceil), verified by an exact-in round trip.

    Raises:
        InsufficientOutput: amount_out >= balance_out.
        ConvergenceError: the round trip still falls short after `max_iterations`.
    """
    _validate_balances(balance_in, balance_out)
    validate_alpha(alpha)
    _require_int("amount_out", amount_out)
    if amount_out <= 0:
        raise ParameterError(f"amount_out must be positive: {amount_out}")
    if amount_out >= balance_out:
        raise InsufficientOutput(f"amount_out ({amount_out}) >= balance_out ({balance_out})")
    if max_iterations < 0 or min_step <= 0:
        raise ParameterError("max_iterations must be >= 0 and min_step > 0")

    candidate = max(
        1,
        _exact_out_estimate(
            balance_in=balance_in, balance_out=balance_out, amount_out=amount_out, alpha=alpha
        ),
    )

    shortfall = 0
    step = 0
    short_of = None
    for iteration in range(max_iterations + 1):
        delivered = exact_in(
            balance_in=balance_in, balance_out=balance_out, amount_in=candidate, alpha=alpha
        )
        if delivered >= amount_out:
            if short_of is not None:
                candidate = _tighten(
                    balance_in=balance_in,
                    balance_out=balance_out,
                    amount_out=amount_out,
                    alpha=alpha,
                    short=short_of,
                    enough=candidate,
                )
            return SwapQuote(amount_in=candidate, amount_out=amount_out, corrections=iteration)
        shortfall = amount_out - delivered
        if iteration == max_iterations:
            break
        # Marginal output per unit input is alpha * (balance_out - out) / (balance_in + in).
        marginal = -(-(shortfall * (balance_in + candidate) * ONE) // (alpha * (balance_out - delivered)))
        step = max(min_step, marginal, 2 * step)
        short_of = candidate
        candidate += step

    raise ConvergenceError(max_iterations, shortfall)


def _tighten(*, balance_in: int, balance_out: int, amount_out: int, alpha: int, short: int, enough: int) -> int:
    """Smallest input in (short, enough] found by bisection that still delivers amount_out."""
    while enough - short > 1:
        mid = (short + enough) // 2
        if exact_in(balance_in=balance_in, balance_out=balance_out, amount_in=mid, alpha=alpha) >= amount_out:
            enough = mid
        else:
            short = mid
    return enough


def swap_exact_in(*, balance_in: int, balance_out: int, amount_in: int, alpha: int = ONE) -> SwapQuote:
    amount_out = exact_in(balance_in=balance_in, balance_out=balance_out, amount_in=amount_in, alpha=alpha)
    return SwapQuote(amount_in=amount_in, amount_out=amount_out)


# -- Price views ---------------------------------------------------------------


def spot_price(*, balance_in: int, balance_out: int, alpha: int = ONE) -> int:
    """Marginal price of one unit of output in input units (18 decimals), rounded up."""
    _validate_balances(balance_in, balance_out)
    validate_alpha(alpha)
    return mul_div_up(balance_in * ONE, ONE, alpha * balance_out)


def average_price(*, amount_in: int, amount_out: int) -> int:
    """Average execution price over a filled range (input per output, rounded up)."""
    _require_int("amount_in", amount_in)
    _require_int("amount_out", amount_out)
    if amount_out <= 0:
        raise ParameterError("amount_out must be positive")
    return mul_div_up(amount_in, ONE, amount_out)
