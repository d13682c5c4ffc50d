"""
Fixed-point math kernel (18 decimals at the API, 36 decimals internally).

All public values are integers scaled by `ONE = 10**18`. `ln`, `exp` and `pow`
evaluate at `10**36` working precision and floor back to 18 decimals, so the
18-decimal result is accurate to the last unit for in-range inputs.

- ln: range-reduce into [1/sqrt2, sqrt2] by repeated halving/doubling, adding
  +/- ln(2) per step, then 2 * arctanh((a-1)/(a+1)) with a fixed number of odd
  terms (the series converges far faster than Taylor near 1).
- exp: subtract k * ln(2), halve the remainder `EXP_HALVINGS` times
  (exp(r) = exp(r/2)^2), sum a fixed-length Taylor series, square back, then
  apply 2^k by shifting. Below `MIN_NATURAL_EXPONENT` the result saturates to 0;
  above `MAX_NATURAL_EXPONENT` it raises.
- pow: fast paths, a binomial series in (base - 1) when the base is close to 1,
  otherwise exp(exponent * ln(base)).

Every function is pure and deterministic.
"""

from __future__ import annotations

from ...errors import MathDomainError, MathOverflowError


ONE = 10**18
PRECISION = 10**36
_UPSCALE = PRECISION // ONE

MAX_UINT256 = 2**256 - 1

# ln(2) and sqrt(2) at 36 decimals (truncated).
LN2_36 = 693147180559945309417232121458176568
SQRT2_36 = 1414213562373095048801688724209698078
INV_SQRT2_36 = PRECISION * PRECISION // SQRT2_36

# e^130 still fits comfortably in uint256 at 18 decimals; e^-41 < 1e-17.
MAX_NATURAL_EXPONENT = 130 * ONE
MIN_NATURAL_EXPONENT = -41 * ONE

# Tuning constants. |z| <= 0.1716 after reduction, so 12 odd terms leave an
# error below 1e-20; 14 Taylor terms on |r| <= ln(2)/8 leave one below 1e-28.
LN_SERIES_TERMS = 12
EXP_SERIES_TERMS = 14
EXP_HALVINGS = 2

# pow() switches to the binomial series when both |base - ONE| and
# |(base - ONE) * exponent| are within NEAR_ONE_BAND.
NEAR_ONE_BAND = 5 * 10**16
NEAR_ONE_SERIES_TERMS = 24

# pow_up / pow_down widen the raw result by this relative error (1e-14).
MAX_POW_RELATIVE_ERROR = 10**4


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_uint(name: str, value: int) -> None:
    _require_int(name, value)
    if value < 0:
        raise MathDomainError(f"{name} must be non-negative: {value}")
    if value > MAX_UINT256:
        raise MathOverflowError(f"{name} exceeds uint256")


def _div_trunc(a: int, b: int) -> int:
    """Integer division truncating toward zero (symmetric for negative numerators)."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def _div_round(a: int, b: int) -> int:
    """Integer division rounding to nearest, ties away from zero (b > 0)."""
    if a >= 0:
        return (2 * a + b) // (2 * b)
    return -((-2 * a + b) // (2 * b))


# -- Integer helpers -----------------------------------------------------------


def ceil_div(numerator: int, denominator: int) -> int:
    _require_uint("numerator", numerator)
    _require_int("denominator", denominator)
    if denominator <= 0:
        raise MathDomainError("denominator must be positive")
    return (numerator + denominator - 1) // denominator


def mul_div_down(a: int, b: int, denominator: int) -> int:
    """
    floor(a * b / denominator) with a full-width intermediate.

    Inputs and the result must fit in uint256; the product may not, which is
    the point of doing the multiply and divide as one step.
    """
    _require_uint("a", a)
    _require_uint("b", b)
    _require_uint("denominator", denominator)
    if denominator == 0:
        raise MathDomainError("division by zero")
    result = (a * b) // denominator
    if result > MAX_UINT256:
        raise MathOverflowError("mul_div result exceeds uint256")
    return result


def mul_div_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator) with a full-width intermediate."""
    _require_uint("a", a)
    _require_uint("b", b)
    _require_uint("denominator", denominator)
    if denominator == 0:
        raise MathDomainError("division by zero")
    result = (a * b + denominator - 1) // denominator
    if result > MAX_UINT256:
        raise MathOverflowError("mul_div result exceeds uint256")
    return result


def mul_down(a: int, b: int) -> int:
    return mul_div_down(a, b, ONE)


def mul_up(a: int, b: int) -> int:
    return mul_div_up(a, b, ONE)


def div_down(a: int, b: int) -> int:
    return mul_div_down(a, ONE, b)


def div_up(a: int, b: int) -> int:
    return mul_div_up(a, ONE, b)


# -- ln / exp at 36 decimals ---------------------------------------------------


def _ln_36(a: int) -> int:
    """ln(a) for a > 0 at 36-decimal scale (input and output)."""
    k = 0
    while a > SQRT2_36:
        a >>= 1
        k += 1
    while a < INV_SQRT2_36:
        a <<= 1
        k -= 1

    z = _div_trunc((a - PRECISION) * PRECISION, a + PRECISION)
    z_squared = _div_trunc(z * z, PRECISION)

    term = z
    series_sum = z
    for i in range(3, 2 * LN_SERIES_TERMS, 2):
        term = _div_trunc(term * z_squared, PRECISION)
        series_sum += _div_trunc(term, i)

    return 2 * series_sum + k * LN2_36


def _exp_36(r: int) -> int:
    """e^r at 36-decimal scale (input and output)."""
    if r < MIN_NATURAL_EXPONENT * _UPSCALE:
        return 0
    if r > MAX_NATURAL_EXPONENT * _UPSCALE:
        raise MathOverflowError(f"exp argument {r // _UPSCALE} exceeds {MAX_NATURAL_EXPONENT}")

    k = _div_round(r, LN2_36)
    remainder = r - k * LN2_36
    h = _div_trunc(remainder, 1 << EXP_HALVINGS)

    term = PRECISION
    series_sum = PRECISION
    for i in range(1, EXP_SERIES_TERMS + 1):
        term = _div_trunc(term * h, PRECISION * i)
        series_sum += term

    for _ in range(EXP_HALVINGS):
        series_sum = (series_sum * series_sum) // PRECISION

    if k >= 0:
        return series_sum << k
    return series_sum >> -k


def _pow_near_one_36(base: int, exponent: int) -> int:
    """(1 + d)^y as a binomial series in d = base - 1, at 36 decimals."""
    d = (base - ONE) * _UPSCALE
    y = exponent * _UPSCALE

    term = PRECISION
    series_sum = PRECISION
    for n in range(1, NEAR_ONE_SERIES_TERMS + 1):
        term = _div_trunc(_div_trunc(term * (y - (n - 1) * PRECISION), PRECISION) * d, PRECISION * n)
        if term == 0:
            break
        series_sum += term
    return series_sum


# -- Public API ----------------------------------------------------------------


def ln(x: int) -> int:
    """Natural log of `x` (18 decimals, x > 0). Returns a signed 18-decimal value, floored."""
    _require_uint("x", x)
    if x == 0:
        raise MathDomainError("ln(0) is undefined")
    return _ln_36(x * _UPSCALE) // _UPSCALE


def exp(x: int) -> int:
    """e^x for a signed 18-decimal `x`. Floored; saturates to 0 on underflow."""
    _require_int("x", x)
    result = _exp_36(x * _UPSCALE) // _UPSCALE
    if result > MAX_UINT256:
        raise MathOverflowError("exp result exceeds uint256")
    return result


def pow(base: int, exponent: int) -> int:  # noqa: A001 - mirrors the math name
    """base^exponent for non-negative 18-decimal operands (raw, floored)."""
    _require_uint("base", base)
    _require_uint("exponent", exponent)

    if exponent == 0:
        return ONE
    if base == 0:
        return 0
    if exponent == ONE:
        return base
    if base == ONE:
        return ONE

    deviation = abs(base - ONE)
    if deviation <= NEAR_ONE_BAND and deviation * exponent <= NEAR_ONE_BAND * ONE:
        result = _pow_near_one_36(base, exponent) // _UPSCALE
    else:
        log_times_y = _div_trunc(_ln_36(base * _UPSCALE) * exponent, ONE)
        result = _exp_36(log_times_y) // _UPSCALE

    if result > MAX_UINT256:
        raise MathOverflowError("pow result exceeds uint256")
    return result


def _pow_error_margin(raw: int) -> int:
    return mul_div_up(raw, MAX_POW_RELATIVE_ERROR, ONE) + 1


def pow_up(base: int, exponent: int) -> int:
    """pow() widened upward by the kernel's error bound (never below the true value)."""
    raw = pow(base, exponent)
    if exponent == 0 or exponent == ONE or base in (0, ONE):
        return raw
    return raw + _pow_error_margin(raw)


def pow_down(base: int, exponent: int) -> int:
    """pow() narrowed downward by the kernel's error bound (never above the true value)."""
    raw = pow(base, exponent)
    if exponent == 0 or exponent == ONE or base in (0, ONE):
        return raw
    margin = _pow_error_margin(raw)
    return raw - margin if raw > margin else 0


# -- Basis points --------------------------------------------------------------

BPS_DENOM = 10_000


def apply_spread(amount: int, spread_bps: int, *, taker_pays: bool) -> int:
    """
    Widen `amount` by `spread_bps` in the maker's favor.

    Amounts the taker pays round up (ceil(amount * (1 + s))); amounts the taker
    receives round down (floor(amount * (1 - s))).
    """
    _require_uint("amount", amount)
    _require_int("spread_bps", spread_bps)
    if not (0 <= spread_bps < BPS_DENOM):
        raise MathDomainError(f"spread_bps must be in [0, {BPS_DENOM}): {spread_bps}")
    if taker_pays:
        return mul_div_up(amount, BPS_DENOM + spread_bps, BPS_DENOM)
    return mul_div_down(amount, BPS_DENOM - spread_bps, BPS_DENOM)
