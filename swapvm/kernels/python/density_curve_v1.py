"""
Density/price curve kernel (v1).

The maker sells up to `capacity` units of the output token along a normalized
position x in [0, 1] (x = sold / capacity). Price at a position is

    price(x) = base_price * (1 + strength * f(x))

where the density f is one of the closed-form shapes below. Average price over
a range is the integral of the price divided by the range width; amounts are
computed from the integral directly, so one swap over [x0, x1] costs the same
(up to one unit of rounding) as two swaps over [x0, xm] and [xm, x1].

    shape      f(x)   F(x) = integral of f
    CONSTANT   1      x
    LINEAR     x      x^2 / 2
    QUADRATIC  x^2    x^3 / 3
    CUBIC      x^3    x^4 / 4

Every amount is computed as one exact rational and rounded once: up for the
input the taker pays, down for the output the taker receives. Exact-in is the
largest output whose exact-out cost does not exceed the given input (integer
bisection on a monotone cost).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, unique

from ...errors import InsufficientOutput, InvalidArguments, ParameterError
from .fixed_point import BPS_DENOM, ONE, apply_spread


@unique
class Shape(IntEnum):
    CONSTANT = 0
    LINEAR = 1
    QUADRATIC = 2
    CUBIC = 3

    @property
    def degree(self) -> int:
        return int(self)


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _integral_ratio(shape: Shape, lo: int, hi: int, scale: int) -> tuple[int, int]:
    """
    Average density over [lo, hi] (positions expressed in units of `scale`).

    Returns (num, den) with avg = num / den as a dimensionless real:
        num = hi^(n+1) - lo^(n+1)
        den = (n+1) * scale^n * (hi - lo)
    """
    n = shape.degree
    num = hi ** (n + 1) - lo ** (n + 1)
    den = (n + 1) * scale**n * (hi - lo)
    return num, den


@dataclass(frozen=True)
class DensityCurve:
    capacity: int
    base_price: int  # input per output, 18 decimals
    strength: int  # 18 decimals; 0 makes the curve flat
    shape: Shape = Shape.LINEAR
    spread_bps: int = 0

    def __post_init__(self) -> None:
        for name in ("capacity", "base_price", "strength", "spread_bps"):
            _require_int(name, getattr(self, name))
        if self.capacity <= 0:
            raise InvalidArguments(f"capacity must be positive: {self.capacity}")
        if self.base_price <= 0:
            raise InvalidArguments(f"base_price must be positive: {self.base_price}")
        if self.strength < 0:
            raise InvalidArguments(f"strength must be non-negative: {self.strength}")
        if not (0 <= self.spread_bps < BPS_DENOM):
            raise InvalidArguments(f"spread_bps must be in [0, {BPS_DENOM}): {self.spread_bps}")
        try:
            object.__setattr__(self, "shape", Shape(self.shape))
        except ValueError as exc:
            raise InvalidArguments(f"unknown density shape: {self.shape}") from exc

    # -- Normalized position views (18 decimals) --------------------------------

    def density(self, x: int) -> int:
        """f(x) at an 18-decimal position (floored)."""
        self._require_position(x)
        n = self.shape.degree
        return x**n // ONE ** (n - 1) if n > 0 else ONE

    def price_at(self, x: int) -> int:
        """Price at an 18-decimal position (floored)."""
        self._require_position(x)
        n = self.shape.degree
        scale = ONE ** (n + 1)
        return self.base_price * (scale + self.strength * x**n) // scale

    def average_price(self, x0: int, x1: int) -> int:
        """Average price over [x0, x1] via the closed-form integral (floored)."""
        self._require_position(x0)
        self._require_position(x1)
        if x1 < x0:
            raise ParameterError("x1 must be >= x0")
        if x0 == x1:
            return self.price_at(x0)
        num, den = _integral_ratio(self.shape, x0, x1, ONE)
        return self.base_price * (ONE * den + self.strength * num) // (ONE * den)

    def position(self, balance_out: int) -> int:
        """Current 18-decimal position for the given remaining output balance."""
        sold = self._sold(balance_out)
        return sold * ONE // self.capacity

    # -- Token amounts ----------------------------------------------------------

    def cost(self, sold_before: int, amount_out: int) -> int:
        """Exact input (ceil, before spread) to buy `amount_out` starting at `sold_before`."""
        if amount_out == 0:
            return 0
        sold_after = sold_before + amount_out
        num, den = _integral_ratio(self.shape, sold_before, sold_after, self.capacity)
        # amount_out * base * (1 + strength * num / den), as one fraction.
        numerator = self.base_price * (amount_out * ONE * den + self.strength * amount_out * num)
        # The exact numerator is far wider than 256 bits; only the quotient is bounded.
        return -(-numerator // (ONE * ONE * den))

    def available(self, balance_out: int) -> int:
        return min(balance_out, self.capacity - self._sold(balance_out))

    def exact_out(self, *, balance_out: int, amount_out: int) -> int:
        """Input the taker pays for `amount_out` (ceil, spread included)."""
        _require_int("amount_out", amount_out)
        if amount_out <= 0:
            raise ParameterError(f"amount_out must be positive: {amount_out}")
        available = self.available(balance_out)
        if amount_out > available:
            raise InsufficientOutput(f"amount_out ({amount_out}) exceeds curve availability ({available})")
        raw = self.cost(self._sold(balance_out), amount_out)
        return apply_spread(raw, self.spread_bps, taker_pays=True)

    def exact_in(self, *, balance_out: int, amount_in: int) -> int:
        """Largest output whose exact-out cost is <= `amount_in` (floor)."""
        _require_int("amount_in", amount_in)
        if amount_in <= 0:
            raise ParameterError(f"amount_in must be positive: {amount_in}")
        sold = self._sold(balance_out)
        lo, hi = 0, self.available(balance_out)
        while lo < hi:
            mid = (lo + hi + 1) // 2
            paid = apply_spread(self.cost(sold, mid), self.spread_bps, taker_pays=True)
            if paid <= amount_in:
                lo = mid
            else:
                hi = mid - 1
        return lo

    # -- Helpers ----------------------------------------------------------------

    def _sold(self, balance_out: int) -> int:
        _require_int("balance_out", balance_out)
        if balance_out < 0:
            raise ParameterError(f"balance_out must be non-negative: {balance_out}")
        # Balances above capacity price from the start of the curve.
        return max(0, self.capacity - balance_out)

    @staticmethod
    def _require_position(x: int) -> None:
        _require_int("x", x)
        if not (0 <= x <= ONE):
            raise ParameterError(f"position must be in [0, {ONE}]: {x}")
