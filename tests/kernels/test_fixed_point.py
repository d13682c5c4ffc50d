# [TESTER] v1

from __future__ import annotations

import importlib.util

import pytest

from swapvm.errors import MathDomainError, MathOverflowError
from swapvm.kernels.python.fixed_point import (
    MAX_UINT256,
    ONE,
    apply_spread,
    ceil_div,
    exp,
    ln,
    mul_div_down,
    mul_div_up,
    pow,
    pow_down,
    pow_up,
)

E_18 = 2718281828459045235
LN2_18 = 693147180559945309


def test_ln_and_exp_identities() -> None:
    assert ln(ONE) == 0
    assert exp(0) == ONE
    assert abs(ln(E_18) - ONE) <= 1
    assert abs(exp(ONE) - E_18) <= 1
    assert abs(ln(2 * ONE) - LN2_18) <= 1
    assert abs(ln(ONE // 2) + LN2_18) <= 1


def test_ln_rejects_zero_and_non_int() -> None:
    with pytest.raises(MathDomainError):
        ln(0)
    with pytest.raises(TypeError):
        ln(1.5)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        ln(True)  # type: ignore[arg-type]


def test_exp_underflow_saturates_and_overflow_raises() -> None:
    assert exp(-50 * ONE) == 0
    assert exp(-30 * ONE) > 0
    with pytest.raises(MathOverflowError):
        exp(131 * ONE)


def test_pow_fast_paths() -> None:
    assert pow(7 * ONE, 0) == ONE
    assert pow(0, 3 * ONE) == 0
    assert pow(7 * ONE, ONE) == 7 * ONE
    assert pow(ONE, 123 * ONE) == ONE


def test_pow_general_path() -> None:
    assert abs(pow(4 * ONE, ONE // 2) - 2 * ONE) <= 2
    assert abs(pow(2 * ONE, 10 * ONE) - 1024 * ONE) <= 1024
    assert abs(pow(ONE // 4, ONE // 2) - ONE // 2) <= 2


def test_pow_near_one_uses_exact_binomial_for_integer_exponents() -> None:
    # (1 + 1e-6)^2 = 1 + 2e-6 + 1e-12, with no approximation error.
    assert pow(ONE + 10**12, 2 * ONE) == ONE + 2 * 10**12 + 10**6


def test_pow_up_and_down_bracket_raw_result() -> None:
    for base, exponent in [(ONE + 10**15, 3 * ONE), (3 * ONE, ONE // 3), (ONE // 7, 5 * ONE // 4)]:
        raw = pow(base, exponent)
        assert pow_down(base, exponent) < raw < pow_up(base, exponent)


def test_mul_div_uses_full_width_intermediate() -> None:
    assert mul_div_down(MAX_UINT256, MAX_UINT256, MAX_UINT256) == MAX_UINT256
    assert mul_div_up(MAX_UINT256, 2, 4) == (MAX_UINT256 + 1) // 2
    assert mul_div_down(1, 1, 3) == 0
    assert mul_div_up(1, 1, 3) == 1
    assert ceil_div(10, 3) == 4
    with pytest.raises(MathOverflowError):
        mul_div_down(MAX_UINT256, 2, 1)
    with pytest.raises(MathDomainError):
        mul_div_down(1, 1, 0)


def test_apply_spread_rounds_in_makers_favor() -> None:
    assert apply_spread(1000, 30, taker_pays=True) == 1003
    assert apply_spread(1000, 30, taker_pays=False) == 997
    assert apply_spread(1, 1, taker_pays=True) == 2
    assert apply_spread(1, 1, taker_pays=False) == 0
    with pytest.raises(MathDomainError):
        apply_spread(1000, 10_000, taker_pays=True)


if importlib.util.find_spec("hypothesis") is not None:
    import hypothesis.strategies as st
    from hypothesis import given, settings

    @settings(max_examples=200, deadline=None)
    @given(x=st.integers(min_value=10**12, max_value=10**30))
    def test_exp_inverts_ln(x: int) -> None:
        assert abs(exp(ln(x)) - x) <= x // 10**15 + 2

    @settings(max_examples=200, deadline=None)
    @given(
        base=st.integers(min_value=ONE // 100, max_value=100 * ONE),
        exponent=st.integers(min_value=1, max_value=4 * ONE),
    )
    def test_pow_is_bracketed_by_directional_variants(base: int, exponent: int) -> None:
        assert pow_down(base, exponent) <= pow(base, exponent) <= pow_up(base, exponent)
