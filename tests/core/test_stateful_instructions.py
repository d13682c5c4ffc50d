# [TESTER] v1

from __future__ import annotations

import importlib.util
from math import isqrt

import pytest

from swapvm.core import ProgramBuilder, validate_program, DEFAULT_OPCODES
from swapvm.core.instructions.decay import apply_offset_down
from swapvm.errors import (
    InsufficientOutput,
    InvalidDecayPeriod,
    InvalidInitialLiquidity,
)
from swapvm.integration import SwapEngine, SwapParams
from swapvm.kernels.python.fixed_point import ONE
from swapvm.state import Direction, Order

MAKER = "0x" + "11" * 20
TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20


class _Clock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def _order(program: bytes) -> Order:
    return Order(maker=MAKER, token0=TOKEN_A, token1=TOKEN_B, program=program)


class TestDynamicBalances:
    def test_first_swap_initializes_then_books(self) -> None:
        order = _order(ProgramBuilder().dynamic_balances({TOKEN_A: 1000, TOKEN_B: 1000}).constant_product_swap().build())
        engine = SwapEngine()
        h = order.hash
        assert engine.store.snapshot(h).is_empty

        first = engine.swap(order, TOKEN_A, TOKEN_B, 100)
        assert first.amount_out == 90
        state = engine.store.snapshot(h)
        assert dict(state.balances) == {TOKEN_A: 1100, TOKEN_B: 910}

        second = engine.swap(order, TOKEN_A, TOKEN_B, 100)
        assert second.amount_out == 910 * 100 // 1200
        assert engine.store.snapshot(h).balances[TOKEN_B] == 910 - second.amount_out

    def test_quote_reads_but_never_writes(self) -> None:
        order = _order(ProgramBuilder().dynamic_balances({TOKEN_A: 1000, TOKEN_B: 1000}).constant_product_swap().build())
        engine = SwapEngine()
        assert engine.quote(order, TOKEN_A, TOKEN_B, 100).amount_out == 90
        assert engine.store.snapshot(order.hash).is_empty

    def test_exact_out_books_requested_output(self) -> None:
        order = _order(ProgramBuilder().dynamic_balances({TOKEN_A: 1000, TOKEN_B: 1000}).constant_product_swap().build())
        engine = SwapEngine()
        result = engine.swap(order, TOKEN_A, TOKEN_B, 90, SwapParams(is_exact_in=False))
        assert result.amount_out == 90
        assert dict(engine.store.snapshot(order.hash).balances) == {TOKEN_A: 1000 + result.amount_in, TOKEN_B: 910}


class TestDecay:
    def _program(self, period: int = 100) -> bytes:
        return ProgramBuilder().static_balances({TOKEN_A: 1000, TOKEN_B: 1000}).decay(period).constant_product_swap().build()

    def test_zero_period_rejected_at_parse_time(self) -> None:
        with pytest.raises(InvalidDecayPeriod):
            validate_program(self._program(0), DEFAULT_OPCODES)

    def test_swap_records_offsets_for_reverse_direction(self) -> None:
        clock = _Clock(1_000)
        engine = SwapEngine(clock=clock)
        order = _order(self._program())
        result = engine.swap(order, TOKEN_A, TOKEN_B, 100)
        offsets = engine.store.snapshot(order.hash).decay_offsets
        assert offsets[(TOKEN_B, Direction.IN)].base == result.amount_out
        assert offsets[(TOKEN_A, Direction.OUT)].base == result.amount_in
        assert offsets[(TOKEN_A, Direction.OUT)].start == 1_000

    def test_reverse_swap_is_penalized_then_recovers(self) -> None:
        clock = _Clock(1_000)
        engine = SwapEngine(clock=clock)
        order = _order(self._program())
        baseline = engine.quote(order, TOKEN_B, TOKEN_A, 50).amount_out
        engine.swap(order, TOKEN_A, TOKEN_B, 100)

        penalized = engine.quote(order, TOKEN_B, TOKEN_A, 50).amount_out
        clock.now += 50
        halfway = engine.quote(order, TOKEN_B, TOKEN_A, 50).amount_out
        clock.now += 50
        recovered = engine.quote(order, TOKEN_B, TOKEN_A, 50).amount_out
        assert penalized < halfway < recovered == baseline

    def test_offset_larger_than_balance_clamps_to_zero(self) -> None:
        clock = _Clock(0)
        engine = SwapEngine(clock=clock)
        order = _order(self._program())
        engine.swap(order, TOKEN_A, TOKEN_B, 5000)
        # Reverse output balance is 1000 - min(5000, 1000) = 0, not an underflow.
        with pytest.raises(InsufficientOutput):
            engine.quote(order, TOKEN_B, TOKEN_A, 10)
        clock.now = 100
        assert engine.quote(order, TOKEN_B, TOKEN_A, 10).amount_out > 0


class TestConcentrate:
    def _program(self, initial: int) -> bytes:
        return (
            ProgramBuilder()
            .dynamic_balances({TOKEN_A: 1000 * ONE, TOKEN_B: 1000 * ONE})
            .concentrate(TOKEN_A, 1000 * ONE, TOKEN_B, 1000 * ONE, initial)
            .constant_product_swap()
            .build()
        )

    def test_zero_initial_liquidity_rejected_before_any_trade(self) -> None:
        engine = SwapEngine()
        order = _order(self._program(0))
        with pytest.raises(InvalidInitialLiquidity):
            engine.register_order(order)
        with pytest.raises(InvalidInitialLiquidity):
            engine.swap(order, TOKEN_A, TOKEN_B, ONE)
        assert engine.store.snapshot(order.hash).liquidity_scale is None

    def test_virtual_liquidity_deepens_the_curve(self) -> None:
        engine = SwapEngine()
        plain = _order(
            ProgramBuilder().dynamic_balances({TOKEN_A: 1000 * ONE, TOKEN_B: 1000 * ONE}).constant_product_swap().build()
        )
        concentrated = _order(self._program(2000 * ONE))
        assert engine.quote(concentrated, TOKEN_A, TOKEN_B, 10 * ONE).amount_out > engine.quote(
            plain, TOKEN_A, TOKEN_B, 10 * ONE
        ).amount_out

    def test_scale_is_persisted_and_used_by_later_trades(self) -> None:
        engine = SwapEngine()
        order = _order(self._program(2000 * ONE))
        first = engine.swap(order, TOKEN_A, TOKEN_B, 10 * ONE)
        scale = engine.store.snapshot(order.hash).liquidity_scale
        assert scale == isqrt((2000 * ONE + first.amount_in) * (2000 * ONE - first.amount_out))

        second = engine.swap(order, TOKEN_A, TOKEN_B, 10 * ONE)
        assert 0 < second.amount_out < first.amount_out
        assert engine.store.snapshot(order.hash).liquidity_scale is not None


if importlib.util.find_spec("hypothesis") is not None:
    import hypothesis.strategies as st
    from hypothesis import given

    @given(balance=st.integers(min_value=0, max_value=2**256), excess=st.integers(min_value=1, max_value=2**256))
    def test_decay_clamp_floors_at_zero(balance: int, excess: int) -> None:
        assert apply_offset_down(balance, balance + excess) == 0
        assert apply_offset_down(balance + excess, excess) == balance
