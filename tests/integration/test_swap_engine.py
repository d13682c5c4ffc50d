# [TESTER] v1

from __future__ import annotations

import logging
import threading

import pytest

from swapvm.core import ProgramBuilder
from swapvm.errors import (
    InvalidOpcode,
    MissingSwapInstruction,
    ParameterError,
    ProgramTooLarge,
    SwapExecutionError,
    SwapNotComputed,
    ThresholdNotMet,
)
from swapvm.integration import EngineConfig, SwapEngine, SwapParams
from swapvm.state import Order

MAKER = "0x" + "11" * 20
TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20
TOKEN_C = "0x" + "cc" * 20


def _dynamic_order(*, fee_bps: int = 0) -> Order:
    builder = ProgramBuilder().dynamic_balances({TOKEN_A: 10**6, TOKEN_B: 10**6})
    if fee_bps:
        builder.flat_fee_amount_in(fee_bps)
    return Order(maker=MAKER, token0=TOKEN_A, token1=TOKEN_B, program=builder.constant_product_swap().build())


def test_quote_matches_swap_and_only_swap_commits() -> None:
    engine = SwapEngine()
    order = _dynamic_order(fee_bps=30)
    quote = engine.quote(order, TOKEN_A, TOKEN_B, 1000)
    assert engine.store.snapshot(order.hash).is_empty
    result = engine.swap(order, TOKEN_A, TOKEN_B, 1000)
    assert result == quote
    assert result.order_hash == order.hash
    assert engine.store.snapshot(order.hash).version == 1


def test_threshold_failure_discards_all_writes() -> None:
    engine = SwapEngine()
    order = _dynamic_order()
    with pytest.raises(ThresholdNotMet):
        engine.swap(order, TOKEN_A, TOKEN_B, 1000, SwapParams(threshold=1000))
    assert engine.store.snapshot(order.hash).is_empty

    with pytest.raises(ThresholdNotMet):
        engine.swap(order, TOKEN_A, TOKEN_B, 1000, SwapParams(is_exact_in=False, threshold=1000))
    assert engine.store.snapshot(order.hash).is_empty

    ok = engine.swap(order, TOKEN_A, TOKEN_B, 1000, SwapParams(threshold=998))
    assert ok.amount_out == 999


def test_request_validation() -> None:
    engine = SwapEngine()
    order = _dynamic_order()
    with pytest.raises(ParameterError):
        engine.quote(order, TOKEN_A, TOKEN_C, 10)
    with pytest.raises(ParameterError):
        engine.quote(order, TOKEN_A, TOKEN_A, 10)
    with pytest.raises(ParameterError):
        engine.quote(order, TOKEN_A, TOKEN_B, 0)


@pytest.mark.parametrize(
    "token_in,token_out,taker",
    [
        ("0xnothex", TOKEN_B, MAKER),
        (TOKEN_A, "0x" + "bb" * 19, MAKER),
        (TOKEN_A, TOKEN_B, "0x" + "zz" * 20),
        (TOKEN_A, TOKEN_B, None),
    ],
)
def test_malformed_addresses_are_parameter_errors(
    caplog: pytest.LogCaptureFixture, token_in: str, token_out: str, taker: str
) -> None:
    engine = SwapEngine()
    order = _dynamic_order()
    with caplog.at_level(logging.WARNING, logger="swapvm.integration.engine"):
        with pytest.raises(ParameterError):
            engine.quote(order, token_in, token_out, 10, SwapParams(taker=taker))
        with pytest.raises(ParameterError):
            engine.swap(order, token_in, token_out, 10, SwapParams(taker=taker))
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("quote rejected") for m in messages)
    assert any(m.startswith("swap rejected") for m in messages)


def test_program_without_swap() -> None:
    engine = SwapEngine()
    order = Order(maker=MAKER, token0=TOKEN_A, token1=TOKEN_B, program=ProgramBuilder().salt(b"x").build())
    with pytest.raises(MissingSwapInstruction):
        engine.register_order(order)
    with pytest.raises(SwapNotComputed):
        engine.quote(order, TOKEN_A, TOKEN_B, 10)


def test_program_size_limit_applies_before_decoding() -> None:
    engine = SwapEngine(EngineConfig(max_program_bytes=8))
    order = _dynamic_order()
    with pytest.raises(ProgramTooLarge) as excinfo:
        engine.quote(order, TOKEN_A, TOKEN_B, 10)
    assert excinfo.value.limit == 8


def test_registration_can_be_required() -> None:
    engine = SwapEngine(EngineConfig(require_registration=True))
    order = _dynamic_order()
    with pytest.raises(SwapExecutionError, match="not registered"):
        engine.quote(order, TOKEN_A, TOKEN_B, 10)
    assert engine.register_order(order) == order.hash
    assert engine.is_registered(order)
    assert engine.quote(order, TOKEN_A, TOKEN_B, 10).amount_out == 9


def test_failed_order_does_not_affect_other_orders() -> None:
    engine = SwapEngine()
    healthy = _dynamic_order()
    broken = Order(
        maker=MAKER,
        token0=TOKEN_A,
        token1=TOKEN_B,
        program=ProgramBuilder().dynamic_balances({TOKEN_A: 10, TOKEN_B: 10}).raw(0xEE).build(),
    )
    engine.swap(healthy, TOKEN_A, TOKEN_B, 100)
    with pytest.raises(InvalidOpcode):
        engine.swap(broken, TOKEN_A, TOKEN_B, 1)
    assert engine.store.order_hashes() == [healthy.hash]


def test_concurrent_swaps_on_one_order_are_serialized() -> None:
    engine = SwapEngine()
    order = _dynamic_order()
    errors = []

    def worker() -> None:
        try:
            for _ in range(20):
                engine.swap(order, TOKEN_A, TOKEN_B, 100)
        except Exception as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    state = engine.store.snapshot(order.hash)
    assert state.version == 120
    assert state.balances[TOKEN_A] == 10**6 + 120 * 100

    # Same result as running the swaps one after another.
    sequential = SwapEngine()
    for _ in range(120):
        sequential.swap(order, TOKEN_A, TOKEN_B, 100)
    assert dict(sequential.store.snapshot(order.hash).balances) == dict(state.balances)


def test_engine_logs_commits_and_rejections(caplog: pytest.LogCaptureFixture) -> None:
    engine = SwapEngine()
    order = _dynamic_order()
    with caplog.at_level(logging.INFO, logger="swapvm.integration.engine"):
        engine.swap(order, TOKEN_A, TOKEN_B, 100)
        with pytest.raises(ThresholdNotMet):
            engine.swap(order, TOKEN_A, TOKEN_B, 100, SwapParams(threshold=10**9))
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("swap order=") for m in messages)
    assert any("swap rejected" in m and "ThresholdNotMet" in m for m in messages)
