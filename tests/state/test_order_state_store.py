# [TESTER] v1

from __future__ import annotations

import threading

import pytest

from swapvm.errors import InsufficientBalance, StateError, UninitializedStateError
from swapvm.state import DecayOffset, Direction, OrderStateStore

ORDER = "0x" + "01" * 32
TOKEN_A = "0x" + "aa" * 20


def test_uninitialized_is_distinct_from_zero() -> None:
    store = OrderStateStore()
    tx = store.begin(ORDER)
    assert not tx.has_balance(TOKEN_A)
    with pytest.raises(UninitializedStateError):
        tx.balance(TOKEN_A)
    with pytest.raises(UninitializedStateError):
        tx.require_liquidity_scale()

    tx.set_balance(TOKEN_A, 0)
    tx.set_liquidity_scale(0)
    assert tx.balance(TOKEN_A) == 0
    assert tx.require_liquidity_scale() == 0


def test_transaction_is_invisible_until_commit() -> None:
    store = OrderStateStore()
    tx = store.begin(ORDER)
    tx.set_balance(TOKEN_A, 10)
    tx.set_decay_offset(TOKEN_A, Direction.IN, DecayOffset(base=5, start=1))
    assert store.snapshot(ORDER).is_empty

    state = store.commit(tx)
    assert state.version == 1
    assert store.snapshot(ORDER).balances[TOKEN_A] == 10
    assert store.snapshot(ORDER).decay_offsets[(TOKEN_A, Direction.IN)] == DecayOffset(base=5, start=1)
    assert store.order_hashes() == [ORDER]


def test_clean_transaction_commit_is_a_no_op() -> None:
    store = OrderStateStore()
    tx = store.begin(ORDER)
    assert store.commit(tx).version == 0
    assert store.order_hashes() == []


def test_stale_commit_is_rejected() -> None:
    store = OrderStateStore()
    first = store.begin(ORDER)
    second = store.begin(ORDER)
    first.set_balance(TOKEN_A, 1)
    second.set_balance(TOKEN_A, 2)
    store.commit(first)
    with pytest.raises(StateError, match="stale"):
        store.commit(second)
    assert store.snapshot(ORDER).balances[TOKEN_A] == 1


def test_snapshots_are_immutable() -> None:
    store = OrderStateStore()
    tx = store.begin(ORDER)
    tx.set_balance(TOKEN_A, 1)
    state = store.commit(tx)
    with pytest.raises(TypeError):
        state.balances[TOKEN_A] = 2  # type: ignore[index]


def test_negative_balance_rejected() -> None:
    tx = OrderStateStore().begin(ORDER)
    with pytest.raises(InsufficientBalance):
        tx.set_balance(TOKEN_A, -1)


def test_decay_offset_is_linear_and_reaches_zero() -> None:
    offset = DecayOffset(base=1000, start=100)
    assert offset.value_at(100, 10) == 1000
    assert offset.value_at(105, 10) == 500
    assert offset.value_at(110, 10) == 0
    assert offset.value_at(500, 10) == 0
    # Clock before start counts as no time elapsed.
    assert offset.value_at(50, 10) == 1000


def test_per_order_lock_serializes_read_modify_write() -> None:
    store = OrderStateStore()
    seed = store.begin(ORDER)
    seed.set_balance(TOKEN_A, 0)
    store.commit(seed)

    def worker() -> None:
        for _ in range(50):
            with store.lock(ORDER):
                tx = store.begin(ORDER)
                tx.set_balance(TOKEN_A, tx.balance(TOKEN_A) + 1)
                store.commit(tx)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert store.snapshot(ORDER).balances[TOKEN_A] == 400
    assert store.snapshot(ORDER).version == 401


def test_forget_drops_state_and_lock_but_not_while_held() -> None:
    store = OrderStateStore()
    tx = store.begin(ORDER)
    tx.set_balance(TOKEN_A, 7)
    store.commit(tx)

    with store.lock(ORDER):
        with pytest.raises(StateError):
            store.forget(ORDER)
    assert store.snapshot(ORDER).balances[TOKEN_A] == 7

    store.forget(ORDER)
    assert store.order_hashes() == []
    assert store.snapshot(ORDER).version == 0
    assert ORDER not in store._locks
    store.forget(ORDER)
