"""
Persistent per-order state.

Each order hash maps to one immutable `OrderState` snapshot. A walk never
mutates a snapshot: it reads through a `StateTransaction` that buffers writes,
and the engine commits the transaction only when the whole walk succeeded.

Concurrency model:
- swaps take the order's lock for the full walk, so read-modify-write on the
  same order is serialized;
- quotes read the snapshot current at call time without the lock and never
  commit;
- commits replace the snapshot atomically (single dict assignment under the
  store guard) and are checked against the version the transaction started from.

"Uninitialized" is not zero: a missing balance or liquidity scale reads as
absent and the typed accessors raise `UninitializedStateError`.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from ..errors import InsufficientBalance, StateError, UninitializedStateError

logger = logging.getLogger(__name__)


class Direction(IntEnum):
    IN = 0
    OUT = 1


@dataclass(frozen=True)
class DecayOffset:
    """A virtual balance offset that decays linearly to zero over a period."""

    base: int
    start: int

    def __post_init__(self) -> None:
        for name in ("base", "start"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"{name} must be an int")
        if self.base < 0:
            raise ValueError(f"decay base must be non-negative: {self.base}")

    def value_at(self, now: int, period: int) -> int:
        if period <= 0:
            raise ValueError("period must be positive")
        elapsed = max(0, now - self.start)
        if elapsed >= period:
            return 0
        return self.base * (period - elapsed) // period


DecayKey = Tuple[str, Direction]


@dataclass(frozen=True)
class OrderState:
    balances: Mapping[str, int] = field(default_factory=dict)
    decay_offsets: Mapping[DecayKey, DecayOffset] = field(default_factory=dict)
    liquidity_scale: Optional[int] = None
    version: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "balances", MappingProxyType(dict(self.balances)))
        object.__setattr__(self, "decay_offsets", MappingProxyType(dict(self.decay_offsets)))

    @property
    def is_empty(self) -> bool:
        return not self.balances and not self.decay_offsets and self.liquidity_scale is None


EMPTY_STATE = OrderState()

_UNSET = object()


class StateTransaction:
    """Buffered reads/writes against one order's snapshot."""

    def __init__(self, order_hash: str, base: OrderState) -> None:
        self.order_hash = order_hash
        self.base = base
        self._balances: Dict[str, int] = {}
        self._decay_offsets: Dict[DecayKey, DecayOffset] = {}
        self._liquidity_scale: object = _UNSET

    # -- Balances ---------------------------------------------------------------

    def has_balance(self, token: str) -> bool:
        return token in self._balances or token in self.base.balances

    def balance(self, token: str) -> int:
        if token in self._balances:
            return self._balances[token]
        try:
            return self.base.balances[token]
        except KeyError:
            raise UninitializedStateError(
                f"balance of {token} is uninitialized for order {self.order_hash}"
            ) from None

    def set_balance(self, token: str, amount: int) -> None:
        if amount < 0:
            raise InsufficientBalance(f"balance of {token} would become negative: {amount}")
        self._balances[token] = amount

    # -- Decay offsets ----------------------------------------------------------

    def decay_offset(self, token: str, direction: Direction) -> Optional[DecayOffset]:
        key = (token, Direction(direction))
        if key in self._decay_offsets:
            return self._decay_offsets[key]
        return self.base.decay_offsets.get(key)

    def set_decay_offset(self, token: str, direction: Direction, offset: DecayOffset) -> None:
        self._decay_offsets[(token, Direction(direction))] = offset

    # -- Liquidity scale --------------------------------------------------------

    @property
    def liquidity_scale(self) -> Optional[int]:
        if self._liquidity_scale is not _UNSET:
            return self._liquidity_scale  # type: ignore[return-value]
        return self.base.liquidity_scale

    def require_liquidity_scale(self) -> int:
        scale = self.liquidity_scale
        if scale is None:
            raise UninitializedStateError(f"liquidity scale is uninitialized for order {self.order_hash}")
        return scale

    def set_liquidity_scale(self, scale: int) -> None:
        if scale < 0:
            raise StateError(f"liquidity scale must be non-negative: {scale}")
        self._liquidity_scale = scale

    # -- Result -----------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        return bool(self._balances or self._decay_offsets) or self._liquidity_scale is not _UNSET

    def result(self) -> OrderState:
        balances = dict(self.base.balances)
        balances.update(self._balances)
        offsets = dict(self.base.decay_offsets)
        offsets.update(self._decay_offsets)
        return OrderState(
            balances=balances,
            decay_offsets=offsets,
            liquidity_scale=self.liquidity_scale,
            version=self.base.version + 1,
        )


class OrderStateStore:
    """In-memory snapshot store with per-order locks."""

    def __init__(self) -> None:
        self._states: Dict[str, OrderState] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def snapshot(self, order_hash: str) -> OrderState:
        with self._guard:
            return self._states.get(order_hash, EMPTY_STATE)

    def begin(self, order_hash: str) -> StateTransaction:
        return StateTransaction(order_hash, self.snapshot(order_hash))

    def _order_lock(self, order_hash: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(order_hash)
            if lock is None:
                lock = threading.Lock()
                self._locks[order_hash] = lock
            return lock

    @contextmanager
    def lock(self, order_hash: str) -> Iterator[None]:
        lock = self._order_lock(order_hash)
        with lock:
            yield

    def commit(self, tx: StateTransaction) -> OrderState:
        if not tx.dirty:
            return tx.base
        new_state = tx.result()
        with self._guard:
            current = self._states.get(tx.order_hash, EMPTY_STATE)
            if current.version != tx.base.version:
                raise StateError(
                    f"stale transaction for order {tx.order_hash}: "
                    f"base version {tx.base.version}, current {current.version}"
                )
            self._states[tx.order_hash] = new_state
        logger.debug(f"committed state for order {tx.order_hash} at version {new_state.version}")
        return new_state

    def forget(self, order_hash: str) -> None:
        """Drop an order's state and lock; the lock table otherwise grows with every order seen."""
        with self._guard:
            lock = self._locks.get(order_hash)
            if lock is not None and lock.locked():
                raise StateError(f"order {order_hash} is locked by a walk in progress")
            self._locks.pop(order_hash, None)
            self._states.pop(order_hash, None)
        logger.debug(f"forgot order {order_hash}")

    def order_hashes(self) -> list[str]:
        with self._guard:
            return sorted(self._states)
