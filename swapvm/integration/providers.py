"""
External collaborators consumed at their boundary.

The engine never moves tokens. It only reads balances and supplies for taker
predicates and asks fee providers for dynamic fees. Both are untrusted: their
failures surface as `ExternalCallError` and abort only the walk that called them.
"""

from __future__ import annotations

import threading
from typing import Dict, Protocol, Tuple, runtime_checkable

from ..core.context import SwapQuery
from ..state.canonical import canonical_address


@runtime_checkable
class TokenLedger(Protocol):
    def balance_of(self, token: str, owner: str) -> int: ...

    def total_supply(self, token: str) -> int: ...


@runtime_checkable
class FeeProvider(Protocol):
    def get_fee_bps(self, query: SwapQuery) -> int: ...


class InMemoryTokenLedger:
    """Minimal ledger for tests and offline demos."""

    def __init__(self) -> None:
        self._balances: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def mint(self, token: str, owner: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"mint amount must be non-negative: {amount}")
        key = (canonical_address(token), canonical_address(owner))
        with self._lock:
            self._balances[key] = self._balances.get(key, 0) + amount

    def balance_of(self, token: str, owner: str) -> int:
        key = (canonical_address(token), canonical_address(owner))
        with self._lock:
            return self._balances.get(key, 0)

    def total_supply(self, token: str) -> int:
        token = canonical_address(token)
        with self._lock:
            return sum(amount for (t, _), amount in self._balances.items() if t == token)


class StaticFeeProvider:
    """Fee provider that always answers the same value."""

    def __init__(self, fee_bps: int) -> None:
        self.fee_bps = fee_bps

    def get_fee_bps(self, query: SwapQuery) -> int:
        return self.fee_bps
