"""
Per-walk execution context.

One `ExecutionContext` exists per quote or swap walk and is never shared. It
carries the request (`SwapQuery`), the working registers (`SwapRegisters`),
the program cursor, the pending state transaction and the external services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Optional

from ..errors import ExternalCallError
from ..kernels.python.pow_curve_v1 import CORRECTION_MAX_ITERATIONS, CORRECTION_MIN_STEP
from ..state.store import StateTransaction
from .interpreter import run_loop
from .opcodes import OpcodeTable

if TYPE_CHECKING:
    from ..integration.providers import FeeProvider, TokenLedger


@dataclass(frozen=True)
class SwapQuery:
    order_hash: str
    maker: str
    taker: str
    token_in: str
    token_out: str
    is_exact_in: bool


@dataclass
class SwapRegisters:
    balance_in: int = 0
    balance_out: int = 0
    amount_in: int = 0
    amount_out: int = 0

    @property
    def amounts(self) -> tuple[int, int]:
        return self.amount_in, self.amount_out


@dataclass(frozen=True)
class Services:
    ledger: Optional["TokenLedger"] = None
    fee_providers: Mapping[str, "FeeProvider"] = field(default_factory=dict)


@dataclass(frozen=True)
class CurveSettings:
    max_iterations: int = CORRECTION_MAX_ITERATIONS
    min_step: int = CORRECTION_MIN_STEP


@dataclass
class ExecutionContext:
    query: SwapQuery
    registers: SwapRegisters
    program: bytes
    opcodes: OpcodeTable
    state: StateTransaction
    now: int
    services: Services = field(default_factory=Services)
    curve: CurveSettings = field(default_factory=CurveSettings)
    stop_at_swap: bool = False
    pc: int = 0
    current_pc: int = 0
    halted: bool = False
    swap_pc: Optional[int] = None
    swap_computed: bool = False
    trace: list = field(default_factory=list)

    @property
    def is_exact_in(self) -> bool:
        return self.query.is_exact_in

    def run_loop(self) -> None:
        """Run the rest of the program from the current pc (used by wrapper instructions)."""
        run_loop(self)

    def mark_swap_point(self) -> None:
        if self.swap_pc is None:
            self.swap_pc = self.current_pc
        self.swap_computed = True
        if self.stop_at_swap:
            self.halted = True

    def require_ledger(self) -> "TokenLedger":
        if self.services.ledger is None:
            raise ExternalCallError("no token ledger configured")
        return self.services.ledger

    def fee_provider(self, address: str) -> "FeeProvider":
        try:
            return self.services.fee_providers[address]
        except KeyError:
            raise ExternalCallError(f"no fee provider registered at {address}") from None

    def record(self, name: str, detail: Any = None) -> None:
        self.trace.append((self.current_pc, name, detail))


def call_external(what: str, fn, *args):
    """Invoke an untrusted collaborator; any failure surfaces as `ExternalCallError`."""
    try:
        return fn(*args)
    except Exception as exc:
        raise ExternalCallError(f"{what} failed: {exc}") from exc
