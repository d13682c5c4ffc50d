"""
Engine entry points: register, quote and swap.

- `quote` walks the program against a snapshot of the order's state taken at
  call time, halts at the swap point and never commits.
- `swap` holds the order's lock for the whole walk and commits the walk's
  state writes only if everything (including the threshold check) succeeded.

Both share the interpreter and the instruction set; a failed walk leaves the
store untouched.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Set

from ..core.context import CurveSettings, ExecutionContext, Services, SwapQuery, SwapRegisters
from ..core.instructions import DEFAULT_OPCODES
from ..core.interpreter import run
from ..core.opcodes import OpcodeTable
from ..core.program import locate_swap_point, validate_program
from ..errors import (
    ParameterError,
    ProgramTooLarge,
    SwapExecutionError,
    SwapNotComputed,
    SwapVMError,
    ThresholdNotMet,
)
from ..state.canonical import canonical_address
from ..state.orders import Order, order_hash
from ..state.store import OrderStateStore, StateTransaction
from .config import EngineConfig
from .providers import FeeProvider, TokenLedger

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "00" * 20


@dataclass(frozen=True)
class SwapParams:
    is_exact_in: bool = True
    # Minimum amount_out (exact-in) or maximum amount_in (exact-out).
    threshold: Optional[int] = None
    taker: str = ZERO_ADDRESS


@dataclass(frozen=True)
class SwapResult:
    amount_in: int
    amount_out: int
    order_hash: str


class SwapEngine:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        store: Optional[OrderStateStore] = None,
        opcodes: OpcodeTable = DEFAULT_OPCODES,
        ledger: Optional[TokenLedger] = None,
        fee_providers: Optional[Mapping[str, FeeProvider]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or EngineConfig()
        self.store = store or OrderStateStore()
        self.opcodes = opcodes
        self.services = Services(
            ledger=ledger,
            fee_providers={canonical_address(k): v for k, v in (fee_providers or {}).items()},
        )
        self.curve = CurveSettings(
            max_iterations=self.config.correction_max_iterations,
            min_step=self.config.correction_min_step,
        )
        self._clock = clock
        self._registered: Set[str] = set()
        self._registered_lock = threading.Lock()

    # -- Registration -----------------------------------------------------------

    def register_order(self, order: Order) -> str:
        """Validate the order's program once and remember its hash."""
        self._check_size(order)
        validate_program(order.program, self.opcodes)
        swap_pc = locate_swap_point(order.program, self.opcodes)
        h = order_hash(order)
        with self._registered_lock:
            self._registered.add(h)
        logger.info(f"registered order {h} maker={order.maker} swap_pc={swap_pc} size={len(order.program)}")
        return h

    def is_registered(self, order: Order) -> bool:
        with self._registered_lock:
            return order_hash(order) in self._registered

    # -- Entry points -----------------------------------------------------------

    def quote(
        self,
        order: Order,
        token_in: str,
        token_out: str,
        amount: int,
        params: Optional[SwapParams] = None,
    ) -> SwapResult:
        params = params or SwapParams()
        h = self._admit(order)
        tx = self.store.begin(h)
        try:
            ctx = self._walk(order, h, tx, token_in, token_out, amount, params, stop_at_swap=True)
            return self._finish(ctx, params)
        except SwapVMError as exc:
            logger.warning(f"quote rejected for order {h}: {type(exc).__name__}: {exc}")
            raise

    def swap(
        self,
        order: Order,
        token_in: str,
        token_out: str,
        amount: int,
        params: Optional[SwapParams] = None,
    ) -> SwapResult:
        params = params or SwapParams()
        h = self._admit(order)
        with self.store.lock(h):
            tx = self.store.begin(h)
            try:
                ctx = self._walk(order, h, tx, token_in, token_out, amount, params, stop_at_swap=False)
                result = self._finish(ctx, params)
            except SwapVMError as exc:
                logger.warning(f"swap rejected for order {h}: {type(exc).__name__}: {exc}")
                raise
            self.store.commit(tx)
        logger.info(
            f"swap order={h} taker={ctx.query.taker} {ctx.query.token_in}->{ctx.query.token_out} "
            f"in={result.amount_in} out={result.amount_out}"
        )
        return result

    # -- Internals --------------------------------------------------------------

    def _check_size(self, order: Order) -> None:
        if len(order.program) > self.config.max_program_bytes:
            raise ProgramTooLarge(len(order.program), self.config.max_program_bytes)

    def _admit(self, order: Order) -> str:
        self._check_size(order)
        h = order_hash(order)
        if self.config.require_registration:
            with self._registered_lock:
                registered = h in self._registered
            if not registered:
                raise SwapExecutionError(f"order {h} is not registered")
        return h

    def _walk(
        self,
        order: Order,
        h: str,
        tx: StateTransaction,
        token_in: str,
        token_out: str,
        amount: int,
        params: SwapParams,
        *,
        stop_at_swap: bool,
    ) -> ExecutionContext:
        token_in = _request_address(token_in, "token_in")
        token_out = _request_address(token_out, "token_out")
        if not order.trades(token_in, token_out):
            raise ParameterError(f"order {h} does not trade {token_in} -> {token_out}")
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ParameterError(f"amount must be a positive int: {amount!r}")

        query = SwapQuery(
            order_hash=h,
            maker=order.maker,
            taker=_request_address(params.taker, "taker"),
            token_in=token_in,
            token_out=token_out,
            is_exact_in=params.is_exact_in,
        )
        registers = SwapRegisters()
        if params.is_exact_in:
            registers.amount_in = amount
        else:
            registers.amount_out = amount

        ctx = ExecutionContext(
            query=query,
            registers=registers,
            program=order.program,
            opcodes=self.opcodes,
            state=tx,
            now=int(self._clock()),
            services=self.services,
            curve=self.curve,
            stop_at_swap=stop_at_swap,
        )
        return run(ctx)

    @staticmethod
    def _finish(ctx: ExecutionContext, params: SwapParams) -> SwapResult:
        if not ctx.swap_computed:
            raise SwapNotComputed(f"program for order {ctx.query.order_hash} computed no swap")
        reg = ctx.registers
        if params.threshold is not None:
            if params.is_exact_in and reg.amount_out < params.threshold:
                raise ThresholdNotMet(f"amount_out {reg.amount_out} < minimum {params.threshold}")
            if not params.is_exact_in and reg.amount_in > params.threshold:
                raise ThresholdNotMet(f"amount_in {reg.amount_in} > maximum {params.threshold}")
        logger.debug(
            f"walk done order={ctx.query.order_hash} swap_pc={ctx.swap_pc} "
            f"in={reg.amount_in} out={reg.amount_out}"
        )
        return SwapResult(amount_in=reg.amount_in, amount_out=reg.amount_out, order_hash=ctx.query.order_hash)


def _request_address(value: str, name: str) -> str:
    try:
        return canonical_address(value, name=name)
    except (TypeError, ValueError) as exc:
        raise ParameterError(f"invalid {name}: {exc}") from exc
