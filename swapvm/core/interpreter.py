"""
Bounds-safe bytecode interpreter.

`run` walks the program from `start_pc` until the end or until the context is
halted. Every dispatch performs, in order:

1. header check: two bytes must remain (`MalformedInstruction`);
2. body check: the declared args must fit (`ArgsExceedProgram`);
3. opcode check: the slot must be registered (`InvalidOpcode`);
4. argument parse (parameter validation);
5. execute.

Failures propagate unchanged. Wrapper instructions re-enter `run_loop` through
the context to run the remainder of the program and post-process afterwards,
so the Python call stack is the suspension mechanism.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import InvalidJumpTarget
from .program import decode_at

if TYPE_CHECKING:
    from .context import ExecutionContext

logger = logging.getLogger(__name__)


def run_loop(ctx: "ExecutionContext") -> None:
    program = ctx.program
    while ctx.pc < len(program) and not ctx.halted:
        decoded = decode_at(program, ctx.pc, ctx.opcodes)
        parsed = decoded.spec.parse(decoded.args)
        ctx.current_pc = decoded.pc
        ctx.pc = decoded.next_pc
        decoded.spec.execute(ctx, parsed)


def run(ctx: "ExecutionContext", start_pc: int = 0) -> "ExecutionContext":
    if not (0 <= start_pc <= len(ctx.program)):
        raise ValueError(f"start_pc out of range: {start_pc}")
    ctx.pc = start_pc
    logger.debug(f"walk order={ctx.query.order_hash} start_pc={start_pc} exact_in={ctx.is_exact_in}")
    run_loop(ctx)
    return ctx


def jump(ctx: "ExecutionContext", target: int) -> None:
    """Move the cursor forward to `target`; backward or out-of-range jumps are invalid."""
    if target <= ctx.current_pc or target > len(ctx.program):
        raise InvalidJumpTarget(ctx.current_pc, target)
    ctx.pc = target
