"""
Control instructions: forward jumps, deadlines, taker predicates and salt.

Predicates are pure checks; they either pass or abort the walk.
"""

from __future__ import annotations

from dataclasses import dataclass

from ...errors import DeadlineReached, ExternalCallError, TakerBalanceTooLow, TakerSupplyShareTooLow
from ...kernels.python.fixed_point import ONE, mul_div_down
from ..args import ArgsReader, ArgsWriter
from ..context import ExecutionContext, call_external
from ..interpreter import jump
from ..opcodes import InstructionSpec, Opcode


@dataclass(frozen=True)
class JumpArgs:
    target: int


@dataclass(frozen=True)
class TokenJumpArgs:
    token: str
    target: int


@dataclass(frozen=True)
class TokenThresholdArgs:
    token: str
    threshold: int


def parse_jump(data: bytes) -> JumpArgs:
    r = ArgsReader(data)
    args = JumpArgs(target=r.u16())
    r.finish()
    return args


def parse_token_jump(data: bytes) -> TokenJumpArgs:
    r = ArgsReader(data)
    args = TokenJumpArgs(token=r.address(), target=r.u16())
    r.finish()
    return args


def parse_deadline(data: bytes) -> int:
    r = ArgsReader(data)
    deadline = r.u64()
    r.finish()
    return deadline


def parse_token(data: bytes) -> str:
    r = ArgsReader(data)
    token = r.address()
    r.finish()
    return token


def parse_token_threshold(data: bytes) -> TokenThresholdArgs:
    r = ArgsReader(data)
    args = TokenThresholdArgs(token=r.address(), threshold=r.u256())
    r.finish()
    return args


def parse_salt(data: bytes) -> bytes:
    return bytes(data)


def _taker_balance(ctx: ExecutionContext, token: str) -> int:
    ledger = ctx.require_ledger()
    balance = call_external("balance_of", ledger.balance_of, token, ctx.query.taker)
    if not isinstance(balance, int) or isinstance(balance, bool) or balance < 0:
        raise ExternalCallError(f"ledger returned an invalid balance: {balance!r}")
    return balance


def execute_jump(ctx: ExecutionContext, args: JumpArgs) -> None:
    jump(ctx, args.target)


def execute_jump_if_token_in(ctx: ExecutionContext, args: TokenJumpArgs) -> None:
    if ctx.query.token_in == args.token:
        jump(ctx, args.target)


def execute_jump_if_token_out(ctx: ExecutionContext, args: TokenJumpArgs) -> None:
    if ctx.query.token_out == args.token:
        jump(ctx, args.target)


def execute_deadline(ctx: ExecutionContext, deadline: int) -> None:
    if ctx.now > deadline:
        raise DeadlineReached(f"deadline {deadline} passed (now {ctx.now})")


def execute_only_taker_balance_non_zero(ctx: ExecutionContext, token: str) -> None:
    if _taker_balance(ctx, token) == 0:
        raise TakerBalanceTooLow(f"taker {ctx.query.taker} holds no {token}")


def execute_only_taker_balance_gte(ctx: ExecutionContext, args: TokenThresholdArgs) -> None:
    balance = _taker_balance(ctx, args.token)
    if balance < args.threshold:
        raise TakerBalanceTooLow(f"taker balance {balance} of {args.token} is below {args.threshold}")


def execute_only_taker_supply_share_gte(ctx: ExecutionContext, args: TokenThresholdArgs) -> None:
    balance = _taker_balance(ctx, args.token)
    ledger = ctx.require_ledger()
    supply = call_external("total_supply", ledger.total_supply, args.token)
    if not isinstance(supply, int) or isinstance(supply, bool) or supply < 0:
        raise ExternalCallError(f"ledger returned an invalid supply: {supply!r}")
    if supply == 0:
        raise TakerSupplyShareTooLow(f"{args.token} has zero supply")
    share = mul_div_down(balance, ONE, supply)
    if share < args.threshold:
        raise TakerSupplyShareTooLow(f"taker share {share} of {args.token} is below {args.threshold}")


def execute_salt(ctx: ExecutionContext, salt: bytes) -> None:
    return None


SPECS = (
    InstructionSpec(Opcode.JUMP, "JUMP", parse_jump, execute_jump, jump_target=lambda a: a.target),
    InstructionSpec(
        Opcode.JUMP_IF_TOKEN_IN,
        "JUMP_IF_TOKEN_IN",
        parse_token_jump,
        execute_jump_if_token_in,
        jump_target=lambda a: a.target,
    ),
    InstructionSpec(
        Opcode.JUMP_IF_TOKEN_OUT,
        "JUMP_IF_TOKEN_OUT",
        parse_token_jump,
        execute_jump_if_token_out,
        jump_target=lambda a: a.target,
    ),
    InstructionSpec(Opcode.DEADLINE, "DEADLINE", parse_deadline, execute_deadline),
    InstructionSpec(
        Opcode.ONLY_TAKER_TOKEN_BALANCE_NON_ZERO,
        "ONLY_TAKER_TOKEN_BALANCE_NON_ZERO",
        parse_token,
        execute_only_taker_balance_non_zero,
    ),
    InstructionSpec(
        Opcode.ONLY_TAKER_TOKEN_BALANCE_GTE,
        "ONLY_TAKER_TOKEN_BALANCE_GTE",
        parse_token_threshold,
        execute_only_taker_balance_gte,
    ),
    InstructionSpec(
        Opcode.ONLY_TAKER_TOKEN_SUPPLY_SHARE_GTE,
        "ONLY_TAKER_TOKEN_SUPPLY_SHARE_GTE",
        parse_token_threshold,
        execute_only_taker_supply_share_gte,
    ),
    InstructionSpec(Opcode.SALT, "SALT", parse_salt, execute_salt),
)


# -- Encoders -------------------------------------------------------------------


def encode_jump(target: int) -> bytes:
    return ArgsWriter().u16(target).to_bytes()


def encode_token_jump(token: str, target: int) -> bytes:
    return ArgsWriter().address(token).u16(target).to_bytes()


def encode_deadline(deadline: int) -> bytes:
    return ArgsWriter().u64(deadline).to_bytes()


def encode_token(token: str) -> bytes:
    return ArgsWriter().address(token).to_bytes()


def encode_token_threshold(token: str, threshold: int) -> bytes:
    return ArgsWriter().address(token).u256(threshold).to_bytes()
