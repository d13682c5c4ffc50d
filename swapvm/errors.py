"""Exception taxonomy for the swap engine.

Every failure a walk can produce is one of these types. Nothing is recovered
locally: an exception raised by any instruction aborts the whole walk and all
of its pending state writes.

This module must not import anything from the package (every layer imports it).
"""

from __future__ import annotations


class SwapVMError(Exception):
    """Base class for all engine errors."""


# -- Program malformation ------------------------------------------------------


class ProgramError(SwapVMError):
    """Raised when a program cannot be decoded safely."""

    def __init__(self, pc: int, message: str) -> None:
        self.pc = pc
        super().__init__(f"pc={pc}: {message}")


class MalformedInstruction(ProgramError):
    """Fewer than two header bytes remain at `pc`."""

    def __init__(self, pc: int) -> None:
        super().__init__(pc, "instruction header exceeds program")


class ArgsExceedProgram(ProgramError):
    """The declared args length runs past the end of the program."""

    def __init__(self, pc: int, args_length: int) -> None:
        self.args_length = args_length
        super().__init__(pc, f"args length {args_length} exceeds program")


class InvalidOpcode(ProgramError):
    """Opcode is outside the table or its slot has no registered handler."""

    def __init__(self, pc: int, opcode: int) -> None:
        self.opcode = opcode
        super().__init__(pc, f"invalid opcode 0x{opcode:02x}")


class InvalidJumpTarget(ProgramError):
    def __init__(self, pc: int, target: int) -> None:
        self.target = target
        super().__init__(pc, f"invalid jump target {target}")


class MissingSwapInstruction(ProgramError):
    def __init__(self) -> None:
        super().__init__(-1, "program has no swap instruction")


class ProgramTooLarge(ProgramError):
    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(-1, f"program size {size} exceeds limit {limit}")


# -- Parameter validation ------------------------------------------------------


class ParameterError(SwapVMError):
    """Raised when instruction or request parameters are out of domain."""


class InvalidArguments(ParameterError):
    """An instruction's argument block does not decode to valid parameters."""


class InvalidFee(InvalidArguments):
    pass


class InvalidDecayPeriod(InvalidArguments):
    pass


class InvalidInitialLiquidity(InvalidArguments):
    pass


class InvalidAlpha(InvalidArguments):
    pass


class InsufficientOutput(ParameterError):
    """Requested output is not available (amount_out >= balance_out)."""


# -- Numerics ------------------------------------------------------------------


class MathError(SwapVMError):
    pass


class MathDomainError(MathError):
    pass


class MathOverflowError(MathError):
    pass


class ConvergenceError(MathError):
    """The exact-out self-consistency correction hit its iteration cap."""

    def __init__(self, iterations: int, shortfall: int) -> None:
        self.iterations = iterations
        self.shortfall = shortfall
        super().__init__(f"exact-out did not converge after {iterations} iterations (shortfall {shortfall})")


# -- Persistent state ----------------------------------------------------------


class StateError(SwapVMError):
    pass


class UninitializedStateError(StateError):
    """A stateful read found no value (distinct from a stored zero)."""


class InsufficientBalance(StateError):
    pass


# -- Predicates ----------------------------------------------------------------


class PredicateFailed(SwapVMError):
    pass


class DeadlineReached(PredicateFailed):
    pass


class TakerBalanceTooLow(PredicateFailed):
    pass


class TakerSupplyShareTooLow(PredicateFailed):
    pass


# -- Swap execution ------------------------------------------------------------


class SwapExecutionError(SwapVMError):
    pass


class SwapNotComputed(SwapExecutionError):
    pass


class ThresholdNotMet(SwapExecutionError):
    pass


class MissingTokenBalance(SwapExecutionError):
    pass


# -- External boundary ---------------------------------------------------------


class ExternalCallError(SwapVMError):
    """An untrusted collaborator (fee provider, ledger) failed or misbehaved."""
