"""
The default instruction set and opcode table.

Assembling a table is the caller's choice; `DEFAULT_OPCODES` registers every
instruction shipped here.
"""

from __future__ import annotations

from ..opcodes import OpcodeTable
from . import balances, concentrate, controls, decay, fees, swaps

ALL_SPECS = controls.SPECS + balances.SPECS + decay.SPECS + concentrate.SPECS + fees.SPECS + swaps.SPECS

DEFAULT_OPCODES = OpcodeTable(ALL_SPECS)

__all__ = ["ALL_SPECS", "DEFAULT_OPCODES"]
