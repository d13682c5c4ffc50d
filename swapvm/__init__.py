"""
SwapVM: a programmable swap-execution engine.

A maker encodes a program (bytecode) that prices and accounts for a swap; a
taker's request is executed by interpreting that program against per-order
state. Layers, leaves first:

- `swapvm.kernels.python`: integer-only fixed-point math and curve formulas.
- `swapvm.state`: order identity and the persistent per-order state store.
- `swapvm.core`: program encoding, interpreter and instruction set.
- `swapvm.integration`: engine entry points (quote / swap), config, providers.
"""

__version__ = "0.1.0"
