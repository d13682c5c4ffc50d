"""
Kernel layer.

Pure, deterministic, integer-only numerics used by the instruction set.
- `swapvm/kernels/python/fixed_point.py` is the 18-decimal math kernel.
- The `*_v1.py` modules are the curve formula families built on it.
"""
