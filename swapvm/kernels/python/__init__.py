"""
Production Python kernels.

These modules are designed to be:
- deterministic (integer-only),
- easy to audit (explicit intermediate variables, named tuning constants),
- small surface-area (pure functions, typed results),
- rounding-directional: amounts the taker receives round down, amounts the
  taker pays round up.
"""
