"""
Engine entry points, configuration and external boundaries.
"""

from .config import EngineConfig
from .engine import SwapEngine, SwapParams, SwapResult
from .providers import FeeProvider, InMemoryTokenLedger, StaticFeeProvider, TokenLedger

__all__ = [
    "EngineConfig",
    "FeeProvider",
    "InMemoryTokenLedger",
    "StaticFeeProvider",
    "SwapEngine",
    "SwapParams",
    "SwapResult",
    "TokenLedger",
]
