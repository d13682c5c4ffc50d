"""
Engine configuration.

Defaults are fail-closed: programs are validated when an order is
registered, and size limits are applied before any decoding work.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from ..kernels.python.pow_curve_v1 import CORRECTION_MAX_ITERATIONS, CORRECTION_MIN_STEP

logger = logging.getLogger(__name__)

ENV_PREFIX = "SWAPVM_"


def _bool_env(name: str, *, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return bool(default)
    v = raw.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return bool(default)


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        logger.warning(f"ignoring non-integer {name}={raw!r}")
        return int(default)
    return max(lo, min(hi, v))


@dataclass(frozen=True)
class EngineConfig:
    # DoS limit applied before decoding: programs longer than this are rejected.
    max_program_bytes: int = 4096

    # Exact-out self-consistency loop (pow curve).
    correction_max_iterations: int = CORRECTION_MAX_ITERATIONS
    correction_min_step: int = CORRECTION_MIN_STEP

    # If True, quote/swap only accept orders previously passed to register_order().
    require_registration: bool = False

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type in ("int", int) and (not isinstance(value, int) or isinstance(value, bool)):
                raise TypeError(f"{f.name} must be an int")
        if self.max_program_bytes <= 0:
            raise ValueError("max_program_bytes must be positive")
        if self.correction_max_iterations < 0:
            raise ValueError("correction_max_iterations must be non-negative")
        if self.correction_min_step <= 0:
            raise ValueError("correction_min_step must be positive")
        if not isinstance(self.require_registration, bool):
            raise TypeError("require_registration must be a bool")

    @classmethod
    def from_env(cls) -> "EngineConfig":
        base = cls()
        return cls(
            max_program_bytes=_env_int(
                ENV_PREFIX + "MAX_PROGRAM_BYTES", base.max_program_bytes, lo=2, hi=1 << 20
            ),
            correction_max_iterations=_env_int(
                ENV_PREFIX + "CORRECTION_MAX_ITERATIONS", base.correction_max_iterations, lo=0, hi=1024
            ),
            correction_min_step=_env_int(
                ENV_PREFIX + "CORRECTION_MIN_STEP", base.correction_min_step, lo=1, hi=1 << 64
            ),
            require_registration=_bool_env(
                ENV_PREFIX + "REQUIRE_REGISTRATION", default=base.require_registration
            ),
        )

    @classmethod
    def from_mapping(cls, obj: Mapping[str, Any]) -> "EngineConfig":
        if not isinstance(obj, Mapping):
            raise TypeError("engine config must be a mapping")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(obj) - known)
        if unknown:
            raise ValueError(f"unknown engine config keys: {unknown}")
        return cls(**dict(obj))

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EngineConfig":
        obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        if obj is None:
            return cls()
        if isinstance(obj, Mapping) and "engine" in obj:
            obj = obj["engine"]
        return cls.from_mapping(obj)
