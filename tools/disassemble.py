#!/usr/bin/env python3

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from swapvm.core import DEFAULT_OPCODES, disassemble, locate_swap_point, validate_program
from swapvm.errors import SwapVMError


def _read_program(args: argparse.Namespace) -> bytes:
    text = Path(args.file).read_text(encoding="utf-8") if args.file else args.hex
    text = "".join(text.split())
    if text.lower().startswith("0x"):
        text = text[2:]
    return bytes.fromhex(text)


def main() -> int:
    ap = argparse.ArgumentParser(description="Validate and disassemble a swap program")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--hex", type=str, default="", help="program as hex (0x prefix optional)")
    src.add_argument("--file", type=str, default="", help="file containing the program as hex")
    args = ap.parse_args()

    try:
        program = _read_program(args)
    except ValueError as exc:
        print(f"[disassemble] FAIL: not hex: {exc}")
        return 2

    try:
        validate_program(program, DEFAULT_OPCODES)
        swap_pc = locate_swap_point(program, DEFAULT_OPCODES)
    except SwapVMError as exc:
        print(f"[disassemble] FAIL: {type(exc).__name__}: {exc}")
        return 1

    print(disassemble(program, DEFAULT_OPCODES))
    print(f"[disassemble] OK: {len(program)} bytes, swap at pc={swap_pc}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
