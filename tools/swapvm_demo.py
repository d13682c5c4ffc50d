#!/usr/bin/env python3

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from swapvm.core import DEFAULT_OPCODES, ProgramBuilder, disassemble
from swapvm.integration import EngineConfig, SwapEngine, SwapParams
from swapvm.kernels.python.fixed_point import ONE
from swapvm.state import Order


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="[swapvm-demo] %(levelname)s %(name)s: %(message)s")

    maker = "0x" + "11" * 20
    taker = "0x" + "22" * 20
    token_a = "0x" + "aa" * 20
    token_b = "0x" + "bb" * 20

    program = (
        ProgramBuilder()
        .deadline(int(time.time()) + 3600)
        .dynamic_balances({token_a: 1000 * ONE, token_b: 1000 * ONE})
        .decay(600)
        .flat_fee_amount_in(30)
        .constant_product_swap(997 * ONE // 1000)
        .build()
    )
    order = Order(maker=maker, token0=token_a, token1=token_b, program=program)

    engine = SwapEngine(EngineConfig.from_env())
    order_hash = engine.register_order(order)
    print(f"[swapvm-demo] order_hash={order_hash} program_bytes={len(program)}")
    print(disassemble(program, DEFAULT_OPCODES))

    amount_in = 100 * ONE
    quote = engine.quote(order, token_a, token_b, amount_in, SwapParams(taker=taker))
    print(f"[swapvm-demo] quote: in={quote.amount_in} out={quote.amount_out}")

    result = engine.swap(order, token_a, token_b, amount_in, SwapParams(threshold=quote.amount_out, taker=taker))
    print(f"[swapvm-demo] swap:  in={result.amount_in} out={result.amount_out}")

    back = engine.quote(order, token_b, token_a, result.amount_out, SwapParams(taker=taker))
    print(f"[swapvm-demo] reverse quote right after the swap: out={back.amount_out} (decay penalty active)")

    state = engine.store.snapshot(order_hash)
    for token, balance in sorted(state.balances.items()):
        print(f"[swapvm-demo] balance {token}={balance}")
    print("[swapvm-demo] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
