"""
Order identity.

An order is the maker's commitment: who provides liquidity, which token pair,
and the program that prices it. Its hash is the key for all persistent state,
so two orders with identical content share state by construction.
"""

from __future__ import annotations

from dataclasses import dataclass

from .canonical import canonical_address, canonical_json_bytes, domain_sep_bytes, sha256_hex


@dataclass(frozen=True)
class Order:
    maker: str
    token0: str
    token1: str
    program: bytes
    flags: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "maker", canonical_address(self.maker, name="maker"))
        object.__setattr__(self, "token0", canonical_address(self.token0, name="token0"))
        object.__setattr__(self, "token1", canonical_address(self.token1, name="token1"))
        if self.token0 == self.token1:
            raise ValueError("token0 and token1 must differ")
        if not isinstance(self.program, (bytes, bytearray)):
            raise TypeError("program must be bytes")
        object.__setattr__(self, "program", bytes(self.program))
        if not isinstance(self.flags, int) or isinstance(self.flags, bool) or self.flags < 0:
            raise ValueError("flags must be a non-negative int")

    def trades(self, token_in: str, token_out: str) -> bool:
        pair = {self.token0, self.token1}
        return token_in != token_out and {token_in, token_out} == pair

    def to_canonical(self) -> dict:
        return {
            "maker": self.maker,
            "token0": self.token0,
            "token1": self.token1,
            "program": "0x" + self.program.hex(),
            "flags": self.flags,
        }

    @property
    def hash(self) -> str:
        return order_hash(self)


def order_hash(order: Order) -> str:
    return sha256_hex(domain_sep_bytes("order") + canonical_json_bytes(order.to_canonical()))
