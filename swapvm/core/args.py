"""
Instruction argument codec.

Arguments are packed big-endian with no padding:
- uintN: N/8 bytes
- address: 20 raw bytes, surfaced as a lowercase 0x-prefixed hex string
- balances list: u8 count, then count * (address, uint256)

A reader must consume the whole block; trailing bytes are an error.
"""

from __future__ import annotations

from typing import List, Tuple

from ..errors import InvalidArguments
from ..state.canonical import ADDRESS_BYTES, address_from_bytes, address_to_bytes

MAX_ARGS_LENGTH = 0xFF


class ArgsReader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._offset = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def _take(self, n: int, what: str) -> bytes:
        if self.remaining < n:
            raise InvalidArguments(f"truncated {what}: need {n} bytes, have {self.remaining}")
        chunk = self._data[self._offset : self._offset + n]
        self._offset += n
        return chunk

    def uint(self, bits: int) -> int:
        return int.from_bytes(self._take(bits // 8, f"uint{bits}"), "big")

    def u8(self) -> int:
        return self.uint(8)

    def u16(self) -> int:
        return self.uint(16)

    def u32(self) -> int:
        return self.uint(32)

    def u64(self) -> int:
        return self.uint(64)

    def u256(self) -> int:
        return self.uint(256)

    def address(self) -> str:
        return address_from_bytes(self._take(ADDRESS_BYTES, "address"))

    def raw(self) -> bytes:
        chunk = self._data[self._offset :]
        self._offset = len(self._data)
        return chunk

    def balances(self) -> Tuple[Tuple[str, int], ...]:
        count = self.u8()
        entries = []
        seen = set()
        for _ in range(count):
            token = self.address()
            if token in seen:
                raise InvalidArguments(f"duplicate token in balances: {token}")
            seen.add(token)
            entries.append((token, self.u256()))
        return tuple(entries)

    def finish(self) -> None:
        if self.remaining:
            raise InvalidArguments(f"{self.remaining} trailing bytes in arguments")


class ArgsWriter:
    def __init__(self) -> None:
        self._parts: List[bytes] = []

    def uint(self, bits: int, value: int) -> "ArgsWriter":
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError("value must be an int")
        if value < 0 or value >= 1 << bits:
            raise InvalidArguments(f"value {value} does not fit in uint{bits}")
        self._parts.append(value.to_bytes(bits // 8, "big"))
        return self

    def u8(self, value: int) -> "ArgsWriter":
        return self.uint(8, value)

    def u16(self, value: int) -> "ArgsWriter":
        return self.uint(16, value)

    def u32(self, value: int) -> "ArgsWriter":
        return self.uint(32, value)

    def u64(self, value: int) -> "ArgsWriter":
        return self.uint(64, value)

    def u256(self, value: int) -> "ArgsWriter":
        return self.uint(256, value)

    def address(self, token: str) -> "ArgsWriter":
        self._parts.append(address_to_bytes(token))
        return self

    def raw(self, data: bytes) -> "ArgsWriter":
        self._parts.append(bytes(data))
        return self

    def balances(self, entries) -> "ArgsWriter":
        entries = list(entries.items()) if isinstance(entries, dict) else list(entries)
        self.u8(len(entries))
        for token, amount in entries:
            self.address(token)
            self.u256(amount)
        return self

    def to_bytes(self) -> bytes:
        data = b"".join(self._parts)
        if len(data) > MAX_ARGS_LENGTH:
            raise InvalidArguments(f"arguments are {len(data)} bytes; limit is {MAX_ARGS_LENGTH}")
        return data
