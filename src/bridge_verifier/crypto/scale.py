"""Minimal SCALE codec primitives.

Commitments and MMR leaves are hashed over their SCALE encoding so that
the hashes match the ones produced on the remote chain. Only the subset
needed by the BEEFY types is implemented: fixed-width little-endian
integers, compact integers, byte vectors and options.
"""

from __future__ import annotations


def encode_u8(n: int) -> bytes:
    return int(n).to_bytes(1, "little", signed=False)


def encode_u32(n: int) -> bytes:
    return int(n).to_bytes(4, "little", signed=False)


def encode_u64(n: int) -> bytes:
    return int(n).to_bytes(8, "little", signed=False)


def encode_compact(n: int) -> bytes:
    """SCALE compact encoding of a non-negative integer."""
    if n < 0:
        raise ValueError("Compact integers must be non-negative")
    if n < 1 << 6:
        return bytes([n << 2])
    if n < 1 << 14:
        return ((n << 2) | 0b01).to_bytes(2, "little")
    if n < 1 << 30:
        return ((n << 2) | 0b10).to_bytes(4, "little")
    body = n.to_bytes((n.bit_length() + 7) // 8, "little")
    if len(body) > 67:
        raise ValueError("Integer too large for compact encoding")
    return bytes([((len(body) - 4) << 2) | 0b11]) + body


def encode_bytes(data: bytes) -> bytes:
    """Length-prefixed byte vector."""
    return encode_compact(len(data)) + bytes(data)


class ScaleReader:
    """Sequential decoder over a SCALE byte string.

    Raises ValueError on truncated input or trailing bytes (see finish()).
    """

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._offset = 0

    def take(self, size: int) -> bytes:
        end = self._offset + size
        if size < 0 or end > len(self._data):
            raise ValueError(
                f"Truncated input: need {size} bytes at offset {self._offset}, "
                f"have {len(self._data) - self._offset}"
            )
        chunk = self._data[self._offset:end]
        self._offset = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u32(self) -> int:
        return int.from_bytes(self.take(4), "little")

    def u64(self) -> int:
        return int.from_bytes(self.take(8), "little")

    def compact(self) -> int:
        first = self.u8()
        mode = first & 0b11
        if mode == 0b00:
            return first >> 2
        if mode == 0b01:
            return int.from_bytes(bytes([first]) + self.take(1), "little") >> 2
        if mode == 0b10:
            return int.from_bytes(bytes([first]) + self.take(3), "little") >> 2
        return int.from_bytes(self.take((first >> 2) + 4), "little")

    def vec_bytes(self) -> bytes:
        return self.take(self.compact())

    def option(self) -> bool:
        flag = self.u8()
        if flag not in (0, 1):
            raise ValueError(f"Invalid option flag: {flag}")
        return flag == 1

    def finish(self) -> None:
        if self._offset != len(self._data):
            raise ValueError(f"{len(self._data) - self._offset} trailing bytes after decode")
