"""Fixed-length bit vector over committee index space.

Used both by submitters to claim "I hold a valid signature from this
index" and by the light client to record which subset was sampled for
cryptographic verification.
"""

from __future__ import annotations

from typing import Iterable


class BitField:
    """A fixed-length bit vector.

    Usage:
        claimed = BitField.create_bitfield([0, 2], 3)
        claimed.is_set(2)          # True
        claimed.clear(2)
        claimed.count_set_bits()   # 1

    Index access outside [0, len) raises IndexError.
    """

    __slots__ = ("_length", "_bits")

    def __init__(self, length: int) -> None:
        if length < 0:
            raise ValueError(f"BitField length must be non-negative, got {length}")
        self._length = length
        self._bits = 0

    @classmethod
    def create_bitfield(cls, indices: Iterable[int], length: int) -> BitField:
        """Build a bitfield with exactly the given indices set."""
        bitfield = cls(length)
        for index in indices:
            bitfield.set(index)
        return bitfield

    @classmethod
    def from_bytes(cls, data: bytes, length: int) -> BitField:
        """Inverse of to_bytes(); bits beyond length must be zero."""
        bitfield = cls(length)
        value = int.from_bytes(data, "little")
        if value >> length:
            raise ValueError("Bits set beyond bitfield length")
        bitfield._bits = value
        return bitfield

    def __len__(self) -> int:
        return self._length

    def _check(self, index: int) -> None:
        if not 0 <= index < self._length:
            raise IndexError(f"Bit index {index} out of bounds for length {self._length}")

    def is_set(self, index: int) -> bool:
        self._check(index)
        return bool((self._bits >> index) & 1)

    def set(self, index: int) -> None:
        self._check(index)
        self._bits |= 1 << index

    def clear(self, index: int) -> None:
        self._check(index)
        self._bits &= ~(1 << index)

    def count_set_bits(self) -> int:
        return bin(self._bits).count("1")

    def set_indices(self) -> list[int]:
        """Indices of set bits in ascending order."""
        return [i for i in range(self._length) if (self._bits >> i) & 1]

    def copy(self) -> BitField:
        clone = BitField(self._length)
        clone._bits = self._bits
        return clone

    def to_bytes(self) -> bytes:
        return self._bits.to_bytes((self._length + 7) // 8, "little")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitField):
            return NotImplemented
        return self._length == other._length and self._bits == other._bits

    def __hash__(self) -> int:
        return hash((self._length, self._bits))

    def __repr__(self) -> str:
        bits = "".join("1" if (self._bits >> i) & 1 else "0" for i in range(self._length))
        return f"BitField({bits!r})"
