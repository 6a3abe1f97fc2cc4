"""Hashing primitive.

A single collision-resistant hash (keccak-256) is used wherever a digest
is needed, matching the hashes produced on the remote chain.
"""

from __future__ import annotations

from web3 import Web3

HASH_LENGTH = 32
ZERO_HASH = b"\x00" * HASH_LENGTH


def keccak(data: bytes) -> bytes:
    """Compute keccak-256 of raw bytes."""
    return bytes(Web3.keccak(data))


def hash_pair(left: bytes, right: bytes) -> bytes:
    """Hash two nodes together, left first."""
    return keccak(left + right)


def to_hash(value: bytes | str) -> bytes:
    """Coerce a 32-byte value or its hex form (optional 0x) into bytes."""
    if isinstance(value, str):
        value = bytes.fromhex(value.removeprefix("0x"))
    if len(value) != HASH_LENGTH:
        raise ValueError(f"Expected {HASH_LENGTH}-byte hash, got {len(value)} bytes")
    return bytes(value)
