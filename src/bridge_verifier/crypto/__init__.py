"""Cryptographic primitives shared by both verifier families.

The MMR helpers live in bridge_verifier.crypto.mmr and are imported
from there directly.
"""

from bridge_verifier.crypto.hashing import keccak
from bridge_verifier.crypto.merkle import MerkleTree, verify_merkle_leaf_at_position
from bridge_verifier.crypto.signatures import recover_address, recover_compressed_key

__all__ = [
    "keccak",
    "MerkleTree",
    "verify_merkle_leaf_at_position",
    "recover_address",
    "recover_compressed_key",
]
