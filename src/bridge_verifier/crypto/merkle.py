"""Positional Merkle tree over validator addresses, using keccak-256.

Leaves keep their insertion order (a validator's position is its index
in the committee). Leaf hashes are keccak(leaf). A node without a
sibling at the end of an odd-sized level is promoted to the next level
unchanged, so proofs for such nodes are one item shorter.

verify_merkle_leaf_at_position() is the verifier used by the light
client; MerkleTree is the reference constructor used by fixtures,
tooling and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from bridge_verifier.crypto.hashing import ZERO_HASH, hash_pair, keccak


@dataclass(frozen=True)
class MerkleProof:
    """An inclusion proof for a single leaf position."""
    leaf: bytes
    position: int
    width: int
    siblings: tuple[bytes, ...]
    root: bytes


class MerkleTree:
    """A positional Merkle tree.

    Usage:
        tree = MerkleTree()
        tree.add_leaf(address_0)
        tree.add_leaf(address_1)
        root = tree.compute_root()
        proof = tree.inclusion_proof(1)
    """

    def __init__(self, leaves: Sequence[bytes] = ()) -> None:
        self._leaves: list[bytes] = [bytes(leaf) for leaf in leaves]
        self._levels: list[list[bytes]] = []
        self._computed = False

    def add_leaf(self, leaf: bytes) -> None:
        """Add a raw leaf. Must be called before compute_root."""
        if self._computed:
            raise RuntimeError("Tree already computed. Create a new tree.")
        self._leaves.append(bytes(leaf))

    @property
    def leaf_count(self) -> int:
        return len(self._leaves)

    def compute_root(self) -> bytes:
        """Compute the Merkle root. An empty tree has the zero hash as root."""
        if not self._leaves:
            self._levels = [[]]
            self._computed = True
            return ZERO_HASH

        level = [keccak(leaf) for leaf in self._leaves]
        self._levels = [level]
        while len(level) > 1:
            next_level: list[bytes] = []
            for i in range(0, len(level), 2):
                if i + 1 < len(level):
                    next_level.append(hash_pair(level[i], level[i + 1]))
                else:
                    next_level.append(level[i])  # Promoted
            self._levels.append(next_level)
            level = next_level

        self._computed = True
        return level[0]

    def inclusion_proof(self, position: int) -> Optional[MerkleProof]:
        """Generate an inclusion proof for the leaf at a position.

        Returns None if the position is outside the tree.
        Must call compute_root first.
        """
        if not self._computed:
            raise RuntimeError("Must call compute_root before generating proofs")
        if not 0 <= position < len(self._leaves):
            return None

        siblings: list[bytes] = []
        index = position
        for level in self._levels[:-1]:
            sibling = index ^ 1
            if sibling < len(level):
                siblings.append(level[sibling])
            index //= 2

        return MerkleProof(
            leaf=self._leaves[position],
            position=position,
            width=len(self._leaves),
            siblings=tuple(siblings),
            root=self._levels[-1][0],
        )


def verify_merkle_leaf_at_position(
    root: bytes,
    leaf: bytes,
    position: int,
    proof: Sequence[bytes],
    width: Optional[int] = None,
) -> bool:
    """Authenticate a raw leaf at a known position against a root.

    Bottom-up recomputation: at each level the bit of the running
    position decides whether the sibling goes on the left or the right.
    With width given, an unpaired last node is promoted without
    consuming a proof item; without it the tree is assumed perfect.
    The proof must be consumed exactly.
    """
    if position < 0:
        return False
    if width is not None and not position < width:
        return False

    current = keccak(leaf)
    index = position
    level_width = width
    items = iter(proof)
    consumed = 0

    while True:
        if level_width is not None:
            if level_width <= 1:
                break
            if index == level_width - 1 and index % 2 == 0:
                index //= 2
                level_width = (level_width + 1) // 2
                continue
        sibling = next(items, None)
        if sibling is None:
            if level_width is not None:
                return False  # Path ends below the root
            break
        consumed += 1
        if index % 2 == 1:
            current = hash_pair(sibling, current)
        else:
            current = hash_pair(current, sibling)
        index //= 2
        if level_width is not None:
            level_width = (level_width + 1) // 2

    if consumed != len(proof):
        return False
    if level_width is None and index != 0:
        return False
    return current == root
