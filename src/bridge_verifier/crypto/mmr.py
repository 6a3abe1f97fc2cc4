"""Merkle Mountain Range proofs.

An MMR is a forest of perfect binary keccak trees. Its root bags the
peaks right to left:

    bag = peaks[-1]
    for peak in reversed(peaks[:-1]):
        bag = keccak(bag || peak)

Because the bagging order is not derivable from a leaf position alone,
a simplified proof carries an order bitfield: bit i set means item i is
the left operand at step i. Verification folds the leaf hash with every
item and compares the result against the root. Structural mismatches
fail closed (return False), they never raise.
"""

from __future__ import annotations

from typing import Optional

from bridge_verifier.crypto.hashing import ZERO_HASH, hash_pair, keccak
from bridge_verifier.models.beefy import SimplifiedMMRProof

MAX_PROOF_ITEMS = 64  # The order bitfield is a u64


def calculate_root(leaf_hash: bytes, proof: SimplifiedMMRProof) -> Optional[bytes]:
    """Fold a leaf hash up the proof path. Returns None on malformed proofs."""
    items = proof.merkle_proof_items
    order = proof.merkle_proof_order_bit_field
    if len(items) > MAX_PROOF_ITEMS or order < 0:
        return None
    if order >> len(items):
        return None  # Order bits claimed for steps that do not exist

    current = leaf_hash
    for step, sibling in enumerate(items):
        if len(sibling) != len(current):
            return None
        if (order >> step) & 1:
            current = hash_pair(sibling, current)
        else:
            current = hash_pair(current, sibling)
    return current


def verify_mmr_leaf_hash(root: bytes, leaf_hash: bytes, proof: SimplifiedMMRProof) -> bool:
    computed = calculate_root(leaf_hash, proof)
    return computed is not None and computed == root


def verify_mmr_leaf(root: bytes, leaf: bytes, proof: SimplifiedMMRProof) -> bool:
    """Authenticate an encoded leaf against an MMR root."""
    return verify_mmr_leaf_hash(root, keccak(leaf), proof)


class MerkleMountainRange:
    """Append-only reference MMR producing simplified proofs.

    Usage:
        mmr = MerkleMountainRange()
        for leaf in leaves:
            mmr.append(keccak(leaf))
        root = mmr.root()
        proof = mmr.simplified_proof(3)
    """

    def __init__(self) -> None:
        # Each tree is a list of levels, leaves first; trees are kept
        # left to right in strictly decreasing height.
        self._trees: list[list[list[bytes]]] = []
        self._leaf_count = 0

    @property
    def leaf_count(self) -> int:
        return self._leaf_count

    def append(self, leaf_hash: bytes) -> int:
        """Append a leaf hash; returns its leaf index."""
        self._trees.append([[bytes(leaf_hash)]])
        while len(self._trees) >= 2 and len(self._trees[-1]) == len(self._trees[-2]):
            right = self._trees.pop()
            left = self._trees.pop()
            merged = [l_level + r_level for l_level, r_level in zip(left, right)]
            merged.append([hash_pair(left[-1][0], right[-1][0])])
            self._trees.append(merged)
        self._leaf_count += 1
        return self._leaf_count - 1

    def peaks(self) -> list[bytes]:
        return [tree[-1][0] for tree in self._trees]

    @staticmethod
    def _bag(peaks: list[bytes]) -> bytes:
        bag = peaks[-1]
        for peak in reversed(peaks[:-1]):
            bag = hash_pair(bag, peak)
        return bag

    def root(self) -> bytes:
        if not self._trees:
            return ZERO_HASH
        return self._bag(self.peaks())

    def simplified_proof(self, leaf_index: int) -> SimplifiedMMRProof:
        if not 0 <= leaf_index < self._leaf_count:
            raise IndexError(f"Leaf index {leaf_index} out of range ({self._leaf_count} leaves)")

        offset = 0
        for tree_index, tree in enumerate(self._trees):
            size = len(tree[0])
            if leaf_index < offset + size:
                break
            offset += size

        items: list[bytes] = []
        order = 0
        local = leaf_index - offset
        for level in tree[:-1]:
            if local % 2 == 1:
                order |= 1 << len(items)
            items.append(level[local ^ 1])
            local //= 2

        peaks = self.peaks()
        if tree_index < len(peaks) - 1:
            order |= 1 << len(items)
            items.append(self._bag(peaks[tree_index + 1:]))
        for peak in reversed(peaks[:tree_index]):
            items.append(peak)

        return SimplifiedMMRProof(
            merkle_proof_items=tuple(items),
            merkle_proof_order_bit_field=order,
        )
