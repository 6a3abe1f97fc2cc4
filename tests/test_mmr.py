"""Tests for Merkle Mountain Range roots and simplified leaf proofs."""

import pytest

from bridge_verifier.crypto.hashing import ZERO_HASH, hash_pair, keccak
from bridge_verifier.crypto.mmr import (
    MerkleMountainRange,
    calculate_root,
    verify_mmr_leaf,
    verify_mmr_leaf_hash,
)
from bridge_verifier.models.beefy import SimplifiedMMRProof


def _leaf(i: int) -> bytes:
    return keccak(b"leaf" + i.to_bytes(8, "big"))


def _mmr(size: int) -> MerkleMountainRange:
    mmr = MerkleMountainRange()
    for i in range(size):
        mmr.append(_leaf(i))
    return mmr


class TestMerkleMountainRange:
    def test_empty_root(self) -> None:
        assert MerkleMountainRange().root() == ZERO_HASH

    def test_append_returns_index(self) -> None:
        mmr = MerkleMountainRange()
        assert mmr.append(_leaf(0)) == 0
        assert mmr.append(_leaf(1)) == 1
        assert mmr.leaf_count == 2

    def test_peaks_follow_binary_size(self) -> None:
        assert len(_mmr(4).peaks()) == 1
        assert len(_mmr(5).peaks()) == 2
        assert len(_mmr(7).peaks()) == 3

    def test_bagging_right_to_left(self) -> None:
        peaks = _mmr(7).peaks()
        expected = hash_pair(hash_pair(peaks[2], peaks[1]), peaks[0])
        assert _mmr(7).root() == expected

    def test_single_leaf_root(self) -> None:
        assert _mmr(1).root() == _leaf(0)

    def test_proof_index_out_of_range(self) -> None:
        with pytest.raises(IndexError):
            _mmr(3).simplified_proof(3)


class TestSimplifiedProofs:
    @pytest.mark.parametrize("size", [1, 2, 3, 5, 8, 11, 37])
    def test_every_leaf_verifies(self, size: int) -> None:
        mmr = _mmr(size)
        root = mmr.root()
        for index in range(size):
            proof = mmr.simplified_proof(index)
            assert verify_mmr_leaf_hash(root, _leaf(index), proof)

    def test_verify_hashes_encoded_leaf(self) -> None:
        encoded = b"encoded leaf"
        mmr = MerkleMountainRange()
        mmr.append(_leaf(0))
        index = mmr.append(keccak(encoded))
        assert verify_mmr_leaf(mmr.root(), encoded, mmr.simplified_proof(index))

    def test_verification_is_repeatable(self) -> None:
        mmr = _mmr(6)
        proof = mmr.simplified_proof(4)
        assert verify_mmr_leaf_hash(mmr.root(), _leaf(4), proof)
        assert verify_mmr_leaf_hash(mmr.root(), _leaf(4), proof)

    def test_wrong_leaf_fails(self) -> None:
        mmr = _mmr(6)
        assert not verify_mmr_leaf_hash(mmr.root(), _leaf(3), mmr.simplified_proof(4))

    def test_flipped_order_bit_fails(self) -> None:
        mmr = _mmr(6)
        proof = mmr.simplified_proof(2)
        flipped = SimplifiedMMRProof(
            proof.merkle_proof_items, proof.merkle_proof_order_bit_field ^ 1,
        )
        assert not verify_mmr_leaf_hash(mmr.root(), _leaf(2), flipped)

    def test_order_bits_beyond_items_are_malformed(self) -> None:
        mmr = _mmr(4)
        proof = mmr.simplified_proof(0)
        malformed = SimplifiedMMRProof(
            proof.merkle_proof_items,
            proof.merkle_proof_order_bit_field | (1 << len(proof.merkle_proof_items)),
        )
        assert calculate_root(_leaf(0), malformed) is None
        assert not verify_mmr_leaf_hash(mmr.root(), _leaf(0), malformed)

    def test_too_many_items_are_malformed(self) -> None:
        proof = SimplifiedMMRProof(tuple(ZERO_HASH for _ in range(65)), 0)
        assert calculate_root(_leaf(0), proof) is None

    def test_short_item_is_malformed(self) -> None:
        proof = SimplifiedMMRProof((b"\x00" * 31,), 0)
        assert calculate_root(_leaf(0), proof) is None

    def test_empty_proof_is_identity(self) -> None:
        proof = SimplifiedMMRProof((), 0)
        assert calculate_root(_leaf(0), proof) == _leaf(0)
