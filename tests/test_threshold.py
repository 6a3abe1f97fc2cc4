"""Tests for committee and peer-set thresholds."""

import pytest

from bridge_verifier.engine.threshold import bft_threshold, max_faulty, peer_threshold


class TestBftThreshold:
    @pytest.mark.parametrize(
        "n,expected",
        [(1, 1), (2, 1), (3, 2), (4, 2), (5, 3), (7, 4), (10, 6), (100, 66)],
    )
    def test_threshold_values(self, n: int, expected: int) -> None:
        assert bft_threshold(n) == expected

    def test_max_faulty(self) -> None:
        assert max_faulty(1) == 0
        assert max_faulty(4) == 1
        assert max_faulty(100) == 33

    def test_empty_committee(self) -> None:
        assert bft_threshold(0) == 0
        assert max_faulty(0) == 0

    def test_threshold_exceeds_faults(self) -> None:
        for n in range(1, 300):
            assert max_faulty(n) < bft_threshold(n) <= n


class TestPeerThreshold:
    def test_bft_matches_consensus(self) -> None:
        assert peer_threshold(3, "bft") == 2
        assert peer_threshold(1, "bft") == 1

    def test_supermajority(self) -> None:
        assert peer_threshold(4, "supermajority") == 3
        assert peer_threshold(3, "supermajority") == 3

    def test_all(self) -> None:
        assert peer_threshold(5, "all") == 5

    def test_fixed_is_capped(self) -> None:
        assert peer_threshold(5, 3) == 3
        assert peer_threshold(2, 3) == 2

    def test_invalid_policies(self) -> None:
        with pytest.raises(ValueError):
            peer_threshold(3, "most")
        with pytest.raises(ValueError):
            peer_threshold(3, 0)
