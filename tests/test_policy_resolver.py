"""Tests for the policy resolver — proves it loads and validates the verifier policy."""

import json
from pathlib import Path

import pytest

from bridge_verifier.policy.resolver import ConsensusPolicy, MultisigPolicy, PolicyResolver


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


class TestShippedPolicy:
    def test_policy_version(self, resolver: PolicyResolver) -> None:
        assert resolver.policy_version() == "1.0"

    def test_consensus_section(self, resolver: PolicyResolver) -> None:
        consensus = resolver.consensus()
        assert consensus.mmr_root_payload_id == b"mh"
        assert consensus.reject_stale_commitments is True
        assert consensus.mmr_root_history == 30
        assert consensus.max_mmr_proof_items == 64

    def test_multisig_section(self, resolver: PolicyResolver) -> None:
        multisig = resolver.multisig()
        assert multisig.peer_threshold_policy == "bft"
        assert multisig.min_peers == 1
        assert multisig.max_peers == 100

    def test_peer_threshold(self, resolver: PolicyResolver) -> None:
        assert resolver.peer_threshold(3) == 2
        assert resolver.peer_threshold(1) == 1


class TestDefaults:
    def test_default_matches_dataclasses(self) -> None:
        resolver = PolicyResolver.default()
        assert resolver.consensus() == ConsensusPolicy()
        assert resolver.multisig() == MultisigPolicy()
        assert resolver.policy_version() == "unversioned"

    def test_fixed_peer_threshold(self) -> None:
        resolver = PolicyResolver({"multisig": {"peer_threshold_policy": 2}})
        assert resolver.peer_threshold(5) == 2


class TestValidation:
    @pytest.mark.parametrize(
        "params",
        [
            {"consensus": {"mmr_root_payload_id": "mmr"}},
            {"consensus": {"mmr_root_history": 0}},
            {"consensus": {"max_mmr_proof_items": 65}},
            {"multisig": {"peer_threshold_policy": "most"}},
            {"multisig": {"peer_threshold_policy": 0}},
            {"multisig": {"peer_threshold_policy": True}},
            {"multisig": {"min_peers": 0}},
            {"multisig": {"min_peers": 5, "max_peers": 4}},
        ],
    )
    def test_invalid_values_rejected(self, params: dict) -> None:
        with pytest.raises(ValueError):
            PolicyResolver(params)

    def test_from_config_dir(self, tmp_path: Path) -> None:
        policy = {"policy_version": "2.0", "multisig": {"peer_threshold_policy": "all"}}
        (tmp_path / "verifier_policy.json").write_text(json.dumps(policy), encoding="utf-8")
        resolver = PolicyResolver.from_config_dir(tmp_path)
        assert resolver.policy_version() == "2.0"
        assert resolver.peer_threshold(4) == 4

    def test_missing_config_dir(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            PolicyResolver.from_config_dir(tmp_path / "missing")
