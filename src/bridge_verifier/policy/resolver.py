"""Policy resolver — typed access to the executable verifier policy.

The policy lives in config/verifier_policy.json. Every value is
validated on load; an invalid policy is rejected with ValueError rather
than silently falling back to defaults.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bridge_verifier.engine.threshold import peer_threshold

POLICY_FILENAME = "verifier_policy.json"
PEER_THRESHOLD_POLICIES = ("bft", "supermajority", "all")


@dataclass(frozen=True)
class ConsensusPolicy:
    mmr_root_payload_id: bytes = b"mh"
    reject_stale_commitments: bool = True
    mmr_root_history: int = 30
    max_mmr_proof_items: int = 64


@dataclass(frozen=True)
class MultisigPolicy:
    peer_threshold_policy: str | int = "bft"
    min_peers: int = 1
    max_peers: int = 100


class PolicyResolver:
    """Resolves verifier policy values.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        resolver.consensus().mmr_root_payload_id
        resolver.peer_threshold(3)
    """

    def __init__(self, params: dict[str, Any]) -> None:
        self._params = params
        self._consensus = self._parse_consensus(params.get("consensus", {}))
        self._multisig = self._parse_multisig(params.get("multisig", {}))

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        path = Path(config_dir) / POLICY_FILENAME
        with path.open("r", encoding="utf-8") as handle:
            return cls(json.load(handle))

    @classmethod
    def default(cls) -> PolicyResolver:
        return cls({})

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_consensus(raw: dict[str, Any]) -> ConsensusPolicy:
        defaults = ConsensusPolicy()
        payload_id = raw.get("mmr_root_payload_id", defaults.mmr_root_payload_id)
        if isinstance(payload_id, str):
            payload_id = payload_id.encode("ascii")
        if len(payload_id) != 2:
            raise ValueError(f"mmr_root_payload_id must be 2 bytes, got {payload_id!r}")

        history = int(raw.get("mmr_root_history", defaults.mmr_root_history))
        if history < 1:
            raise ValueError(f"mmr_root_history must be >= 1, got {history}")

        max_items = int(raw.get("max_mmr_proof_items", defaults.max_mmr_proof_items))
        if not 1 <= max_items <= 64:
            raise ValueError(f"max_mmr_proof_items must be in [1, 64], got {max_items}")

        return ConsensusPolicy(
            mmr_root_payload_id=payload_id,
            reject_stale_commitments=bool(
                raw.get("reject_stale_commitments", defaults.reject_stale_commitments)
            ),
            mmr_root_history=history,
            max_mmr_proof_items=max_items,
        )

    @staticmethod
    def _parse_multisig(raw: dict[str, Any]) -> MultisigPolicy:
        defaults = MultisigPolicy()
        policy = raw.get("peer_threshold_policy", defaults.peer_threshold_policy)
        if isinstance(policy, bool):
            raise ValueError("peer_threshold_policy cannot be a boolean")
        if isinstance(policy, int):
            if policy < 1:
                raise ValueError(f"Fixed peer threshold must be >= 1, got {policy}")
        elif policy not in PEER_THRESHOLD_POLICIES:
            raise ValueError(
                f"peer_threshold_policy must be an integer or one of "
                f"{PEER_THRESHOLD_POLICIES}, got {policy!r}"
            )

        min_peers = int(raw.get("min_peers", defaults.min_peers))
        max_peers = int(raw.get("max_peers", defaults.max_peers))
        if min_peers < 1:
            raise ValueError(f"min_peers must be >= 1, got {min_peers}")
        if max_peers < min_peers:
            raise ValueError(f"max_peers ({max_peers}) must be >= min_peers ({min_peers})")

        return MultisigPolicy(
            peer_threshold_policy=policy,
            min_peers=min_peers,
            max_peers=max_peers,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def consensus(self) -> ConsensusPolicy:
        return self._consensus

    def multisig(self) -> MultisigPolicy:
        return self._multisig

    def peer_threshold(self, peer_count: int) -> int:
        """Threshold for a peer set of the given size under the configured policy."""
        return peer_threshold(peer_count, self._multisig.peer_threshold_policy)

    def policy_version(self) -> str:
        return str(self._params.get("policy_version", "unversioned"))
