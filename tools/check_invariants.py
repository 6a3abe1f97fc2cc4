#!/usr/bin/env python3
"""Bridge verifier invariant checks against the executable policy artifact."""

import json
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from bridge_verifier.engine.threshold import bft_threshold, max_faulty, peer_threshold

DEFAULT_CONFIG = ROOT / "config"
POLICY_FILENAME = "verifier_policy.json"
HARD_MAX_PEERS = 100
MMR_ORDER_BITS = 64


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_consensus(consensus: dict, errors: list[str]) -> None:
    """The light client must be bound to the remote chain's payload layout."""
    payload_id = consensus.get("mmr_root_payload_id")
    if payload_id != "mh":
        errors.append(f"mmr_root_payload_id must be 'mh', got {payload_id!r}")
    if consensus.get("reject_stale_commitments") is not True:
        errors.append("reject_stale_commitments must be true (replay protection)")

    history = consensus.get("mmr_root_history", 0)
    if not isinstance(history, int) or history < 1:
        errors.append(f"mmr_root_history must be an integer >= 1, got {history!r}")

    max_items = consensus.get("max_mmr_proof_items", 0)
    if not isinstance(max_items, int) or not 1 <= max_items <= MMR_ORDER_BITS:
        errors.append(
            f"max_mmr_proof_items must be in [1, {MMR_ORDER_BITS}], got {max_items!r}"
        )

    # The BFT threshold must always exceed the tolerated faults.
    for n in range(1, 1000):
        threshold = bft_threshold(n)
        if threshold > n or threshold <= max_faulty(n):
            errors.append(f"bft_threshold({n}) = {threshold} outside ({max_faulty(n)}, {n}]")
            break


def check_multisig(multisig: dict, errors: list[str]) -> None:
    """A configured peer set must always be able to reach its threshold."""
    min_peers = multisig.get("min_peers", 0)
    max_peers = multisig.get("max_peers", 0)
    if not isinstance(min_peers, int) or min_peers < 1:
        errors.append(f"min_peers must be an integer >= 1, got {min_peers!r}")
        return
    if not isinstance(max_peers, int) or max_peers < min_peers:
        errors.append(f"max_peers must be an integer >= min_peers, got {max_peers!r}")
        return
    if max_peers > HARD_MAX_PEERS:
        errors.append(f"max_peers must be <= {HARD_MAX_PEERS}, got {max_peers}")

    policy = multisig.get("peer_threshold_policy", "bft")
    if isinstance(policy, bool):
        errors.append("peer_threshold_policy cannot be a boolean")
        return
    if isinstance(policy, int) and policy > min_peers:
        errors.append(
            f"Fixed peer threshold {policy} cannot be reached by a set of min_peers={min_peers}"
        )
    for n in range(min_peers, max_peers + 1):
        try:
            threshold = peer_threshold(n, policy)
        except ValueError as exc:
            errors.append(str(exc))
            return
        if not 1 <= threshold <= n:
            errors.append(f"peer threshold for {n} peers must be in [1, {n}], got {threshold}")
            return


def check(config_dir: Path = DEFAULT_CONFIG) -> int:
    policy = load_json(Path(config_dir) / POLICY_FILENAME)
    errors: list[str] = []

    if not policy.get("policy_version"):
        errors.append("policy_version must be set")
    check_consensus(policy.get("consensus", {}), errors)
    check_multisig(policy.get("multisig", {}), errors)

    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"- {err}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(check(Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_CONFIG))
