"""Signer thresholds for BFT committees and peer sets."""

from __future__ import annotations


def max_faulty(n: int) -> int:
    """Byzantine faults tolerated by a committee of n: f = floor((n - 1) / 3)."""
    if n <= 0:
        return 0
    return (n - 1) // 3


def bft_threshold(n: int) -> int:
    """Minimum distinct valid signers for a committee of n.

    n - f - 1, floored at 1 so that a single-member committee still
    needs its one signature.
    """
    if n <= 0:
        return 0
    return max(1, n - max_faulty(n) - 1)


def peer_threshold(n: int, policy: str | int = "bft") -> int:
    """Threshold for a multisig peer set under a named or fixed policy.

    Policies:
        "bft"            : same formula as the consensus verifier
        "supermajority"  : n - f
        "all"            : every peer
        k (int)          : fixed k, capped at n
    """
    if n <= 0:
        return 0
    if isinstance(policy, int) and not isinstance(policy, bool):
        if policy < 1:
            raise ValueError(f"Fixed peer threshold must be >= 1, got {policy}")
        return min(policy, n)
    if policy == "bft":
        return bft_threshold(n)
    if policy == "supermajority":
        return n - max_faulty(n)
    if policy == "all":
        return n
    raise ValueError(f"Unknown peer threshold policy: {policy!r}")
