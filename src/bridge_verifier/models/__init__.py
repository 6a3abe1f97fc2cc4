"""Core data models for the bridge verifier."""

from bridge_verifier.models.beefy import (
    Commitment,
    MMRLeaf,
    Payload,
    SignedCommitment,
    SimplifiedMMRProof,
    ValidatorProof,
    ValidatorSet,
)
from bridge_verifier.models.network import NetworkId, NetworkKind

__all__ = [
    "Commitment",
    "MMRLeaf",
    "Payload",
    "SignedCommitment",
    "SimplifiedMMRProof",
    "ValidatorProof",
    "ValidatorSet",
    "NetworkId",
    "NetworkKind",
]
