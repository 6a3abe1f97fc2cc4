"""Common interface for the verifier families.

Both engines answer the same question: given a network's trusted state
and a proof, accept or reject, and optionally advance that state. The
proof types are tagged by family so the service can dispatch on them.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Union

from bridge_verifier.models.beefy import Commitment, MMRLeaf, SimplifiedMMRProof, ValidatorProof
from bridge_verifier.models.network import NetworkId
from bridge_verifier.persistence.event_log import EventKind


class VerificationFamily(str, enum.Enum):
    CONSENSUS = "consensus"
    MULTISIG = "multisig"


@dataclass(frozen=True)
class ConsensusProof:
    """A BEEFY commitment with its validator and MMR evidence."""
    commitment: Commitment
    validator_proof: ValidatorProof
    leaf: MMRLeaf
    leaf_proof: SimplifiedMMRProof

    family = VerificationFamily.CONSENSUS


@dataclass(frozen=True)
class MultisigProof:
    """A message hash with signatures from peers."""
    message: bytes
    signatures: tuple[bytes, ...]

    family = VerificationFamily.MULTISIG


Proof = Union[ConsensusProof, MultisigProof]


@dataclass(frozen=True)
class VerificationOutcome:
    """Successful verification result.

    events holds (kind, payload) pairs the service appends to the
    event log; data carries the values reported back to the caller.
    """
    family: VerificationFamily
    network: NetworkId
    events: tuple[tuple[EventKind, dict[str, Any]], ...] = ()
    data: dict[str, Any] = field(default_factory=dict)


class Verifier(ABC):
    """A verifier family bound to a state store."""

    family: VerificationFamily

    @abstractmethod
    def is_initialized(self, network: NetworkId) -> bool:
        raise NotImplementedError

    @abstractmethod
    def verify(self, network: NetworkId, proof: Proof) -> VerificationOutcome:
        """Validate a proof for a network.

        Raises VerificationError on rejection; trusted state is then
        left untouched.
        """
        raise NotImplementedError
