"""Bridge verifier service — unified facade over both verifier families.

This is the primary interface for programmatic access. It:
- Evaluates the injected authorization predicate before every mutating
  entry point (initialize, add/remove peer).
- Binds each network to one verifier family and dispatches proofs.
- Converts engine rejections into failed ServiceResults carrying the
  single rejection kind.
- Appends the events of every accepted operation to the event log.

Rejected operations never change trusted state and never log events.
Concurrent submissions for the same network must be serialized by the
caller; different networks are independent.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from bridge_verifier.engine.bitfield import BitField
from bridge_verifier.engine.sampling import RandomnessSource
from bridge_verifier.errors import ErrorKind, VerificationError
from bridge_verifier.models.beefy import (
    Commitment,
    MMRLeaf,
    SimplifiedMMRProof,
    ValidatorProof,
    ValidatorSet,
)
from bridge_verifier.models.network import NetworkId
from bridge_verifier.persistence.event_log import EventLog, EventRecord
from bridge_verifier.persistence.state_store import StateStore
from bridge_verifier.policy.resolver import PolicyResolver
from bridge_verifier.verifiers.base import (
    ConsensusProof,
    MultisigProof,
    Proof,
    VerificationFamily,
    VerificationOutcome,
)
from bridge_verifier.verifiers.beefy_light_client import BeefyLightClient
from bridge_verifier.verifiers.multisig import MultisigVerifier
from bridge_verifier.verifiers.registry import VerifierRegistry

logger = logging.getLogger(__name__)

ROOT_ORIGIN = "root"


class Action(str, enum.Enum):
    """Privileged operations gated by the authorization predicate."""
    INITIALIZE_CONSENSUS = "initialize_consensus"
    INITIALIZE_PEERS = "initialize_peers"
    ADD_PEER = "add_peer"
    REMOVE_PEER = "remove_peer"


AuthorizationPredicate = Callable[[str, Action], bool]


def root_only(origin: str, action: Action) -> bool:
    """Default predicate: only the root origin may mutate verifier state."""
    return origin == ROOT_ORIGIN


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class VerifierService:
    """Facade over the BEEFY light client and the multisig verifier.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = VerifierService(resolver, randomness)

        service.initialize_consensus("root", network, 0, current_set, next_set)
        result = service.submit_signature_commitment(
            network, commitment, validator_proof, leaf, leaf_proof,
        )

        service.initialize_peers("root", evm_network, [key_a, key_b, key_c])
        result = service.verify_message(evm_network, message_hash, signatures)

    Persistence (optional):
        service = VerifierService(resolver, randomness,
                                  state_store=store, event_log=log)
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        randomness: RandomnessSource,
        *,
        state_store: Optional[StateStore] = None,
        event_log: Optional[EventLog] = None,
        authorize: AuthorizationPredicate = root_only,
    ) -> None:
        self._resolver = resolver
        self._store = state_store or StateStore()
        self._event_log = event_log or EventLog()
        self._authorize = authorize

        self._light_client = BeefyLightClient(self._store, randomness, resolver.consensus())
        self._multisig = MultisigVerifier(self._store, resolver)
        self._registry = VerifierRegistry()
        self._registry.register(self._light_client)
        self._registry.register(self._multisig)

    # ------------------------------------------------------------------
    # Consensus-proof verifier
    # ------------------------------------------------------------------

    def initialize_consensus(
        self,
        origin: str,
        network: NetworkId,
        start_block: int,
        current: ValidatorSet,
        next_set: ValidatorSet,
    ) -> ServiceResult:
        return self._run(
            "initialize_consensus",
            network,
            lambda: self._light_client.initialize(network, start_block, current, next_set),
            origin=origin,
            action=Action.INITIALIZE_CONSENSUS,
            family=VerificationFamily.CONSENSUS,
        )

    def submit_signature_commitment(
        self,
        network: NetworkId,
        commitment: Commitment,
        validator_proof: ValidatorProof,
        leaf: MMRLeaf,
        leaf_proof: SimplifiedMMRProof,
    ) -> ServiceResult:
        return self.verify(
            network, ConsensusProof(commitment, validator_proof, leaf, leaf_proof),
        )

    def create_random_bitfield(
        self,
        network: NetworkId,
        claimed: BitField,
        committee_len: int,
    ) -> BitField:
        """Positions a submitter must prove for the current seed."""
        return self._light_client.create_random_bitfield(network, claimed, committee_len)

    # ------------------------------------------------------------------
    # Multisig verifier
    # ------------------------------------------------------------------

    def initialize_peers(
        self,
        origin: str,
        network: NetworkId,
        peers: Iterable[bytes],
    ) -> ServiceResult:
        peer_list = list(peers)
        return self._run(
            "initialize_peers",
            network,
            lambda: self._multisig.initialize(network, peer_list),
            origin=origin,
            action=Action.INITIALIZE_PEERS,
            family=VerificationFamily.MULTISIG,
        )

    def add_peer(self, origin: str, network: NetworkId, key: bytes) -> ServiceResult:
        return self._run(
            "add_peer",
            network,
            lambda: self._multisig.add_peer(network, key),
            origin=origin,
            action=Action.ADD_PEER,
        )

    def remove_peer(self, origin: str, network: NetworkId, key: bytes) -> ServiceResult:
        return self._run(
            "remove_peer",
            network,
            lambda: self._multisig.remove_peer(network, key),
            origin=origin,
            action=Action.REMOVE_PEER,
        )

    def verify_message(
        self,
        network: NetworkId,
        message: bytes,
        signatures: Iterable[bytes],
    ) -> ServiceResult:
        return self.verify(network, MultisigProof(bytes(message), tuple(signatures)))

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def verify(self, network: NetworkId, proof: Proof) -> ServiceResult:
        """Verify a tagged proof with the verifier the network is bound to."""
        return self._run(
            f"verify_{proof.family.value}",
            network,
            lambda: self._registry.verify(network, proof),
        )

    def family_of(self, network: NetworkId) -> Optional[VerificationFamily]:
        return self._registry.family_of(network)

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    @property
    def light_client(self) -> BeefyLightClient:
        return self._light_client

    @property
    def multisig(self) -> MultisigVerifier:
        return self._multisig

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def state_store(self) -> StateStore:
        return self._store

    def status(self) -> dict[str, Any]:
        """Summary of trusted state for every initialized network."""
        light_clients = {}
        for network in self._store.light_client_networks():
            state = self._store.get_light_client(network)
            light_clients[network.key] = {
                "current": state.current.to_dict(),
                "next": state.next.to_dict(),
                "latest_beefy_block": state.latest_beefy_block,
                "known_mmr_roots": len(state.mmr_roots),
            }
        peer_sets = {}
        for network in self._store.peer_set_networks():
            peer_sets[network.key] = {
                "peers": len(self._multisig.peers(network)),
                "threshold": self._multisig.threshold(network),
            }
        return {
            "policy_version": self._resolver.policy_version(),
            "light_clients": light_clients,
            "peer_sets": peer_sets,
            "events": self._event_log.count,
        }

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        network: NetworkId,
        call: Callable[[], VerificationOutcome],
        *,
        origin: Optional[str] = None,
        action: Optional[Action] = None,
        family: Optional[VerificationFamily] = None,
    ) -> ServiceResult:
        try:
            if action is not None and not self._authorize(origin or "", action):
                raise VerificationError(ErrorKind.BAD_ORIGIN, f"{origin!r} may not {action.value}")
            if family is not None:
                bound = self._registry.family_of(network)
                if bound is not None and bound != family:
                    raise VerificationError(
                        ErrorKind.ALREADY_INITIALIZED,
                        f"{network.key} is already a {bound.value} network",
                    )
            outcome = call()
        except VerificationError as exc:
            logger.warning("%s rejected on %s: %s", operation, network.key, exc)
            return self._failure(exc.kind, exc.detail)
        except ValueError as exc:
            logger.warning("%s rejected malformed input on %s: %s", operation, network.key, exc)
            return self._failure(ErrorKind.INVALID_INPUT, str(exc))
        except OSError as exc:
            logger.error("%s could not persist state for %s: %s", operation, network.key, exc)
            return self._failure(ErrorKind.PERSISTENCE_FAILURE, str(exc))

        for kind, payload in outcome.events:
            self._event_log.append(EventRecord.create(kind, network.key, payload))
            logger.info("%s on %s: %s", kind.value, network.key, payload)
        logger.debug("%s accepted on %s", operation, network.key)
        return ServiceResult(success=True, data=dict(outcome.data))

    @staticmethod
    def _failure(kind: ErrorKind, detail: str) -> ServiceResult:
        return ServiceResult(
            success=False,
            errors=[kind.value],
            data={"error": kind.value, "detail": detail},
        )
