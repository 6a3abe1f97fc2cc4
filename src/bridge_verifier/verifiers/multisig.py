"""Multisig peer-set verifier.

Used for networks without a native finality gadget: a maintained set of
fixed secp256k1 keys attests messages, and a message is accepted when
enough distinct peers signed its hash. Peer keys are stored compressed
(33 bytes); order is irrelevant and uniqueness is enforced.

Peer rotation (add/remove) is governance-controlled: the caller checks
the invoker's privilege before calling the mutating methods.
"""

from __future__ import annotations

from typing import Iterable, Optional

from bridge_verifier.crypto.hashing import HASH_LENGTH
from bridge_verifier.crypto.signatures import normalize_public_key, recover_compressed_key
from bridge_verifier.errors import ErrorKind, VerificationError
from bridge_verifier.models.network import NetworkId
from bridge_verifier.persistence.event_log import EventKind
from bridge_verifier.persistence.state_store import StateStore
from bridge_verifier.policy.resolver import PolicyResolver
from bridge_verifier.verifiers.base import (
    MultisigProof,
    Proof,
    VerificationFamily,
    VerificationOutcome,
    Verifier,
)


def _hex(key: bytes) -> str:
    return "0x" + key.hex()


class MultisigVerifier(Verifier):
    """Threshold verification against a per-network peer set.

    Usage:
        verifier = MultisigVerifier(store, resolver)
        verifier.initialize(network, [key_a, key_b, key_c])
        verifier.verify_signatures(network, message_hash, [sig_a, sig_b])
    """

    family = VerificationFamily.MULTISIG

    def __init__(self, store: StateStore, resolver: Optional[PolicyResolver] = None) -> None:
        self._store = store
        self._resolver = resolver or PolicyResolver.default()

    # ------------------------------------------------------------------
    # Peer-set management
    # ------------------------------------------------------------------

    def is_initialized(self, network: NetworkId) -> bool:
        return self._store.get_peer_set(network) is not None

    def initialize(self, network: NetworkId, peers: Iterable[bytes]) -> VerificationOutcome:
        if self.is_initialized(network):
            raise VerificationError(ErrorKind.ALREADY_INITIALIZED, network.key)

        peer_set = frozenset(normalize_public_key(key) for key in peers)
        if not peer_set:
            raise VerificationError(ErrorKind.EMPTY_PEER_SET)
        max_peers = self._resolver.multisig().max_peers
        if len(peer_set) > max_peers:
            raise VerificationError(
                ErrorKind.TOO_MANY_PEERS, f"{len(peer_set)} peers exceed {max_peers}",
            )

        self._store.put_peer_set(network, peer_set)
        return VerificationOutcome(
            family=self.family,
            network=network,
            events=((EventKind.NETWORK_INITIALIZED, {"network": network.key}),),
            data={"peers": len(peer_set), "threshold": self._resolver.peer_threshold(len(peer_set))},
        )

    def add_peer(self, network: NetworkId, key: bytes) -> VerificationOutcome:
        peers = self._require_peers(network)
        key = normalize_public_key(key)
        if key in peers:
            raise VerificationError(ErrorKind.PEER_ALREADY_EXISTS, _hex(key))
        max_peers = self._resolver.multisig().max_peers
        if len(peers) + 1 > max_peers:
            raise VerificationError(ErrorKind.TOO_MANY_PEERS, f"cap is {max_peers}")

        updated = peers | {key}
        self._store.put_peer_set(network, updated)
        return VerificationOutcome(
            family=self.family,
            network=network,
            events=((EventKind.PEER_ADDED, {"network": network.key, "key": _hex(key)}),),
            data={"peers": len(updated), "threshold": self._resolver.peer_threshold(len(updated))},
        )

    def remove_peer(self, network: NetworkId, key: bytes) -> VerificationOutcome:
        """Remove a peer unless the remaining set could no longer reach threshold.

        The remaining set must hold at least max(min_peers, threshold of
        the current set) keys.
        """
        peers = self._require_peers(network)
        key = normalize_public_key(key)
        if key not in peers:
            raise VerificationError(ErrorKind.PEER_NOT_FOUND, _hex(key))

        remaining = len(peers) - 1
        floor = max(self._resolver.multisig().min_peers, self._resolver.peer_threshold(len(peers)))
        if remaining < floor:
            raise VerificationError(
                ErrorKind.CANNOT_REMOVE_BELOW_THRESHOLD,
                f"{remaining} peers would remain, at least {floor} required",
            )

        updated = peers - {key}
        self._store.put_peer_set(network, updated)
        return VerificationOutcome(
            family=self.family,
            network=network,
            events=((EventKind.PEER_REMOVED, {"network": network.key, "key": _hex(key)}),),
            data={"peers": len(updated), "threshold": self._resolver.peer_threshold(len(updated))},
        )

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(self, network: NetworkId, proof: Proof) -> VerificationOutcome:
        if not isinstance(proof, MultisigProof):
            raise VerificationError(
                ErrorKind.WRONG_VERIFIER_FAMILY,
                f"{type(proof).__name__} submitted to the multisig verifier",
            )
        return self.verify_signatures(network, proof.message, proof.signatures)

    def verify_signatures(
        self,
        network: NetworkId,
        message: bytes,
        signatures: Iterable[bytes],
    ) -> VerificationOutcome:
        """Accept a 32-byte message hash signed by at least threshold distinct peers.

        Unrecoverable signatures, signers outside the peer set and
        repeated signers are discarded before counting.
        """
        peers = self._require_peers(network)
        if len(message) != HASH_LENGTH:
            raise VerificationError(
                ErrorKind.INVALID_INPUT,
                f"message must be a {HASH_LENGTH}-byte hash, got {len(message)}",
            )

        signers: set[bytes] = set()
        for signature in signatures:
            signer = recover_compressed_key(message, signature)
            if signer is not None and signer in peers:
                signers.add(signer)

        threshold = self._resolver.peer_threshold(len(peers))
        if len(signers) < threshold:
            raise VerificationError(
                ErrorKind.NOT_ENOUGH_SIGNATURES,
                f"{len(signers)} valid distinct signers, {threshold} required",
            )

        signer_list = sorted(_hex(signer) for signer in signers)
        return VerificationOutcome(
            family=self.family,
            network=network,
            events=((
                EventKind.MESSAGE_VERIFIED,
                {"network": network.key, "message_hash": _hex(message), "signers": signer_list},
            ),),
            data={"signers": signer_list, "threshold": threshold},
        )

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def peers(self, network: NetworkId) -> frozenset[bytes]:
        return self._require_peers(network)

    def threshold(self, network: NetworkId) -> int:
        return self._resolver.peer_threshold(len(self._require_peers(network)))

    def _require_peers(self, network: NetworkId) -> frozenset[bytes]:
        peers = self._store.get_peer_set(network)
        if peers is None:
            raise VerificationError(ErrorKind.PALLET_NOT_INITIALIZED, network.key)
        return peers
