"""Tests for the multisig peer-set verifier — proves threshold and peer-rotation rules."""

import pytest
from eth_keys import keys

from bridge_verifier.crypto.hashing import keccak
from bridge_verifier.crypto.signatures import compressed_key_of, sign_hash
from bridge_verifier.errors import ErrorKind, VerificationError
from bridge_verifier.models.network import NetworkId
from bridge_verifier.persistence.event_log import EventKind
from bridge_verifier.persistence.state_store import StateStore
from bridge_verifier.policy.resolver import PolicyResolver
from bridge_verifier.verifiers.base import MultisigProof
from bridge_verifier.verifiers.multisig import MultisigVerifier


NETWORK = NetworkId.evm(1)
MESSAGE = keccak(b"outbound message")
PRIVATE_KEYS = [keccak(b"peer" + bytes([i])) for i in range(5)]
PUBLIC_KEYS = [compressed_key_of(key) for key in PRIVATE_KEYS]


def _verifier(peers: int = 3, resolver: PolicyResolver | None = None) -> MultisigVerifier:
    verifier = MultisigVerifier(StateStore(), resolver)
    verifier.initialize(NETWORK, PUBLIC_KEYS[:peers])
    return verifier


def _signatures(*indices: int, message: bytes = MESSAGE) -> list[bytes]:
    return [sign_hash(PRIVATE_KEYS[i], message) for i in indices]


def _kind(exc_info: pytest.ExceptionInfo) -> ErrorKind:
    return exc_info.value.kind


class TestInitialization:
    def test_initialize(self) -> None:
        verifier = MultisigVerifier(StateStore())
        outcome = verifier.initialize(NETWORK, PUBLIC_KEYS[:3])
        assert verifier.peers(NETWORK) == frozenset(PUBLIC_KEYS[:3])
        assert verifier.threshold(NETWORK) == 2
        assert outcome.events[0][0] == EventKind.NETWORK_INITIALIZED

    def test_uncompressed_keys_are_normalized(self) -> None:
        verifier = MultisigVerifier(StateStore())
        uncompressed = keys.PrivateKey(PRIVATE_KEYS[0]).public_key.to_bytes()
        verifier.initialize(NETWORK, [uncompressed, PUBLIC_KEYS[0]])
        assert verifier.peers(NETWORK) == frozenset({PUBLIC_KEYS[0]})

    def test_empty_peer_set_rejected(self) -> None:
        verifier = MultisigVerifier(StateStore())
        with pytest.raises(VerificationError) as exc_info:
            verifier.initialize(NETWORK, [])
        assert _kind(exc_info) == ErrorKind.EMPTY_PEER_SET

    def test_initialize_twice_rejected(self) -> None:
        verifier = _verifier()
        with pytest.raises(VerificationError) as exc_info:
            verifier.initialize(NETWORK, PUBLIC_KEYS[:3])
        assert _kind(exc_info) == ErrorKind.ALREADY_INITIALIZED

    def test_too_many_peers(self) -> None:
        resolver = PolicyResolver({"multisig": {"max_peers": 2}})
        verifier = MultisigVerifier(StateStore(), resolver)
        with pytest.raises(VerificationError) as exc_info:
            verifier.initialize(NETWORK, PUBLIC_KEYS[:3])
        assert _kind(exc_info) == ErrorKind.TOO_MANY_PEERS

    def test_invalid_key_rejected(self) -> None:
        verifier = MultisigVerifier(StateStore())
        with pytest.raises(ValueError):
            verifier.initialize(NETWORK, [b"\x02" * 10])


class TestVerifySignatures:
    def test_threshold_met(self) -> None:
        verifier = _verifier()
        outcome = verifier.verify_signatures(NETWORK, MESSAGE, _signatures(0, 2))
        assert outcome.data["threshold"] == 2
        assert len(outcome.data["signers"]) == 2
        kind, payload = outcome.events[0]
        assert kind == EventKind.MESSAGE_VERIFIED
        assert payload["message_hash"] == "0x" + MESSAGE.hex()

    def test_one_signature_is_not_enough(self) -> None:
        verifier = _verifier()
        with pytest.raises(VerificationError) as exc_info:
            verifier.verify_signatures(NETWORK, MESSAGE, _signatures(1))
        assert _kind(exc_info) == ErrorKind.NOT_ENOUGH_SIGNATURES

    def test_duplicate_signatures_count_once(self) -> None:
        verifier = _verifier()
        with pytest.raises(VerificationError) as exc_info:
            verifier.verify_signatures(NETWORK, MESSAGE, _signatures(0, 0, 0))
        assert _kind(exc_info) == ErrorKind.NOT_ENOUGH_SIGNATURES

    def test_non_peer_signatures_discarded(self) -> None:
        verifier = _verifier()
        with pytest.raises(VerificationError) as exc_info:
            verifier.verify_signatures(NETWORK, MESSAGE, _signatures(0, 3, 4))
        assert _kind(exc_info) == ErrorKind.NOT_ENOUGH_SIGNATURES

    def test_malformed_signatures_discarded(self) -> None:
        verifier = _verifier()
        signatures = _signatures(0, 1) + [b"\x00" * 65, b"short"]
        outcome = verifier.verify_signatures(NETWORK, MESSAGE, signatures)
        assert len(outcome.data["signers"]) == 2

    def test_signature_over_other_message(self) -> None:
        verifier = _verifier()
        signatures = _signatures(0) + _signatures(1, message=keccak(b"other"))
        with pytest.raises(VerificationError) as exc_info:
            verifier.verify_signatures(NETWORK, MESSAGE, signatures)
        assert _kind(exc_info) == ErrorKind.NOT_ENOUGH_SIGNATURES

    def test_single_peer_set(self) -> None:
        verifier = _verifier(peers=1)
        assert verifier.threshold(NETWORK) == 1
        verifier.verify_signatures(NETWORK, MESSAGE, _signatures(0))
        with pytest.raises(VerificationError):
            verifier.verify_signatures(NETWORK, MESSAGE, [])

    def test_message_must_be_hash(self) -> None:
        verifier = _verifier()
        with pytest.raises(VerificationError) as exc_info:
            verifier.verify_signatures(NETWORK, b"not a hash", _signatures(0, 1))
        assert _kind(exc_info) == ErrorKind.INVALID_INPUT

    def test_unknown_network(self) -> None:
        verifier = _verifier()
        with pytest.raises(VerificationError) as exc_info:
            verifier.verify_signatures(NetworkId.evm(2), MESSAGE, _signatures(0, 1))
        assert _kind(exc_info) == ErrorKind.PALLET_NOT_INITIALIZED

    def test_verify_dispatches_multisig_proof(self) -> None:
        verifier = _verifier()
        outcome = verifier.verify(NETWORK, MultisigProof(MESSAGE, tuple(_signatures(1, 2))))
        assert outcome.family == verifier.family

    def test_supermajority_policy(self) -> None:
        resolver = PolicyResolver({"multisig": {"peer_threshold_policy": "supermajority"}})
        verifier = _verifier(peers=3, resolver=resolver)
        with pytest.raises(VerificationError):
            verifier.verify_signatures(NETWORK, MESSAGE, _signatures(0, 1))
        verifier.verify_signatures(NETWORK, MESSAGE, _signatures(0, 1, 2))


class TestPeerRotation:
    def test_add_peer(self) -> None:
        verifier = _verifier()
        outcome = verifier.add_peer(NETWORK, PUBLIC_KEYS[3])
        assert PUBLIC_KEYS[3] in verifier.peers(NETWORK)
        assert outcome.events[0][0] == EventKind.PEER_ADDED
        assert verifier.threshold(NETWORK) == 2  # bft_threshold(4)

    def test_add_existing_peer(self) -> None:
        verifier = _verifier()
        with pytest.raises(VerificationError) as exc_info:
            verifier.add_peer(NETWORK, PUBLIC_KEYS[0])
        assert _kind(exc_info) == ErrorKind.PEER_ALREADY_EXISTS

    def test_add_beyond_cap(self) -> None:
        resolver = PolicyResolver({"multisig": {"max_peers": 3}})
        verifier = _verifier(resolver=resolver)
        with pytest.raises(VerificationError) as exc_info:
            verifier.add_peer(NETWORK, PUBLIC_KEYS[3])
        assert _kind(exc_info) == ErrorKind.TOO_MANY_PEERS

    def test_add_to_unknown_network(self) -> None:
        verifier = MultisigVerifier(StateStore())
        with pytest.raises(VerificationError) as exc_info:
            verifier.add_peer(NETWORK, PUBLIC_KEYS[0])
        assert _kind(exc_info) == ErrorKind.PALLET_NOT_INITIALIZED

    def test_remove_peer(self) -> None:
        verifier = _verifier(peers=4)
        outcome = verifier.remove_peer(NETWORK, PUBLIC_KEYS[3])
        assert PUBLIC_KEYS[3] not in verifier.peers(NETWORK)
        assert outcome.events[0][0] == EventKind.PEER_REMOVED

    def test_removed_peer_no_longer_counts(self) -> None:
        verifier = _verifier(peers=4)
        verifier.remove_peer(NETWORK, PUBLIC_KEYS[3])
        with pytest.raises(VerificationError):
            verifier.verify_signatures(NETWORK, MESSAGE, _signatures(0, 3))

    def test_remove_unknown_peer(self) -> None:
        verifier = _verifier()
        with pytest.raises(VerificationError) as exc_info:
            verifier.remove_peer(NETWORK, PUBLIC_KEYS[4])
        assert _kind(exc_info) == ErrorKind.PEER_NOT_FOUND

    def test_remove_below_threshold(self) -> None:
        verifier = _verifier(peers=2)
        # threshold(2) == 1, so one removal is allowed...
        verifier.remove_peer(NETWORK, PUBLIC_KEYS[1])
        # ...but the last peer can never be removed.
        with pytest.raises(VerificationError) as exc_info:
            verifier.remove_peer(NETWORK, PUBLIC_KEYS[0])
        assert _kind(exc_info) == ErrorKind.CANNOT_REMOVE_BELOW_THRESHOLD
        assert verifier.peers(NETWORK) == frozenset({PUBLIC_KEYS[0]})

    def test_remove_respects_min_peers(self) -> None:
        resolver = PolicyResolver({"multisig": {"min_peers": 3}})
        verifier = _verifier(peers=3, resolver=resolver)
        with pytest.raises(VerificationError) as exc_info:
            verifier.remove_peer(NETWORK, PUBLIC_KEYS[0])
        assert _kind(exc_info) == ErrorKind.CANNOT_REMOVE_BELOW_THRESHOLD

    def test_remove_under_all_policy(self) -> None:
        resolver = PolicyResolver({"multisig": {"peer_threshold_policy": "all"}})
        verifier = _verifier(peers=3, resolver=resolver)
        with pytest.raises(VerificationError) as exc_info:
            verifier.remove_peer(NETWORK, PUBLIC_KEYS[0])
        assert _kind(exc_info) == ErrorKind.CANNOT_REMOVE_BELOW_THRESHOLD
