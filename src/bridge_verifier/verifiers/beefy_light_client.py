"""BEEFY light client — consensus-proof verifier and validator-set rotation.

Per network the client is Uninitialized until initialize() stores a
trusted (current, next) validator-set pair; afterwards it stays
Initialized and rotates the pair in place on accepted submissions.

A submission is accepted only if, in order:
  1. the network is initialized;
  2. the commitment is signed under the current or the next set id;
  3. the commitment is newer than the latest verified block (policy);
  4. the claims bitfield covers the committee and claims at least the
     threshold number of signers;
  5. the four evidence sequences have exactly threshold entries;
  6. every entry sits on a distinct position of the randomly selected
     subset, its signature recovers to its address, and the address is
     authenticated at that position against the set's Merkle root;
  7. the payload carries an MMR root and the leaf is proven under it.

Only then is the successor state built and written once. Every
rejection raises VerificationError and leaves the store untouched.
"""

from __future__ import annotations

from typing import Optional

from bridge_verifier.crypto.hashing import HASH_LENGTH
from bridge_verifier.crypto.merkle import verify_merkle_leaf_at_position
from bridge_verifier.crypto.mmr import verify_mmr_leaf
from bridge_verifier.crypto.signatures import recover_address
from bridge_verifier.engine.bitfield import BitField
from bridge_verifier.engine.sampling import RandomnessSource, select_random_subset
from bridge_verifier.engine.threshold import bft_threshold
from bridge_verifier.errors import ErrorKind, VerificationError
from bridge_verifier.models.beefy import (
    Commitment,
    MMRLeaf,
    SimplifiedMMRProof,
    ValidatorProof,
    ValidatorSet,
)
from bridge_verifier.models.network import NetworkId
from bridge_verifier.persistence.event_log import EventKind
from bridge_verifier.persistence.state_store import LightClientState, StateStore
from bridge_verifier.policy.resolver import ConsensusPolicy
from bridge_verifier.verifiers.base import (
    ConsensusProof,
    Proof,
    VerificationFamily,
    VerificationOutcome,
    Verifier,
)


class BeefyLightClient(Verifier):
    """Verifies BEEFY signed commitments and MMR leaves.

    Usage:
        client = BeefyLightClient(store, randomness)
        client.initialize(network, start_block, current_set, next_set)
        bitfield = client.create_random_bitfield(network, claimed, len(claimed))
        # ... build the ValidatorProof for the selected positions ...
        outcome = client.submit_signature_commitment(
            network, commitment, validator_proof, leaf, leaf_proof,
        )
    """

    family = VerificationFamily.CONSENSUS

    def __init__(
        self,
        store: StateStore,
        randomness: RandomnessSource,
        policy: Optional[ConsensusPolicy] = None,
    ) -> None:
        self._store = store
        self._randomness = randomness
        self._policy = policy or ConsensusPolicy()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def is_initialized(self, network: NetworkId) -> bool:
        return self._store.get_light_client(network) is not None

    def initialize(
        self,
        network: NetworkId,
        start_block: int,
        current: ValidatorSet,
        next_set: ValidatorSet,
    ) -> VerificationOutcome:
        """Install the trusted genesis validator sets for a network.

        The caller must have checked the invoker's privilege.
        """
        if self.is_initialized(network):
            raise VerificationError(ErrorKind.ALREADY_INITIALIZED, network.key)
        if next_set.id != current.id + 1:
            raise VerificationError(
                ErrorKind.INVALID_VALIDATOR_SET_ID,
                f"next set id {next_set.id} must be current id {current.id} + 1",
            )
        if current.len == 0 or next_set.len == 0:
            raise VerificationError(
                ErrorKind.INVALID_VALIDATOR_SET_ID,
                f"validator sets must be non-empty (current {current.len}, next {next_set.len})",
            )

        self._store.put_light_client(
            network,
            LightClientState(current=current, next=next_set, latest_beefy_block=start_block),
        )
        return VerificationOutcome(
            family=self.family,
            network=network,
            events=((EventKind.NETWORK_INITIALIZED, {"network": network.key}),),
            data={"current_id": current.id, "next_id": next_set.id, "start_block": start_block},
        )

    # ------------------------------------------------------------------
    # Subset selection
    # ------------------------------------------------------------------

    def create_random_bitfield(
        self,
        network: NetworkId,
        claimed: BitField,
        committee_len: int,
    ) -> BitField:
        """Derive the subset of claimed positions that must be proven.

        Deterministic for a given seed, so a submitter learns the subset
        once the seed for its submission is fixed, and the verifier
        recomputes the same subset.
        """
        return select_random_subset(
            self._randomness.seed(network),
            claimed,
            committee_len,
            bft_threshold(committee_len),
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def verify(self, network: NetworkId, proof: Proof) -> VerificationOutcome:
        if not isinstance(proof, ConsensusProof):
            raise VerificationError(
                ErrorKind.WRONG_VERIFIER_FAMILY,
                f"{type(proof).__name__} submitted to the consensus verifier",
            )
        return self.submit_signature_commitment(
            network, proof.commitment, proof.validator_proof, proof.leaf, proof.leaf_proof,
        )

    def submit_signature_commitment(
        self,
        network: NetworkId,
        commitment: Commitment,
        validator_proof: ValidatorProof,
        leaf: MMRLeaf,
        leaf_proof: SimplifiedMMRProof,
    ) -> VerificationOutcome:
        state = self._store.get_light_client(network)
        if state is None:
            raise VerificationError(ErrorKind.PALLET_NOT_INITIALIZED, network.key)

        if commitment.validator_set_id == state.current.id:
            vset = state.current
        elif commitment.validator_set_id == state.next.id:
            vset = state.next
        else:
            raise VerificationError(
                ErrorKind.INVALID_VALIDATOR_SET_ID,
                f"{commitment.validator_set_id} is neither current ({state.current.id}) "
                f"nor next ({state.next.id})",
            )

        if (
            self._policy.reject_stale_commitments
            and commitment.block_number <= state.latest_beefy_block
        ):
            raise VerificationError(
                ErrorKind.PAYLOAD_BLOCKNUMBER_TOO_OLD,
                f"block {commitment.block_number} <= latest {state.latest_beefy_block}",
            )

        self._verify_commitment(network, commitment, validator_proof, vset)
        mmr_root = self._extract_mmr_root(commitment)

        if len(leaf_proof.merkle_proof_items) > self._policy.max_mmr_proof_items:
            raise VerificationError(
                ErrorKind.INVALID_MMR_LEAF_PROOF,
                f"{len(leaf_proof.merkle_proof_items)} proof items exceed "
                f"{self._policy.max_mmr_proof_items}",
            )
        if not verify_mmr_leaf(mmr_root, leaf.encode(), leaf_proof):
            raise VerificationError(ErrorKind.INVALID_MMR_LEAF_PROOF)

        current, next_set = state.current, state.next
        rotated = False
        if (
            commitment.validator_set_id == state.current.id
            and leaf.next_validator_set != state.next
        ):
            if leaf.next_validator_set.len == 0:
                raise VerificationError(
                    ErrorKind.INVALID_NEXT_VALIDATOR_SET,
                    f"leaf announces an empty set {leaf.next_validator_set.id}",
                )
            if leaf.next_validator_set.id != state.next.id + 1:
                raise VerificationError(
                    ErrorKind.INVALID_NEXT_VALIDATOR_SET,
                    f"leaf announces set {leaf.next_validator_set.id}, "
                    f"expected {state.next.id + 1}",
                )
            current, next_set = state.next, leaf.next_validator_set
            rotated = True

        roots = (state.mmr_roots + (mmr_root,))[-self._policy.mmr_root_history:]
        self._store.put_light_client(
            network,
            LightClientState(
                current=current,
                next=next_set,
                latest_beefy_block=commitment.block_number,
                mmr_roots=roots,
            ),
        )

        events = [
            (
                EventKind.VERIFICATION_SUCCESSFUL,
                {"network": network.key, "block_number": commitment.block_number},
            ),
            (
                EventKind.NEW_MMR_ROOT,
                {
                    "network": network.key,
                    "root": "0x" + mmr_root.hex(),
                    "block_number": commitment.block_number,
                },
            ),
        ]
        if rotated:
            events.append((
                EventKind.VALIDATOR_SET_ROTATED,
                {"network": network.key, "current_id": current.id, "next_id": next_set.id},
            ))

        return VerificationOutcome(
            family=self.family,
            network=network,
            events=tuple(events),
            data={
                "block_number": commitment.block_number,
                "mmr_root": "0x" + mmr_root.hex(),
                "rotated": rotated,
                "current_id": current.id,
                "next_id": next_set.id,
            },
        )

    def _verify_commitment(
        self,
        network: NetworkId,
        commitment: Commitment,
        proof: ValidatorProof,
        vset: ValidatorSet,
    ) -> None:
        if vset.len == 0:
            raise VerificationError(
                ErrorKind.INVALID_VALIDATOR_SET_ID, f"validator set {vset.id} is empty",
            )
        claimed = proof.validator_claims_bitfield
        if len(claimed) != vset.len:
            raise VerificationError(
                ErrorKind.VALIDATOR_SET_INCORRECT_POSITION,
                f"claims bitfield covers {len(claimed)} validators, set has {vset.len}",
            )

        threshold = bft_threshold(vset.len)
        if claimed.count_set_bits() < threshold:
            raise VerificationError(
                ErrorKind.NOT_ENOUGH_VALIDATOR_SIGNATURES,
                f"{claimed.count_set_bits()} claimed, {threshold} required",
            )

        selected = self.create_random_bitfield(network, claimed, vset.len)

        if len(proof.positions) != threshold:
            raise VerificationError(ErrorKind.INVALID_NUMBER_OF_POSITIONS)
        if len(proof.signatures) != threshold:
            raise VerificationError(ErrorKind.INVALID_NUMBER_OF_SIGNATURES)
        if len(proof.public_keys) != threshold:
            raise VerificationError(ErrorKind.INVALID_NUMBER_OF_PUBLIC_KEYS)
        if len(proof.public_key_merkle_proofs) != threshold:
            raise VerificationError(ErrorKind.INVALID_NUMBER_OF_PUBLIC_KEYS)

        commitment_hash = commitment.hash()
        remaining = selected.copy()
        for i, position in enumerate(proof.positions):
            if not 0 <= position < vset.len or not selected.is_set(position):
                raise VerificationError(
                    ErrorKind.VALIDATOR_SET_INCORRECT_POSITION,
                    f"position {position} is not in the selected subset",
                )
            if not remaining.is_set(position):
                raise VerificationError(
                    ErrorKind.VALIDATOR_NOT_ONCE_IN_BITFIELD,
                    f"position {position} used more than once",
                )
            remaining.clear(position)

            public_key = bytes(proof.public_keys[i])
            signer = recover_address(commitment_hash, proof.signatures[i])
            if signer is None or signer != public_key:
                raise VerificationError(
                    ErrorKind.INVALID_SIGNATURE, f"signature {i} at position {position}",
                )

            if not verify_merkle_leaf_at_position(
                vset.root,
                public_key,
                position,
                proof.public_key_merkle_proofs[i],
                width=vset.len,
            ):
                raise VerificationError(
                    ErrorKind.INVALID_VALIDATOR_SET_MERKLE_PROOF,
                    f"public key at position {position}",
                )

    def _extract_mmr_root(self, commitment: Commitment) -> bytes:
        raw = commitment.payload.get_raw(self._policy.mmr_root_payload_id)
        if raw is None or len(raw) != HASH_LENGTH:
            raise VerificationError(ErrorKind.MMR_PAYLOAD_NOT_FOUND)
        return raw

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def _require_state(self, network: NetworkId) -> LightClientState:
        state = self._store.get_light_client(network)
        if state is None:
            raise VerificationError(ErrorKind.PALLET_NOT_INITIALIZED, network.key)
        return state

    def current_validator_set(self, network: NetworkId) -> ValidatorSet:
        return self._require_state(network).current

    def next_validator_set(self, network: NetworkId) -> ValidatorSet:
        return self._require_state(network).next

    def latest_beefy_block(self, network: NetworkId) -> int:
        return self._require_state(network).latest_beefy_block

    def latest_mmr_roots(self, network: NetworkId) -> list[bytes]:
        return list(self._require_state(network).mmr_roots)

    def is_known_mmr_root(self, network: NetworkId, root: bytes) -> bool:
        state = self._store.get_light_client(network)
        return state is not None and root in state.mmr_roots
