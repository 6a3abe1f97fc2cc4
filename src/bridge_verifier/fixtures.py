"""Deterministic BEEFY fixtures.

Builds a committee of secp256k1 validators, the Merkle commitment to
their addresses, an MMR containing the target leaf, and a commitment
signed by the chosen validators. Fixtures serialize to JSON in the
shape used by the remote chain's test fixtures (addresses, validator
sets, per-validator Merkle proofs, SCALE-encoded signed commitment and
leaf, simplified leaf proof).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from bridge_verifier.crypto.hashing import HASH_LENGTH, keccak, to_hash
from bridge_verifier.crypto.merkle import MerkleTree
from bridge_verifier.crypto.mmr import MerkleMountainRange
from bridge_verifier.crypto.signatures import address_of, sign_hash
from bridge_verifier.engine.bitfield import BitField
from bridge_verifier.models.beefy import (
    MMR_ROOT_ID,
    Commitment,
    MMRLeaf,
    Payload,
    SignedCommitment,
    SimplifiedMMRProof,
    ValidatorProof,
    ValidatorSet,
)
from bridge_verifier.models.network import NetworkId


def validator_key(set_id: int, index: int, namespace: bytes = b"bridge-verifier") -> bytes:
    """Deterministic private key for validator `index` of set `set_id`."""
    return keccak(namespace + b":validator:" + set_id.to_bytes(8, "big") + index.to_bytes(4, "big"))


def validator_set_for(
    set_id: int,
    size: int,
    namespace: bytes = b"bridge-verifier",
) -> tuple[ValidatorSet, list[bytes], MerkleTree]:
    """Build a validator set commitment; returns (set, addresses, tree)."""
    addresses = [address_of(validator_key(set_id, i, namespace)) for i in range(size)]
    tree = MerkleTree(addresses)
    root = tree.compute_root()
    return ValidatorSet(id=set_id, len=size, root=root), addresses, tree


@dataclass(frozen=True)
class BeefyFixture:
    addresses: tuple[bytes, ...]
    validator_set: ValidatorSet
    next_validator_set: ValidatorSet
    validator_set_proofs: tuple[tuple[bytes, ...], ...]
    signed_commitment: SignedCommitment
    leaf: MMRLeaf
    leaf_proof: SimplifiedMMRProof

    @property
    def commitment(self) -> Commitment:
        return self.signed_commitment.commitment

    def to_dict(self) -> dict[str, Any]:
        return {
            "addresses": ["0x" + a.hex() for a in self.addresses],
            "validator_set": self.validator_set.to_dict(),
            "next_validator_set": self.next_validator_set.to_dict(),
            "validator_set_proofs": [
                ["0x" + item.hex() for item in proof] for proof in self.validator_set_proofs
            ],
            "commitment": "0x" + self.signed_commitment.encode().hex(),
            "leaf_proof": self.leaf_proof.to_dict(),
            "leaf": "0x" + self.leaf.encode().hex(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BeefyFixture:
        return cls(
            addresses=tuple(bytes.fromhex(a.removeprefix("0x")) for a in data["addresses"]),
            validator_set=ValidatorSet.from_dict(data["validator_set"]),
            next_validator_set=ValidatorSet.from_dict(data["next_validator_set"]),
            validator_set_proofs=tuple(
                tuple(to_hash(item) for item in proof) for proof in data["validator_set_proofs"]
            ),
            signed_commitment=SignedCommitment.decode(
                bytes.fromhex(data["commitment"].removeprefix("0x"))
            ),
            leaf=MMRLeaf.decode(bytes.fromhex(data["leaf"].removeprefix("0x"))),
            leaf_proof=SimplifiedMMRProof.from_dict(data["leaf_proof"]),
        )

    def dump(self, path: Path) -> None:
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> BeefyFixture:
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))


def build_beefy_fixture(
    validators: int = 3,
    tree_size: int = 5,
    *,
    validator_set_id: int = 0,
    block_number: int = 10,
    signers: Optional[Iterable[int]] = None,
    leaf_next_set: Optional[ValidatorSet] = None,
    extra_payload: Iterable[tuple[bytes, bytes]] = (),
    namespace: bytes = b"bridge-verifier",
) -> BeefyFixture:
    """Build a fixture whose commitment is signed under `validator_set_id`.

    signers defaults to the whole committee. The target leaf is the last
    of `tree_size` leaves and announces `leaf_next_set` (default: the
    set following `validator_set_id`).
    """
    if tree_size < 1:
        raise ValueError("tree_size must be >= 1")
    vset, addresses, tree = validator_set_for(validator_set_id, validators, namespace)
    next_set, _, _ = validator_set_for(validator_set_id + 1, validators, namespace)
    announced = leaf_next_set or next_set

    leaf = MMRLeaf(
        version=0,
        parent_number=block_number - 1,
        parent_hash=keccak(b"parent" + block_number.to_bytes(4, "big")),
        next_validator_set=announced,
        leaf_extra=b"\x00" * HASH_LENGTH,
    )
    mmr = MerkleMountainRange()
    for i in range(tree_size - 1):
        mmr.append(keccak(b"leaf" + i.to_bytes(8, "big")))
    leaf_index = mmr.append(leaf.hash())

    payload = Payload.from_single_entry(MMR_ROOT_ID, mmr.root())
    for entry_id, value in extra_payload:
        payload = payload.push_raw(entry_id, value)
    commitment = Commitment(
        payload=payload, block_number=block_number, validator_set_id=validator_set_id,
    )

    signing = set(range(validators) if signers is None else signers)
    commitment_hash = commitment.hash()
    signatures = tuple(
        sign_hash(validator_key(validator_set_id, i, namespace), commitment_hash) if i in signing else None
        for i in range(validators)
    )

    proofs = tuple(tree.inclusion_proof(i).siblings for i in range(validators))
    return BeefyFixture(
        addresses=tuple(addresses),
        validator_set=vset,
        next_validator_set=next_set,
        validator_set_proofs=proofs,
        signed_commitment=SignedCommitment(commitment=commitment, signatures=signatures),
        leaf=leaf,
        leaf_proof=mmr.simplified_proof(leaf_index),
    )


def claims_bitfield(fixture: BeefyFixture, count: Optional[int] = None) -> BitField:
    """Claim the first `count` validators that actually signed."""
    signed = [i for i, sig in enumerate(fixture.signed_commitment.signatures) if sig is not None]
    if count is not None:
        signed = signed[:count]
    return BitField.create_bitfield(signed, len(fixture.signed_commitment.signatures))


def validator_proof_for(
    fixture: BeefyFixture,
    claimed: BitField,
    selected: BitField,
) -> ValidatorProof:
    """Assemble the evidence for the selected positions."""
    positions: list[int] = []
    signatures: list[bytes] = []
    public_keys: list[bytes] = []
    merkle_proofs: list[list[bytes]] = []
    for i in selected.set_indices():
        signature = fixture.signed_commitment.signatures[i]
        if signature is None:
            raise ValueError(f"Validator {i} did not sign the fixture commitment")
        positions.append(i)
        signatures.append(signature)
        public_keys.append(fixture.addresses[i])
        merkle_proofs.append(list(fixture.validator_set_proofs[i]))
    return ValidatorProof(
        signatures=signatures,
        positions=positions,
        public_keys=public_keys,
        public_key_merkle_proofs=merkle_proofs,
        validator_claims_bitfield=claimed,
    )


def make_validator_proof(
    fixture: BeefyFixture,
    selector: Any,
    network: NetworkId,
    count: Optional[int] = None,
) -> ValidatorProof:
    """Claim signers, ask `selector` for the random subset and build the proof.

    `selector` is anything exposing create_random_bitfield(network,
    claimed, committee_len): the light client or the service.
    """
    claimed = claims_bitfield(fixture, count)
    selected = selector.create_random_bitfield(network, claimed, len(claimed))
    return validator_proof_for(fixture, claimed, selected)
