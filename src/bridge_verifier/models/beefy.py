"""BEEFY commitment, leaf and proof models.

Committee membership is never stored in full: a ValidatorSet only
carries the Merkle root over the ordered validator addresses, which is
why every verified signature travels with its own authentication path.

Commitment and MMRLeaf encode to SCALE so their keccak-256 hashes match
the values signed and committed on the remote chain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from bridge_verifier.crypto.hashing import HASH_LENGTH, keccak, to_hash
from bridge_verifier.crypto.scale import (
    ScaleReader,
    encode_bytes,
    encode_compact,
    encode_u8,
    encode_u32,
    encode_u64,
)
from bridge_verifier.engine.bitfield import BitField

# Well-known payload id under which the MMR root is committed.
MMR_ROOT_ID = b"mh"

SIGNATURE_LENGTH = 65
ADDRESS_LENGTH = 20


@dataclass(frozen=True)
class ValidatorSet:
    """Commitment to an ordered committee: generation id, size and Merkle root."""
    id: int
    len: int
    root: bytes

    def __post_init__(self) -> None:
        if self.id < 0 or self.len < 0:
            raise ValueError("ValidatorSet id and len must be non-negative")
        if len(self.root) != HASH_LENGTH:
            raise ValueError(f"ValidatorSet root must be {HASH_LENGTH} bytes")

    def encode(self) -> bytes:
        return encode_u64(self.id) + encode_u32(self.len) + self.root

    @classmethod
    def read(cls, reader: ScaleReader) -> ValidatorSet:
        return cls(id=reader.u64(), len=reader.u32(), root=reader.take(HASH_LENGTH))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "len": self.len, "root": "0x" + self.root.hex()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidatorSet:
        return cls(id=int(data["id"]), len=int(data["len"]), root=to_hash(data["root"]))


@dataclass(frozen=True)
class Payload:
    """Ordered mapping of 2-byte payload ids to raw values, sorted by id."""
    entries: tuple[tuple[bytes, bytes], ...] = ()

    def __post_init__(self) -> None:
        ids = [entry_id for entry_id, _ in self.entries]
        for entry_id in ids:
            if len(entry_id) != 2:
                raise ValueError(f"Payload ids are 2 bytes, got {entry_id!r}")
        if len(set(ids)) != len(ids):
            raise ValueError("Duplicate payload id")
        object.__setattr__(self, "entries", tuple(sorted(self.entries)))

    @classmethod
    def from_single_entry(cls, entry_id: bytes, value: bytes) -> Payload:
        return cls(((bytes(entry_id), bytes(value)),))

    def push_raw(self, entry_id: bytes, value: bytes) -> Payload:
        """Return a new payload with one more entry."""
        return Payload(self.entries + ((bytes(entry_id), bytes(value)),))

    def get_raw(self, entry_id: bytes) -> Optional[bytes]:
        for key, value in self.entries:
            if key == entry_id:
                return value
        return None

    def encode(self) -> bytes:
        out = encode_compact(len(self.entries))
        for entry_id, value in self.entries:
            out += entry_id + encode_bytes(value)
        return out

    @classmethod
    def read(cls, reader: ScaleReader) -> Payload:
        count = reader.compact()
        return cls(tuple((reader.take(2), reader.vec_bytes()) for _ in range(count)))


@dataclass(frozen=True)
class Commitment:
    """The object hashed and multi-signed by the current validator set."""
    payload: Payload
    block_number: int
    validator_set_id: int

    def encode(self) -> bytes:
        return (
            self.payload.encode()
            + encode_u32(self.block_number)
            + encode_u64(self.validator_set_id)
        )

    def hash(self) -> bytes:
        return keccak(self.encode())

    @classmethod
    def read(cls, reader: ScaleReader) -> Commitment:
        payload = Payload.read(reader)
        return cls(payload=payload, block_number=reader.u32(), validator_set_id=reader.u64())

    @classmethod
    def decode(cls, data: bytes) -> Commitment:
        reader = ScaleReader(data)
        commitment = cls.read(reader)
        reader.finish()
        return commitment


@dataclass(frozen=True)
class SignedCommitment:
    """A commitment with one optional signature slot per committee index."""
    commitment: Commitment
    signatures: tuple[Optional[bytes], ...]

    def encode(self) -> bytes:
        out = self.commitment.encode() + encode_compact(len(self.signatures))
        for signature in self.signatures:
            out += encode_u8(0) if signature is None else encode_u8(1) + signature
        return out

    @classmethod
    def decode(cls, data: bytes) -> SignedCommitment:
        reader = ScaleReader(data)
        commitment = Commitment.read(reader)
        count = reader.compact()
        signatures = tuple(
            reader.take(SIGNATURE_LENGTH) if reader.option() else None
            for _ in range(count)
        )
        reader.finish()
        return cls(commitment=commitment, signatures=signatures)


@dataclass(frozen=True)
class MMRLeaf:
    """Application payload leaf committed into the MMR.

    Carries the next validator-set commitment that becomes trusted once
    the current set hands off.
    """
    version: int
    parent_number: int
    parent_hash: bytes
    next_validator_set: ValidatorSet
    leaf_extra: bytes

    def encode(self) -> bytes:
        return (
            encode_u8(self.version)
            + encode_u32(self.parent_number)
            + self.parent_hash
            + self.next_validator_set.encode()
            + self.leaf_extra
        )

    def hash(self) -> bytes:
        return keccak(self.encode())

    @classmethod
    def decode(cls, data: bytes) -> MMRLeaf:
        reader = ScaleReader(data)
        leaf = cls(
            version=reader.u8(),
            parent_number=reader.u32(),
            parent_hash=reader.take(HASH_LENGTH),
            next_validator_set=ValidatorSet.read(reader),
            leaf_extra=reader.take(HASH_LENGTH),
        )
        reader.finish()
        return leaf


@dataclass(frozen=True)
class SimplifiedMMRProof:
    """Sibling path from a leaf to the bagged MMR root.

    Bit i of merkle_proof_order_bit_field is set when item i is the
    left operand of the hash at step i.
    """
    merkle_proof_items: tuple[bytes, ...]
    merkle_proof_order_bit_field: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "order": self.merkle_proof_order_bit_field,
            "items": ["0x" + item.hex() for item in self.merkle_proof_items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimplifiedMMRProof:
        return cls(
            merkle_proof_items=tuple(to_hash(item) for item in data["items"]),
            merkle_proof_order_bit_field=int(data["order"]),
        )


@dataclass
class ValidatorProof:
    """Evidence for the randomly selected subset of claimed signers.

    The four sequences are index-aligned; validator_claims_bitfield is
    the full claim over the committee.
    """
    signatures: list[bytes]
    positions: list[int]
    public_keys: list[bytes]
    public_key_merkle_proofs: list[list[bytes]]
    validator_claims_bitfield: BitField = field(default_factory=lambda: BitField(0))
