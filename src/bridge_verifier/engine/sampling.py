"""Randomized subset selection over claimed signers.

Verifying every claimed signature is too expensive, and verifying a
fixed subset would let a submitter forge exactly that subset. The
subset is therefore drawn from a seed the submitter could not know when
collecting signatures: the randomness of the block the submission lands
in. Any later verifier re-running the same call with the same seed gets
the same subset.

Seed source substitution: off-chain there is no block randomness, so
the host must supply an unpredictable but reproducible value per
submission (a beacon round, VRF output, or the hash of the block the
submission is included in) through a RandomnessSource.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from bridge_verifier.crypto.hashing import HASH_LENGTH, keccak
from bridge_verifier.engine.bitfield import BitField
from bridge_verifier.errors import ErrorKind, VerificationError
from bridge_verifier.models.network import NetworkId

SEED_DOMAIN_TAG = b"bridge-verifier:seed:v1"


class RandomnessSource(ABC):
    """Supplies the per-network seed for subset selection."""

    @abstractmethod
    def seed(self, network: NetworkId) -> bytes:
        """Return a 32-byte seed for a submission on this network."""
        raise NotImplementedError


class FixedRandomness(RandomnessSource):
    """A constant seed supplied by the caller (tests, tooling, the CLI --seed option)."""

    def __init__(self, seed: bytes = b"\x00" * HASH_LENGTH) -> None:
        if len(seed) != HASH_LENGTH:
            raise ValueError(f"Seed must be {HASH_LENGTH} bytes")
        self._seed = bytes(seed)

    def seed(self, network: NetworkId) -> bytes:
        return self._seed


class BlockRandomness(RandomnessSource):
    """Seed bound to the block a submission lands in.

    The host calls set_block() before dispatching the block's
    submissions; the seed mixes the network so different networks draw
    independent subsets from the same block.
    """

    def __init__(self) -> None:
        self._block_number: Optional[int] = None
        self._block_hash: Optional[bytes] = None

    def set_block(self, block_number: int, block_hash: bytes) -> None:
        if len(block_hash) != HASH_LENGTH:
            raise ValueError(f"Block hash must be {HASH_LENGTH} bytes")
        self._block_number = block_number
        self._block_hash = bytes(block_hash)

    def seed(self, network: NetworkId) -> bytes:
        if self._block_number is None or self._block_hash is None:
            raise RuntimeError("No block set; call set_block() before submitting.")
        return keccak(
            SEED_DOMAIN_TAG
            + network.encode()
            + self._block_number.to_bytes(8, "big")
            + self._block_hash
        )


def select_random_subset(
    seed: bytes,
    claimed: BitField,
    committee_len: int,
    threshold: int,
) -> BitField:
    """Draw `threshold` distinct claimed indices from a seed.

    Draw i hashes seed || u32_be(i); the index is that hash modulo the
    committee length. Unclaimed and already chosen indices are skipped.
    Pure and deterministic in (seed, claimed, committee_len, threshold).

    Raises:
        VerificationError(NotEnoughValidatorSignatures): fewer than
            `threshold` bits are claimed.
        ValueError: claimed length differs from committee_len.
    """
    if len(claimed) != committee_len:
        raise ValueError(
            f"Claimed bitfield length {len(claimed)} != committee size {committee_len}"
        )
    claimed_count = claimed.count_set_bits()
    if claimed_count < threshold:
        raise VerificationError(
            ErrorKind.NOT_ENOUGH_VALIDATOR_SIGNATURES,
            f"{claimed_count} claimed, {threshold} required",
        )

    selected = BitField(committee_len)
    found = 0
    draw = 0
    while found < threshold:
        randomness = keccak(seed + draw.to_bytes(4, "big"))
        draw += 1
        index = int.from_bytes(randomness, "big") % committee_len
        if not claimed.is_set(index) or selected.is_set(index):
            continue
        selected.set(index)
        found += 1
    return selected
