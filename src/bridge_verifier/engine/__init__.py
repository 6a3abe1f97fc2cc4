"""Verification engine helpers — bitfields, thresholds and randomized subset selection."""

from bridge_verifier.engine.bitfield import BitField
from bridge_verifier.engine.sampling import BlockRandomness, FixedRandomness, select_random_subset
from bridge_verifier.engine.threshold import bft_threshold, peer_threshold

__all__ = [
    "BitField",
    "BlockRandomness",
    "FixedRandomness",
    "select_random_subset",
    "bft_threshold",
    "peer_threshold",
]
