#!/usr/bin/env python3
"""Generate a BEEFY fixture for light-client tests and the CLI.

Builds a deterministic committee, an MMR of `tree_size` leaves whose last
leaf announces the next validator set, and a commitment to the MMR root
signed by every validator. The result is written as
fixtures/beefy-<validators>-<tree_size>.json.

Usage:
    python3 tools/generate_fixture.py
    python3 tools/generate_fixture.py 10 128

Optional settings in a .env file at the project root:
    FIXTURE_VALIDATORS      committee size (default 3)
    FIXTURE_TREE_SIZE       MMR leaf count (default 5)
    FIXTURE_BLOCK_NUMBER    commitment block number (default 10)
    FIXTURE_KEY_NAMESPACE   namespace for the deterministic validator keys
    FIXTURE_OUTPUT_DIR      output directory (default fixtures/)
"""

import os
import sys
from pathlib import Path

# Add src to path for bridge_verifier imports
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from dotenv import load_dotenv
from bridge_verifier.engine.threshold import bft_threshold
from bridge_verifier.fixtures import build_beefy_fixture


def main(argv: list[str]) -> int:
    load_dotenv(ROOT / ".env")

    validators = int(argv[0]) if argv else int(os.getenv("FIXTURE_VALIDATORS", "3"))
    tree_size = int(argv[1]) if len(argv) > 1 else int(os.getenv("FIXTURE_TREE_SIZE", "5"))
    block_number = int(os.getenv("FIXTURE_BLOCK_NUMBER", "10"))
    namespace = os.getenv("FIXTURE_KEY_NAMESPACE", "bridge-verifier").encode("utf-8")
    output_dir = Path(os.getenv("FIXTURE_OUTPUT_DIR", str(ROOT / "fixtures")))

    if validators < 1 or tree_size < 1:
        print("ERROR: validators and tree_size must both be >= 1")
        return 1

    print("=" * 60)
    print("BEEFY FIXTURE")
    print("=" * 60)
    print(f"  Validators:     {validators} (threshold {bft_threshold(validators)})")
    print(f"  MMR leaves:     {tree_size}")
    print(f"  Block number:   {block_number}")
    print()

    fixture = build_beefy_fixture(
        validators,
        tree_size,
        block_number=block_number,
        namespace=namespace,
    )

    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"beefy-{validators}-{tree_size}.json"
    fixture.dump(path)

    print(f"  Set root:       0x{fixture.validator_set.root.hex()}")
    print(f"  Commitment:     0x{fixture.commitment.hash().hex()}")
    print(f"  Proof items:    {len(fixture.leaf_proof.merkle_proof_items)}")
    print(f"  Written:        {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
