"""Bridge verifier CLI — command-line interface for the verifier service.

Usage:
    python -m bridge_verifier.cli status
    python -m bridge_verifier.cli check-policy
    python -m bridge_verifier.cli init-consensus --network sub:mainnet --fixture fixtures/beefy-3-5.json
    python -m bridge_verifier.cli submit-fixture --network sub:mainnet --fixture fixtures/beefy-3-5.json
    python -m bridge_verifier.cli init-peers --network evm:1 --key 0x02... --key 0x03...
    python -m bridge_verifier.cli verify-message --network evm:1 --message 0x... --signature 0x...
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from bridge_verifier.crypto.hashing import HASH_LENGTH
from bridge_verifier.engine.sampling import FixedRandomness
from bridge_verifier.errors import VerificationError
from bridge_verifier.fixtures import BeefyFixture, make_validator_proof
from bridge_verifier.models.network import NetworkId
from bridge_verifier.persistence.event_log import EventLog
from bridge_verifier.persistence.state_store import StateStore
from bridge_verifier.policy.resolver import PolicyResolver
from bridge_verifier.service import ROOT_ORIGIN, ServiceResult, VerifierService

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"
DEFAULT_DATA = Path(__file__).resolve().parents[2] / "data"


def _hex_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value.removeprefix("0x"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a hex string: {value!r}") from exc


def _network(value: str) -> NetworkId:
    try:
        return NetworkId.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _make_service(args: argparse.Namespace) -> VerifierService:
    """Create a VerifierService with durable persistence."""
    data_dir: Path = args.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    resolver = PolicyResolver.from_config_dir(args.config)
    seed = getattr(args, "seed", None)
    randomness = FixedRandomness(seed) if seed is not None else FixedRandomness()
    return VerifierService(
        resolver,
        randomness,
        event_log=EventLog(storage_path=data_dir / "events.jsonl"),
        state_store=StateStore(storage_path=data_dir / "state.json"),
    )


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    detail = result.data.get("detail")
    suffix = f" ({detail})" if detail else ""
    print(f"Failed: {'; '.join(result.errors)}{suffix}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_check_policy(args: argparse.Namespace) -> int:
    """Load the policy and run the invariant checks over it."""
    try:
        PolicyResolver.from_config_dir(args.config)
    except (OSError, ValueError) as exc:
        print(f"Failed: {exc}", file=sys.stderr)
        return 1
    tools_dir = Path(__file__).resolve().parents[2] / "tools"
    sys.path.insert(0, str(tools_dir))
    from check_invariants import check
    return check(args.config)


def cmd_init_consensus(args: argparse.Namespace) -> int:
    fixture = BeefyFixture.load(args.fixture)
    service = _make_service(args)
    result = service.initialize_consensus(
        args.origin,
        args.network,
        args.start_block,
        fixture.validator_set,
        fixture.next_validator_set,
    )
    return _report(result)


def cmd_submit_fixture(args: argparse.Namespace) -> int:
    fixture = BeefyFixture.load(args.fixture)
    service = _make_service(args)
    try:
        validator_proof = make_validator_proof(
            fixture, service, args.network, count=args.signers,
        )
    except (ValueError, VerificationError) as exc:
        print(f"Failed: {exc}", file=sys.stderr)
        return 1
    result = service.submit_signature_commitment(
        args.network,
        fixture.commitment,
        validator_proof,
        fixture.leaf,
        fixture.leaf_proof,
    )
    return _report(result)


def cmd_init_peers(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.initialize_peers(args.origin, args.network, args.key))


def cmd_add_peer(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.add_peer(args.origin, args.network, args.key))


def cmd_remove_peer(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.remove_peer(args.origin, args.network, args.key))


def cmd_verify_message(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _report(service.verify_message(args.network, args.message, args.signature))


def _seed(value: str) -> bytes:
    seed = _hex_bytes(value)
    if len(seed) != HASH_LENGTH:
        raise argparse.ArgumentTypeError(f"seed must be {HASH_LENGTH} bytes")
    return seed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bridge-verifier",
        description="Bridge verifier — BEEFY light client and multisig peer-set CLI",
    )
    parser.add_argument(
        "--config", type=Path, default=DEFAULT_CONFIG,
        help="Config directory (default: %(default)s)",
    )
    parser.add_argument(
        "--data-dir", type=Path, default=DEFAULT_DATA,
        help="Directory for state.json and events.jsonl (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--origin", default=ROOT_ORIGIN,
        help="Origin invoking privileged commands (default: root)",
    )

    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show trusted state for every network")

    # check-policy
    sub.add_parser("check-policy", help="Validate config/verifier_policy.json")

    # init-consensus
    p_init = sub.add_parser("init-consensus", help="Initialize a BEEFY light client")
    p_init.add_argument("--network", required=True, type=_network, help="e.g. sub:mainnet")
    p_init.add_argument("--fixture", required=True, type=Path, help="Fixture JSON file")
    p_init.add_argument("--start-block", type=int, default=0, help="Latest trusted block")

    # submit-fixture
    p_submit = sub.add_parser("submit-fixture", help="Submit a fixture's signed commitment")
    p_submit.add_argument("--network", required=True, type=_network, help="e.g. sub:mainnet")
    p_submit.add_argument("--fixture", required=True, type=Path, help="Fixture JSON file")
    p_submit.add_argument("--signers", type=int, help="Claim only the first N signers")
    p_submit.add_argument("--seed", type=_seed, help="32-byte hex subset-selection seed")

    # init-peers
    p_peers = sub.add_parser("init-peers", help="Initialize a multisig peer set")
    p_peers.add_argument("--network", required=True, type=_network, help="e.g. evm:1")
    p_peers.add_argument(
        "--key", required=True, action="append", type=_hex_bytes,
        help="secp256k1 public key (repeatable)",
    )

    # add-peer / remove-peer
    for name, help_text in (("add-peer", "Add a peer"), ("remove-peer", "Remove a peer")):
        p_peer = sub.add_parser(name, help=help_text)
        p_peer.add_argument("--network", required=True, type=_network, help="e.g. evm:1")
        p_peer.add_argument("--key", required=True, type=_hex_bytes, help="secp256k1 public key")

    # verify-message
    p_verify = sub.add_parser("verify-message", help="Verify a peer-signed message hash")
    p_verify.add_argument("--network", required=True, type=_network, help="e.g. evm:1")
    p_verify.add_argument("--message", required=True, type=_hex_bytes, help="32-byte hash")
    p_verify.add_argument(
        "--signature", required=True, action="append", type=_hex_bytes,
        help="65-byte signature (repeatable)",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "check-policy": cmd_check_policy,
        "init-consensus": cmd_init_consensus,
        "submit-fixture": cmd_submit_fixture,
        "init-peers": cmd_init_peers,
        "add-peer": cmd_add_peer,
        "remove-peer": cmd_remove_peer,
        "verify-message": cmd_verify_message,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    logger.debug("Running %s", args.command)
    return handler(args)


def run() -> None:
    """Console-script entry point."""
    raise SystemExit(main())


if __name__ == "__main__":
    run()
