"""Verifier families — BEEFY light client and multisig peer-set verifier."""

from bridge_verifier.verifiers.beefy_light_client import BeefyLightClient
from bridge_verifier.verifiers.multisig import MultisigVerifier
from bridge_verifier.verifiers.registry import VerifierRegistry

__all__ = ["BeefyLightClient", "MultisigVerifier", "VerifierRegistry"]
