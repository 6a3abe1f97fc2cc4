"""Verifier registry — selects the verifier family a network is bound to.

A network is bound to exactly one family: the one it was initialized
with. The binding is derived from the trusted state itself, so it
survives a reload of the state store.
"""

from __future__ import annotations

from typing import Optional

from bridge_verifier.errors import ErrorKind, VerificationError
from bridge_verifier.models.network import NetworkId
from bridge_verifier.verifiers.base import Proof, VerificationFamily, VerificationOutcome, Verifier


class VerifierRegistry:
    """Registry of verifier engines keyed by family.

    Typical usage:

        registry = VerifierRegistry()
        registry.register(light_client)
        registry.register(multisig)
        registry.verify(network, proof)
    """

    def __init__(self) -> None:
        self._verifiers: dict[VerificationFamily, Verifier] = {}

    def register(self, verifier: Verifier) -> None:
        family = getattr(verifier, "family", None)
        if family is None:
            raise ValueError("Verifier must have a 'family' attribute.")
        self._verifiers[family] = verifier

    def get(self, family: VerificationFamily) -> Optional[Verifier]:
        return self._verifiers.get(family)

    def family_of(self, network: NetworkId) -> Optional[VerificationFamily]:
        """The family the network was initialized with, or None."""
        for family, verifier in self._verifiers.items():
            if verifier.is_initialized(network):
                return family
        return None

    def verify(self, network: NetworkId, proof: Proof) -> VerificationOutcome:
        """Dispatch a tagged proof to the network's verifier.

        Raises:
            VerificationError(PalletNotInitialized): network unknown to every family.
            VerificationError(WrongVerifierFamily): proof family does not
                match the network's family.
        """
        family = self.family_of(network)
        if family is None:
            raise VerificationError(ErrorKind.PALLET_NOT_INITIALIZED, network.key)
        if proof.family != family:
            raise VerificationError(
                ErrorKind.WRONG_VERIFIER_FAMILY,
                f"{network.key} is a {family.value} network, got a {proof.family.value} proof",
            )
        return self._verifiers[family].verify(network, proof)
