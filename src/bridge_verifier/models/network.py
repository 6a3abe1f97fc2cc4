"""Network identifiers.

All trusted state and every submission is partitioned by NetworkId.
A NetworkId has a canonical string key ("sub:mainnet", "evm:1") used
by the state store and the event log, and canonical bytes used for
seed derivation.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class NetworkKind(str, enum.Enum):
    SUB = "sub"
    EVM = "evm"
    EVM_LEGACY = "evm_legacy"


SUB_NETWORKS = ("mainnet", "kusama", "polkadot", "rococo", "alphanet", "liberland")


@dataclass(frozen=True)
class NetworkId:
    """Opaque identifier of a remote chain or network."""
    kind: NetworkKind
    value: str

    def __post_init__(self) -> None:
        if self.kind == NetworkKind.SUB:
            if self.value not in SUB_NETWORKS:
                raise ValueError(
                    f"Unknown sub-network '{self.value}', expected one of {SUB_NETWORKS}"
                )
        elif not self.value.isdigit():
            raise ValueError(f"EVM chain id must be a decimal integer, got {self.value!r}")

    @classmethod
    def sub(cls, name: str) -> NetworkId:
        return cls(NetworkKind.SUB, name.lower())

    @classmethod
    def evm(cls, chain_id: int) -> NetworkId:
        return cls(NetworkKind.EVM, str(chain_id))

    @classmethod
    def parse(cls, key: str) -> NetworkId:
        """Parse a canonical key such as 'sub:mainnet' or 'evm:1'."""
        kind, sep, value = key.partition(":")
        if not sep or not value:
            raise ValueError(f"Malformed network key: {key!r}")
        return cls(NetworkKind(kind), value.lower())

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.value}"

    def encode(self) -> bytes:
        return self.key.encode("utf-8")

    def __str__(self) -> str:
        return self.key
