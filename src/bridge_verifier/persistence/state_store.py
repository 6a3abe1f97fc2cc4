"""Per-network trusted state, keyed by NetworkId.

Holds the light-client state (current and next validator sets, latest
verified block, recent MMR roots) and the multisig peer sets. Values
are immutable snapshots: a verifier reads a snapshot at the start of a
call, builds the successor only once every check has passed, and writes
it with a single put. Nothing is ever deleted.

With a storage path, the whole store is rewritten atomically (temp file
then replace) on every put and reloaded on construction. A put takes
effect in memory only after the file has been replaced.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from bridge_verifier.crypto.hashing import to_hash
from bridge_verifier.models.beefy import ValidatorSet
from bridge_verifier.models.network import NetworkId


@dataclass(frozen=True)
class LightClientState:
    """Trusted BEEFY state for one network. Invariant: next.id == current.id + 1."""
    current: ValidatorSet
    next: ValidatorSet
    latest_beefy_block: int
    mmr_roots: tuple[bytes, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current.to_dict(),
            "next": self.next.to_dict(),
            "latest_beefy_block": self.latest_beefy_block,
            "mmr_roots": ["0x" + root.hex() for root in self.mmr_roots],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LightClientState:
        return cls(
            current=ValidatorSet.from_dict(data["current"]),
            next=ValidatorSet.from_dict(data["next"]),
            latest_beefy_block=int(data["latest_beefy_block"]),
            mmr_roots=tuple(to_hash(root) for root in data.get("mmr_roots", [])),
        )


class StateStore:
    """Key-value store of verifier state with optional JSON persistence."""

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = storage_path
        self._light_clients: dict[str, LightClientState] = {}
        self._peer_sets: dict[str, frozenset[bytes]] = {}

        if storage_path and storage_path.exists():
            self._load(storage_path)

    # ------------------------------------------------------------------
    # Light client state
    # ------------------------------------------------------------------

    def get_light_client(self, network: NetworkId) -> Optional[LightClientState]:
        return self._light_clients.get(network.key)

    def put_light_client(self, network: NetworkId, state: LightClientState) -> None:
        light_clients = {**self._light_clients, network.key: state}
        self._save(light_clients, self._peer_sets)
        self._light_clients = light_clients

    # ------------------------------------------------------------------
    # Peer sets
    # ------------------------------------------------------------------

    def get_peer_set(self, network: NetworkId) -> Optional[frozenset[bytes]]:
        return self._peer_sets.get(network.key)

    def put_peer_set(self, network: NetworkId, peers: frozenset[bytes]) -> None:
        peer_sets = {**self._peer_sets, network.key: frozenset(peers)}
        self._save(self._light_clients, peer_sets)
        self._peer_sets = peer_sets

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def light_client_networks(self) -> list[NetworkId]:
        return [NetworkId.parse(key) for key in sorted(self._light_clients)]

    def peer_set_networks(self) -> list[NetworkId]:
        return [NetworkId.parse(key) for key in sorted(self._peer_sets)]

    def snapshot(self) -> dict[str, Any]:
        """Serializable view of the whole store."""
        return self._serialize(self._light_clients, self._peer_sets)

    @staticmethod
    def _serialize(
        light_clients: dict[str, LightClientState],
        peer_sets: dict[str, frozenset[bytes]],
    ) -> dict[str, Any]:
        return {
            "light_clients": {
                key: state.to_dict() for key, state in sorted(light_clients.items())
            },
            "peer_sets": {
                key: sorted("0x" + peer.hex() for peer in peers)
                for key, peers in sorted(peer_sets.items())
            },
        }

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _save(
        self,
        light_clients: dict[str, LightClientState],
        peer_sets: dict[str, frozenset[bytes]],
    ) -> None:
        """Write the candidate contents; the caller adopts them only if this returns."""
        if not self._storage_path:
            return
        tmp_path = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(self._serialize(light_clients, peer_sets), f, sort_keys=True, indent=2)
        os.replace(tmp_path, self._storage_path)

    def _load(self, path: Path) -> None:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        for key, raw in data.get("light_clients", {}).items():
            self._light_clients[NetworkId.parse(key).key] = LightClientState.from_dict(raw)
        for key, peers in data.get("peer_sets", {}).items():
            self._peer_sets[NetworkId.parse(key).key] = frozenset(
                bytes.fromhex(peer.removeprefix("0x")) for peer in peers
            )
