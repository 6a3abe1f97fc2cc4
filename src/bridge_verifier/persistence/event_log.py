"""Append-only event log — notifications for every accepted state change.

Verifiers report what they changed as (EventKind, payload) pairs; the
service stamps each pair into an EventRecord and appends it here.
Rejected submissions never reach the log.

Persistence is a JSONL file written one record per line. On load every
record's hash is recomputed, so an edited payload or a replayed line
stops the log from opening at all.
"""

from __future__ import annotations

import enum
import hashlib
import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
HASH_PREFIX = "sha256:"


class EventKind(str, enum.Enum):
    """Observable outcomes emitted by the verifiers."""
    NETWORK_INITIALIZED = "network_initialized"
    VERIFICATION_SUCCESSFUL = "verification_successful"
    NEW_MMR_ROOT = "new_mmr_root"
    VALIDATOR_SET_ROTATED = "validator_set_rotated"
    PEER_ADDED = "peer_added"
    PEER_REMOVED = "peer_removed"
    MESSAGE_VERIFIED = "message_verified"


def _digest(body: dict[str, Any]) -> str:
    canonical = json.dumps(body, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return HASH_PREFIX + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class EventRecord:
    """A single immutable verifier event.

    The payload is exactly the data named by the operation that
    produced it; binary values are 0x-prefixed hex.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    network: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_kind: EventKind,
        network: str,
        payload: dict[str, Any],
        event_id: Optional[str] = None,
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        stamp = (timestamp_utc or datetime.now(timezone.utc)).strftime(TIMESTAMP_FORMAT)
        body = {
            "event_id": event_id or f"evt_{uuid.uuid4().hex}",
            "event_kind": event_kind.value,
            "timestamp_utc": stamp,
            "network": network,
            "payload": payload,
        }
        return EventRecord.from_dict({**body, "event_hash": _digest(body)})

    def body(self) -> dict[str, Any]:
        """Everything the hash covers."""
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "network": self.network,
            "payload": self.payload,
        }

    def is_intact(self) -> bool:
        return self.event_hash == _digest(self.body())

    def to_dict(self) -> dict[str, Any]:
        return {**self.body(), "event_hash": self.event_hash}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventRecord:
        return cls(
            event_id=data["event_id"],
            event_kind=EventKind(data["event_kind"]),
            timestamp_utc=data["timestamp_utc"],
            network=data["network"],
            payload=data["payload"],
            event_hash=data["event_hash"],
        )


class EventLog:
    """Append-only event log with optional JSONL persistence.

    Usage:
        log = EventLog(storage_path=Path("data/events.jsonl"))
        log.append(EventRecord.create(EventKind.PEER_ADDED, "evm:1", {"key": "0x02.."}))
        log.events(network="evm:1")
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = storage_path
        self._records: list[EventRecord] = []
        self._ids: set[str] = set()

        if storage_path is not None and storage_path.exists():
            for line_num, record in self._read(storage_path):
                self._remember(record, f"line {line_num}")

    def append(self, event: EventRecord) -> None:
        """Record an event, persisting it first when a file is attached.

        Raises ValueError for an event id already in the log.
        """
        if event.event_id in self._ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")
        if self._storage_path is not None:
            with self._storage_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False))
                handle.write("\n")
        self._remember(event, "append")

    def events(
        self,
        kind: Optional[EventKind] = None,
        network: Optional[str] = None,
    ) -> list[EventRecord]:
        """Events in append order, optionally filtered by kind and network key."""
        return [
            record
            for record in self._records
            if (kind is None or record.event_kind == kind)
            and (network is None or record.network == network)
        ]

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._records[-1] if self._records else None

    def _remember(self, record: EventRecord, where: str) -> None:
        if record.event_id in self._ids:
            raise ValueError(f"Duplicate event ID ({where}): {record.event_id}")
        self._records.append(record)
        self._ids.add(record.event_id)

    @staticmethod
    def _read(path: Path) -> Iterator[tuple[int, EventRecord]]:
        with path.open("r", encoding="utf-8") as handle:
            for line_num, line in enumerate(handle, 1):
                if not line.strip():
                    continue
                record = EventRecord.from_dict(json.loads(line))
                if not record.is_intact():
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): event {record.event_id} "
                        f"does not match its stored hash"
                    )
                yield line_num, record
