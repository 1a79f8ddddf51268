"""Local JSON persistence: last-known mirrors and the pending-write outbox."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from lumi_report.infrastructure.rest_source import RestClient, SourceError

logger = logging.getLogger(__name__)

STORE_SCHEMA_VERSION = 1
WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class OutboxEntry:
    method: str
    url: str
    payload: Any = None
    collection: str = ""
    record_id: str = ""
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: str = field(default_factory=_now_iso)
    synced: bool = False
    attempts: int = 0
    last_error: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OutboxEntry":
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)


@dataclass(frozen=True)
class DrainReport:
    synced: int
    failed: int
    remaining: int


class LocalStore:
    """Single JSON file holding ``{"mirrors": {...}, "outbox": [...]}``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"version": STORE_SCHEMA_VERSION, "mirrors": {}, "outbox": []}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Local store %s unreadable, starting empty: %s", self.path, exc)
            return {"version": STORE_SCHEMA_VERSION, "mirrors": {}, "outbox": []}
        if not isinstance(data, dict):
            return {"version": STORE_SCHEMA_VERSION, "mirrors": {}, "outbox": []}
        data.setdefault("mirrors", {})
        data.setdefault("outbox", [])
        return data

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def mirror(self, collection: str) -> list[dict[str, Any]]:
        rows = self._load()["mirrors"].get(collection, [])
        return [dict(row) for row in rows if isinstance(row, dict)]

    def save_mirror(self, collection: str, rows: Iterable[dict[str, Any]]) -> None:
        data = self._load()
        data["mirrors"][collection] = [dict(row) for row in rows]
        self._save(data)

    def outbox(self) -> "Outbox":
        return Outbox(self)


class Outbox:
    """Persisted queue of writes that did not reach the remote store."""

    def __init__(self, store: LocalStore) -> None:
        self.store = store

    def entries(self) -> list[OutboxEntry]:
        return [OutboxEntry.from_dict(item) for item in self.store._load()["outbox"] if isinstance(item, dict)]

    def _write(self, entries: list[OutboxEntry]) -> None:
        data = self.store._load()
        data["outbox"] = [asdict(entry) for entry in entries]
        self.store._save(data)

    def enqueue(self, entry: OutboxEntry) -> OutboxEntry:
        if entry.method.upper() not in WRITE_METHODS:
            raise ValueError(f"Unsupported outbox method: {entry.method}")
        entry.method = entry.method.upper()
        entries = self.entries()
        entries.append(entry)
        self._write(entries)
        logger.info("Queued %s %s in outbox (%d pending)", entry.method, entry.url, len(entries))
        return entry

    def pending(self, collection: str | None = None) -> list[OutboxEntry]:
        return [
            entry
            for entry in self.entries()
            if not entry.synced and (collection is None or entry.collection == collection)
        ]

    def _update(self, entry_id: str, **changes: Any) -> None:
        entries = self.entries()
        for entry in entries:
            if entry.entry_id == entry_id:
                for name, value in changes.items():
                    setattr(entry, name, value)
        self._write(entries)

    def mark_synced(self, entry_id: str) -> None:
        self._update(entry_id, synced=True)

    def record_failure(self, entry: OutboxEntry, error: str) -> None:
        self._update(entry.entry_id, attempts=entry.attempts + 1, last_error=error)

    def compact(self) -> int:
        entries = self.entries()
        kept = [entry for entry in entries if not entry.synced]
        self._write(kept)
        return len(entries) - len(kept)

    def drain(self, client: RestClient) -> DrainReport:
        """Replay pending writes in order; stop at the first failure."""
        synced = 0
        failed = 0
        pending = self.pending()
        for entry in pending:
            try:
                client.send_json(entry.method, entry.url, entry.payload)
            except SourceError as exc:
                self.record_failure(entry, str(exc))
                failed = 1
                logger.warning("Outbox drain stopped at %s %s: %s", entry.method, entry.url, exc)
                break
            self.mark_synced(entry.entry_id)
            synced += 1
        self.compact()
        remaining = len(self.pending())
        logger.info("Outbox drain: synced=%d failed=%d remaining=%d", synced, failed, remaining)
        return DrainReport(synced=synced, failed=failed, remaining=remaining)


def merge_overlay(remote_rows: Iterable[dict[str, Any]], pending: Iterable[OutboxEntry]) -> list[dict[str, Any]]:
    """Apply pending writes over remote rows: overwrite on id match, delete wins."""
    merged: dict[str, dict[str, Any]] = {}
    for row in remote_rows:
        merged[str(row.get("id", ""))] = dict(row)
    deleted: set[str] = set()
    for entry in pending:
        if not entry.record_id:
            continue
        if entry.method == "DELETE":
            deleted.add(entry.record_id)
            continue
        payload = entry.payload if isinstance(entry.payload, dict) else {}
        if entry.method == "PATCH" and entry.record_id in merged:
            merged[entry.record_id].update(payload)
        else:
            merged[entry.record_id] = {**payload, "id": entry.record_id}
    return [row for key, row in merged.items() if key not in deleted]
