"""Remote-first record access with local mirror and outbox fallback."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from lumi_report.infrastructure.local_store import LocalStore, OutboxEntry, merge_overlay
from lumi_report.infrastructure.rest_source import RestClient, SourceError, entity_url, firebase_rows_with_ids

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    degraded: bool = False
    error: str = ""


@dataclass(frozen=True)
class WriteResult:
    record_id: str
    queued: bool = False
    response: Any = None
    error: str = ""


class RecordService:
    """One backend collection, readable offline and writable while disconnected."""

    def __init__(self, client: RestClient, store: LocalStore, collection: str, url: str) -> None:
        self.client = client
        self.store = store
        self.collection = collection
        self.url = url
        self.outbox = store.outbox()

    def fetch(self) -> FetchResult:
        pending = self.outbox.pending(self.collection)
        try:
            rows = firebase_rows_with_ids(self.client.get_json(self.url))
        except SourceError as exc:
            logger.warning("Fetching %s failed, using local mirror: %s", self.collection, exc)
            return FetchResult(
                rows=merge_overlay(self.store.mirror(self.collection), pending),
                degraded=True,
                error=str(exc),
            )
        self.store.save_mirror(self.collection, rows)
        return FetchResult(rows=merge_overlay(rows, pending))

    def _send(self, method: str, record_id: str, payload: Any = None) -> WriteResult:
        url = entity_url(self.url, record_id)
        try:
            response = self.client.send_json(method, url, payload)
        except SourceError as exc:
            logger.warning("%s %s failed, queued for later: %s", method, url, exc)
            self.outbox.enqueue(
                OutboxEntry(
                    method=method,
                    url=url,
                    payload=payload,
                    collection=self.collection,
                    record_id=record_id,
                )
            )
            return WriteResult(record_id=record_id, queued=True, error=str(exc))
        return WriteResult(record_id=record_id, response=response)

    def create(self, payload: dict[str, Any]) -> WriteResult:
        # client-side ids keep a queued create addressable by later writes
        record_id = str(payload.get("id") or uuid.uuid4())
        return self._send("PUT", record_id, {**payload, "id": record_id})

    def update(self, record_id: str, patch: dict[str, Any]) -> WriteResult:
        return self._send("PATCH", record_id, dict(patch))

    def replace(self, record_id: str, payload: dict[str, Any]) -> WriteResult:
        return self._send("PUT", record_id, {**payload, "id": record_id})

    def delete(self, record_id: str) -> WriteResult:
        return self._send("DELETE", record_id)
