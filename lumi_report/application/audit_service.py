"""Change audit log: record every write, list history, revert an entry."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from lumi_report.application.record_service import RecordService, WriteResult
from lumi_report.domain.access import Viewer
from lumi_report.infrastructure.local_store import LocalStore, OutboxEntry, merge_overlay
from lumi_report.infrastructure.rest_source import RestClient, SourceError, entity_url, firebase_rows_with_ids
from lumi_report.ingestion import parse_date

logger = logging.getLogger(__name__)

CHANGE_LOG_COLLECTION = "ChangeLog"
REVERT_PREFIX = "revert_"
STATUS_CHANGE = "status_change"
FULL_UPDATE = "full_update"
DELETE = "delete"
REVERT_TYPES = {STATUS_CHANGE: "revert_status"}
STATUS_FIELD = "Trạng thái đơn"


class AuditError(Exception):
    """Invalid use of the audit log, such as reverting an entry twice."""


@dataclass(frozen=True)
class AuditEntry:
    entry_id: str
    entity_id: str
    change_type: str
    old_value: Any = None
    new_value: Any = None
    actor: str = ""
    actor_role: str = ""
    timestamp: str = ""
    reverted: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AuditEntry":
        return cls(
            entry_id=str(row.get("id", "")),
            entity_id=str(row.get("entityId") or row.get("orderId") or ""),
            change_type=str(row.get("changeType") or ""),
            old_value=row.get("oldValue"),
            new_value=row.get("newValue"),
            actor=str(row.get("actorIdentity") or row.get("userEmail") or ""),
            actor_role=str(row.get("actorRole") or row.get("userRole") or ""),
            timestamp=str(row.get("timestamp") or ""),
            reverted=bool(row.get("reverted", False)),
        )

    @property
    def is_revert(self) -> bool:
        return self.change_type.startswith(REVERT_PREFIX)


def can_revert(viewer: Viewer, entry: AuditEntry, team_emails: Iterable[str] = ()) -> bool:
    """Admins revert anything, leaders their team's changes, users their own."""
    if viewer.is_admin:
        return True
    actor = entry.actor.strip().lower()
    if viewer.role == "leader":
        return actor in {email.strip().lower() for email in team_emails}
    return bool(viewer.email) and actor == viewer.email


def _revert_patch(entry: AuditEntry) -> dict[str, Any]:
    old_value = entry.old_value
    if isinstance(old_value, str):
        try:
            old_value = json.loads(old_value)
        except ValueError:
            pass
    if entry.change_type == STATUS_CHANGE:
        if isinstance(old_value, dict):
            return {STATUS_FIELD: old_value.get(STATUS_FIELD)}
        return {STATUS_FIELD: old_value}
    if not isinstance(old_value, dict):
        raise AuditError(f"Entry {entry.entry_id} has no restorable old value")
    return {key: value for key, value in old_value.items() if key != "id"}


def _sort_stamp(entry: AuditEntry) -> datetime:
    parsed = parse_date(entry.timestamp)
    return parsed or datetime.min


class AuditService:
    def __init__(self, client: RestClient, store: LocalStore, log_url: str, records: RecordService) -> None:
        self.client = client
        self.store = store
        self.outbox = store.outbox()
        self.log_url = log_url
        self.records = records

    def record_change(
        self,
        entity_id: str,
        change_type: str,
        old_value: Any,
        new_value: Any,
        actor: Viewer,
    ) -> AuditEntry:
        payload = {
            "entityId": entity_id,
            "changeType": change_type,
            "oldValue": old_value,
            "newValue": new_value,
            "actorIdentity": actor.email,
            "actorRole": actor.role,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "reverted": False,
        }
        entry_id = ""
        try:
            response = self.client.send_json("POST", self.log_url, payload)
            if isinstance(response, dict):
                entry_id = str(response.get("name", ""))
        except SourceError as exc:
            logger.warning("Audit log write for %s failed, queued: %s", entity_id, exc)
            self.outbox.enqueue(
                OutboxEntry(method="POST", url=self.log_url, payload=payload, collection=CHANGE_LOG_COLLECTION)
            )
        return AuditEntry.from_row({**payload, "id": entry_id})

    def apply_change(
        self,
        entity_id: str,
        change_type: str,
        old_value: Any,
        new_value: Any,
        actor: Viewer,
    ) -> tuple[WriteResult, AuditEntry]:
        """Write the change to the entity, then log it; both queue when offline."""
        if change_type == STATUS_CHANGE:
            result = self.records.update(entity_id, {STATUS_FIELD: new_value})
        elif change_type == FULL_UPDATE:
            if not isinstance(new_value, dict):
                raise AuditError(f"A full update of {entity_id} needs the new field values")
            result = self.records.update(entity_id, {key: value for key, value in new_value.items() if key != "id"})
        elif change_type == DELETE:
            result = self.records.delete(entity_id)
            new_value = None
        else:
            raise AuditError(f"Unsupported change type: {change_type}")
        return result, self.record_change(entity_id, change_type, old_value, new_value, actor)

    def change_status(self, entity_id: str, old_status: Any, new_status: Any, actor: Viewer) -> tuple[WriteResult, AuditEntry]:
        return self.apply_change(entity_id, STATUS_CHANGE, old_status, new_status, actor)

    def update_entity(
        self,
        entity_id: str,
        old_fields: dict[str, Any],
        new_fields: dict[str, Any],
        actor: Viewer,
    ) -> tuple[WriteResult, AuditEntry]:
        return self.apply_change(entity_id, FULL_UPDATE, old_fields, new_fields, actor)

    def delete_entity(self, entity_id: str, old_fields: dict[str, Any], actor: Viewer) -> tuple[WriteResult, AuditEntry]:
        return self.apply_change(entity_id, DELETE, old_fields, None, actor)

    def fetch_log(self) -> list[AuditEntry]:
        pending = self.outbox.pending(CHANGE_LOG_COLLECTION)
        try:
            rows = firebase_rows_with_ids(self.client.get_json(self.log_url))
        except SourceError as exc:
            logger.warning("Fetching the change log failed, using local mirror: %s", exc)
            rows = self.store.mirror(CHANGE_LOG_COLLECTION)
        else:
            self.store.save_mirror(CHANGE_LOG_COLLECTION, rows)

        # queued reverted marks apply only to entries already known
        known = {str(row.get("id", "")) for row in rows}
        marks = [item for item in pending if item.method == "PATCH" and item.record_id in known]
        rows = merge_overlay(rows, marks)
        rows.extend(
            {**item.payload, "id": ""}
            for item in pending
            if item.method == "POST" and isinstance(item.payload, dict)
        )
        entries = [AuditEntry.from_row(row) for row in rows]
        return sorted(entries, key=_sort_stamp, reverse=True)

    def revert(self, entry: AuditEntry, actor: Viewer) -> AuditEntry:
        if entry.reverted:
            raise AuditError(f"Entry {entry.entry_id} is already reverted")
        if not entry.entry_id:
            raise AuditError("Cannot revert an entry that was never stored")

        patch = _revert_patch(entry)
        self.records.update(entry.entity_id, patch)
        revert_entry = self.record_change(
            entry.entity_id,
            REVERT_TYPES.get(entry.change_type, REVERT_PREFIX + entry.change_type),
            entry.new_value,
            entry.old_value,
            actor,
        )

        url = entity_url(self.log_url, entry.entry_id)
        try:
            self.client.send_json("PATCH", url, {"reverted": True})
        except SourceError as exc:
            logger.warning("Marking audit entry %s reverted failed, queued: %s", entry.entry_id, exc)
            self.outbox.enqueue(
                OutboxEntry(
                    method="PATCH",
                    url=url,
                    payload={"reverted": True},
                    collection=CHANGE_LOG_COLLECTION,
                    record_id=entry.entry_id,
                )
            )
        return revert_entry
