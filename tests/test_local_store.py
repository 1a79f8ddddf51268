"""Tests for the local mirror, the outbox and the overlay merge."""

import json

import pytest

from lumi_report.infrastructure.local_store import LocalStore, OutboxEntry, merge_overlay

URL_A = "https://db.test/datasheet/F3/a.json"
URL_B = "https://db.test/datasheet/F3/b.json"
URL_C = "https://db.test/datasheet/F3/c.json"


def _entry(method, url, record_id="", payload=None, collection="datasheet/F3"):
    return OutboxEntry(method=method, url=url, payload=payload, collection=collection, record_id=record_id)


# ---------------------------------------------------------------------------
# Mirrors
# ---------------------------------------------------------------------------

class TestMirror:
    def test_missing_file_is_empty(self, store):
        assert store.mirror("datasheet/F3") == []

    def test_round_trip_across_instances(self, store):
        store.save_mirror("datasheet/F3", [{"id": "a", "Tên": "Lan"}])
        assert LocalStore(store.path).mirror("datasheet/F3") == [{"id": "a", "Tên": "Lan"}]

    def test_corrupt_file_starts_empty(self, store, caplog):
        store.path.write_text("{not json", encoding="utf-8")
        assert store.mirror("datasheet/F3") == []
        assert "unreadable" in caplog.text

    def test_no_tmp_file_left_behind(self, store):
        store.save_mirror("x", [])
        assert not store.path.with_suffix(".json.tmp").exists()
        assert json.loads(store.path.read_text(encoding="utf-8"))["mirrors"] == {"x": []}


# ---------------------------------------------------------------------------
# Outbox
# ---------------------------------------------------------------------------

class TestOutbox:
    def test_enqueue_uppercases_method(self, store):
        entry = store.outbox().enqueue(_entry("patch", URL_A, "a"))
        assert entry.method == "PATCH"
        assert store.outbox().pending()[0].entry_id == entry.entry_id

    def test_enqueue_rejects_get(self, store):
        with pytest.raises(ValueError):
            store.outbox().enqueue(_entry("GET", URL_A))

    def test_pending_filters_by_collection(self, store):
        outbox = store.outbox()
        outbox.enqueue(_entry("POST", URL_A, collection="ChangeLog"))
        outbox.enqueue(_entry("PATCH", URL_B, "b"))
        assert [entry.url for entry in outbox.pending("datasheet/F3")] == [URL_B]
        assert len(outbox.pending()) == 2

    def test_entry_ids_are_unique(self, store):
        outbox = store.outbox()
        first = outbox.enqueue(_entry("PUT", URL_A, "a"))
        second = outbox.enqueue(_entry("PUT", URL_A, "a"))
        assert first.entry_id != second.entry_id


class TestDrain:
    def test_drains_everything(self, store, session, client):
        session.add("PATCH", URL_A, {"ok": True})
        session.add("DELETE", URL_B)
        outbox = store.outbox()
        outbox.enqueue(_entry("PATCH", URL_A, "a", {"x": 1}))
        outbox.enqueue(_entry("DELETE", URL_B, "b"))

        report = outbox.drain(client)

        assert (report.synced, report.failed, report.remaining) == (2, 0, 0)
        assert outbox.entries() == []
        assert session.calls[0]["json"] == {"x": 1}

    def test_stops_at_first_failure(self, store, session, client):
        session.add("PATCH", URL_A, {"ok": True})
        session.add("PATCH", URL_C, {"ok": True})
        outbox = store.outbox()
        outbox.enqueue(_entry("PATCH", URL_A, "a", {"x": 1}))
        outbox.enqueue(_entry("PATCH", URL_B, "b", {"x": 2}))
        outbox.enqueue(_entry("PATCH", URL_C, "c", {"x": 3}))

        report = outbox.drain(client)

        assert (report.synced, report.failed, report.remaining) == (1, 1, 2)
        assert [call["url"] for call in session.calls] == [URL_A, URL_B]
        failed = outbox.pending()[0]
        assert failed.url == URL_B
        assert failed.attempts == 1
        assert "no route" in failed.last_error

    def test_empty_outbox(self, store, client):
        report = store.outbox().drain(client)
        assert (report.synced, report.failed, report.remaining) == (0, 0, 0)


# ---------------------------------------------------------------------------
# merge_overlay
# ---------------------------------------------------------------------------

class TestMergeOverlay:
    REMOTE = [{"id": "a", "status": "new", "amount": 1}, {"id": "b", "status": "new"}]

    def test_patch_updates_matching_row(self):
        merged = merge_overlay(self.REMOTE, [_entry("PATCH", URL_A, "a", {"status": "done"})])
        assert merged[0] == {"id": "a", "status": "done", "amount": 1}

    def test_put_adds_local_record(self):
        merged = merge_overlay(self.REMOTE, [_entry("PUT", URL_C, "c", {"status": "draft"})])
        assert merged[-1] == {"status": "draft", "id": "c"}

    def test_put_replaces_existing(self):
        merged = merge_overlay(self.REMOTE, [_entry("PUT", URL_A, "a", {"status": "x"})])
        assert merged[0] == {"status": "x", "id": "a"}

    def test_delete_wins_regardless_of_order(self):
        pending = [_entry("DELETE", URL_A, "a"), _entry("PATCH", URL_A, "a", {"status": "late"})]
        merged = merge_overlay(self.REMOTE, pending)
        assert [row["id"] for row in merged] == ["b"]

    def test_entries_without_record_id_ignored(self):
        merged = merge_overlay(self.REMOTE, [_entry("POST", URL_A, "", {"x": 1})])
        assert merged == self.REMOTE
