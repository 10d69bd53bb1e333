"""Tests for the action staging store."""

import random

import pytest
from pydantic import ValidationError

from turbo_tasker.schemas import AckStatus, ActionKind
from turbo_tasker.services import StagingStore


def test_upsert_new_entry(staging_store: StagingStore):
    staged = staging_store.upsert("/a", ActionKind.DELETE, 100)

    assert staged.ack_status == AckStatus.PENDING
    assert len(staging_store) == 1
    assert "/a" in staging_store


def test_upsert_existing_path_overwrites(staging_store: StagingStore):
    staging_store.upsert("/a", "delete", 100)
    staging_store.upsert("/b", "delete", 50)
    staging_store.upsert("/a", "compress", 100)

    entry = staging_store.get("/a")
    assert entry.action == ActionKind.COMPRESS
    assert entry.bytes == 100
    assert entry.ack_status == AckStatus.PENDING
    assert len(staging_store) == 2
    # Position of the entry is kept
    assert [s.path for s in staging_store] == ["/a", "/b"]


def test_upsert_resets_acknowledgement(staging_store: StagingStore):
    staging_store.upsert("/a", "delete", 100)
    staging_store.reconcile_ack("/a", "success")
    assert staging_store.get("/a").ack_status == AckStatus.ACKNOWLEDGED

    staging_store.upsert("/a", "delete", 120)

    assert staging_store.get("/a").ack_status == AckStatus.PENDING
    assert staging_store.get("/a").bytes == 120


def test_upsert_rejects_unknown_action(staging_store: StagingStore):
    with pytest.raises(ValueError):
        staging_store.upsert("/a", "shred", 100)
    with pytest.raises(ValidationError):
        staging_store.upsert("/a", "delete", -1)
    assert len(staging_store) == 0


def test_remove_only_affects_path(staging_store: StagingStore):
    staging_store.upsert("/a", "delete", 100)
    staging_store.upsert("/b", "compress", 200)
    staging_store.upsert("/c", "delete", 300)

    removed = staging_store.remove("/b")

    assert removed.path == "/b"
    assert [s.path for s in staging_store] == ["/a", "/c"]
    assert staging_store.get("/a").bytes == 100
    assert staging_store.get("/c").bytes == 300


def test_remove_missing_is_noop(staging_store: StagingStore):
    staging_store.upsert("/a", "delete", 100)

    assert staging_store.remove("/missing") is None
    assert len(staging_store) == 1


def test_clear(staging_store: StagingStore):
    staging_store.upsert("/a", "delete", 100)
    staging_store.upsert("/b", "delete", 100)

    staging_store.clear()

    assert len(staging_store) == 0
    assert staging_store.total_bytes() == 0


def test_total_bytes_tracks_entries(staging_store: StagingStore):
    rng = random.Random(7)
    expected = {}
    for _ in range(200):
        path = f"/data/file{rng.randint(0, 15)}"
        if rng.random() < 0.3:
            staging_store.remove(path)
            expected.pop(path, None)
        else:
            size = rng.randint(0, 10_000)
            staging_store.upsert(path, rng.choice(list(ActionKind)), size)
            expected[path] = size
        assert staging_store.total_bytes() == sum(expected.values())

    assert len(staging_store) == len(expected)


def test_reconcile_ack_updates_status(staging_store: StagingStore):
    staging_store.upsert("/a", "delete", 100)
    staging_store.upsert("/b", "delete", 100)

    assert staging_store.reconcile_ack("/a", "success") is True
    assert staging_store.reconcile_ack("/b", "failed") is True

    assert staging_store.get("/a").ack_status == AckStatus.ACKNOWLEDGED
    assert staging_store.get("/b").ack_status == AckStatus.FAILED
    assert len(staging_store) == 2


def test_reconcile_ack_unknown_path(staging_store: StagingStore, log_messages):
    staging_store.upsert("/a", "delete", 100)
    before = staging_store.snapshot()

    assert staging_store.reconcile_ack("/missing", "ok") is False

    assert staging_store.snapshot() == before
    assert any(
        level == "WARNING" and "AckMismatchWarning" in msg and "/missing" in msg
        for level, msg in log_messages
    )


def test_handle_ack_payload(staging_store: StagingStore):
    staging_store.upsert("/a", "delete", 100)

    assert staging_store.handle_ack('{"status": "success", "path": "/a"}') is True
    assert staging_store.get("/a").ack_status == AckStatus.ACKNOWLEDGED


def test_handle_malformed_ack(staging_store: StagingStore, log_messages):
    staging_store.upsert("/a", "delete", 100)

    assert staging_store.handle_ack("'status' : 'failed', 'path', \"/a\"") is False
    assert staging_store.get("/a").ack_status == AckStatus.PENDING
    assert any(level == "WARNING" and "acknowledgement" in msg for level, msg in log_messages)


def test_summary(staging_store: StagingStore):
    staging_store.upsert("/a", "delete", 100)
    staging_store.upsert("/b", "delete", 200)
    staging_store.upsert("/c", "compress", 400)
    staging_store.upsert("/d", "compress", 800)
    staging_store.reconcile_ack("/a", "success")
    staging_store.reconcile_ack("/b", "failed")
    staging_store.reconcile_ack("/c", "ok")

    summary = staging_store.summary()

    assert summary.total_bytes == 1500
    assert summary.reclaimed_bytes == 100
    assert summary.deleted_files == 1
    assert summary.compressed_bytes == 400
    assert (summary.pending, summary.acknowledged, summary.failed) == (1, 2, 1)
    assert summary.staged == 4
