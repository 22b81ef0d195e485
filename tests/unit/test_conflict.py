"""Tests for notionsync.conflict (detection and strategy resolution)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from notionsync.conflict import ConflictResolver, detect, resolve
from notionsync.models import ConflictStatus, LocalState, RemotePage

SYNCED = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)
BEFORE = SYNCED - timedelta(hours=1)
AFTER = SYNCED + timedelta(hours=1)
LATER = SYNCED + timedelta(hours=2)


def make_local(modified: datetime | None = SYNCED, synced: datetime | None = SYNCED) -> LocalState:
    return LocalState(path="docs/a.md", modified_at=modified, synced_at=synced, notion_id="page-a")


def make_remote(edited: datetime | None = SYNCED) -> RemotePage:
    return RemotePage(id="page-a", title="A", last_edited_at=edited)


# ---------------------------------------------------------------------------
# detect
# ---------------------------------------------------------------------------

class TestDetect:
    def test_no_local_file_is_new_page(self):
        assert detect(None, make_remote()) is ConflictStatus.NEW_PAGE

    def test_never_synced_is_both_modified(self):
        assert detect(make_local(synced=None), make_remote()) is ConflictStatus.BOTH_MODIFIED

    @pytest.mark.parametrize("modified,edited,expected", [
        (SYNCED, SYNCED, ConflictStatus.NO_CONFLICT),
        (BEFORE, BEFORE, ConflictStatus.NO_CONFLICT),
        (SYNCED, AFTER, ConflictStatus.REMOTE_NEWER),
        (AFTER, SYNCED, ConflictStatus.LOCAL_NEWER),
        (AFTER, LATER, ConflictStatus.BOTH_MODIFIED),
    ])
    def test_timestamp_matrix(self, modified, edited, expected):
        assert detect(make_local(modified=modified), make_remote(edited)) is expected

    def test_unknown_remote_edit_counts_as_unchanged(self):
        assert detect(make_local(), make_remote(edited=None)) is ConflictStatus.NO_CONFLICT


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------

class TestResolve:
    @pytest.mark.parametrize("status", list(ConflictStatus))
    def test_local_wins_always_skips(self, status):
        assert resolve("local_wins", status, make_local(), make_remote()).action == "skip"

    @pytest.mark.parametrize("strategy", ["remote_wins", "notion_wins"])
    @pytest.mark.parametrize("status", list(ConflictStatus))
    def test_remote_wins_always_updates(self, strategy, status):
        resolution = resolve(strategy, status, make_local(), make_remote())
        assert resolution.action == "update"
        assert resolution.remote.id == "page-a"

    @pytest.mark.parametrize("status,action", [
        (ConflictStatus.NEW_PAGE, "update"),
        (ConflictStatus.REMOTE_NEWER, "update"),
        (ConflictStatus.NO_CONFLICT, "skip"),
        (ConflictStatus.LOCAL_NEWER, "conflict"),
        (ConflictStatus.BOTH_MODIFIED, "conflict"),
    ])
    def test_manual(self, status, action):
        assert resolve("manual", status, make_local(), make_remote()).action == action

    def test_manual_conflict_entry(self):
        resolution = resolve("manual", ConflictStatus.BOTH_MODIFIED, make_local(AFTER), make_remote(LATER))
        entry = resolution.entry
        assert entry.path == "docs/a.md"
        assert entry.notion_id == "page-a"
        assert entry.local_modified_at == AFTER
        assert entry.remote_modified_at == LATER
        assert entry.format() == "docs/a.md - both modified since last sync"

    @pytest.mark.parametrize("status,action", [
        (ConflictStatus.NEW_PAGE, "update"),
        (ConflictStatus.REMOTE_NEWER, "update"),
        (ConflictStatus.NO_CONFLICT, "skip"),
        (ConflictStatus.LOCAL_NEWER, "skip"),
    ])
    def test_newest_wins(self, status, action):
        assert resolve("newest_wins", status, make_local(), make_remote()).action == action

    def test_newest_wins_both_modified_remote_later(self):
        resolution = resolve("newest_wins", ConflictStatus.BOTH_MODIFIED, make_local(AFTER), make_remote(LATER))
        assert resolution.action == "update"

    def test_newest_wins_both_modified_local_later(self):
        resolution = resolve("newest_wins", ConflictStatus.BOTH_MODIFIED, make_local(LATER), make_remote(AFTER))
        assert resolution.action == "skip"

    def test_newest_wins_tie_keeps_local(self):
        resolution = resolve("newest_wins", ConflictStatus.BOTH_MODIFIED, make_local(AFTER), make_remote(AFTER))
        assert resolution.action == "skip"

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            resolve("merge", ConflictStatus.NO_CONFLICT, make_local(), make_remote())


class TestConflictResolver:
    def test_rejects_unknown_strategy(self):
        with pytest.raises(ValueError):
            ConflictResolver("coin_flip")

    def test_detects_then_resolves(self):
        resolver = ConflictResolver("manual")
        assert resolver.resolve(make_local(), make_remote(AFTER)).action == "update"
        assert resolver.resolve(make_local(AFTER), make_remote()).action == "conflict"
        assert resolver.detect(None, make_remote()) is ConflictStatus.NEW_PAGE
