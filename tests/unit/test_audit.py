"""Tests for notionsync.audit (local tree vs remote page tree)."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from notionsync.audit import Auditor
from notionsync.config import NotionSyncConfig
from notionsync.errors import SourceDirectoryError
from notionsync.frontmatter import compute_hash
from notionsync.models import ORPHAN_FILE, AuditEntry, AuditReport, AuditStatus
from notionsync.sync import SyncOrchestrator

SYNCED_TEXT = "2026-03-01T10:00:00Z"
SYNCED = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
EARLIER = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
LATER = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_auditor(remote) -> Auditor:
    return Auditor(remote, NotionSyncConfig(token="test_token_1234"))


def linked_doc(make_doc, rel: str, page_id: str, body: str = "Local\n", **header):
    """A document whose stored hash matches *body*, last synced at SYNCED."""
    return make_doc(
        rel, body, notion_id=page_id, notion_synced_at=SYNCED_TEXT,
        content_hash=compute_hash(body), **header,
    )


def statuses(report: AuditReport) -> dict[str, AuditStatus]:
    return {entry.file: entry.status for entry in report.entries if entry.file != ORPHAN_FILE}


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

class TestClassification:
    def test_untouched_linked_document_is_synced(self, docs_root, make_doc, fake_remote):
        page_id = fake_remote.add_page("Guide", edited=EARLIER)
        linked_doc(make_doc, "guide.md", page_id)

        (entry,) = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id).entries
        assert entry.status is AuditStatus.SYNCED
        assert entry.notion_id == page_id
        assert entry.synced_at == SYNCED
        assert entry.title == "Guide"
        assert entry.action_needed == "none"

    def test_local_edit_is_stale(self, docs_root, make_doc, fake_remote):
        page_id = fake_remote.add_page("Guide", edited=EARLIER)
        path = linked_doc(make_doc, "guide.md", page_id)
        path.write_text(path.read_text(encoding="utf-8") + "More.\n", encoding="utf-8")

        (entry,) = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id).entries
        assert entry.status is AuditStatus.STALE
        assert entry.action_needed == "update"

    def test_remote_edit_is_stale(self, docs_root, make_doc, fake_remote):
        page_id = fake_remote.add_page("Guide", edited=LATER)
        linked_doc(make_doc, "guide.md", page_id)
        report = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id)
        assert statuses(report) == {"guide.md": AuditStatus.STALE}

    def test_missing_sync_time_is_stale(self, docs_root, make_doc, fake_remote):
        page_id = fake_remote.add_page("Guide", edited=EARLIER)
        make_doc("guide.md", "Local\n", notion_id=page_id, content_hash=compute_hash("Local\n"))
        report = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id)
        assert statuses(report) == {"guide.md": AuditStatus.STALE}

    def test_unlinked_document_is_local_only(self, docs_root, make_doc, fake_remote):
        make_doc("notes/draft-ideas.md", "Draft\n")

        (entry,) = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id).entries
        assert entry.status is AuditStatus.LOCAL_ONLY
        assert entry.title == "Draft Ideas"
        assert entry.notion_status == "missing"
        assert entry.action_needed == "create"

    def test_page_missing_below_root_is_unverified(self, docs_root, make_doc, fake_remote):
        outside = fake_remote.add_page("Elsewhere", parent_id="another-root")
        linked_doc(make_doc, "elsewhere.md", outside)

        (entry,) = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id).entries
        assert entry.notion_status == "unknown"
        assert entry.status is AuditStatus.LOCAL_ONLY

    def test_unlinked_page_is_notion_only(self, docs_root, fake_remote):
        parent = fake_remote.add_page("Parent")
        child = fake_remote.add_page("Forgotten", parent_id=parent)

        report = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id)
        orphans = report.by_status(AuditStatus.NOTION_ONLY)
        assert [(e.notion_id, e.title, e.file) for e in orphans] == [
            (parent, "Parent", ORPHAN_FILE),
            (child, "Forgotten", ORPHAN_FILE),
        ]
        assert all(e.action_needed == "delete" for e in orphans)

    def test_unreadable_header_counts_as_local_only(self, docs_root, make_doc, fake_remote):
        (docs_root / "broken.md").write_text("---\ntitle: [unclosed\n---\nBody\n", encoding="utf-8")
        report = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id)
        assert statuses(report) == {"broken.md": AuditStatus.LOCAL_ONLY}

    def test_missing_root(self, tmp_path, fake_remote):
        with pytest.raises(SourceDirectoryError):
            make_auditor(fake_remote).audit_directory(tmp_path / "nowhere", fake_remote.root_id)


class TestDirectoryPages:
    def test_directory_page_with_children_is_not_an_orphan(self, docs_root, make_doc, fake_remote):
        guide = fake_remote.add_page("User Guide")
        setup_id = fake_remote.add_page("Setup", parent_id=guide, edited=EARLIER)
        linked_doc(make_doc, "user-guide/setup.md", setup_id)

        report = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id)
        assert statuses(report) == {"user-guide/setup.md": AuditStatus.SYNCED}
        assert report.by_status(AuditStatus.NOTION_ONLY) == []

    def test_childless_page_with_directory_title_is_an_orphan(self, docs_root, make_doc, fake_remote):
        make_doc("user-guide/setup.md", "Setup\n")
        stray = fake_remote.add_page("User Guide")

        report = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id)
        assert [e.notion_id for e in report.by_status(AuditStatus.NOTION_ONLY)] == [stray]


# ---------------------------------------------------------------------------
# Filtering and reporting
# ---------------------------------------------------------------------------

class TestReport:
    @pytest.fixture
    def mixed(self, docs_root, make_doc, fake_remote):
        synced_id = fake_remote.add_page("Done", edited=EARLIER)
        linked_doc(make_doc, "done.md", synced_id)
        stale_id = fake_remote.add_page("Changed", edited=LATER)
        linked_doc(make_doc, "changed.md", stale_id)
        make_doc("new.md", "New\n")
        fake_remote.add_page("Orphan")
        return docs_root

    def test_every_status_is_reported(self, mixed, fake_remote):
        report = make_auditor(fake_remote).audit_directory(mixed, fake_remote.root_id)
        assert report.counts() == {
            AuditStatus.SYNCED: 1,
            AuditStatus.STALE: 1,
            AuditStatus.LOCAL_ONLY: 1,
            AuditStatus.NOTION_ONLY: 1,
        }
        assert report.summary() == "Summary: 1 synced, 1 stale, 1 local-only, 1 notion-only"

    @pytest.mark.parametrize("status,expected", [
        ("synced", ["done.md"]),
        (AuditStatus.STALE, ["changed.md"]),
        ("local_only", ["new.md"]),
        ("notion_only", [ORPHAN_FILE]),
    ])
    def test_status_filter(self, mixed, fake_remote, status, expected):
        report = make_auditor(fake_remote).audit_directory(mixed, fake_remote.root_id, status=status)
        assert [e.file for e in report.entries] == expected

    def test_unknown_status_filter(self, mixed, fake_remote):
        with pytest.raises(ValueError):
            make_auditor(fake_remote).audit_directory(mixed, fake_remote.root_id, status="deleted")

    def test_format_lists_rows_and_summary(self, mixed, fake_remote):
        text = make_auditor(fake_remote).audit_directory(mixed, fake_remote.root_id).format()
        lines = text.splitlines()
        assert lines[0].split(" | ")[0].strip() == "File"
        assert any(line.startswith("new.md") and line.rstrip().endswith("CREATE") for line in lines)
        assert "2026-03-01 10:00" in text
        assert lines[-1] == "Summary: 1 synced, 1 stale, 1 local-only, 1 notion-only"

    def test_row_cells(self):
        entry = AuditEntry.unverified("a.md", "A" * 40, "0123456789abcdef", SYNCED)
        assert entry.row() == ["a.md", "A" * 27 + "...", "Y", "? (01234567)", "2026-03-01 10:00", "CREATE"]


class TestAfterPush:
    def test_freshly_pushed_tree_is_synced(self, docs_root, make_doc, fake_remote):
        make_doc("index.md", "# Home\n")
        make_doc("guide/setup.md", "See [home](../index.md)\n")
        config = NotionSyncConfig(token="test_token_1234")
        SyncOrchestrator(fake_remote, config).sync_directory(docs_root, fake_remote.root_id)

        report = make_auditor(fake_remote).audit_directory(docs_root, fake_remote.root_id)
        assert statuses(report) == {
            "index.md": AuditStatus.SYNCED,
            "guide/setup.md": AuditStatus.SYNCED,
        }
        assert report.by_status(AuditStatus.NOTION_ONLY) == []
