"""Conflict detection and resolution for pulls.

Detection compares three timestamps: the remote page's last edit, the local
file's modification time, and the last successful sync stored in the
document header.  Resolution is a pure function of the configured strategy
and the detected status; it never merges content.

=============  ============================================================
strategy       behaviour
=============  ============================================================
local_wins     always skip
remote_wins    always update (``notion_wins`` is an alias)
newest_wins    update on remote_newer / new_page, skip on local_newer /
               no_conflict; on both_modified update iff the remote edit is
               strictly later than the local one
manual         update on remote_newer / new_page, report a conflict on
               local_newer / both_modified, skip on no_conflict
=============  ============================================================
"""

from __future__ import annotations

from datetime import datetime

from notionsync.config import CONFLICT_STRATEGIES
from notionsync.models import ConflictEntry, ConflictStatus, LocalState, RemotePage, Resolution

_STRATEGY_ALIASES: dict[str, str] = {"notion_wins": "remote_wins"}


def detect(local: LocalState | None, remote: RemotePage) -> ConflictStatus:
    """Classify *local* against *remote*.

    Examples
    --------
    >>> detect(None, RemotePage(id="abc"))
    <ConflictStatus.NEW_PAGE: 'new_page'>
    """
    if local is None:
        return ConflictStatus.NEW_PAGE
    if local.synced_at is None:
        # Nothing proves the two sides agree.
        return ConflictStatus.BOTH_MODIFIED

    remote_changed = _is_after(remote.last_edited_at, local.synced_at)
    local_changed = _is_after(local.modified_at, local.synced_at)

    if remote_changed and local_changed:
        return ConflictStatus.BOTH_MODIFIED
    if remote_changed:
        return ConflictStatus.REMOTE_NEWER
    if local_changed:
        return ConflictStatus.LOCAL_NEWER
    return ConflictStatus.NO_CONFLICT


def resolve(
    strategy: str,
    status: ConflictStatus,
    local: LocalState | None,
    remote: RemotePage,
) -> Resolution:
    """Decide what a pull does with one page.

    Raises
    ------
    ValueError
        If *strategy* is not a known strategy name.
    """
    if strategy not in CONFLICT_STRATEGIES:
        raise ValueError(f"unknown conflict strategy {strategy!r}")
    strategy = _STRATEGY_ALIASES.get(strategy, strategy)

    if strategy == "local_wins":
        return Resolution.skip()

    if strategy == "remote_wins":
        return Resolution.update(remote)

    if status in (ConflictStatus.NEW_PAGE, ConflictStatus.REMOTE_NEWER):
        return Resolution.update(remote)
    if status is ConflictStatus.NO_CONFLICT:
        return Resolution.skip()

    if strategy == "newest_wins":
        if status is ConflictStatus.LOCAL_NEWER:
            return Resolution.skip()
        local_time = local.modified_at if local is not None else None
        if _is_after(remote.last_edited_at, local_time):
            return Resolution.update(remote)
        return Resolution.skip()

    # manual
    return Resolution.conflict(ConflictEntry(
        path=local.path if local is not None else "",
        notion_id=remote.id,
        status=status,
        local_modified_at=local.modified_at if local is not None else None,
        remote_modified_at=remote.last_edited_at,
    ))


class ConflictResolver:
    """Strategy-bound wrapper around :func:`detect` and :func:`resolve`.

    Parameters
    ----------
    strategy:
        One of ``local_wins``, ``remote_wins``, ``notion_wins``,
        ``newest_wins`` or ``manual``.
    """

    def __init__(self, strategy: str = "manual") -> None:
        if strategy not in CONFLICT_STRATEGIES:
            raise ValueError(f"unknown conflict strategy {strategy!r}")
        self.strategy = strategy

    def detect(self, local: LocalState | None, remote: RemotePage) -> ConflictStatus:
        return detect(local, remote)

    def resolve(self, local: LocalState | None, remote: RemotePage) -> Resolution:
        """Detect the status of *local* and apply the strategy to it."""
        return resolve(self.strategy, detect(local, remote), local, remote)


def _is_after(value: datetime | None, reference: datetime | None) -> bool:
    """``True`` iff *value* is strictly later.

    An unknown *value* is never later; a known one is always later than an
    unknown *reference*.
    """
    if value is None:
        return False
    if reference is None:
        return True
    return value > reference
