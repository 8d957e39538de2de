"""In-process implementations of the tracking collaborators."""

from vcs_rollback.tracking.changelists import ChangeListManager
from vcs_rollback.tracking.dirty_scope import DirtyScope, DirtyScopeManager
from vcs_rollback.tracking.history import HistoryEntry, LocalHistory, LocalHistoryAction
from vcs_rollback.tracking.refresh import LocalRefreshQueue, RefreshRecord, scan_path
from vcs_rollback.tracking.session import ProjectSession

__all__ = [
    "ChangeListManager",
    "DirtyScope",
    "DirtyScopeManager",
    "HistoryEntry",
    "LocalHistory",
    "LocalHistoryAction",
    "LocalRefreshQueue",
    "ProjectSession",
    "RefreshRecord",
    "scan_path",
]
