"""Domain model exports."""

from vcs_rollback.domain.models import (
    BackendGroup,
    BackendIdentity,
    Change,
    ChangeKind,
    ChangeList,
    ContentRevision,
    DeleteResult,
    GroupOutcome,
    RevertFailure,
    RollbackReport,
    TouchedPath,
    collect_touched_paths,
)

__all__ = [
    "BackendGroup",
    "BackendIdentity",
    "Change",
    "ChangeKind",
    "ChangeList",
    "ContentRevision",
    "DeleteResult",
    "GroupOutcome",
    "RevertFailure",
    "RollbackReport",
    "TouchedPath",
    "collect_touched_paths",
]
