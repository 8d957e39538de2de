"""
vcs-rollback — per-backend revert execution.

Purpose
- Hand one backend group to its revert capability in a single batched call.
- Record every path of the group as touched, whatever the outcome.
- Delete newly added files from disk once the whole group reverted cleanly and
  cleanup was requested.

Cleanup is best effort: each deletion produces a ``DeleteResult`` that is
logged and kept on the outcome, and is never turned into a ``RevertFailure``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from vcs_rollback.domain.models import (
    DeleteResult,
    GroupOutcome,
    RevertFailure,
    TouchedPath,
)
from vcs_rollback.utils.fs import remove_path

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from vcs_rollback.contracts import CapabilityRegistry, EventLogger, RollbackCapability
    from vcs_rollback.domain.models import BackendGroup


def delete_file(path: Path) -> DeleteResult:
    """Remove ``path`` from disk and report the result instead of raising."""

    try:
        deleted = remove_path(path)
    except OSError as exc:
        return DeleteResult(path=path, deleted=False, error=f"{type(exc).__name__}: {exc}")
    if not deleted:
        return DeleteResult(path=path, deleted=False, error="path does not exist")
    return DeleteResult(path=path, deleted=True)


def touched_paths_for(group: BackendGroup) -> tuple[TouchedPath, ...]:
    touched: list[TouchedPath] = []
    for change in group.changes:
        for revision in change.revisions:
            candidate = TouchedPath(path=revision.path, is_directory=revision.is_directory)
            if candidate not in touched:
                touched.append(candidate)
    return tuple(touched)


class RevertExecutor:
    """Runs one backend group through its revert capability."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        *,
        delete: Callable[[Path], DeleteResult] = delete_file,
        logger: EventLogger | None = None,
    ) -> None:
        self._registry = registry
        self._delete = delete
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def revert_group(self, group: BackendGroup, *, delete_new_files: bool) -> GroupOutcome:
        capability = self._registry.capability_for(group.backend)
        if capability is None:
            self._logger.info(
                "rollback_group_skipped",
                backend=group.backend,
                reason="no_rollback_capability",
                change_count=len(group.changes),
            )
            return GroupOutcome(backend=group.backend, skipped=True)

        touched = touched_paths_for(group)
        failures = self._invoke(capability, group)

        cleanup: tuple[DeleteResult, ...] = ()
        if not failures and delete_new_files:
            cleanup = self._cleanup_new_files(group)

        self._logger.info(
            "rollback_group_reverted",
            backend=group.backend,
            change_count=len(group.changes),
            failure_count=len(failures),
            touched_count=len(touched),
            deleted_count=sum(1 for result in cleanup if result.deleted),
        )
        return GroupOutcome(
            backend=group.backend,
            failures=failures,
            touched_paths=touched,
            cleanup=cleanup,
        )

    def _invoke(
        self, capability: RollbackCapability, group: BackendGroup
    ) -> tuple[RevertFailure, ...]:
        try:
            reported = capability.rollback_changes(list(group.changes))
        except AssertionError:
            raise
        except Exception as exc:
            # A crashing capability fails its own group only.
            self._logger.exception(
                "rollback_capability_crashed",
                backend=group.backend,
                error_type=type(exc).__name__,
            )
            return (
                RevertFailure(
                    backend=group.backend,
                    message=f"{capability.operation_name} failed unexpectedly",
                    paths=tuple(change.path for change in group.changes),
                    detail=f"{type(exc).__name__}: {exc}",
                ),
            )
        return tuple(reported)

    def _cleanup_new_files(self, group: BackendGroup) -> tuple[DeleteResult, ...]:
        results: list[DeleteResult] = []
        for change in group.cleanup_candidates:
            after = change.after
            assert after is not None, "NEW change without an after revision"
            result = self._delete(after.path)
            if not result.deleted:
                self._logger.warning(
                    "rollback_cleanup_failed",
                    backend=group.backend,
                    path=after.path.as_posix(),
                    error=result.error,
                )
            results.append(result)
        return tuple(results)


__all__ = ["RevertExecutor", "delete_file", "touched_paths_for"]
