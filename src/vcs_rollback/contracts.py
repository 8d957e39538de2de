"""
vcs-rollback — collaborator contracts.

The rollback core never talks to a concrete backend, tracker, refresh queue, or
history store directly. Each collaborator is described here as a minimal
``Protocol`` so production adapters and test doubles plug in the same way.
Reference in-process implementations live in :mod:`vcs_rollback.tracking` and
:mod:`vcs_rollback.backends`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from vcs_rollback.domain.models import (
        BackendIdentity,
        Change,
        ChangeList,
        RevertFailure,
    )

    ErrorPresenter = Callable[[Sequence[RevertFailure], str], None]
    ProgressCallback = Callable[[int, int, BackendIdentity], None]

T = TypeVar("T")


class RollbackCapability(Protocol):
    """Per-backend revert implementation (the "rollback environment")."""

    @property
    def operation_name(self) -> str: ...

    def rollback_changes(self, changes: Sequence[Change]) -> list[RevertFailure]: ...


class BackendResolver(Protocol):
    """Maps a change to the identity of the backend that owns it."""

    def resolve_backend(self, change: Change) -> BackendIdentity | None: ...


class CapabilityRegistry(BackendResolver, Protocol):
    """Resolver that also hands out the revert capability for an identity."""

    def capability_for(self, backend: BackendIdentity) -> RollbackCapability | None: ...


class RefreshService(Protocol):
    """Filesystem refresh queue; ``on_complete`` fires once the scan finished."""

    def schedule_refresh(
        self,
        paths: Sequence[Path],
        *,
        synchronous: bool,
        on_complete: Callable[[], None],
    ) -> None: ...


class DirtyScopeTracker(Protocol):
    """Tracking-state owner. All writes go through ``run_exclusive``."""

    def mark_dirty(self, path: Path, *, recursive: bool) -> None: ...

    def run_exclusive(self, unit: Callable[[], T]) -> T: ...


class SessionLiveness(Protocol):
    def is_alive(self) -> bool: ...


class HistoryAction(Protocol):
    def finish(self) -> None: ...


class HistoryService(Protocol):
    """Opaque history/undo snapshotting; actions bracket an operation."""

    def begin_action(self, label: str) -> HistoryAction: ...


class ChangeListTracker(Protocol):
    """Change-list membership owner consulted before and after a rollback."""

    def change_list_for(self, change: Change) -> ChangeList | None: ...

    def prepare_for_change_deletion(self, changes: Sequence[Change]) -> Callable[[], None]: ...

    def invoke_after_update(self, callback: Callable[[], None], label: str) -> None: ...


class EventLogger(Protocol):
    """Subset of the structlog bound-logger API used by rollback components."""

    def debug(self, event: str, **kwargs: object) -> object: ...

    def info(self, event: str, **kwargs: object) -> object: ...

    def warning(self, event: str, **kwargs: object) -> object: ...

    def exception(self, event: str, **kwargs: object) -> object: ...


__all__ = [
    "BackendResolver",
    "CapabilityRegistry",
    "ChangeListTracker",
    "DirtyScopeTracker",
    "EventLogger",
    "HistoryAction",
    "HistoryService",
    "RefreshService",
    "RollbackCapability",
    "SessionLiveness",
]
