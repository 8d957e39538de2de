"""Dataclass domain models for a single rollback run.

Every model here is transient: built fresh for one orchestrator invocation and
discarded once the report is delivered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from vcs_rollback.rollback.reconciliation import ReconciliationTicket

BackendIdentity = str


class ChangeKind(StrEnum):
    NEW = "new"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"


@dataclass(frozen=True, slots=True)
class ContentRevision:
    """A reference to one side (before or after) of a pending change."""

    path: Path
    is_directory: bool = False
    revision: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))
        if not str(self.path).strip():
            raise ValueError("content revision path must not be empty")


@dataclass(frozen=True, slots=True)
class Change:
    """A single pending modification; the kind is derived from its revisions."""

    before: ContentRevision | None
    after: ContentRevision | None

    def __post_init__(self) -> None:
        if self.before is None and self.after is None:
            raise ValueError("change must have a before or an after revision")

    @property
    def kind(self) -> ChangeKind:
        if self.before is None:
            return ChangeKind.NEW
        if self.after is None:
            return ChangeKind.DELETED
        if self.before.path != self.after.path:
            return ChangeKind.MOVED
        return ChangeKind.MODIFIED

    @property
    def path(self) -> Path:
        """Primary location: the after path when present, else the before path."""
        revision = self.after if self.after is not None else self.before
        assert revision is not None
        return revision.path

    @property
    def revisions(self) -> tuple[ContentRevision, ...]:
        present = [rev for rev in (self.before, self.after) if rev is not None]
        if len(present) == 2 and present[0].path == present[1].path:
            return (present[1],)
        return tuple(present)

    @property
    def paths(self) -> tuple[Path, ...]:
        return tuple(rev.path for rev in self.revisions)

    @classmethod
    def new(cls, path: Path | str, *, is_directory: bool = False) -> Change:
        return cls(before=None, after=ContentRevision(Path(path), is_directory))

    @classmethod
    def modified(cls, path: Path | str, *, revision: str | None = None) -> Change:
        target = Path(path)
        return cls(
            before=ContentRevision(target, revision=revision),
            after=ContentRevision(target),
        )

    @classmethod
    def deleted(cls, path: Path | str, *, is_directory: bool = False) -> Change:
        return cls(before=ContentRevision(Path(path), is_directory), after=None)

    @classmethod
    def moved(cls, source: Path | str, target: Path | str) -> Change:
        return cls(before=ContentRevision(Path(source)), after=ContentRevision(Path(target)))


@dataclass(eq=False, slots=True)
class ChangeList:
    """A named, ordered, mutable grouping of changes owned by the change tracker."""

    name: str
    changes: list[Change] = field(default_factory=list)
    is_default: bool = False
    comment: str = ""

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("change list name must not be empty")

    def __contains__(self, change: object) -> bool:
        return change in self.changes

    def add(self, change: Change) -> None:
        if change not in self.changes:
            self.changes.append(change)

    def remove(self, change: Change) -> bool:
        try:
            self.changes.remove(change)
        except ValueError:
            return False
        return True


@dataclass(frozen=True, slots=True)
class RevertFailure:
    """A backend-reported revert problem with enough context to show a user."""

    backend: BackendIdentity
    message: str
    paths: tuple[Path, ...] = ()
    detail: str | None = None

    def describe(self) -> str:
        text = f"[{self.backend}] {self.message}"
        if self.paths:
            text = f"{text}: {', '.join(path.as_posix() for path in self.paths)}"
        return text


@dataclass(frozen=True, slots=True)
class TouchedPath:
    """A location whose tracking state must be re-evaluated after the revert."""

    path: Path
    is_directory: bool = False


@dataclass(frozen=True, slots=True)
class BackendGroup:
    backend: BackendIdentity
    changes: tuple[Change, ...]

    @property
    def cleanup_candidates(self) -> tuple[Change, ...]:
        return tuple(change for change in self.changes if change.kind is ChangeKind.NEW)


@dataclass(frozen=True, slots=True)
class DeleteResult:
    """Outcome of one best-effort cleanup deletion; never escalated to a failure."""

    path: Path
    deleted: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class GroupOutcome:
    backend: BackendIdentity
    failures: tuple[RevertFailure, ...] = ()
    touched_paths: tuple[TouchedPath, ...] = ()
    cleanup: tuple[DeleteResult, ...] = ()
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.skipped and not self.failures


@dataclass(slots=True)
class RollbackReport:
    """Everything one orchestrator run produced, in deterministic group order."""

    failures: list[RevertFailure] = field(default_factory=list)
    touched_paths: list[TouchedPath] = field(default_factory=list)
    outcomes: list[GroupOutcome] = field(default_factory=list)
    skipped_backends: list[BackendIdentity] = field(default_factory=list)
    cancelled: bool = False
    reconciliation: ReconciliationTicket | None = None

    @property
    def succeeded(self) -> bool:
        return not self.failures


def collect_touched_paths(outcomes: Iterable[GroupOutcome]) -> list[TouchedPath]:
    """Union of every outcome's touched paths, first-seen order, no duplicates."""

    seen: set[TouchedPath] = set()
    ordered: list[TouchedPath] = []
    for outcome in outcomes:
        for touched in outcome.touched_paths:
            if touched in seen:
                continue
            seen.add(touched)
            ordered.append(touched)
    return ordered


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
