"""Shared fakes and builders for rollback core tests."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from vcs_rollback.domain.models import RevertFailure
from vcs_rollback.rollback.reconciliation import ReconciliationScheduler
from vcs_rollback.tracking.changelists import ChangeListManager
from vcs_rollback.tracking.history import LocalHistory
from vcs_rollback.tracking.session import ProjectSession

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from vcs_rollback.domain.models import Change

T = TypeVar("T")


@dataclass(slots=True)
class RecordingLogger:
    events: list[tuple[str, str, dict[str, object]]] = field(default_factory=list)

    def debug(self, event: str, **kwargs: object) -> None:
        self.events.append(("debug", event, dict(kwargs)))

    def info(self, event: str, **kwargs: object) -> None:
        self.events.append(("info", event, dict(kwargs)))

    def warning(self, event: str, **kwargs: object) -> None:
        self.events.append(("warning", event, dict(kwargs)))

    def exception(self, event: str, **kwargs: object) -> None:
        self.events.append(("exception", event, dict(kwargs)))

    def names(self) -> list[str]:
        return [event for _, event, _ in self.events]

    def find(self, event: str) -> dict[str, object]:
        for _, name, fields in self.events:
            if name == event:
                return fields
        raise AssertionError(f"event {event!r} not logged; got {self.names()}")


class FakeCapability:
    """Revert capability that records each batch and replays scripted results."""

    def __init__(
        self,
        backend: str,
        *,
        fail_paths: Sequence[str] = (),
        crash: BaseException | None = None,
        operation_name: str = "Rollback",
        gate: threading.Event | None = None,
        hook: Callable[[], object] | None = None,
    ) -> None:
        self.backend = backend
        self.fail_paths = tuple(Path(path) for path in fail_paths)
        self.crash = crash
        self._operation_name = operation_name
        self.gate = gate
        self.hook = hook
        self.calls: list[tuple[Change, ...]] = []
        self.threads: list[str] = []
        self._lock = threading.Lock()

    @property
    def operation_name(self) -> str:
        return self._operation_name

    def rollback_changes(self, changes: Sequence[Change]) -> list[RevertFailure]:
        with self._lock:
            self.calls.append(tuple(changes))
            self.threads.append(threading.current_thread().name)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.hook is not None:
            self.hook()
        if self.crash is not None:
            raise self.crash
        return [
            RevertFailure(backend=self.backend, message="revert failed", paths=(change.path,))
            for change in changes
            if change.path in self.fail_paths
        ]


class FakeRegistry:
    """Resolves a change to the first component of its (relative) path."""

    def __init__(self, capabilities: Mapping[str, FakeCapability | None]) -> None:
        self.capabilities = dict(capabilities)

    def resolve_backend(self, change: Change) -> str | None:
        head = change.path.parts[0] if change.path.parts else None
        return head if head in self.capabilities else None

    def capability_for(self, backend: str) -> FakeCapability | None:
        return self.capabilities.get(backend)


class FakeRefresh:
    """Refresh service: synchronous sessions complete inline, async ones on ``fire``."""

    def __init__(self) -> None:
        self.batches: list[tuple[tuple[Path, ...], bool]] = []
        self.pending: list[Callable[[], None]] = []
        self.error: Exception | None = None

    def schedule_refresh(
        self,
        paths: Sequence[Path],
        *,
        synchronous: bool,
        on_complete: Callable[[], None],
    ) -> None:
        if self.error is not None:
            raise self.error
        self.batches.append((tuple(paths), synchronous))
        if synchronous:
            on_complete()
        else:
            self.pending.append(on_complete)

    def fire(self) -> int:
        callbacks, self.pending = self.pending, []
        for callback in callbacks:
            callback()
        return len(callbacks)


class FakeTracker:
    """Dirty tracker that records whether each mark happened inside the exclusive unit."""

    def __init__(self) -> None:
        self.marks: list[tuple[Path, bool, bool]] = []
        self.units = 0
        self._in_unit = False
        self._lock = threading.RLock()

    def run_exclusive(self, unit: Callable[[], T]) -> T:
        with self._lock:
            self.units += 1
            self._in_unit = True
            try:
                return unit()
            finally:
                self._in_unit = False

    def mark_dirty(self, path: Path, *, recursive: bool) -> None:
        self.marks.append((path, recursive, self._in_unit))

    @property
    def marked_paths(self) -> list[Path]:
        return [path for path, _, _ in self.marks]


@dataclass(slots=True)
class Harness:
    refresh: FakeRefresh
    tracker: FakeTracker
    session: ProjectSession
    history: LocalHistory
    change_lists: ChangeListManager
    logger: RecordingLogger
    scheduler: ReconciliationScheduler


def make_harness(label: str = "Rollback") -> Harness:
    refresh = FakeRefresh()
    tracker = FakeTracker()
    session = ProjectSession("test-project")
    history = LocalHistory()
    logger = RecordingLogger()
    scheduler = ReconciliationScheduler(
        refresh=refresh,
        tracker=tracker,
        session=session,
        history=history,
        label=label,
        logger=logger,
    )
    return Harness(
        refresh=refresh,
        tracker=tracker,
        session=session,
        history=history,
        change_lists=ChangeListManager(),
        logger=logger,
        scheduler=scheduler,
    )


def track(change_lists: ChangeListManager, *changes: Change) -> None:
    for change in changes:
        change_lists.add_change(change)


__all__ = [
    "FakeCapability",
    "FakeRefresh",
    "FakeRegistry",
    "FakeTracker",
    "Harness",
    "RecordingLogger",
    "make_harness",
    "track",
]
