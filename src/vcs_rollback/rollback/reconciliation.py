"""
vcs-rollback — post-revert reconciliation of tracking state.

Purpose
- Bracket the refresh in a history action that is closed exactly once.
- Refresh every touched path in a single request, addressing each path by its
  nearest existing ancestor.
- On refresh completion, if the session is still alive, mark every touched
  path dirty and run the caller's continuation inside one exclusive
  tracking-state unit.

In synchronous mode ``reconcile`` returns only after completion ran. In
asynchronous mode it returns right after scheduling and completion runs on
whichever thread the refresh service finishes on. An abandoned session is a
normal outcome, not an error.
"""

from __future__ import annotations

import threading
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from vcs_rollback.constants import DEFAULT_OPERATION_NAME
from vcs_rollback.utils.fs import nearest_existing_ancestor

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from pathlib import Path

    from vcs_rollback.contracts import (
        DirtyScopeTracker,
        EventLogger,
        HistoryAction,
        HistoryService,
        RefreshService,
        SessionLiveness,
    )
    from vcs_rollback.domain.models import TouchedPath


class ReconciliationOutcome(StrEnum):
    PENDING = "pending"
    APPLIED = "applied"
    ABANDONED = "abandoned"
    FAILED = "failed"


class ReconciliationTicket:
    """Handle on one scheduled reconciliation; resolves exactly once."""

    def __init__(self, *, synchronous: bool, path_count: int) -> None:
        self.synchronous = synchronous
        self.path_count = path_count
        self._lock = threading.Lock()
        self._claimed = False
        self._done = threading.Event()
        self._outcome = ReconciliationOutcome.PENDING

    @property
    def outcome(self) -> ReconciliationOutcome:
        with self._lock:
            return self._outcome

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    def claim(self) -> bool:
        """Return ``True`` for the first completion attempt only."""
        with self._lock:
            if self._claimed:
                return False
            self._claimed = True
            return True

    def resolve(self, outcome: ReconciliationOutcome) -> None:
        with self._lock:
            if self._outcome is not ReconciliationOutcome.PENDING:
                return
            self._outcome = outcome
        self._done.set()


class HistoryBracket:
    """History action opened on construction; ``close`` finishes it at most once."""

    def __init__(self, history: HistoryService, label: str) -> None:
        self.label = label
        self._action: HistoryAction = history.begin_action(label)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def close(self) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._closed = True
        self._action.finish()
        return True


def refresh_roots(touched: Iterable[TouchedPath]) -> list[Path]:
    """Nearest existing location for each touched path, deduplicated in order."""

    roots: list[Path] = []
    seen: set[Path] = set()
    for item in touched:
        root = nearest_existing_ancestor(item.path)
        if root in seen:
            continue
        seen.add(root)
        roots.append(root)
    return roots


class ReconciliationScheduler:
    """Drives refresh plus dirty-marking for the paths a rollback touched."""

    def __init__(
        self,
        *,
        refresh: RefreshService,
        tracker: DirtyScopeTracker,
        session: SessionLiveness,
        history: HistoryService,
        label: str = DEFAULT_OPERATION_NAME,
        logger: EventLogger | None = None,
    ) -> None:
        self._refresh = refresh
        self._tracker = tracker
        self._session = session
        self._history = history
        self._label = label
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def reconcile(
        self,
        touched: Sequence[TouchedPath],
        *,
        synchronous: bool,
        continuation: Callable[[], None] | None = None,
    ) -> ReconciliationTicket:
        snapshot = tuple(touched)
        ticket = ReconciliationTicket(synchronous=synchronous, path_count=len(snapshot))
        bracket = HistoryBracket(self._history, self._label)
        roots = refresh_roots(snapshot)

        def on_complete() -> None:
            self._complete(snapshot, bracket, ticket, continuation)

        self._logger.debug(
            "rollback_refresh_scheduled",
            synchronous=synchronous,
            touched_count=len(snapshot),
            root_count=len(roots),
        )
        try:
            self._refresh.schedule_refresh(roots, synchronous=synchronous, on_complete=on_complete)
        except Exception:
            bracket.close()
            ticket.resolve(ReconciliationOutcome.FAILED)
            raise
        return ticket

    def _complete(
        self,
        touched: tuple[TouchedPath, ...],
        bracket: HistoryBracket,
        ticket: ReconciliationTicket,
        continuation: Callable[[], None] | None,
    ) -> None:
        if not ticket.claim():
            return
        bracket.close()

        if not self._session.is_alive():
            self._logger.info(
                "rollback_reconciliation_abandoned",
                touched_count=len(touched),
            )
            ticket.resolve(ReconciliationOutcome.ABANDONED)
            return

        def unit() -> None:
            for item in touched:
                self._tracker.mark_dirty(item.path, recursive=item.is_directory)
            if continuation is not None:
                continuation()

        try:
            self._tracker.run_exclusive(unit)
        except Exception:
            ticket.resolve(ReconciliationOutcome.FAILED)
            raise
        self._logger.info(
            "rollback_reconciliation_applied",
            touched_count=len(touched),
            synchronous=ticket.synchronous,
        )
        ticket.resolve(ReconciliationOutcome.APPLIED)


__all__ = [
    "HistoryBracket",
    "ReconciliationOutcome",
    "ReconciliationScheduler",
    "ReconciliationTicket",
    "refresh_roots",
]
