"""
vcs-rollback — rollback orchestration.

State machine (one run per instance):

    IDLE -> PARTITIONING -> EXECUTING -> REPORTING -> REFRESH_NOW | REFRESH_DEFERRED -> DONE

- PARTITIONING groups the input by owning backend; an empty valid set is fine.
- EXECUTING reverts every group on a bounded worker pool and joins them all.
  Cancellation is checked between groups only.
- REPORTING aggregates failures and hands them to the optional presenter. It
  never waits for an asynchronous refresh.
- REFRESH_NOW blocks until tracking state is reconciled; REFRESH_DEFERRED
  schedules reconciliation and returns.
"""

from __future__ import annotations

import asyncio
import threading
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from vcs_rollback.constants import (
    AFTER_UPDATE_LABEL,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_OPERATION_NAME,
)
from vcs_rollback.domain.models import RollbackReport, collect_touched_paths
from vcs_rollback.observability.logging import correlation_scope
from vcs_rollback.rollback.aggregator import FailureAggregator
from vcs_rollback.rollback.errors import OrchestratorReusedError
from vcs_rollback.rollback.executor import RevertExecutor
from vcs_rollback.rollback.partitioner import partition_changes
from vcs_rollback.utils.concurrency import CancellationToken, WorkerPool

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from vcs_rollback.contracts import (
        CapabilityRegistry,
        ChangeListTracker,
        ErrorPresenter,
        EventLogger,
        ProgressCallback,
    )
    from vcs_rollback.domain.models import BackendGroup, Change, GroupOutcome, RevertFailure
    from vcs_rollback.rollback.reconciliation import ReconciliationScheduler


class RollbackState(StrEnum):
    IDLE = "idle"
    PARTITIONING = "partitioning"
    EXECUTING = "executing"
    REPORTING = "reporting"
    REFRESH_NOW = "refresh_now"
    REFRESH_DEFERRED = "refresh_deferred"
    DONE = "done"


class RollbackOrchestrator:
    """Partition, revert, report, and reconcile one batch of changes."""

    def __init__(
        self,
        *,
        registry: CapabilityRegistry,
        scheduler: ReconciliationScheduler,
        change_lists: ChangeListTracker | None = None,
        executor: RevertExecutor | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        cancel_token: CancellationToken | None = None,
        error_presenter: ErrorPresenter | None = None,
        progress: ProgressCallback | None = None,
        operation_name: str = DEFAULT_OPERATION_NAME,
        logger: EventLogger | None = None,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        self._registry = registry
        self._scheduler = scheduler
        self._change_lists = change_lists
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._executor = executor or RevertExecutor(registry, logger=self._logger)
        self._max_concurrency = max_concurrency
        self._cancel_token = cancel_token or CancellationToken()
        self._error_presenter = error_presenter
        self._progress = progress
        self._operation_name = operation_name
        self._state = RollbackState.IDLE
        self._state_lock = threading.Lock()
        self._report: RollbackReport | None = None

    @property
    def state(self) -> RollbackState:
        with self._state_lock:
            return self._state

    @property
    def report(self) -> RollbackReport | None:
        return self._report

    @property
    def cancel_token(self) -> CancellationToken:
        return self._cancel_token

    def cancel(self) -> None:
        self._cancel_token.cancel()

    async def rollback(
        self,
        changes: Iterable[Change],
        *,
        delete_new_files: bool,
        synchronous: bool,
    ) -> list[RevertFailure]:
        """
        Revert ``changes`` and return the aggregated failures.

        Returns once every backend group finished. With ``synchronous`` the
        tracking state is reconciled before returning as well; otherwise the
        reconciliation ticket on :attr:`report` resolves later.
        """

        with self._state_lock:
            if self._state is not RollbackState.IDLE:
                raise OrchestratorReusedError("orchestrator instances are single use")
            self._state = RollbackState.PARTITIONING

        with correlation_scope(run_id=f"rollback-{uuid4().hex[:12]}"):
            try:
                return await self._run(
                    list(changes),
                    delete_new_files=delete_new_files,
                    synchronous=synchronous,
                )
            finally:
                self._transition(RollbackState.DONE)

    def rollback_blocking(
        self,
        changes: Iterable[Change],
        *,
        delete_new_files: bool,
        synchronous: bool,
    ) -> list[RevertFailure]:
        """Run :meth:`rollback` on a private event loop for callers without one."""

        return asyncio.run(
            self.rollback(changes, delete_new_files=delete_new_files, synchronous=synchronous)
        )

    async def _run(
        self,
        changes: list[Change],
        *,
        delete_new_files: bool,
        synchronous: bool,
    ) -> list[RevertFailure]:
        # Backend resolution and refresh-root discovery touch the filesystem.
        groups = await asyncio.to_thread(partition_changes, changes, self._registry)
        self._logger.info(
            "rollback_started",
            change_count=len(changes),
            group_count=len(groups),
            backends=[group.backend for group in groups],
            delete_new_files=delete_new_files,
            synchronous=synchronous,
        )
        continuation = self._prepare_continuation(changes)

        self._transition(RollbackState.EXECUTING)
        outcomes, cancelled = await self._execute(groups, delete_new_files=delete_new_files)

        self._transition(RollbackState.REPORTING)
        report = self._build_report(outcomes, cancelled=cancelled)
        self._report = report
        if report.failures and self._error_presenter is not None:
            self._error_presenter(list(report.failures), self._operation_name)

        self._transition(
            RollbackState.REFRESH_NOW if synchronous else RollbackState.REFRESH_DEFERRED
        )
        report.reconciliation = await asyncio.to_thread(
            self._scheduler.reconcile,
            report.touched_paths,
            synchronous=synchronous,
            continuation=continuation,
        )

        self._logger.info(
            "rollback_finished",
            failure_count=len(report.failures),
            touched_count=len(report.touched_paths),
            skipped_backends=list(report.skipped_backends),
            cancelled=report.cancelled,
        )
        return list(report.failures)

    async def _execute(
        self,
        groups: Sequence[BackendGroup],
        *,
        delete_new_files: bool,
    ) -> tuple[list[GroupOutcome], bool]:
        if not groups:
            return [], False

        pool: WorkerPool[GroupOutcome] = WorkerPool(
            max_concurrency=min(self._max_concurrency, len(groups)),
            cancel_token=self._cancel_token,
        )
        completed = 0

        def on_result(_: int, outcome: GroupOutcome) -> None:
            nonlocal completed
            completed += 1
            if self._progress is not None:
                self._progress(completed, len(groups), outcome.backend)

        results = await pool.map_blocking(
            [self._group_call(group, delete_new_files) for group in groups],
            on_result=on_result,
        )
        outcomes = [outcome for outcome in results if outcome is not None]
        cancelled = len(outcomes) < len(groups)
        if cancelled:
            self._logger.warning(
                "rollback_cancelled",
                completed_groups=len(outcomes),
                total_groups=len(groups),
            )
        return outcomes, cancelled

    def _group_call(
        self, group: BackendGroup, delete_new_files: bool
    ) -> Callable[[], GroupOutcome]:
        def call() -> GroupOutcome:
            return self._executor.revert_group(group, delete_new_files=delete_new_files)

        return call

    def _build_report(self, outcomes: list[GroupOutcome], *, cancelled: bool) -> RollbackReport:
        aggregator = FailureAggregator()
        aggregator.extend(outcomes)
        return RollbackReport(
            failures=aggregator.failures(),
            touched_paths=collect_touched_paths(outcomes),
            outcomes=list(outcomes),
            skipped_backends=[outcome.backend for outcome in outcomes if outcome.skipped],
            cancelled=cancelled,
        )

    def _prepare_continuation(self, changes: list[Change]) -> Callable[[], None] | None:
        tracker = self._change_lists
        if tracker is None:
            return None
        notifier = tracker.prepare_for_change_deletion(changes)

        def continuation() -> None:
            tracker.invoke_after_update(notifier, AFTER_UPDATE_LABEL)

        return continuation

    def _transition(self, state: RollbackState) -> None:
        with self._state_lock:
            self._state = state


__all__ = ["RollbackOrchestrator", "RollbackState"]
