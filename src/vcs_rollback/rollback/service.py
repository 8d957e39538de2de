"""
vcs-rollback — configured rollback service.

Purpose
- Wire the rollback core from an effective ``rollback.toml`` config: backend
  registry from ``[backends.*]``, refresh queue sized by ``[refresh]``, and
  orchestrator settings and call defaults from ``[rollback]``.

Functional requirements
- Orchestrators are single use; the service is long lived and hands out a
  fresh orchestrator for every run.
- ``[rollback] delete_new_files`` and ``refresh_synchronously`` are defaults
  only; explicit call arguments win.
- A refresh queue the service created is shut down by :meth:`close`; an
  injected one is left to its owner.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from vcs_rollback.backends.registry import registry_from_config
from vcs_rollback.rollback.orchestrator import RollbackOrchestrator
from vcs_rollback.rollback.reconciliation import ReconciliationScheduler
from vcs_rollback.tracking.refresh import LocalRefreshQueue

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from types import TracebackType

    from vcs_rollback.contracts import (
        CapabilityRegistry,
        ChangeListTracker,
        DirtyScopeTracker,
        ErrorPresenter,
        EventLogger,
        HistoryService,
        ProgressCallback,
        RefreshService,
        SessionLiveness,
    )
    from vcs_rollback.domain.models import Change, RollbackReport
    from vcs_rollback.utils.concurrency import CancellationToken


class RollbackService:
    """Long-lived rollback wiring built from a loaded config."""

    def __init__(
        self,
        config: Mapping[str, Any],
        *,
        tracker: DirtyScopeTracker,
        session: SessionLiveness,
        history: HistoryService,
        change_lists: ChangeListTracker | None = None,
        registry: CapabilityRegistry | None = None,
        refresh: RefreshService | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        settings = config["rollback"]
        self.operation_name = str(settings["operation_name"])
        self.max_concurrency = int(settings["max_concurrency"])
        self.delete_new_files = bool(settings["delete_new_files"])
        self.refresh_synchronously = bool(settings["refresh_synchronously"])

        self.registry = registry if registry is not None else registry_from_config(config)
        self._owned_refresh: LocalRefreshQueue | None = None
        if refresh is None:
            self._owned_refresh = LocalRefreshQueue(
                max_workers=int(config["refresh"]["worker_threads"]), logger=logger
            )
            refresh = self._owned_refresh
        self.refresh = refresh
        self.scheduler = ReconciliationScheduler(
            refresh=refresh,
            tracker=tracker,
            session=session,
            history=history,
            label=self.operation_name,
            logger=logger,
        )
        self._change_lists = change_lists
        self._logger = logger

    def orchestrator(
        self,
        *,
        cancel_token: CancellationToken | None = None,
        error_presenter: ErrorPresenter | None = None,
        progress: ProgressCallback | None = None,
    ) -> RollbackOrchestrator:
        return RollbackOrchestrator(
            registry=self.registry,
            scheduler=self.scheduler,
            change_lists=self._change_lists,
            max_concurrency=self.max_concurrency,
            cancel_token=cancel_token,
            error_presenter=error_presenter,
            progress=progress,
            operation_name=self.operation_name,
            logger=self._logger,
        )

    async def rollback(
        self,
        changes: Iterable[Change],
        *,
        delete_new_files: bool | None = None,
        synchronous: bool | None = None,
        cancel_token: CancellationToken | None = None,
        error_presenter: ErrorPresenter | None = None,
        progress: ProgressCallback | None = None,
    ) -> RollbackReport:
        """Run one rollback with a fresh orchestrator and return its report."""

        orchestrator = self.orchestrator(
            cancel_token=cancel_token, error_presenter=error_presenter, progress=progress
        )
        if delete_new_files is None:
            delete_new_files = self.delete_new_files
        if synchronous is None:
            synchronous = self.refresh_synchronously
        await orchestrator.rollback(
            changes, delete_new_files=delete_new_files, synchronous=synchronous
        )
        report = orchestrator.report
        assert report is not None
        return report

    def rollback_blocking(
        self,
        changes: Iterable[Change],
        *,
        delete_new_files: bool | None = None,
        synchronous: bool | None = None,
    ) -> RollbackReport:
        return asyncio.run(
            self.rollback(changes, delete_new_files=delete_new_files, synchronous=synchronous)
        )

    def close(self) -> None:
        if self._owned_refresh is not None:
            self._owned_refresh.shutdown(wait=True)

    def __enter__(self) -> RollbackService:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["RollbackService"]
