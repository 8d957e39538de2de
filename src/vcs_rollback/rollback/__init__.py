"""Rollback core: partition, execute, aggregate, reconcile, orchestrate."""

from vcs_rollback.rollback.aggregator import FailureAggregator, aggregate_failures
from vcs_rollback.rollback.errors import EmptyRollbackError, OrchestratorReusedError, RollbackError
from vcs_rollback.rollback.executor import RevertExecutor, delete_file, touched_paths_for
from vcs_rollback.rollback.orchestrator import RollbackOrchestrator, RollbackState
from vcs_rollback.rollback.partitioner import affected_backends, partition_changes
from vcs_rollback.rollback.reconciliation import (
    HistoryBracket,
    ReconciliationOutcome,
    ReconciliationScheduler,
    ReconciliationTicket,
    refresh_roots,
)
from vcs_rollback.rollback.request import RollbackRequest, prepare_rollback, strip_mnemonics
from vcs_rollback.rollback.service import RollbackService

__all__ = [
    "EmptyRollbackError",
    "FailureAggregator",
    "HistoryBracket",
    "OrchestratorReusedError",
    "ReconciliationOutcome",
    "ReconciliationScheduler",
    "ReconciliationTicket",
    "RevertExecutor",
    "RollbackError",
    "RollbackOrchestrator",
    "RollbackRequest",
    "RollbackService",
    "RollbackState",
    "affected_backends",
    "aggregate_failures",
    "delete_file",
    "partition_changes",
    "prepare_rollback",
    "refresh_roots",
    "strip_mnemonics",
    "touched_paths_for",
]
