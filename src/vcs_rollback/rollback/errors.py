"""Error types raised by the rollback core.

Backend revert problems are never raised; they travel as ``RevertFailure``
entries. These exceptions cover caller mistakes only.
"""

from __future__ import annotations


class RollbackError(RuntimeError):
    """Base error for rollback orchestration misuse."""


class EmptyRollbackError(RollbackError):
    """Raised when a rollback is requested without any changes."""

    def __init__(self) -> None:
        super().__init__("no changes detected")


class OrchestratorReusedError(RollbackError):
    """Raised when a finished orchestrator instance is invoked again."""


__all__ = ["EmptyRollbackError", "OrchestratorReusedError", "RollbackError"]
