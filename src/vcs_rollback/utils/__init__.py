"""Utility exports for filesystem and concurrency helpers."""

from vcs_rollback.utils.concurrency import BoundedSemaphore, CancellationToken, WorkerPool
from vcs_rollback.utils.fs import is_within, nearest_existing_ancestor, normalize_path, remove_path

__all__ = [
    "BoundedSemaphore",
    "CancellationToken",
    "WorkerPool",
    "is_within",
    "nearest_existing_ancestor",
    "normalize_path",
    "remove_path",
]
