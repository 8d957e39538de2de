"""
vcs-rollback — local filesystem refresh queue.

Purpose
- Rescan a batch of paths either inline or on a background worker thread and
  signal completion through a callback.

Functional requirements
- One call is one refresh session: every path is scanned before
  ``on_complete`` fires, and ``on_complete`` fires even for an empty batch.
- Synchronous sessions run on the calling thread.
"""

from __future__ import annotations

import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

import structlog

from vcs_rollback.constants import DEFAULT_REFRESH_WORKERS

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from concurrent.futures import Future
    from types import TracebackType

    from vcs_rollback.contracts import EventLogger

DEFAULT_RECORD_LIMIT: Final[int] = 1024


@dataclass(frozen=True, slots=True)
class RefreshRecord:
    path: Path
    exists: bool
    is_directory: bool
    mtime_ns: int | None


def scan_path(path: Path) -> RefreshRecord:
    try:
        stat = path.stat()
    except FileNotFoundError:
        return RefreshRecord(path=path, exists=False, is_directory=False, mtime_ns=None)
    return RefreshRecord(
        path=path,
        exists=True,
        is_directory=path.is_dir(),
        mtime_ns=stat.st_mtime_ns,
    )


class LocalRefreshQueue:
    """Thread-pool backed implementation of the refresh service contract."""

    def __init__(
        self,
        *,
        max_workers: int = DEFAULT_REFRESH_WORKERS,
        record_limit: int = DEFAULT_RECORD_LIMIT,
        logger: EventLogger | None = None,
    ) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        if record_limit <= 0:
            raise ValueError("record_limit must be > 0")
        self._max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="vcs-rollback-refresh"
        )
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._lock = threading.Lock()
        # Most recent scans only; older records fall off the front.
        self._records: deque[RefreshRecord] = deque(maxlen=record_limit)
        self._pending: set[Future[None]] = set()

    def schedule_refresh(
        self,
        paths: Sequence[Path],
        *,
        synchronous: bool,
        on_complete: Callable[[], None],
    ) -> None:
        batch = tuple(Path(path) for path in paths)
        if synchronous:
            self._run_session(batch, on_complete)
            return

        future = self._executor.submit(self._run_background, batch, on_complete)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def records(self) -> tuple[RefreshRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def drain_records(self) -> tuple[RefreshRecord, ...]:
        """Return the retained scan records and forget them."""

        with self._lock:
            drained = tuple(self._records)
            self._records.clear()
        return drained

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every background session scheduled so far has finished."""

        with self._lock:
            pending = tuple(self._pending)
        for future in pending:
            try:
                future.result(timeout=timeout)
            except TimeoutError:
                return False
        return True

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> LocalRefreshQueue:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True)

    def _run_session(self, batch: tuple[Path, ...], on_complete: Callable[[], None]) -> None:
        scanned = [scan_path(path) for path in batch]
        with self._lock:
            self._records.extend(scanned)
        on_complete()

    def _run_background(self, batch: tuple[Path, ...], on_complete: Callable[[], None]) -> None:
        try:
            self._run_session(batch, on_complete)
        except Exception:
            self._logger.exception("rollback_refresh_completion_failed", path_count=len(batch))
            raise

    def _forget(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)


__all__ = ["DEFAULT_RECORD_LIMIT", "LocalRefreshQueue", "RefreshRecord", "scan_path"]
