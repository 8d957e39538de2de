"""Concurrency primitives used to fan rollback work out over backend groups."""

from __future__ import annotations

import asyncio
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Sequence

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation token; safe to trigger from any thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


class BoundedSemaphore:
    """Small wrapper over ``asyncio.Semaphore`` that tracks permits in use."""

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self._limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._in_use = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def in_use(self) -> int:
        return self._in_use

    async def acquire(self) -> None:
        # Cancellation while waiting here does not acquire a permit.
        await self._semaphore.acquire()
        self._in_use += 1

    def release(self) -> None:
        if self._in_use <= 0:
            raise RuntimeError("release called more times than acquire")
        self._in_use -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        await self.acquire()
        try:
            yield
        finally:
            self.release()


@dataclass(slots=True)
class WorkerPool(Generic[T]):
    """Run blocking callables on worker threads with bounded concurrency.

    Results come back in submission order. Cancellation is checked only before
    a callable starts: a callable already running always finishes, and
    callables that never started report ``None``.

    ``map_blocking`` never returns or raises while one of its callables is
    still running. When a callable or ``on_result`` raises, callables that
    have not started are skipped, the running ones are awaited, and the error
    is re-raised. Such an abort never cancels the caller's ``cancel_token``.
    """

    max_concurrency: int
    cancel_token: CancellationToken | None = None
    _token: CancellationToken = field(init=False, repr=False)
    _abort: CancellationToken = field(init=False, repr=False)
    _semaphore: BoundedSemaphore = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        self._token = self.cancel_token or CancellationToken()
        self._abort = CancellationToken()
        self._semaphore = BoundedSemaphore(self.max_concurrency)

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def aborted(self) -> bool:
        return self._abort.is_cancelled

    async def map_blocking(
        self,
        calls: Sequence[Callable[[], T]],
        *,
        on_result: Callable[[int, T], None] | None = None,
    ) -> list[T | None]:
        results: list[T | None] = [None] * len(calls)
        tasks: dict[asyncio.Task[T | None], int] = {
            asyncio.create_task(self._run_one(call)): index for index, call in enumerate(calls)
        }
        pending = set(tasks)

        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in sorted(done, key=tasks.__getitem__):
                    index = tasks[task]
                    value = task.result()
                    results[index] = value
                    if value is not None and on_result is not None:
                        on_result(index, value)
        except BaseException:
            self._abort.cancel()
            await self._drain(pending)
            raise
        return results

    async def _run_one(self, call: Callable[[], T]) -> T | None:
        async with self._semaphore.permit():
            if self._token.is_cancelled or self._abort.is_cancelled:
                return None
            return await asyncio.to_thread(call)

    async def _drain(self, tasks: set[asyncio.Task[T | None]]) -> None:
        # Threads cannot be interrupted; started calls are awaited, waiting ones skip.
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


__all__ = [
    "BoundedSemaphore",
    "CancellationToken",
    "WorkerPool",
]
