"""Project session liveness."""

from __future__ import annotations

import threading


class ProjectSession:
    """A disposable session; rollback reconciliation is skipped once disposed."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._disposed = threading.Event()

    def is_alive(self) -> bool:
        return not self._disposed.is_set()

    @property
    def is_disposed(self) -> bool:
        return self._disposed.is_set()

    def dispose(self) -> None:
        self._disposed.set()


__all__ = ["ProjectSession"]
