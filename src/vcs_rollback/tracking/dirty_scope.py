"""Dirty-scope bookkeeping: which locations the tracker must rescan."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from vcs_rollback.utils.fs import is_within, normalize_path

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class DirtyScope:
    files: tuple[Path, ...]
    directories: tuple[Path, ...]

    @property
    def is_empty(self) -> bool:
        return not self.files and not self.directories


class DirtyScopeManager:
    """
    Lock-guarded dirty state with a single exclusive write entry point.

    ``run_exclusive`` holds a reentrant lock for the duration of ``unit`` so a
    batch of ``mark_dirty`` calls never interleaves with a concurrent
    :meth:`drain` performed by the tracker's own recomputation.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._files: dict[Path, None] = {}
        self._directories: dict[Path, None] = {}

    def run_exclusive(self, unit: Callable[[], T]) -> T:
        with self._lock:
            return unit()

    def mark_dirty(self, path: Path, *, recursive: bool) -> None:
        normalized = normalize_path(path)
        with self._lock:
            if recursive:
                self._directories[normalized] = None
            else:
                self._files[normalized] = None

    def mark_file_dirty(self, path: Path) -> None:
        self.mark_dirty(path, recursive=False)

    def mark_dir_dirty_recursively(self, path: Path) -> None:
        self.mark_dirty(path, recursive=True)

    def is_dirty(self, path: Path) -> bool:
        normalized = normalize_path(path)
        with self._lock:
            if normalized in self._files or normalized in self._directories:
                return True
            return any(is_within(normalized, directory) for directory in self._directories)

    def snapshot(self) -> DirtyScope:
        with self._lock:
            return DirtyScope(files=tuple(self._files), directories=tuple(self._directories))

    def drain(self) -> DirtyScope:
        """Return and clear the accumulated scope."""
        with self._lock:
            scope = DirtyScope(files=tuple(self._files), directories=tuple(self._directories))
            self._files.clear()
            self._directories.clear()
            return scope


__all__ = ["DirtyScope", "DirtyScopeManager"]
