"""In-process local history: labelled actions with start and finish times."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass(slots=True)
class HistoryEntry:
    label: str
    started_at: float
    finished_at: float | None = None

    @property
    def finished(self) -> bool:
        return self.finished_at is not None


class LocalHistoryAction:
    def __init__(self, history: LocalHistory, entry: HistoryEntry) -> None:
        self._history = history
        self._entry = entry

    @property
    def entry(self) -> HistoryEntry:
        return self._entry

    def finish(self) -> None:
        self._history._finish(self._entry)


class LocalHistory:
    """Records every bracketed action; finishing an action twice is an error."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[HistoryEntry] = []

    def begin_action(self, label: str) -> LocalHistoryAction:
        entry = HistoryEntry(label=label, started_at=time.monotonic())
        with self._lock:
            self._entries.append(entry)
        return LocalHistoryAction(self, entry)

    def entries(self) -> tuple[HistoryEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def open_actions(self) -> tuple[HistoryEntry, ...]:
        with self._lock:
            return tuple(entry for entry in self._entries if not entry.finished)

    def _finish(self, entry: HistoryEntry) -> None:
        with self._lock:
            if entry.finished_at is not None:
                raise RuntimeError(f"history action {entry.label!r} finished twice")
            entry.finished_at = time.monotonic()


__all__ = ["HistoryEntry", "LocalHistory", "LocalHistoryAction"]
