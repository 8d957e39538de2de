"""Change-list membership and post-update notification queue."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from vcs_rollback.domain.models import ChangeList

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from vcs_rollback.domain.models import Change


class ChangeListManager:
    """Owns named change lists; every change belongs to at most one list."""

    def __init__(self, *, default_name: str = "Default") -> None:
        self._lock = threading.RLock()
        self._lists: dict[str, ChangeList] = {
            default_name: ChangeList(name=default_name, is_default=True)
        }
        self._default_name = default_name
        self._after_update: list[tuple[str, Callable[[], None]]] = []

    @property
    def default_list(self) -> ChangeList:
        with self._lock:
            return self._lists[self._default_name]

    def lists(self) -> tuple[ChangeList, ...]:
        with self._lock:
            return tuple(self._lists.values())

    def get(self, name: str) -> ChangeList | None:
        with self._lock:
            return self._lists.get(name)

    def add_change_list(self, name: str, *, comment: str = "") -> ChangeList:
        with self._lock:
            if name in self._lists:
                raise ValueError(f"change list {name!r} already exists")
            created = ChangeList(name=name, comment=comment)
            self._lists[name] = created
            return created

    def add_change(self, change: Change, list_name: str | None = None) -> ChangeList:
        with self._lock:
            target = self._lists.get(list_name or self._default_name)
            if target is None:
                raise KeyError(f"unknown change list {list_name!r}")
            current = self.change_list_for(change)
            if current is not None and current is not target:
                current.remove(change)
            target.add(change)
            return target

    def change_list_for(self, change: Change) -> ChangeList | None:
        with self._lock:
            for change_list in self._lists.values():
                if change in change_list:
                    return change_list
            return None

    def prepare_for_change_deletion(self, changes: Sequence[Change]) -> Callable[[], None]:
        """Return a notifier that drops ``changes`` from their lists when run."""

        pending = tuple(changes)

        def notifier() -> None:
            with self._lock:
                for change in pending:
                    owner = self.change_list_for(change)
                    if owner is not None:
                        owner.remove(change)

        return notifier

    def invoke_after_update(self, callback: Callable[[], None], label: str) -> None:
        with self._lock:
            self._after_update.append((label, callback))

    @property
    def pending_after_update(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(label for label, _ in self._after_update)

    def complete_update(self) -> int:
        """Finish a tracker update: run and clear every queued callback."""

        with self._lock:
            queued = list(self._after_update)
            self._after_update.clear()
        for _, callback in queued:
            callback()
        return len(queued)


__all__ = ["ChangeListManager"]
