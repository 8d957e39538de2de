"""Group a flat change set by the backend that owns each change."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vcs_rollback.domain.models import BackendGroup

if TYPE_CHECKING:
    from collections.abc import Iterable

    from vcs_rollback.contracts import BackendResolver
    from vcs_rollback.domain.models import BackendIdentity, Change


def partition_changes(
    changes: Iterable[Change],
    resolver: BackendResolver,
) -> tuple[BackendGroup, ...]:
    """
    Split ``changes`` into one group per resolved backend.

    Groups appear in the order their backend is first seen and keep the input
    order of their changes. Changes whose backend does not resolve are left
    out, and a change repeated in the input is kept only once.
    """

    grouped: dict[BackendIdentity, list[Change]] = {}
    seen: set[Change] = set()
    for change in changes:
        if change in seen:
            continue
        seen.add(change)
        backend = resolver.resolve_backend(change)
        if backend is None:
            # Integration may be disabled while the tracker catches up.
            continue
        grouped.setdefault(backend, []).append(change)

    return tuple(BackendGroup(backend=key, changes=tuple(value)) for key, value in grouped.items())


def affected_backends(
    changes: Iterable[Change],
    resolver: BackendResolver,
) -> tuple[BackendIdentity, ...]:
    return tuple(group.backend for group in partition_changes(changes, resolver))


__all__ = ["affected_backends", "partition_changes"]
