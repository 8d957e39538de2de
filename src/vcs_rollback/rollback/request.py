"""Caller-side preparation of a rollback request before the core runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from vcs_rollback.constants import DEFAULT_OPERATION_NAME, MNEMONIC_MARKERS
from vcs_rollback.domain.models import ChangeKind
from vcs_rollback.rollback.errors import EmptyRollbackError
from vcs_rollback.rollback.partitioner import affected_backends

if TYPE_CHECKING:
    from collections.abc import Collection

    from vcs_rollback.contracts import CapabilityRegistry, ChangeListTracker
    from vcs_rollback.domain.models import BackendIdentity, Change, ChangeList


@dataclass(frozen=True, slots=True)
class RollbackRequest:
    """What a front end needs to confirm a rollback with the user."""

    changes: tuple[Change, ...]
    change_lists: tuple[ChangeList, ...]
    backends: tuple[BackendIdentity, ...]
    operation_name: str
    offers_new_file_cleanup: bool


def strip_mnemonics(name: str) -> str:
    for marker in MNEMONIC_MARKERS:
        name = name.replace(marker, "")
    return name.strip()


def prepare_rollback(
    changes: Collection[Change],
    change_lists: ChangeListTracker,
    registry: CapabilityRegistry,
) -> RollbackRequest:
    """
    Filter ``changes`` down to those tracked in a change list and describe them.

    Raises :class:`EmptyRollbackError` for an empty selection. The operation
    name is backend specific only when exactly one backend is involved.
    """

    if not changes:
        raise EmptyRollbackError()

    valid: list[Change] = []
    lists: list[ChangeList] = []
    for change in changes:
        owner = change_lists.change_list_for(change)
        if owner is None:
            continue
        valid.append(change)
        if not any(existing is owner for existing in lists):
            lists.append(owner)

    backends = affected_backends(valid, registry)
    operation_name = DEFAULT_OPERATION_NAME
    if len(backends) == 1:
        capability = registry.capability_for(backends[0])
        if capability is not None:
            operation_name = strip_mnemonics(capability.operation_name) or DEFAULT_OPERATION_NAME

    return RollbackRequest(
        changes=tuple(valid),
        change_lists=tuple(lists),
        backends=backends,
        operation_name=operation_name,
        offers_new_file_cleanup=any(change.kind is ChangeKind.NEW for change in valid),
    )


__all__ = ["RollbackRequest", "prepare_rollback", "strip_mnemonics"]
