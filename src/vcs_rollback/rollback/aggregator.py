"""Merge per-backend failure lists into one ordered report."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from vcs_rollback.domain.models import BackendIdentity, GroupOutcome, RevertFailure


class FailureAggregator:
    """
    Single-writer collector for group outcomes.

    Outcomes are added after the execution fan-out has joined, in partition
    order, so the merged list is deterministic for a given input. Failures are
    neither sorted nor deduplicated.
    """

    def __init__(self) -> None:
        self._groups: list[tuple[BackendIdentity, tuple[RevertFailure, ...]]] = []

    def add(self, outcome: GroupOutcome) -> None:
        self._groups.append((outcome.backend, outcome.failures))

    def extend(self, outcomes: Iterable[GroupOutcome]) -> None:
        for outcome in outcomes:
            self.add(outcome)

    def failures(self) -> list[RevertFailure]:
        merged: list[RevertFailure] = []
        for _, failures in self._groups:
            merged.extend(failures)
        return merged

    @property
    def total(self) -> int:
        return sum(len(failures) for _, failures in self._groups)

    @property
    def is_clean(self) -> bool:
        return self.total == 0

    def counts_by_backend(self) -> dict[BackendIdentity, int]:
        counts: dict[BackendIdentity, int] = {}
        for backend, failures in self._groups:
            counts[backend] = counts.get(backend, 0) + len(failures)
        return counts


def aggregate_failures(outcomes: Iterable[GroupOutcome]) -> list[RevertFailure]:
    aggregator = FailureAggregator()
    aggregator.extend(outcomes)
    return aggregator.failures()


__all__ = ["FailureAggregator", "aggregate_failures"]
