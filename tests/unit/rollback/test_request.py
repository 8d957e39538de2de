"""Unit tests for rollback request preparation."""

from __future__ import annotations

import pytest

from vcs_rollback.domain.models import Change
from vcs_rollback.rollback.errors import EmptyRollbackError
from vcs_rollback.rollback.request import prepare_rollback, strip_mnemonics
from vcs_rollback.tracking.changelists import ChangeListManager

from . import FakeCapability, FakeRegistry, track


def test_empty_selection_is_rejected() -> None:
    with pytest.raises(EmptyRollbackError, match="no changes detected"):
        prepare_rollback([], ChangeListManager(), FakeRegistry({}))


def test_changes_outside_every_change_list_are_dropped() -> None:
    lists = ChangeListManager()
    tracked = Change.modified("a/tracked.txt")
    track(lists, tracked)

    request = prepare_rollback(
        [tracked, Change.modified("a/untracked.txt")],
        lists,
        FakeRegistry({"a": FakeCapability("a")}),
    )

    assert request.changes == (tracked,)
    assert request.change_lists == (lists.default_list,)


def test_change_lists_are_collected_once_in_first_seen_order() -> None:
    lists = ChangeListManager()
    feature = lists.add_change_list("feature")
    first, second, third = Change.new("a/1"), Change.new("a/2"), Change.new("a/3")
    lists.add_change(first, "feature")
    lists.add_change(second)
    lists.add_change(third, "feature")

    request = prepare_rollback(
        [first, second, third], lists, FakeRegistry({"a": FakeCapability("a")})
    )

    assert request.change_lists == (feature, lists.default_list)


def test_single_backend_supplies_operation_name_without_mnemonics() -> None:
    lists = ChangeListManager()
    change = Change.modified("a/1")
    track(lists, change)
    registry = FakeRegistry({"a": FakeCapability("a", operation_name="_Revert")})

    request = prepare_rollback([change], lists, registry)

    assert request.operation_name == "Revert"
    assert request.backends == ("a",)


def test_several_backends_fall_back_to_default_operation_name() -> None:
    lists = ChangeListManager()
    changes = (Change.modified("a/1"), Change.modified("b/1"))
    track(lists, *changes)
    registry = FakeRegistry(
        {
            "a": FakeCapability("a", operation_name="_Revert"),
            "b": FakeCapability("b", operation_name="&Undo"),
        }
    )

    request = prepare_rollback(changes, lists, registry)

    assert request.operation_name == "Rollback"


def test_new_file_cleanup_is_offered_only_when_a_new_change_is_selected() -> None:
    lists = ChangeListManager()
    edited, added = Change.modified("a/1"), Change.new("a/2")
    track(lists, edited, added)
    registry = FakeRegistry({"a": FakeCapability("a")})

    assert prepare_rollback([edited], lists, registry).offers_new_file_cleanup is False
    assert prepare_rollback([edited, added], lists, registry).offers_new_file_cleanup is True


def test_strip_mnemonics_removes_marker_characters() -> None:
    assert strip_mnemonics("Re_vert") == "Revert"
    assert strip_mnemonics("&Rollback ") == "Rollback"
    assert strip_mnemonics("_") == ""
