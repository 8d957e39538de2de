"""Unit tests for per-backend revert execution and best-effort cleanup."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from vcs_rollback.domain.models import BackendGroup, Change, DeleteResult, TouchedPath
from vcs_rollback.rollback.executor import RevertExecutor, delete_file, touched_paths_for

from . import FakeCapability, FakeRegistry, RecordingLogger

if TYPE_CHECKING:
    from collections.abc import Callable


def _recording_delete(
    deleted: list[Path], *, fail: bool = False
) -> Callable[[Path], DeleteResult]:
    def delete(path: Path) -> DeleteResult:
        deleted.append(path)
        if fail:
            return DeleteResult(path=path, deleted=False, error="PermissionError: denied")
        return DeleteResult(path=path, deleted=True)

    return delete


def test_group_is_reverted_in_one_batched_call() -> None:
    capability = FakeCapability("a")
    executor = RevertExecutor(FakeRegistry({"a": capability}), logger=RecordingLogger())
    changes = (Change.new("a/1"), Change.modified("a/2"), Change.deleted("a/3"))

    outcome = executor.revert_group(BackendGroup("a", changes), delete_new_files=False)

    assert capability.calls == [changes]
    assert outcome.succeeded
    assert outcome.failures == ()


def test_touched_paths_cover_every_change_even_when_revert_fails() -> None:
    capability = FakeCapability("a", fail_paths=("a/2",))
    executor = RevertExecutor(FakeRegistry({"a": capability}), logger=RecordingLogger())
    changes = (Change.new("a/1"), Change.modified("a/2"), Change.moved("a/old", "a/new"))

    outcome = executor.revert_group(BackendGroup("a", changes), delete_new_files=False)

    assert [failure.paths for failure in outcome.failures] == [(Path("a/2"),)]
    assert [item.path for item in outcome.touched_paths] == [
        Path("a/1"),
        Path("a/2"),
        Path("a/old"),
        Path("a/new"),
    ]


def test_cleanup_deletes_new_files_only_after_clean_revert() -> None:
    deleted: list[Path] = []
    executor = RevertExecutor(
        FakeRegistry({"a": FakeCapability("a")}),
        delete=_recording_delete(deleted),
        logger=RecordingLogger(),
    )
    changes = (Change.new("a/added.txt"), Change.modified("a/kept.txt"))

    outcome = executor.revert_group(BackendGroup("a", changes), delete_new_files=True)

    assert deleted == [Path("a/added.txt")]
    assert outcome.cleanup == (DeleteResult(path=Path("a/added.txt"), deleted=True),)


def test_cleanup_is_skipped_when_any_change_in_group_failed() -> None:
    deleted: list[Path] = []
    executor = RevertExecutor(
        FakeRegistry({"a": FakeCapability("a", fail_paths=("a/kept.txt",))}),
        delete=_recording_delete(deleted),
        logger=RecordingLogger(),
    )
    changes = (Change.new("a/added.txt"), Change.modified("a/kept.txt"))

    outcome = executor.revert_group(BackendGroup("a", changes), delete_new_files=True)

    assert deleted == []
    assert outcome.cleanup == ()
    assert len(outcome.failures) == 1


def test_cleanup_is_skipped_when_flag_is_off() -> None:
    deleted: list[Path] = []
    executor = RevertExecutor(
        FakeRegistry({"a": FakeCapability("a")}),
        delete=_recording_delete(deleted),
        logger=RecordingLogger(),
    )

    executor.revert_group(BackendGroup("a", (Change.new("a/added.txt"),)), delete_new_files=False)

    assert deleted == []


def test_failed_deletion_is_logged_but_never_becomes_a_failure() -> None:
    logger = RecordingLogger()
    executor = RevertExecutor(
        FakeRegistry({"a": FakeCapability("a")}),
        delete=_recording_delete([], fail=True),
        logger=logger,
    )

    outcome = executor.revert_group(BackendGroup("a", (Change.new("a/x"),)), delete_new_files=True)

    assert outcome.failures == ()
    assert outcome.cleanup[0].deleted is False
    fields = logger.find("rollback_cleanup_failed")
    assert fields["path"] == "a/x"
    assert fields["error"] == "PermissionError: denied"


def test_backend_without_capability_is_skipped() -> None:
    logger = RecordingLogger()
    executor = RevertExecutor(FakeRegistry({"a": None}), logger=logger)

    outcome = executor.revert_group(BackendGroup("a", (Change.new("a/x"),)), delete_new_files=True)

    assert outcome.skipped is True
    assert outcome.touched_paths == ()
    assert outcome.succeeded is False
    assert logger.find("rollback_group_skipped")["reason"] == "no_rollback_capability"


def test_crashing_capability_becomes_single_failure_for_its_group() -> None:
    logger = RecordingLogger()
    capability = FakeCapability("a", crash=RuntimeError("backend exploded"))
    executor = RevertExecutor(FakeRegistry({"a": capability}), logger=logger)
    changes = (Change.new("a/1"), Change.modified("a/2"))

    outcome = executor.revert_group(BackendGroup("a", changes), delete_new_files=True)

    assert len(outcome.failures) == 1
    failure = outcome.failures[0]
    assert failure.message == "Rollback failed unexpectedly"
    assert failure.paths == (Path("a/1"), Path("a/2"))
    assert failure.detail == "RuntimeError: backend exploded"
    assert len(outcome.touched_paths) == 2
    assert "rollback_capability_crashed" in logger.names()


def test_assertion_errors_from_capability_propagate() -> None:
    capability = FakeCapability("a", crash=AssertionError("invariant broken"))
    executor = RevertExecutor(FakeRegistry({"a": capability}), logger=RecordingLogger())

    with pytest.raises(AssertionError, match="invariant broken"):
        executor.revert_group(BackendGroup("a", (Change.new("a/1"),)), delete_new_files=False)


def test_touched_paths_for_deduplicates_and_keeps_directory_flag() -> None:
    group = BackendGroup(
        "a",
        (
            Change.new("a/dir", is_directory=True),
            Change.modified("a/file"),
            Change.modified("a/file"),
        ),
    )

    assert touched_paths_for(group) == (
        TouchedPath(Path("a/dir"), is_directory=True),
        TouchedPath(Path("a/file")),
    )


def test_delete_file_reports_missing_and_removed_paths(tmp_path: Path) -> None:
    target = tmp_path / "added.txt"
    target.write_text("new\n", encoding="utf-8")

    removed = delete_file(target)
    missing = delete_file(target)

    assert removed == DeleteResult(path=target, deleted=True)
    assert missing.deleted is False
    assert missing.error == "path does not exist"
    assert not target.exists()


def test_delete_file_removes_directory_trees(tmp_path: Path) -> None:
    tree = tmp_path / "pkg"
    (tree / "sub").mkdir(parents=True)
    (tree / "sub" / "mod.py").write_text("x = 1\n", encoding="utf-8")

    assert delete_file(tree).deleted is True
    assert not tree.exists()
