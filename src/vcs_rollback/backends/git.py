"""Git rollback capability: restore tracked content for a batch of changes."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from vcs_rollback.constants import DEFAULT_OPERATION_NAME
from vcs_rollback.domain.models import ChangeKind, RevertFailure
from vcs_rollback.observability.logging import redact_text
from vcs_rollback.utils.fs import normalize_path

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from vcs_rollback.domain.models import Change


class GitBackendError(RuntimeError):
    """Base error for git backend failures."""


class GitCommandError(GitBackendError):
    """Raised when a git subprocess command exits non-zero."""

    def __init__(
        self,
        *,
        command: Sequence[str],
        returncode: int,
        stdout: str,
        stderr: str,
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        message = f"git command failed ({returncode}): {' '.join(command)}"
        if stderr.strip():
            message = f"{message}: {redact_text(stderr.strip())}"
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Normalized subprocess result."""

    command: tuple[str, ...]
    cwd: str
    returncode: int
    stdout: str
    stderr: str


@dataclass(frozen=True, slots=True)
class RevertPlan:
    """Repository-relative paths grouped by the git command that reverts them."""

    unstage: tuple[str, ...]
    restore: tuple[str, ...]
    outside: tuple[Path, ...]


class GitRollbackEnvironment:
    """
    Revert changes in one git working tree.

    A batch costs at most two git invocations: additions (and the target side
    of moves) are dropped from the index, everything else is checked out from
    ``HEAD``. New files stay on disk; removing them is the caller's cleanup.
    """

    def __init__(
        self,
        repo_path: Path | str,
        *,
        name: str = "git",
        git_binary: str = "git",
        env_overrides: Mapping[str, str] | None = None,
    ) -> None:
        self.repo_path = normalize_path(repo_path)
        self.name = name
        self._git_binary = git_binary
        self._env_overrides = dict(env_overrides or {})

    @property
    def operation_name(self) -> str:
        return DEFAULT_OPERATION_NAME

    def rollback_changes(self, changes: Sequence[Change]) -> list[RevertFailure]:
        plan = self.plan(changes)
        failures: list[RevertFailure] = []

        if plan.outside:
            failures.append(
                RevertFailure(
                    backend=self.name,
                    message="path is outside the repository",
                    paths=plan.outside,
                )
            )
        if plan.unstage:
            failures.extend(
                self._attempt(
                    ["rm", "--cached", "-r", "--force", "--quiet", "--ignore-unmatch", "--"],
                    plan.unstage,
                    message="could not remove added files from the index",
                )
            )
        if plan.restore:
            failures.extend(
                self._attempt(
                    ["checkout", "HEAD", "--"],
                    plan.restore,
                    message="could not restore files from HEAD",
                )
            )
        return failures

    def plan(self, changes: Sequence[Change]) -> RevertPlan:
        unstage: list[str] = []
        restore: list[str] = []
        outside: list[Path] = []

        for change in changes:
            kind = change.kind
            if kind in (ChangeKind.NEW, ChangeKind.MOVED):
                assert change.after is not None
                target = change.after.path
                _append_relative(unstage, outside, self._relative(target), target)
            if kind in (ChangeKind.MODIFIED, ChangeKind.DELETED, ChangeKind.MOVED):
                assert change.before is not None
                source = change.before.path
                _append_relative(restore, outside, self._relative(source), source)

        return RevertPlan(unstage=tuple(unstage), restore=tuple(restore), outside=tuple(outside))

    def _attempt(
        self, args: Sequence[str], paths: Sequence[str], *, message: str
    ) -> list[RevertFailure]:
        try:
            self._run_git([*args, *paths])
        except GitCommandError as exc:
            return [
                RevertFailure(
                    backend=self.name,
                    message=message,
                    paths=tuple(self.repo_path / path for path in paths),
                    detail=redact_text(exc.stderr.strip()) or None,
                )
            ]
        return []

    def _relative(self, path: Path) -> str | None:
        # Relative change paths resolve against the working directory, as in the registry.
        try:
            relative = normalize_path(path).relative_to(self.repo_path)
        except ValueError:
            return None
        return relative.as_posix()

    def _run_git(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
    ) -> CommandResult:
        command = (self._git_binary, *args)
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        env.setdefault("GIT_CONFIG_NOSYSTEM", "1")
        env.update(self._env_overrides)

        completed = subprocess.run(
            command,
            cwd=self.repo_path,
            env=env,
            text=True,
            capture_output=True,
            check=False,
        )

        result = CommandResult(
            command=command,
            cwd=self.repo_path.as_posix(),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

        if check and result.returncode != 0:
            raise GitCommandError(
                command=result.command,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        return result


def _append_relative(
    target: list[str], outside: list[Path], relative: str | None, original: Path
) -> None:
    if relative is None:
        if original not in outside:
            outside.append(original)
        return
    if relative not in target:
        target.append(relative)


__all__ = [
    "CommandResult",
    "GitBackendError",
    "GitCommandError",
    "GitRollbackEnvironment",
    "RevertPlan",
]
