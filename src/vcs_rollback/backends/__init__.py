"""Backend identity resolution and concrete revert capabilities."""

from vcs_rollback.backends.git import GitCommandError, GitRollbackEnvironment
from vcs_rollback.backends.registry import BackendBinding, BackendRegistry, registry_from_config

__all__ = [
    "BackendBinding",
    "BackendRegistry",
    "GitCommandError",
    "GitRollbackEnvironment",
    "registry_from_config",
]
