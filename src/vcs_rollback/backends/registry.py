"""
vcs-rollback — backend registry.

Purpose
- Resolve which backend owns a change from the change's location and the
  configured backend roots (innermost root wins).
- Hand out the revert capability registered for a backend identity.

A disabled backend resolves to nothing, exactly like a path outside every
root, so its changes drop out of a rollback silently.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from vcs_rollback.backends.git import GitRollbackEnvironment
from vcs_rollback.utils.fs import is_within, normalize_path

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from vcs_rollback.contracts import RollbackCapability
    from vcs_rollback.domain.models import BackendIdentity, Change


@dataclass(frozen=True, slots=True)
class BackendBinding:
    name: BackendIdentity
    root: Path
    capability: RollbackCapability | None
    enabled: bool = True


class BackendRegistry:
    """Thread-safe mapping from backend identity to root and capability."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._bindings: dict[BackendIdentity, BackendBinding] = {}

    def register(
        self,
        name: BackendIdentity,
        root: Path | str,
        capability: RollbackCapability | None,
        *,
        enabled: bool = True,
    ) -> BackendBinding:
        if not name.strip():
            raise ValueError("backend name must not be empty")
        binding = BackendBinding(
            name=name,
            root=normalize_path(root),
            capability=capability,
            enabled=enabled,
        )
        with self._lock:
            if name in self._bindings:
                raise ValueError(f"backend {name!r} is already registered")
            self._bindings[name] = binding
        return binding

    def unregister(self, name: BackendIdentity) -> bool:
        with self._lock:
            return self._bindings.pop(name, None) is not None

    def set_enabled(self, name: BackendIdentity, enabled: bool) -> None:
        with self._lock:
            binding = self._bindings.get(name)
            if binding is None:
                raise KeyError(f"unknown backend {name!r}")
            self._bindings[name] = replace(binding, enabled=enabled)

    def bindings(self) -> tuple[BackendBinding, ...]:
        with self._lock:
            return tuple(self._bindings.values())

    def resolve_backend(self, change: Change) -> BackendIdentity | None:
        target = change.path
        best: BackendBinding | None = None
        with self._lock:
            candidates = tuple(self._bindings.values())
        for binding in candidates:
            if not binding.enabled or not is_within(target, binding.root):
                continue
            if best is None or len(binding.root.parts) > len(best.root.parts):
                best = binding
        return None if best is None else best.name

    def capability_for(self, backend: BackendIdentity) -> RollbackCapability | None:
        with self._lock:
            binding = self._bindings.get(backend)
        if binding is None or not binding.enabled:
            return None
        return binding.capability


def _git_factory(name: str, root: Path) -> RollbackCapability:
    return GitRollbackEnvironment(root, name=name)


DEFAULT_FACTORIES: Mapping[str, Callable[[str, Path], RollbackCapability]] = {
    "git": _git_factory,
}


def registry_from_config(
    config: Mapping[str, object],
    *,
    factories: Mapping[str, Callable[[str, Path], RollbackCapability]] | None = None,
) -> BackendRegistry:
    """Build a registry from the ``[backends.<name>]`` tables of a loaded config."""

    available = dict(DEFAULT_FACTORIES if factories is None else factories)
    registry = BackendRegistry()
    backends = config.get("backends", {})
    if not isinstance(backends, dict):
        raise ValueError("config 'backends' must be a table")

    for name in sorted(backends):
        section = backends[name]
        if not isinstance(section, dict):
            raise ValueError(f"config 'backends.{name}' must be a table")
        kind = str(section.get("kind", "git"))
        factory = available.get(kind)
        root = Path(str(section["root"]))
        capability = factory(name, root) if factory is not None else None
        registry.register(name, root, capability, enabled=bool(section.get("enabled", True)))
    return registry


__all__ = [
    "DEFAULT_FACTORIES",
    "BackendBinding",
    "BackendRegistry",
    "registry_from_config",
]
