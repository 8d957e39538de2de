"""
vcs-rollback — filesystem utilities

Purpose
- Resolve locations that may no longer exist (a reverted addition, a deleted
  file) to something the refresh queue can address.
- Remove files and directory trees for best-effort cleanup.

Non-functional requirements
- Standard library only and cross-platform behavior where feasible.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

PathLike = str | os.PathLike[str]

__all__ = [
    "is_within",
    "nearest_existing_ancestor",
    "normalize_path",
    "remove_path",
]


def normalize_path(path: PathLike) -> Path:
    """Absolute, symlink-resolved form of ``path`` that tolerates missing components."""

    return Path(path).expanduser().resolve(strict=False)


def is_within(child: PathLike, parent: PathLike) -> bool:
    """Return ``True`` if ``child`` is ``parent`` or lies below it.

    Neither path has to exist; both are normalized first.
    """

    return _is_relative_to(normalize_path(child), normalize_path(parent))


def nearest_existing_ancestor(path: PathLike) -> Path:
    """Return ``path`` itself if it exists, otherwise its closest existing parent."""

    candidate = normalize_path(path)
    while not candidate.exists():
        parent = candidate.parent
        if parent == candidate:
            return candidate
        candidate = parent
    return candidate


def remove_path(path: PathLike) -> bool:
    """
    Delete a file, symlink, or directory tree.

    Returns ``False`` when nothing existed at ``path``. ``OSError`` from the
    underlying calls propagates to the caller.
    """

    target = Path(path)
    if target.is_symlink():
        target.unlink()
        return True
    if not target.exists():
        return False
    if target.is_dir():
        shutil.rmtree(target)
        return True
    target.unlink()
    return True


def _is_relative_to(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
    except ValueError:
        return False
    return True
