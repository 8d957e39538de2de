"""Stable constants shared across rollback components."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# User-facing operation labels.
DEFAULT_OPERATION_NAME: Final[str] = "Rollback"
AFTER_UPDATE_LABEL: Final[str] = "Refresh change lists after update"

# Runtime defaults (overridable through config).
DEFAULT_MAX_CONCURRENCY: Final[int] = 4
DEFAULT_REFRESH_WORKERS: Final[int] = 2
DEFAULT_BACKEND_KIND: Final[str] = "git"

# Characters that mark keyboard mnemonics in backend operation names.
MNEMONIC_MARKERS: Final[tuple[str, ...]] = ("_", "&", "\x1b")

__all__ = [
    "AFTER_UPDATE_LABEL",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_BACKEND_KIND",
    "DEFAULT_MAX_CONCURRENCY",
    "DEFAULT_OPERATION_NAME",
    "DEFAULT_REFRESH_WORKERS",
    "MNEMONIC_MARKERS",
]
