"""
vcs-rollback — configuration schema and validation.

Purpose
- Define configuration defaults and strict validation rules for ``rollback.toml``.

Functional requirements
- Validate config payloads and return structured issues (field path + message).
- Reject unknown fields at every level, including per-backend tables.
- Provide deterministic deep-merge helpers used by the loader.

Non-functional requirements
- Keep rules deterministic and easy to audit.
- Explain schema version mismatches with explicit migration messages.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, NotRequired, TypedDict

from vcs_rollback.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_BACKEND_KIND,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_OPERATION_NAME,
    DEFAULT_REFRESH_WORKERS,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
BACKEND_KINDS: Final[tuple[str, ...]] = ("git",)
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

_BACKEND_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")

# Static path fields; ``backends.<name>.root`` is handled per backend.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (("observability", "log_dir"),)


class MetaConfig(TypedDict):
    schema_version: int


class RollbackSettings(TypedDict):
    operation_name: str
    max_concurrency: int
    delete_new_files: bool
    refresh_synchronously: bool


class RefreshSettings(TypedDict):
    worker_threads: int


class ObservabilityConfig(TypedDict):
    log_level: str
    log_dir: str
    log_to_stdout: bool
    redact_secrets: bool


class BackendSettings(TypedDict):
    kind: str
    root: str
    enabled: NotRequired[bool]


class RollbackConfig(TypedDict):
    meta: MetaConfig
    rollback: RollbackSettings
    refresh: RefreshSettings
    observability: ObservabilityConfig
    backends: dict[str, BackendSettings]


DEFAULT_CONFIG: Final[RollbackConfig] = {
    "meta": {"schema_version": ConfigSchemaVersion},
    "rollback": {
        "operation_name": DEFAULT_OPERATION_NAME,
        "max_concurrency": DEFAULT_MAX_CONCURRENCY,
        "delete_new_files": False,
        "refresh_synchronously": False,
    },
    "refresh": {"worker_threads": DEFAULT_REFRESH_WORKERS},
    "observability": {
        "log_level": "INFO",
        "log_dir": "logs/",
        "log_to_stdout": True,
        "redact_secrets": True,
    },
    "backends": {},
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> RollbackConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    """Return migration guidance for a schema version mismatch."""

    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade rollback.toml to the current schema"
        )
    return (
        f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
        "upgrade vcs-rollback or pin an older config"
    )


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; mappings merge, scalars replace."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(
    payload: Mapping[str, object], *, partial: bool = False
) -> ConfigValidationResult:
    """Validate ``payload`` and return the normalized config or the issues found."""

    issues = _IssueCollector()
    normalized = _validate_root(payload, "", issues, partial=partial)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(payload: Mapping[str, object]) -> dict[str, Any]:
    """Return the normalized config or raise :class:`ConfigValidationError`."""

    result = validate_config(payload)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_root(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    allowed = {"meta", "rollback", "refresh", "observability", "backends"}
    required = {"meta", "rollback", "refresh", "observability"}

    _reject_unknown_keys(payload, allowed, path, issues)
    if not partial:
        _require_keys(payload, required, path, issues)

    out: dict[str, Any] = {}
    validators: tuple[tuple[str, Callable[..., dict[str, Any]]], ...] = (
        ("meta", _validate_meta),
        ("rollback", _validate_rollback),
        ("refresh", _validate_refresh),
        ("observability", _validate_observability),
        ("backends", _validate_backends),
    )
    for key, validator in validators:
        _section(
            payload,
            key=key,
            path=path,
            issues=issues,
            validator=lambda section, section_path, fn=validator: fn(
                section, section_path, issues, partial=partial
            ),
            out=out,
        )
    if not partial:
        out.setdefault("backends", {})
    return out


def _section(
    payload: Mapping[str, object],
    *,
    key: str,
    path: str,
    issues: _IssueCollector,
    validator: Callable[[dict[str, object], str], dict[str, Any]],
    out: dict[str, Any],
) -> None:
    raw = payload.get(key)
    if raw is None:
        return
    section_path = _join(path, key)
    section_obj = _as_object(raw, section_path, issues)
    if section_obj is None:
        return
    out[key] = validator(section_obj, section_path)


def _validate_meta(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    allowed = {"schema_version"}
    _reject_unknown_keys(payload, allowed, path, issues)
    if not partial:
        _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "schema_version" in payload:
        parsed = _as_int(
            payload["schema_version"], _join(path, "schema_version"), issues, minimum=1
        )
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != ConfigSchemaVersion:
                issues.add(_join(path, "schema_version"), migration_guidance(parsed))
    return out


def _validate_rollback(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    allowed = {"operation_name", "max_concurrency", "delete_new_files", "refresh_synchronously"}
    _reject_unknown_keys(payload, allowed, path, issues)
    if not partial:
        _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "operation_name" in payload:
        parsed_name = _as_str(payload["operation_name"], _join(path, "operation_name"), issues)
        if parsed_name is not None:
            out["operation_name"] = parsed_name
    if "max_concurrency" in payload:
        parsed_limit = _as_int(
            payload["max_concurrency"], _join(path, "max_concurrency"), issues, minimum=1
        )
        if parsed_limit is not None:
            out["max_concurrency"] = parsed_limit
    for key in ("delete_new_files", "refresh_synchronously"):
        if key in payload:
            parsed_flag = _as_bool(payload[key], _join(path, key), issues)
            if parsed_flag is not None:
                out[key] = parsed_flag
    return out


def _validate_refresh(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    allowed = {"worker_threads"}
    _reject_unknown_keys(payload, allowed, path, issues)
    if not partial:
        _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "worker_threads" in payload:
        parsed = _as_int(
            payload["worker_threads"], _join(path, "worker_threads"), issues, minimum=1
        )
        if parsed is not None:
            out["worker_threads"] = parsed
    return out


def _validate_observability(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    allowed = {"log_level", "log_dir", "log_to_stdout", "redact_secrets"}
    _reject_unknown_keys(payload, allowed, path, issues)
    if not partial:
        _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}

    if "log_level" in payload:
        parsed_level = _as_enum(
            payload["log_level"], _join(path, "log_level"), issues, allowed_values=LOG_LEVELS
        )
        if parsed_level is not None:
            out["log_level"] = parsed_level

    if "log_dir" in payload:
        parsed_log_dir = _as_path_text(payload["log_dir"], _join(path, "log_dir"), issues)
        if parsed_log_dir is not None:
            out["log_dir"] = parsed_log_dir

    for key in ("log_to_stdout", "redact_secrets"):
        if key in payload:
            parsed_flag = _as_bool(payload[key], _join(path, key), issues)
            if parsed_flag is not None:
                out[key] = parsed_flag

    return out


def _validate_backends(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for name in sorted(payload):
        backend_path = _join(path, name)
        if not _BACKEND_NAME_PATTERN.fullmatch(name):
            issues.add(backend_path, "backend name must start with a letter (letters, digits, _ -)")
            continue
        section = _as_object(payload[name], backend_path, issues)
        if section is None:
            continue
        out[name] = _validate_backend(section, backend_path, issues, partial=partial)
    return out


def _validate_backend(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"kind", "root", "enabled"}, path, issues)
    if not partial:
        _require_keys(payload, {"root"}, path, issues)

    out: dict[str, Any] = {}
    if "kind" in payload:
        parsed_kind = _as_enum(
            payload["kind"], _join(path, "kind"), issues, allowed_values=BACKEND_KINDS
        )
        if parsed_kind is not None:
            out["kind"] = parsed_kind
    elif not partial:
        out["kind"] = DEFAULT_BACKEND_KIND

    if "root" in payload:
        parsed_root = _as_path_text(payload["root"], _join(path, "root"), issues)
        if parsed_root is not None:
            out["root"] = parsed_root

    if "enabled" in payload:
        parsed_enabled = _as_bool(payload["enabled"], _join(path, "enabled"), issues)
        if parsed_enabled is not None:
            out["enabled"] = parsed_enabled
    elif not partial:
        out["enabled"] = True
    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                target[key] = _deep_copy_mapping(value)
        else:
            target[key] = copy.deepcopy(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in sorted(value):
        item = value[key]
        out[key] = _deep_copy_mapping(item) if isinstance(item, Mapping) else copy.deepcopy(item)
    return out


__all__ = [
    "BACKEND_KINDS",
    "BackendSettings",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "LOG_LEVELS",
    "ObservabilityConfig",
    "PATH_FIELDS",
    "RefreshSettings",
    "RollbackConfig",
    "RollbackSettings",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
