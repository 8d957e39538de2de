"""Unit tests for config schema validation."""

from __future__ import annotations

import pytest

from vcs_rollback.config.schema import (
    ConfigValidationError,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)


def _issues(payload: dict[str, object]) -> dict[str, str]:
    result = validate_config(payload)
    assert not result.is_valid
    return {issue.path: issue.message for issue in result.issues}


def test_defaults_are_valid() -> None:
    result = validate_config(default_config())

    assert result.is_valid
    assert result.config == default_config()


def test_default_config_returns_independent_copies() -> None:
    first = default_config()
    first["rollback"]["max_concurrency"] = 99

    assert default_config()["rollback"]["max_concurrency"] == 4


def test_type_and_range_errors_are_path_qualified() -> None:
    payload = merge_config(
        default_config(),
        {
            "rollback": {"max_concurrency": 0, "delete_new_files": "yes"},
            "refresh": {"worker_threads": True},
            "observability": {"log_level": "TRACE"},
        },
    )

    issues = _issues(payload)

    assert issues["rollback.max_concurrency"] == "must be >= 1"
    assert issues["rollback.delete_new_files"] == "expected boolean, got str"
    assert issues["refresh.worker_threads"] == "expected integer, got bool"
    assert issues["observability.log_level"].startswith("invalid value 'TRACE'")


def test_unknown_sections_and_backend_fields_are_rejected() -> None:
    payload = merge_config(
        default_config(),
        {"extras": {}, "backends": {"main": {"root": "/repo", "branch": "main"}}},
    )

    issues = _issues(payload)

    assert issues["extras"] == "unknown field"
    assert issues["backends.main.branch"] == "unknown field"


def test_backend_requires_root_and_known_kind() -> None:
    payload = merge_config(
        default_config(),
        {"backends": {"main": {"kind": "svn"}, "9bad": {"root": "/x"}}},
    )

    issues = _issues(payload)

    assert issues["backends.main.root"] == "missing required field"
    assert issues["backends.main.kind"].startswith("invalid value 'svn'")
    assert "backend name" in issues["backends.9bad"]


def test_backend_defaults_are_filled_in() -> None:
    config = assert_valid_config(
        merge_config(default_config(), {"backends": {"main": {"root": "/repo"}}})
    )

    assert config["backends"]["main"] == {"kind": "git", "root": "/repo", "enabled": True}


def test_schema_version_mismatch_carries_migration_guidance() -> None:
    payload = merge_config(default_config(), {"meta": {"schema_version": 2}})

    with pytest.raises(ConfigValidationError, match="newer than supported"):
        assert_valid_config(payload)
    assert "older than supported" in migration_guidance(0)


def test_missing_sections_are_reported() -> None:
    issues = _issues({"meta": {"schema_version": 1}})

    assert issues["rollback"] == "missing required field"
    assert issues["refresh"] == "missing required field"
    assert issues["observability"] == "missing required field"


def test_partial_validation_allows_sparse_payloads() -> None:
    result = validate_config({"rollback": {"max_concurrency": 2}}, partial=True)

    assert result.is_valid
    assert result.config == {"rollback": {"max_concurrency": 2}}


def test_merge_config_does_not_mutate_inputs() -> None:
    base = default_config()
    merged = merge_config(base, {"rollback": {"operation_name": "Revert"}})

    assert merged["rollback"]["operation_name"] == "Revert"
    assert base["rollback"]["operation_name"] == "Rollback"
    assert merged["rollback"]["max_concurrency"] == base["rollback"]["max_concurrency"]
