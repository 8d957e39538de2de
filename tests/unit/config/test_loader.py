"""
vcs-rollback — unit tests for config loader

Purpose
- Validate config loading from defaults, TOML, env overrides, and explicit overrides.

What this test file should cover
- Precedence: overrides > env > file > defaults.
- Env var path mapping and type coercion.
- Path normalization relative to the config file.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from vcs_rollback.backends.registry import registry_from_config
from vcs_rollback.config.loader import ConfigLoadError, dump_effective_config, load_config
from vcs_rollback.config.schema import ConfigValidationError


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_loader_precedence_default_file_env_cli(tmp_path: Path) -> None:
    config_path = tmp_path / "rollback.toml"
    empty_path = tmp_path / "empty.toml"
    _write_config(empty_path, "")
    _write_config(
        config_path,
        """
[rollback]
max_concurrency = 2
""".strip(),
    )
    env = {"VCS_ROLLBACK_ROLLBACK_MAX_CONCURRENCY": "6"}

    default_loaded = load_config(empty_path, environ={})
    file_loaded = load_config(config_path, environ={})
    env_loaded = load_config(config_path, environ=env)
    cli_loaded = load_config(
        config_path, environ=env, cli_overrides={"rollback.max_concurrency": 7}
    )

    assert default_loaded["rollback"]["max_concurrency"] == 4
    assert file_loaded["rollback"]["max_concurrency"] == 2
    assert env_loaded["rollback"]["max_concurrency"] == 6
    assert cli_loaded["rollback"]["max_concurrency"] == 7


def test_env_booleans_are_coerced(tmp_path: Path) -> None:
    config_path = tmp_path / "rollback.toml"
    _write_config(config_path, "")

    loaded = load_config(
        config_path,
        environ={
            "VCS_ROLLBACK_ROLLBACK_DELETE_NEW_FILES": "yes",
            "VCS_ROLLBACK_OBSERVABILITY_LOG_TO_STDOUT": "off",
        },
    )

    assert loaded["rollback"]["delete_new_files"] is True
    assert loaded["observability"]["log_to_stdout"] is False


def test_bad_env_values_raise_load_errors(tmp_path: Path) -> None:
    config_path = tmp_path / "rollback.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match="must be an integer"):
        load_config(config_path, environ={"VCS_ROLLBACK_REFRESH_WORKER_THREADS": "many"})
    with pytest.raises(ConfigLoadError, match="must be a boolean"):
        load_config(config_path, environ={"VCS_ROLLBACK_ROLLBACK_DELETE_NEW_FILES": "maybe"})


def test_backend_roots_are_normalized_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "conf" / "rollback.toml"
    _write_config(
        config_path,
        """
[backends.main]
root = "../repo"

[backends.docs]
kind = "git"
root = "/srv/docs"
enabled = false
""".strip(),
    )

    loaded = load_config(config_path, environ={})

    resolved_conf = config_path.resolve().parent
    assert loaded["backends"]["main"] == {
        "kind": "git",
        "root": (resolved_conf.parent / "repo").as_posix(),
        "enabled": True,
    }
    assert loaded["backends"]["docs"]["root"] == "/srv/docs"
    assert loaded["backends"]["docs"]["enabled"] is False
    assert loaded["observability"]["log_dir"] == (resolved_conf / "logs").as_posix()


def test_env_can_override_backend_fields_from_file(tmp_path: Path) -> None:
    config_path = tmp_path / "rollback.toml"
    _write_config(config_path, '[backends.main]\nroot = "repo"\n')

    loaded = load_config(config_path, environ={"VCS_ROLLBACK_BACKENDS_MAIN_ENABLED": "false"})

    assert loaded["backends"]["main"]["enabled"] is False


def test_loaded_config_builds_a_registry(tmp_path: Path) -> None:
    config_path = tmp_path / "rollback.toml"
    _write_config(config_path, '[backends.main]\nroot = "repo"\n')

    registry = registry_from_config(load_config(config_path, environ={}))

    assert [binding.root for binding in registry.bindings()] == [(tmp_path / "repo").resolve()]


def test_missing_explicit_config_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "absent.toml")


def test_implicit_config_falls_back_to_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)

    loaded = load_config(environ={})

    assert loaded["rollback"]["operation_name"] == "Rollback"
    assert loaded["backends"] == {}


def test_invalid_toml_is_reported_with_path(tmp_path: Path) -> None:
    config_path = tmp_path / "rollback.toml"
    _write_config(config_path, "[rollback\n")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path)


def test_unknown_fields_fail_validation(tmp_path: Path) -> None:
    config_path = tmp_path / "rollback.toml"
    _write_config(config_path, "[rollback]\nretries = 3\n")

    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(config_path, environ={})

    assert [issue.path for issue in excinfo.value.issues] == ["rollback.retries"]


def test_dump_effective_config_is_stable(tmp_path: Path) -> None:
    config_path = tmp_path / "rollback.toml"
    _write_config(config_path, "")

    first = dump_effective_config(load_config(config_path, environ={}))
    second = dump_effective_config(load_config(config_path, environ={}))

    assert first == second
    assert json.loads(first)["meta"] == {"schema_version": 1}
