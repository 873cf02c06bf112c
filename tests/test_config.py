"""Tests for elephant.config -- XDG paths, definitions files, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from conftest import RecordingHandler
from elephant.config import (
    build_registry,
    get_config_dir,
    get_data_dir,
    load_definitions,
    resolve_definitions_path,
)
from elephant.exceptions import ConfigError
from elephant.models import Definitions, HTTPMethod
from elephant.transport import HttpxTransport


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


DEFINITIONS_YAML = """\
defaults:
  expires: 60000
groups:
  api:
    endpoint: https://api.example.com/
    async: false
    templates:
      users:
        endpoint: "{{inherit}}users"
      user:
        endpoint: "{{inherit}}users/{{id}}"
        method: post
"""


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPaths:
    def test_config_dir_from_env(self, isolated_config: Path) -> None:
        path = get_config_dir()
        assert path == isolated_config / "config" / "elephant"
        assert path.is_dir()

    def test_data_dir_from_env(self, isolated_config: Path) -> None:
        assert get_data_dir() == isolated_config / "data" / "elephant"

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("elephant.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".config" / "elephant"

    def test_fallback_on_non_xdg_platform(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("elephant.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".elephant"
        assert get_data_dir() == tmp_path / ".elephant"


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveDefinitionsPath:
    def test_cli_path_wins(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        cli = isolated_config / "cli.json"
        env = isolated_config / "env.json"
        _write_json(cli, {})
        _write_json(env, {})
        _write_json(isolated_config / "elephant.json", {})
        monkeypatch.setenv("ELEPHANT_CONFIG", str(env))
        assert resolve_definitions_path(str(cli)) == cli

    def test_env_var(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env = isolated_config / "env.json"
        _write_json(env, {})
        _write_json(isolated_config / "elephant.json", {})
        monkeypatch.setenv("ELEPHANT_CONFIG", str(env))
        assert resolve_definitions_path() == env

    def test_project_file_before_user_file(self, isolated_config: Path) -> None:
        _write_json(get_config_dir() / "definitions.json", {})
        (isolated_config / "elephant.yaml").write_text("groups: {}\n", encoding="utf-8")
        assert resolve_definitions_path().name == "elephant.yaml"

    def test_user_file(self, isolated_config: Path) -> None:
        user = get_config_dir() / "definitions.yml"
        user.write_text("groups: {}\n", encoding="utf-8")
        assert resolve_definitions_path() == user

    def test_explicit_missing_file(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            resolve_definitions_path(str(isolated_config / "missing.json"))

    def test_nothing_found(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="No definitions file found"):
            resolve_definitions_path()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoadDefinitions:
    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "defs.yaml"
        path.write_text(DEFINITIONS_YAML, encoding="utf-8")
        definitions = load_definitions(path)
        assert definitions.defaults.expires == 60000
        api = definitions.groups["api"]
        assert api.asynchronous is False
        assert api.templates["user"].method is HTTPMethod.POST

    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "defs.json"
        _write_json(path, {"groups": {"api": {"endpoint": "/v1/", "templates": {"t": {}}}}})
        assert list(load_definitions(path).groups["api"].templates) == ["t"]

    def test_unknown_extension_tries_json_then_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "defs.conf"
        path.write_text(DEFINITIONS_YAML, encoding="utf-8")
        assert "api" in load_definitions(path).groups

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "defs.yaml"
        path.write_text("", encoding="utf-8")
        assert load_definitions(path).groups == {}

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "defs.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(ConfigError, match="Cannot parse"):
            load_definitions(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "defs.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            load_definitions(path)

    def test_invalid_settings(self, tmp_path: Path) -> None:
        path = tmp_path / "defs.json"
        _write_json(path, {"groups": {"api": {"expires": -1}}})
        with pytest.raises(ConfigError, match="Invalid definitions"):
            load_definitions(path)

    def test_unreadable(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            load_definitions(tmp_path / "missing.json")


# ---------------------------------------------------------------------------
# Registry bootstrap
# ---------------------------------------------------------------------------


class TestBuildRegistry:
    def test_groups_templates_and_inherit(self, tmp_path: Path) -> None:
        path = tmp_path / "defs.yaml"
        path.write_text(DEFINITIONS_YAML, encoding="utf-8")
        handler = RecordingHandler((200, '[{"id": 1}]'))
        transport = HttpxTransport(transport=httpx.MockTransport(handler))

        with build_registry(load_definitions(path), transport=transport) as registry:
            assert registry.count_groups() == 1
            assert registry.count_templates("api") == 2
            settings = registry.effective_settings("api", "users")
            assert settings.endpoint == "https://api.example.com/users"
            assert settings.expires == 60000
            assert settings.asynchronous is False

            assert registry.execute("api", "users") == [{"id": 1}]
            assert registry.execute("api", "users") == [{"id": 1}]
            assert handler.calls == 1

    def test_empty_definitions(self) -> None:
        with build_registry(Definitions(), transport=HttpxTransport()) as registry:
            assert registry.count_groups() == 0
