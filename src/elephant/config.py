"""Definitions files, XDG paths, and registry bootstrap.

This module handles everything the command line needs to turn files on
disk into a populated :class:`~elephant.registry.Registry`:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.elephant/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Definitions** -- JSON or YAML files describing default settings, groups
  and templates, validated into :class:`~elephant.models.Definitions`.
  See :func:`load_definitions`.
* **Precedence resolution** -- :func:`resolve_definitions_path` picks the
  file to load from the CLI flag, the ``ELEPHANT_CONFIG`` environment
  variable, the working directory, or the config directory.
* **Bootstrap** -- :func:`build_registry` registers every group and
  template on a new registry.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

import pydantic
import yaml

from elephant.exceptions import ConfigError
from elephant.models import Definitions
from elephant.registry import Registry
from elephant.transport.base import Transport

_APP_NAME = "elephant"
_ENV_CONFIG = "ELEPHANT_CONFIG"
_PROJECT_FILENAMES = ("elephant.json", "elephant.yaml", "elephant.yml")
_USER_FILENAMES = ("definitions.json", "definitions.yaml", "definitions.yml")


# --- Directories ---

_XDG_DEFAULTS = {
    "XDG_CONFIG_HOME": (".config",),
    "XDG_DATA_HOME": (".local", "share"),
}


def _is_xdg_platform() -> bool:
    """Linux and the BSDs follow the XDG Base Directory layout."""
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(env_var: str) -> Path:
    """Resolve and create an application directory.

    On XDG platforms this is ``$<env_var>/elephant``, with the standard
    default under ``$HOME`` when the variable is unset or empty. Elsewhere
    everything lives under ``~/.elephant``.
    """
    if _is_xdg_platform():
        root = os.environ.get(env_var) or Path.home().joinpath(*_XDG_DEFAULTS[env_var])
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory searched for user-level ``definitions.*`` files.

    ``$XDG_CONFIG_HOME/elephant`` (default ``~/.config/elephant``) on
    Linux/BSD, ``~/.elephant`` on macOS and Windows.
    """
    return _app_dir("XDG_CONFIG_HOME")


def get_data_dir() -> Path:
    """Directory holding the ``logs/`` folder for crash reports.

    ``$XDG_DATA_HOME/elephant`` (default ``~/.local/share/elephant``) on
    Linux/BSD, ``~/.elephant`` on macOS and Windows.
    """
    return _app_dir("XDG_DATA_HOME")


# --- Definitions ---


def resolve_definitions_path(cli_path: Optional[str] = None) -> Path:
    """Pick the definitions file to load.

    Precedence (high to low):
        1. ``cli_path`` (the ``--config`` flag)
        2. ``ELEPHANT_CONFIG`` environment variable
        3. ``./elephant.json``, ``./elephant.yaml`` or ``./elephant.yml``
        4. ``definitions.{json,yaml,yml}`` in :func:`get_config_dir`

    Raises:
        ConfigError: If no candidate exists.
    """
    explicit = cli_path or os.environ.get(_ENV_CONFIG)
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigError(f"Definitions file not found: {path}")
        return path

    for name in _PROJECT_FILENAMES:
        candidate = Path.cwd() / name
        if candidate.is_file():
            return candidate

    config_dir = get_config_dir()
    for name in _USER_FILENAMES:
        candidate = config_dir / name
        if candidate.is_file():
            return candidate

    raise ConfigError(
        "No definitions file found. Pass --config, set "
        f"{_ENV_CONFIG}, or create ./elephant.json"
    )


def load_definitions(path: str | Path) -> Definitions:
    """Load and validate a JSON or YAML definitions file.

    The format is chosen by extension; files with any other extension are
    tried as JSON and then YAML.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read definitions at {path}: {exc}") from exc

    data = _parse_content(text, path)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Definitions at {path} must be a mapping at the top level")
    try:
        return Definitions.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ConfigError(f"Invalid definitions at {path}: {exc}") from exc


def _parse_content(text: str, path: Path) -> Any:
    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            return json.loads(text)
        if suffix in (".yaml", ".yml"):
            return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot parse definitions at {path}: {exc}") from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse definitions at {path}: {exc}") from exc


def build_registry(
    definitions: Definitions,
    transport: Optional[Transport] = None,
) -> Registry:
    """Create a :class:`~elephant.registry.Registry` populated from *definitions*.

    Args:
        definitions: Validated definitions.
        transport: Transport for the registry; defaults to
            :class:`~elephant.transport.HttpxTransport`.
    """
    registry = Registry(transport=transport, defaults=definitions.defaults)
    for group_id, group in definitions.groups.items():
        registry.create_group(group_id, group.settings())
        for template_id, template in group.templates.items():
            registry.register_template(group_id, template_id, template)
    return registry
