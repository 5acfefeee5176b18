"""Configuration loading for contox.

Credentials come from the environment or the global rc file, the project
from the nearest ``.contox.json``. Both files are parsed as YAML, so the JSON
files written by other contox tools load unchanged.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from contox.exceptions import ConfigurationError
from contox.models import ContoxConfig

DEFAULT_API_URL = "https://contox.dev"
GLOBAL_CONFIG_FILE = Path.home() / ".contoxrc"
PROJECT_CONFIG_FILE = ".contox.json"
MAX_PARENT_LEVELS = 20


def _substitute_env_vars(obj):
    """Recursively substitute ${VAR} with environment variables."""
    if isinstance(obj, str):
        pattern = r"\$\{([^}]+)\}"
        return re.sub(pattern, lambda m: os.environ.get(m.group(1), m.group(0)), obj)
    elif isinstance(obj, dict):
        return {k: _substitute_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]
    return obj


def _read_mapping(path: Path) -> dict[str, Any]:
    """Read a YAML/JSON mapping from disk."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return _substitute_env_vars(data)


def get_global_config_path() -> Path:
    """Path of the global rc file, honouring CONTOX_CONFIG."""
    override = os.environ.get("CONTOX_CONFIG")
    if override:
        return Path(override).expanduser()
    return GLOBAL_CONFIG_FILE


def load_global_config(path: str | Path | None = None) -> dict[str, Any] | None:
    """Load API credentials.

    Environment variables take priority over the rc file. Returns None when
    neither provides an API key.
    """
    env_key = os.environ.get("CONTOX_API_KEY")
    if env_key:
        return {
            "api_key": env_key,
            "api_url": os.environ.get("CONTOX_API_URL", DEFAULT_API_URL),
        }

    config_path = Path(path) if path else get_global_config_path()
    if not config_path.exists():
        return None

    data = _read_mapping(config_path)
    if not data.get("apiKey"):
        return None
    return {
        "api_key": data["apiKey"],
        "api_url": data.get("apiUrl") or DEFAULT_API_URL,
    }


def find_project_config(start_dir: str | Path | None = None) -> dict[str, Any] | None:
    """Walk up from start_dir looking for a project config file."""
    directory = Path(start_dir or os.getcwd()).resolve()
    for _ in range(MAX_PARENT_LEVELS):
        candidate = directory / PROJECT_CONFIG_FILE
        if candidate.exists():
            return _read_mapping(candidate)
        if directory.parent == directory:
            break
        directory = directory.parent
    return None


def load_config(
    start_dir: str | Path | None = None,
    global_path: str | Path | None = None,
) -> ContoxConfig:
    """Resolve the full configuration or raise ConfigurationError."""
    credentials = load_global_config(global_path)
    if credentials is None:
        raise ConfigurationError(
            "Not logged in. Set CONTOX_API_KEY or add apiKey to "
            f"{get_global_config_path()}."
        )

    project = find_project_config(start_dir) or {}
    project_id = os.environ.get("CONTOX_PROJECT_ID") or project.get("projectId")
    if not project_id:
        raise ConfigurationError(
            f"No project configured. Add {PROJECT_CONFIG_FILE} with a projectId "
            "or set CONTOX_PROJECT_ID."
        )

    try:
        return ContoxConfig(
            **credentials,
            project_id=project_id,
            team_id=project.get("teamId"),
            project_name=project.get("projectName"),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
