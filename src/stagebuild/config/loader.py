"""
Configuration file loading.

Loads an optional ``stagebuild.yaml``, substitutes ``${VAR}`` environment
references and merges the result over the built-in defaults.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any

import yaml

from stagebuild.exceptions import ConfigurationError

CONFIG_FILENAME = "stagebuild.yaml"

UNRESOLVED_POLICIES = ("resolve", "last", "exclude")

DEFAULTS: dict[str, Any] = {
    "discovery": {
        "project_patterns": ["*.csproj", "*.vbproj"],
        "solution_extensions": [".sln"],
        "track_external_references": False,
    },
    "build": {
        "configuration": "Debug",
        "platform": "AnyCPU",
        "output_dir": None,
        "command": ["dotnet", "build"],
        "timeout": None,
        "max_workers": "auto",
        "stop_on_failure": False,
        "unresolved": "resolve",
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
}


class Config:
    """Stagebuild configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any] | None = None):
        self.data = data if data is not None else copy.deepcopy(DEFAULTS)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        value = self.data
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def __getitem__(self, key: str) -> Any:
        if isinstance(key, str) and "." in key:
            return self.get(key)
        if key in self.data:
            value = self.data[key]
            if isinstance(value, dict):
                return Config(value)
            return value
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        value = self.data
        for k in key.split("."):
            if not isinstance(value, dict) or k not in value:
                return False
            value = value[k]
        return True

    def validate(self) -> None:
        """Validate configuration structure and content."""
        errors = []

        if not isinstance(self.data, dict):
            raise ConfigurationError(
                f"Configuration must be a dictionary/mapping, got {type(self.data).__name__}"
            )

        for section in ("discovery", "build", "logging"):
            value = self.data.get(section)
            if value is not None and not isinstance(value, dict):
                errors.append(f"Configuration '{section}' must be a dictionary, got {type(value).__name__}")

        if not errors:
            patterns = self.get("discovery.project_patterns", [])
            if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
                errors.append("'discovery.project_patterns' must be a list of glob strings")

            command = self.get("build.command")
            if isinstance(command, str):
                self.data["build"]["command"] = command.split()
            elif not isinstance(command, list) or not command:
                errors.append("'build.command' must be a non-empty list or string")

            timeout = self.get("build.timeout")
            valid_timeout = isinstance(timeout, int | float) and not isinstance(timeout, bool) and timeout > 0
            if timeout is not None and not valid_timeout:
                errors.append(f"'build.timeout' must be a positive number of seconds, got {timeout!r}")

            unresolved = self.get("build.unresolved", "resolve")
            if unresolved not in UNRESOLVED_POLICIES:
                errors.append(f"'build.unresolved' must be one of {', '.join(UNRESOLVED_POLICIES)}, got {unresolved!r}")

            try:
                resolve_max_workers(self.get("build.max_workers", "auto"))
            except ValueError as e:
                errors.append(str(e))

        if errors:
            raise ConfigurationError("\n".join(errors))


def resolve_max_workers(value: Any) -> int:
    """Turn ``auto``/None/int into a positive worker count."""
    if value is None or value == "auto":
        return os.cpu_count() or 1
    if isinstance(value, bool):
        raise ValueError(f"'build.max_workers' must be 'auto' or a positive integer, got {value!r}")
    try:
        workers = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"'build.max_workers' must be 'auto' or a positive integer, got {value!r}") from None
    if workers < 1:
        raise ValueError(f"'build.max_workers' must be 'auto' or a positive integer, got {value!r}")
    return workers


def load_config(config_path: Path | str | None = None, project_path: Path | None = None) -> Config:
    """
    Load Stagebuild configuration.

    Args:
        config_path: Explicit config file; must exist when given
        project_path: Directory searched for ``stagebuild.yaml`` (default: cwd)

    Returns:
        Validated Config with defaults applied
    """
    if config_path is not None:
        path = Path(config_path)
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {path}")
    else:
        path = (project_path or Path.cwd()) / CONFIG_FILENAME
        if not path.is_file():
            config = Config()
            config.validate()
            return config

    try:
        with open(path, encoding="utf-8") as f:
            file_data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        if hasattr(e, "problem_mark"):
            mark = e.problem_mark
            raise ConfigurationError(
                f"Error parsing {path.name} at line {mark.line + 1}, column {mark.column + 1}:\n"
                f"  {e}\n"
                f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes"
            ) from e
        raise ConfigurationError(f"Error parsing {path.name}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read configuration file {path}: {e}") from e

    if not isinstance(file_data, dict):
        raise ConfigurationError(f"Configuration must be a dictionary/mapping, got {type(file_data).__name__}")

    data = copy.deepcopy(DEFAULTS)
    _merge_dict(data, _substitute_env_vars(file_data))
    config = Config(data)
    config.validate()
    return config


def _merge_dict(base: dict, override: dict):
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value


def _substitute_env_vars(data: Any) -> Any:
    """Substitute ``${VAR_NAME}`` references; unknown variables are left as-is."""
    if isinstance(data, dict):
        return {k: _substitute_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    elif isinstance(data, str):
        return re.sub(r"\${([^}]+)}", lambda m: os.getenv(m.group(1), m.group(0)), data)
    else:
        return data
