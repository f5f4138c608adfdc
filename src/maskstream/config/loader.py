"""
Configuration file loading.

Loads ``config.yaml`` plus an optional ``config.{env}.yaml`` overlay.
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from maskstream.config.resolver import resolve_config
from maskstream.exceptions import ConfigurationError


class Config:
    """Maskstream configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any], path: Path | None = None):
        self.data = data
        self.path = path

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        value: Any = self.data
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def __getitem__(self, key: str) -> Any:
        """Dict-like access: config['key'] or config['nested.key']."""
        if "." in key:
            value = self.get(key)
            if value is None:
                raise KeyError(f"Config key '{key}' not found")
            return value
        if key in self.data:
            return self.data[key]
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        value: Any = self.data
        for k in key.split("."):
            if not isinstance(value, dict) or k not in value:
                return False
            value = value[k]
        return True

    def __iter__(self) -> Iterator[str]:
        """Iterate over top-level keys."""
        return iter(self.data)

    def validate(self) -> None:
        """
        Validate the top-level structure.

        Raises:
            ConfigurationError: Listing every problem found
        """
        errors = []
        if not isinstance(self.data, dict):
            raise ConfigurationError(f"Configuration must be a mapping, got {type(self.data).__name__}")

        if not self.get("fields"):
            errors.append("'fields' is required, e.g. fields: \"id:No:none,card:Yes:cc\"")
        for section in ("protection", "source", "destination", "transfer", "csv", "logging"):
            value = self.data.get(section)
            if value is not None and not isinstance(value, dict):
                errors.append(f"'{section}' must be a mapping, got {type(value).__name__}")
        if not isinstance(self.data.get("destination"), dict):
            errors.append("'destination' is required, with type 's3' or 'filesystem'")

        if errors:
            raise ConfigurationError("Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors))


def load_config(
    project_path: Path | None = None,
    env: str | None = None,
    *,
    filename: str = "config.yaml",
    strict_env: bool = False,
) -> Config:
    """
    Load Maskstream configuration.

    Args:
        project_path: Directory holding the config file (default: current directory),
            or the config file itself
        env: Environment name (dev, staging, prod); ``config.{env}.yaml`` overrides the base
        filename: Base config file name
        strict_env: Fail on ``${VAR}`` references with no value and no fallback

    Returns:
        Config instance with merged configuration

    Raises:
        ConfigurationError: If the file is missing, not valid YAML, or (with
            ``strict_env``) references unset environment variables
    """
    if project_path is None:
        project_path = Path.cwd()
    project_path = Path(project_path)

    if project_path.is_file():
        base_config_path = project_path
        project_path = project_path.parent
    else:
        base_config_path = project_path / filename

    if not base_config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {base_config_path}\n"
            f"  Suggestion: Create a {filename} file in your project root"
        )

    config_data = _read_yaml(base_config_path)

    if env:
        env_config_path = project_path / f"{base_config_path.stem}.{env}{base_config_path.suffix}"
        if env_config_path.exists():
            _merge_dict(config_data, _read_yaml(env_config_path))

    config_data = resolve_config(config_data, env or "dev", strict=strict_env)
    return Config(config_data, path=base_config_path)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark is not None else ""
        raise ConfigurationError(
            f"Error parsing {path.name}{where}:\n"
            f"  {e}\n"
            f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes"
        ) from e
    except PermissionError as e:
        raise ConfigurationError(f"Permission denied reading {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {path} must be a mapping, got {type(data).__name__}")
    return data


def _merge_dict(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value
