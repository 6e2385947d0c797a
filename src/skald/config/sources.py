"""Custom pydantic-settings source for Skald configuration.

Configuration layers (in precedence order, highest first):
1. Environment variables (handled by pydantic-settings)
2. Project config: .skald/config.yaml in project root
3. User config: ~/.config/skald/config.yaml (or SKALD_CONFIG_DIR)

The LayeredYamlSettingsSource handles layers 2-3, deep-merging them so that
nested mappings merge naturally while scalars and lists override.

Environment variables:
- SKALD_CONFIG_DIR: Override user config directory (default: ~/.config/skald)
"""

import copy as _copy
import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic.fields as _pydantic_fields
import pydantic_settings as _pydantic_settings
import yaml as _yaml

# Environment variable for overriding user config directory
ENV_CONFIG_DIR = "SKALD_CONFIG_DIR"

PROJECT_CONFIG_DIR = ".skald"


class ConfigFileError(Exception):
    """Error loading or parsing a configuration file."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"Error in config file {path}: {message}")


def deep_merge(
    base: dict[str, _typing.Any], override: dict[str, _typing.Any]
) -> dict[str, _typing.Any]:
    """
    Merge ``override`` into a copy of ``base``.

    Mappings present in both are merged recursively; any other value in
    ``override`` replaces the one in ``base``.
    """
    result = _copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = _copy.deepcopy(value)
    return result


def load_yaml_file(path: _pathlib.Path) -> dict[str, _typing.Any] | None:
    """
    Load a YAML config file.

    Returns:
        Parsed mapping, or None if the file is empty.

    Raises:
        ConfigFileError: If the file cannot be read, is malformed YAML,
            or is not a mapping at the top level.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(path, f"cannot read file: {e}") from e

    try:
        parsed = _yaml.safe_load(content)
    except _yaml.YAMLError as e:
        raise ConfigFileError(path, f"invalid YAML: {e}") from e

    if parsed is None:
        return None
    if not isinstance(parsed, dict):
        raise ConfigFileError(
            path, f"config must be a YAML mapping (dict), got {type(parsed).__name__}"
        )
    return parsed


def get_user_config_dir() -> _pathlib.Path:
    """User config directory, respecting SKALD_CONFIG_DIR."""
    config_dir_env = _os.environ.get(ENV_CONFIG_DIR)
    if config_dir_env:
        return _pathlib.Path(config_dir_env)
    return _pathlib.Path.home() / ".config" / "skald"


def get_user_config_path() -> _pathlib.Path:
    return get_user_config_dir() / "config.yaml"


def get_project_config_path(project_root: _pathlib.Path) -> _pathlib.Path:
    return project_root / PROJECT_CONFIG_DIR / "config.yaml"


class LayeredYamlSettingsSource(_pydantic_settings.PydanticBaseSettingsSource):
    """
    Settings source that deep-merges the user and project YAML files.

    Missing files are normal and skipped; malformed files raise
    ConfigFileError so that a broken config is never silently ignored.
    """

    def __init__(
        self,
        settings_cls: type[_pydantic_settings.BaseSettings],
        project_root: _pathlib.Path | None = None,
        *,
        user_config_path: _pathlib.Path | None = None,
    ) -> None:
        """
        Initialize the settings source.

        Args:
            settings_cls: The Settings class being populated.
            project_root: Optional project root for .skald/config.yaml.
            user_config_path: Override path for user config file (for testing).
        """
        super().__init__(settings_cls)
        self._project_root = project_root
        self._user_config_path = user_config_path or get_user_config_path()
        self._loaded_layers: list[tuple[str, _pathlib.Path]] = []
        self._merged = self._load_layers()

    def _load_layers(self) -> dict[str, _typing.Any]:
        merged: dict[str, _typing.Any] = {}
        candidates = [("user", self._user_config_path)]
        if self._project_root is not None:
            candidates.append(("project", get_project_config_path(self._project_root)))

        # Ascending precedence: later layers override earlier ones
        for layer_name, path in candidates:
            if not path.exists():
                continue
            content = load_yaml_file(path)
            if content:
                merged = deep_merge(merged, content)
                self._loaded_layers.append((layer_name, path))
        return merged

    def get_loaded_layers(self) -> list[tuple[str, _pathlib.Path]]:
        """(layer_name, path) for each file that contributed, lowest precedence first."""
        return list(self._loaded_layers)

    def get_field_value(
        self,
        field: _pydantic_fields.FieldInfo,  # noqa: ARG002 - required by pydantic-settings interface
        field_name: str,
    ) -> tuple[_typing.Any, str, bool]:
        value = self._merged.get(field_name)
        return value, field_name, isinstance(value, (dict, list))

    def __call__(self) -> dict[str, _typing.Any]:
        """Return the merged config, including unknown keys."""
        return _copy.deepcopy(self._merged)
