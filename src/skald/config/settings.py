"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with SKALD_ prefix
3. .env file (if present)
4. Layered YAML config files:
   - Project config: .skald/config.yaml (highest)
   - User config: ~/.config/skald/config.yaml

Nested config uses double underscore delimiter:
  SKALD_BEHAVIOR__MAX_TOKENS=16384
  SKALD_MODELS__DEFAULT=gpt-4o

Provider credentials come from the backends' usual variables:
ANTHROPIC_API_KEY, OPENAI_API_KEY and OLLAMA_HOST.
"""

import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import skald.config.sources as sources
import skald.config.types as types
import skald.constants as _constants


def _get_env_file() -> str | None:
    """Use SKALD_ENV_FILE when it names an existing file, else no .env."""
    env_file = _os.environ.get("SKALD_ENV_FILE")
    if env_file and _pathlib.Path(env_file).exists():
        return env_file
    return None


def find_git_root(start_path: _pathlib.Path | None = None) -> _pathlib.Path | None:
    """Walk upward from ``start_path`` to the nearest directory containing .git."""
    current = (start_path or _pathlib.Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def find_project_root(start_path: _pathlib.Path | None = None) -> _pathlib.Path:
    """Project root: the git root, or the working directory outside a repo."""
    return find_git_root(start_path) or (start_path or _pathlib.Path.cwd()).resolve()


class Settings(_pydantic_settings.BaseSettings):
    """
    Skald configuration settings.

    All settings can be overridden via environment variables with SKALD_ prefix.
    For nested config, use double underscore: SKALD_BEHAVIOR__MAX_TOKENS=16384

    Config precedence (highest to lowest):
    1. Constructor arguments
    2. Environment variables (SKALD_*)
    3. .env file
    4. Project config (.skald/config.yaml)
    5. User config (~/.config/skald/config.yaml)
    6. Field defaults
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="SKALD_",
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",  # SKALD_BEHAVIOR__MAX_TOKENS
        extra="allow",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        """
        Configure settings sources with precedence:
        1. init_settings (constructor args) (highest)
        2. env_settings (SKALD_* env vars)
        3. dotenv_settings (.env file)
        4. YAML layers (project over user)
        5. (defaults via Field definitions) (lowest)
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            sources.LayeredYamlSettingsSource(settings_cls, find_project_root()),
            file_secret_settings,
        )

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings from environment variables only, without loading .env file.

        Useful for test isolation and for reproducing issues without .env interference.
        """
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]

    # =========================================================================
    # Nested config sections
    # =========================================================================

    models: types.ModelsConfig = _pydantic.Field(default_factory=types.ModelsConfig)
    """Default model and model catalog."""

    providers: types.ProvidersConfig = _pydantic.Field(default_factory=types.ProvidersConfig)
    """Provider selection and endpoints."""

    behavior: types.BehaviorConfig = _pydantic.Field(default_factory=types.BehaviorConfig)
    """Sampling, limits, timeouts and compression."""

    logging: types.LoggingConfig = _pydantic.Field(default_factory=types.LoggingConfig)

    session: types.SessionConfig = _pydantic.Field(default_factory=types.SessionConfig)

    mcp_servers: dict[str, types.McpServerConfig] = _pydantic.Field(default_factory=dict)
    """External tool servers keyed by server name."""

    # =========================================================================
    # Credentials (standard provider env vars, no SKALD_ prefix)
    # =========================================================================

    anthropic_api_key: str | None = _pydantic.Field(
        default=None,
        validation_alias=_pydantic.AliasChoices("ANTHROPIC_API_KEY", "anthropic_api_key"),
    )
    openai_api_key: str | None = _pydantic.Field(
        default=None,
        validation_alias=_pydantic.AliasChoices("OPENAI_API_KEY", "openai_api_key"),
    )
    ollama_host: str | None = _pydantic.Field(
        default=None,
        validation_alias=_pydantic.AliasChoices("OLLAMA_HOST", "ollama_host"),
    )
    """Overrides providers.ollama.base_url when set."""

    # =========================================================================
    # Derived values
    # =========================================================================

    @property
    def ollama_base_url(self) -> str:
        return self.ollama_host or self.providers.ollama.base_url

    @property
    def sessions_dir(self) -> _pathlib.Path:
        """Directory for session storage."""
        return _pathlib.Path(self.session.dir).expanduser()

    @property
    def logs_dir(self) -> _pathlib.Path:
        """Directory for conversation log files."""
        return _pathlib.Path(self.logging.dir).expanduser()

    def context_window(self, model: str) -> int:
        """Context window for ``model`` from the catalog, or the default."""
        entry = self.models.get(model)
        return entry.context_window if entry else _constants.DEFAULT_CONTEXT_WINDOW

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """Top-level keys that are not part of the schema (likely typos)."""
        return dict(self.model_extra) if self.model_extra else {}
