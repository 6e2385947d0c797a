"""Configuration type definitions for Skald settings.

This module defines the Pydantic models used to represent configuration
structures. These are "config section" types nested within the main
Settings class:

- ModelsConfig: default model and the model catalog
- ProvidersConfig: default provider and per-backend endpoints
- BehaviorConfig: sampling, limits, timeouts, compression
- LoggingConfig: conversation log location and level
- SessionConfig: session storage
- McpServerConfig: one external tool server

All types use `extra="allow"` so unknown fields are preserved rather than
silently dropped; `get_extra_fields()` lists them for config auditing.
"""

import typing as _typing

import pydantic as _pydantic

import skald.constants as _constants

# =============================================================================
# Base class with introspection
# =============================================================================


class ConfigBase(_pydantic.BaseModel):
    """
    Base class for all config types.

    Unknown fields are kept so that typos can be reported instead of ignored.
    """

    model_config = _pydantic.ConfigDict(extra="allow")

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """Return fields that were provided but not in the schema."""
        return dict(self.model_extra) if self.model_extra else {}


# =============================================================================
# Models
# =============================================================================


class ModelEntry(ConfigBase):
    """
    One model in the catalog.

    YAML section: models.catalog.<model-id>
    """

    provider: str
    """Provider that serves this model ('anthropic', 'openai', 'ollama')."""

    label: str = ""
    """Human-readable name shown by /model."""

    context_window: int = _pydantic.Field(default=_constants.DEFAULT_CONTEXT_WINDOW, ge=1)
    """Context window in tokens, used for compression thresholds."""


def _default_catalog() -> dict[str, ModelEntry]:
    return {
        "claude-sonnet-4-20250514": ModelEntry(
            provider="anthropic", label="Claude Sonnet 4", context_window=200_000
        ),
        "claude-opus-4-20250514": ModelEntry(
            provider="anthropic", label="Claude Opus 4", context_window=200_000
        ),
        "claude-3-5-haiku-20241022": ModelEntry(
            provider="anthropic", label="Claude 3.5 Haiku", context_window=200_000
        ),
        "gpt-4o": ModelEntry(provider="openai", label="GPT-4o", context_window=128_000),
        "gpt-4o-mini": ModelEntry(provider="openai", label="GPT-4o mini", context_window=128_000),
        "o3-mini": ModelEntry(provider="openai", label="o3-mini", context_window=200_000),
        "llama3.1": ModelEntry(provider="ollama", label="Llama 3.1 (local)", context_window=128_000),
        "qwen2.5-coder": ModelEntry(
            provider="ollama", label="Qwen 2.5 Coder (local)", context_window=32_768
        ),
    }


class ModelsConfig(ConfigBase):
    """
    Model selection.

    YAML section: models.*
    """

    default: str = _constants.DEFAULT_MODEL
    """Model used when none is given on the command line."""

    catalog: dict[str, ModelEntry] = _pydantic.Field(default_factory=_default_catalog)
    """Known models keyed by model id."""

    def get(self, model: str) -> ModelEntry | None:
        return self.catalog.get(model)


# =============================================================================
# Providers
# =============================================================================


class ProviderEndpointConfig(ConfigBase):
    """
    Connection settings for one backend.

    YAML section: providers.<name>.*
    """

    base_url: str
    timeout: float = _pydantic.Field(default=300.0, gt=0)


class ProvidersConfig(ConfigBase):
    """
    Provider selection and endpoints.

    YAML section: providers.*
    """

    default: str | None = None
    """Provider used for models that match no catalog entry or name prefix."""

    anthropic: ProviderEndpointConfig = _pydantic.Field(
        default_factory=lambda: ProviderEndpointConfig(base_url=_constants.ANTHROPIC_BASE_URL)
    )
    openai: ProviderEndpointConfig = _pydantic.Field(
        default_factory=lambda: ProviderEndpointConfig(base_url=_constants.OPENAI_BASE_URL)
    )
    ollama: ProviderEndpointConfig = _pydantic.Field(
        default_factory=lambda: ProviderEndpointConfig(base_url=_constants.OLLAMA_BASE_URL)
    )


# =============================================================================
# Behavior
# =============================================================================


class BehaviorConfig(ConfigBase):
    """
    General behavior settings.

    YAML section: behavior.*
    """

    max_tokens: int = _pydantic.Field(default=_constants.DEFAULT_MAX_TOKENS, ge=1, le=200000)
    """Maximum tokens for completions."""

    temperature: float = _pydantic.Field(default=_constants.DEFAULT_TEMPERATURE, ge=0.0, le=2.0)

    tool_timeout: float = _pydantic.Field(
        default=_constants.DEFAULT_TOOL_TIMEOUT_SECONDS, gt=0
    )
    """Seconds one tool execution may run before it is cancelled."""

    permission_timeout: float | None = _pydantic.Field(default=None, gt=0)
    """Seconds to wait for a permission answer; None waits until answered or aborted."""

    compression_threshold: float = _pydantic.Field(
        default=_constants.CONTEXT_COMPRESSION_THRESHOLD, gt=0.0, le=1.0
    )
    """Fraction of the context window that triggers history compression."""

    keep_recent_messages: int = _pydantic.Field(
        default=_constants.DEFAULT_KEEP_RECENT_MESSAGES, ge=1
    )
    """Messages kept verbatim when history is compressed."""

    system_prompt: str | None = None
    """Replaces the built-in system prompt when set."""


# =============================================================================
# Logging / sessions
# =============================================================================


class LoggingConfig(ConfigBase):
    """
    Conversation logging.

    YAML section: logging.*
    """

    enabled: bool = False
    """Write a JSONL conversation log per session."""

    dir: str = "~/.skald/logs"

    level: _typing.Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    """Level for Python logging output."""


class SessionConfig(ConfigBase):
    """
    Session storage.

    YAML section: session.*
    """

    dir: str = "~/.skald/sessions"

    list_limit: int = _pydantic.Field(default=10, ge=1)
    """Sessions shown by ``skald sessions``."""


# =============================================================================
# MCP
# =============================================================================


class McpServerConfig(ConfigBase):
    """
    One external tool server, launched as a subprocess speaking MCP over stdio.

    YAML section: mcp_servers.<name>.*
    """

    command: str
    args: list[str] = _pydantic.Field(default_factory=list)
    env: dict[str, str] = _pydantic.Field(default_factory=dict)
    """Extra environment variables, merged over the current environment."""
