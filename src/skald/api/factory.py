"""
Provider factory and model-to-provider resolution.

The provider set is closed: ``BUILTIN_PROVIDER_TYPES`` lists every backend.
``ProviderRegistry`` holds the instances that are usable with the current
credentials and picks one for a requested model.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import skald.api.base as base
import skald.api.errors as errors
import skald.api.providers.anthropic as anthropic
import skald.api.providers.ollama as ollama
import skald.api.providers.openai as openai
import skald.constants as _constants

if _typing.TYPE_CHECKING:
    import skald.config as config

_logger = _logging.getLogger(__name__)

BUILTIN_PROVIDER_TYPES: tuple[str, ...] = ("anthropic", "openai", "ollama")

MODEL_PREFIXES: tuple[tuple[str, str], ...] = (
    ("claude-", "anthropic"),
    ("gpt-", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("o4", "openai"),
)
"""Model-name prefixes that identify a provider when the catalog is silent."""


def create_provider(name: str, settings: config.Settings) -> base.LLMProvider:
    """
    Create one of the builtin providers from settings.

    Args:
        name: Provider type ('anthropic', 'openai' or 'ollama').
        settings: Loaded settings (endpoints and credentials).

    Raises:
        ValueError: If the provider is unknown or its API key is missing.
    """
    if name == "anthropic":
        if not settings.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY is not set")
        return anthropic.AnthropicProvider(
            settings.anthropic_api_key,
            base_url=settings.providers.anthropic.base_url,
            timeout=settings.providers.anthropic.timeout,
        )
    if name == "openai":
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is not set")
        return openai.OpenAIProvider(
            settings.openai_api_key,
            base_url=settings.providers.openai.base_url,
            timeout=settings.providers.openai.timeout,
        )
    if name == "ollama":
        return ollama.OllamaProvider(
            base_url=settings.ollama_base_url,
            timeout=settings.providers.ollama.timeout,
        )
    raise ValueError(
        f"Unknown provider: {name}. Available: {', '.join(BUILTIN_PROVIDER_TYPES)}"
    )


class ProviderRegistry:
    """
    Provider instances available to a session.

    ``get_for_model`` resolves a model to a provider in this order: the
    model catalog entry, the model-name prefix, the configured default
    provider, then the first registered of anthropic/openai/ollama.
    """

    def __init__(
        self,
        *,
        catalog: _typing.Mapping[str, config.ModelEntry] | None = None,
        default_provider: str | None = None,
    ) -> None:
        self._providers: dict[str, base.LLMProvider] = {}
        self._catalog = dict(catalog or {})
        self._default_provider = default_provider

    @classmethod
    def from_settings(cls, settings: config.Settings) -> ProviderRegistry:
        """Register every provider whose credentials are configured.

        Ollama needs no credential and is always registered.
        """
        registry = cls(
            catalog=settings.models.catalog,
            default_provider=settings.providers.default,
        )
        for name in BUILTIN_PROVIDER_TYPES:
            try:
                registry.register(create_provider(name, settings))
            except ValueError as e:
                _logger.debug("Provider %s not registered: %s", name, e)
        return registry

    def register(self, provider: base.LLMProvider) -> None:
        self._providers[provider.name] = provider

    def get(self, name: str) -> base.LLMProvider | None:
        return self._providers.get(name)

    def names(self) -> list[str]:
        return list(self._providers)

    def provider_name_for_model(self, model: str) -> str | None:
        """Name of the registered provider that serves ``model``, if any.

        A model claimed by the catalog or a name prefix belongs to that
        provider only; if it is not registered the answer is None rather
        than some unrelated backend.
        """
        entry = self._catalog.get(model)
        if entry is not None:
            return entry.provider if entry.provider in self._providers else None

        for prefix, provider_name in MODEL_PREFIXES:
            if model.startswith(prefix):
                return provider_name if provider_name in self._providers else None

        if self._default_provider and self._default_provider in self._providers:
            return self._default_provider

        for provider_name in _constants.DEFAULT_PROVIDER_ORDER:
            if provider_name in self._providers:
                return provider_name
        return None

    def get_for_model(self, model: str) -> base.LLMProvider:
        """
        Provider for ``model``.

        Raises:
            ProviderNotAvailableError: If no registered provider can serve it.
        """
        name = self.provider_name_for_model(model)
        if name is None:
            raise errors.ProviderNotAvailableError(model)
        return self._providers[name]

    def list_models(self) -> list[tuple[str, config.ModelEntry]]:
        """Catalog entries whose provider is registered."""
        return [
            (model_id, entry)
            for model_id, entry in self._catalog.items()
            if entry.provider in self._providers
        ]

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()
