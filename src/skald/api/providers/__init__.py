"""
Provider adapters, one per supported backend.
"""

from skald.api.providers.anthropic import AnthropicProvider
from skald.api.providers.ollama import OllamaProvider
from skald.api.providers.openai import OpenAIProvider

__all__ = ["AnthropicProvider", "OllamaProvider", "OpenAIProvider"]
