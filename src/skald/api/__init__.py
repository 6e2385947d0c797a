"""
LLM API providers for Skald.

Provides one streaming interface over several backends:
- Anthropic (Messages API)
- OpenAI (Chat Completions, also OpenAI-compatible servers)
- Ollama (local or remote models)

All adapters talk HTTP through httpx rather than vendor SDKs.
"""

from skald.api.base import LLMProvider
from skald.api.errors import ProviderAPIError, ProviderError, ProviderNotAvailableError
from skald.api.factory import BUILTIN_PROVIDER_TYPES, ProviderRegistry, create_provider
from skald.api.types import (
    ContentBlock,
    Message,
    MessageEnd,
    ProviderOptions,
    StreamError,
    StreamEvent,
    TextBlock,
    TextDelta,
    ToolCall,
    ToolCallDelta,
    ToolCallEnd,
    ToolCallStart,
    ToolDefinition,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
)

__all__ = [
    # Base class
    "LLMProvider",
    # Factory
    "BUILTIN_PROVIDER_TYPES",
    "ProviderRegistry",
    "create_provider",
    # Exceptions
    "ProviderAPIError",
    "ProviderError",
    "ProviderNotAvailableError",
    # Types
    "ContentBlock",
    "Message",
    "MessageEnd",
    "ProviderOptions",
    "StreamError",
    "StreamEvent",
    "TextBlock",
    "TextDelta",
    "ToolCall",
    "ToolCallDelta",
    "ToolCallEnd",
    "ToolCallStart",
    "ToolDefinition",
    "ToolResultBlock",
    "ToolUseBlock",
    "Usage",
]
