"""
Context-window usage estimates.

Client-side counts come from tiktoken and are approximations. When the
provider reported the prompt size of the last request, that number is
authoritative and is used instead.
"""

from __future__ import annotations

import functools as _functools
import json as _json
import typing as _typing

import tiktoken as _tiktoken

import skald.api.types as api_types
import skald.constants as _constants

TokenCounter = _typing.Callable[[str], int]

# Rough per-message framing overhead (role markers, separators)
_MESSAGE_OVERHEAD = 4


@_functools.lru_cache(maxsize=8)
def get_encoder(model: str) -> _tiktoken.Encoding:
    """
    Get a tiktoken encoder for the given model.

    Unknown models (including every non-OpenAI model) use cl100k_base,
    which is a reasonable approximation for most LLMs.
    """
    try:
        return _tiktoken.encoding_for_model(model)
    except KeyError:
        return _tiktoken.get_encoding("cl100k_base")


def tiktoken_counter(model: str) -> TokenCounter:
    encoder = get_encoder(model)
    return lambda text: len(encoder.encode(text, disallowed_special=()))


def message_text(message: api_types.Message) -> str:
    """Everything in a message that occupies context, as text."""
    if isinstance(message.content, str):
        return message.content
    parts: list[str] = []
    for block in message.content:
        if isinstance(block, api_types.TextBlock):
            parts.append(block.text)
        elif isinstance(block, api_types.ToolUseBlock):
            parts.append(f"{block.name} {_json.dumps(block.input)}")
        else:
            parts.append(block.content)
    return "\n".join(parts)


def estimate_tokens(
    messages: list[api_types.Message],
    counter: TokenCounter,
    system_prompt: str | None = None,
) -> int:
    """Approximate prompt size of ``messages`` (plus the system prompt)."""
    total = counter(system_prompt) if system_prompt else 0
    for message in messages:
        total += counter(message_text(message)) + _MESSAGE_OVERHEAD
    return total


class ContextMonitor:
    """Tells the caller when history should be compressed."""

    def __init__(
        self,
        context_window: int,
        *,
        threshold: float = _constants.CONTEXT_COMPRESSION_THRESHOLD,
        counter: TokenCounter | None = None,
        model: str = _constants.DEFAULT_MODEL,
    ) -> None:
        """
        Args:
            context_window: Model context size in tokens.
            threshold: Usage ratio at which compression is due.
            counter: Token counter; defaults to tiktoken for ``model``.
            model: Model used to pick the tiktoken encoding.
        """
        self.context_window = context_window
        self.threshold = threshold
        self._counter = counter
        self._model = model

    def _count(self, text: str) -> int:
        if self._counter is None:
            self._counter = tiktoken_counter(self._model)
        return self._counter(text)

    def usage_ratio(
        self,
        messages: list[api_types.Message],
        *,
        reported_input_tokens: int | None = None,
        system_prompt: str | None = None,
    ) -> float:
        if reported_input_tokens:
            used = reported_input_tokens
        else:
            used = estimate_tokens(messages, self._count, system_prompt)
        return used / self.context_window

    def should_compress(
        self,
        messages: list[api_types.Message],
        *,
        reported_input_tokens: int | None = None,
        system_prompt: str | None = None,
    ) -> bool:
        return (
            self.usage_ratio(
                messages,
                reported_input_tokens=reported_input_tokens,
                system_prompt=system_prompt,
            )
            >= self.threshold
        )
