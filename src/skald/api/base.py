"""
Abstract base class for LLM providers.

The set of providers is closed: Anthropic, OpenAI and Ollama each implement
this interface in ``skald.api.providers``. Adding a backend means adding a
subclass and registering it in ``skald.api.factory``.
"""

from __future__ import annotations

import abc as _abc
import contextlib as _contextlib
import logging as _logging
import typing as _typing

import httpx as _httpx

import skald.api.errors as errors
import skald.api.types as types

_logger = _logging.getLogger(__name__)

_ERROR_BODY_LIMIT = 500


class LLMProvider(_abc.ABC):
    """
    Abstract base class for LLM providers.

    Providers are stateless across calls: the full history is passed to every
    request. Subclasses implement ``_stream_events`` for their wire protocol and
    ``complete`` for non-streaming requests. The public ``stream`` method wraps
    ``_stream_events`` so that every stream ends in exactly one
    ``MessageEnd`` or ``StreamError``, whatever the backend does.
    """

    def __init__(self, client: _httpx.AsyncClient) -> None:
        self._client = client

    @property
    @_abc.abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'anthropic', 'openai', 'ollama')."""
        ...

    async def stream(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
    ) -> _typing.AsyncIterator[types.StreamEvent]:
        """
        Stream a response as canonical events.

        Transport failures, HTTP errors and undecodable payloads are reported
        as a final ``StreamError`` event rather than raised.

        Args:
            messages: Full conversation history.
            options: Model, sampling and tool options for this request.

        Yields:
            StreamEvent objects, ending with MessageEnd or StreamError.
        """
        _logger.debug(
            "%s: streaming %s with %d messages", self.name, options.model, len(messages)
        )
        try:
            async with _contextlib.aclosing(self._stream_events(messages, options)) as events:
                async for event in events:
                    yield event
                    if isinstance(event, types.TERMINAL_EVENTS):
                        return
        except Exception as e:
            _logger.debug("%s: stream failed", self.name, exc_info=True)
            yield types.StreamError(message=_describe_error(e))
            return
        yield types.StreamError(message=f"{self.name}: stream ended unexpectedly")

    @_abc.abstractmethod
    def _stream_events(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
    ) -> _typing.AsyncIterator[types.StreamEvent]:
        """Backend-specific event generator (implemented as ``async def``)."""
        ...

    @_abc.abstractmethod
    async def complete(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
    ) -> types.Message:
        """
        Send messages and get a complete assistant message (non-streaming).

        Raises:
            ProviderAPIError: If the backend returns an error status.
            httpx.HTTPError: On transport failure.
        """
        ...

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> LLMProvider:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _raise_for_status(self, response: _httpx.Response) -> None:
        """Raise ProviderAPIError for non-2xx responses (streamed or not)."""
        if response.status_code < 400:
            return
        await response.aread()
        raise errors.ProviderAPIError(
            self.name, response.status_code, response.text[:_ERROR_BODY_LIMIT]
        )


def _describe_error(error: Exception) -> str:
    if isinstance(error, errors.ProviderError):
        return str(error)
    if isinstance(error, _httpx.TimeoutException):
        return f"Request timed out: {error}"
    if isinstance(error, _httpx.HTTPError):
        return f"Connection error: {error}"
    return f"{type(error).__name__}: {error}"


def system_text(
    messages: list[types.Message], system_prompt: str | None
) -> tuple[str | None, list[types.Message]]:
    """Split system-role messages out of the history.

    Backends that take the system prompt as a separate parameter get the
    configured prompt followed by the text of any system messages.

    Returns:
        Tuple of (combined system text or None, non-system messages).
    """
    parts = [system_prompt] if system_prompt else []
    rest: list[types.Message] = []
    for message in messages:
        if message.role == "system":
            if message.text:
                parts.append(message.text)
        else:
            rest.append(message)
    return ("\n\n".join(parts) or None), rest


def wire_messages(messages: list[types.Message]) -> list[types.Message]:
    """History as it goes over the wire.

    A stream that ended with neither text nor tool calls still leaves an
    assistant message in history; backends reject empty assistant turns,
    so they are left out of requests.
    """
    return [m for m in messages if not (m.role == "assistant" and m.is_empty)]
