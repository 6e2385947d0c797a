"""
OpenAI Chat Completions provider.

Also works against OpenAI-compatible servers via ``base_url``. Tool calls
stream as ``delta.tool_calls`` entries keyed by index; the first sighting of
an index opens the call and ``function.arguments`` pieces are its fragments.
"""

from __future__ import annotations

import json as _json
import logging as _logging
import typing as _typing
import uuid as _uuid

import httpx as _httpx

import skald.api.base as base
import skald.api.sse as sse
import skald.api.types as types
import skald.constants as _constants

_logger = _logging.getLogger(__name__)


class OpenAIProvider(base.LLMProvider):
    """OpenAI GPT and o-series models via Chat Completions."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = _constants.OPENAI_BASE_URL,
        timeout: float = 300.0,
        client: _httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the OpenAI provider.

        Args:
            api_key: Bearer token.
            base_url: API root including the version segment (``.../v1``).
            timeout: Request timeout in seconds.
            client: Pre-built client (tests inject one with a mock transport).
        """
        if client is None:
            client = _httpx.AsyncClient(
                base_url=base_url.rstrip("/"),
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                    "User-Agent": _constants.USER_AGENT,
                },
                timeout=timeout,
            )
        super().__init__(client)

    @property
    def name(self) -> str:
        return "openai"

    def _build_payload(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
        *,
        stream: bool,
    ) -> dict[str, _typing.Any]:
        payload: dict[str, _typing.Any] = {
            "model": options.model,
            "max_completion_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": format_messages(messages, options.system_prompt),
        }
        if options.tools:
            payload["tools"] = [t.to_openai_format() for t in options.tools]
        if stream:
            payload["stream"] = True
            payload["stream_options"] = {"include_usage": True}
        return payload

    async def _stream_events(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
    ) -> _typing.AsyncIterator[types.StreamEvent]:
        payload = self._build_payload(messages, options, stream=True)

        # stream index -> (tool id, tool name), in order of first sighting
        open_calls: dict[int, tuple[str, str]] = {}
        stop_reason: str | None = None
        usage: types.Usage | None = None

        async with self._client.stream(
            "POST", "/chat/completions", json=payload
        ) as response:
            await self._raise_for_status(response)
            async for event in sse.iter_sse(response.aiter_lines()):
                if event.data.strip() == "[DONE]":
                    break
                chunk = event.json()

                if "error" in chunk:
                    error = chunk["error"]
                    message = error.get("message") if isinstance(error, dict) else str(error)
                    yield types.StreamError(message=message or "Unknown OpenAI error")
                    return

                if chunk.get("usage"):
                    usage = types.Usage(
                        input_tokens=chunk["usage"].get("prompt_tokens", 0),
                        output_tokens=chunk["usage"].get("completion_tokens", 0),
                    )

                for choice in chunk.get("choices") or []:
                    delta = choice.get("delta") or {}
                    if delta.get("content"):
                        yield types.TextDelta(text=delta["content"])

                    for tc in delta.get("tool_calls") or []:
                        index = tc.get("index", 0)
                        function = tc.get("function") or {}
                        if index not in open_calls:
                            call_id = tc.get("id") or f"call_{_uuid.uuid4().hex[:12]}"
                            open_calls[index] = (call_id, function.get("name", ""))
                            yield types.ToolCallStart(id=call_id, name=open_calls[index][1])
                        if function.get("arguments"):
                            yield types.ToolCallDelta(
                                id=open_calls[index][0], input_fragment=function["arguments"]
                            )

                    if choice.get("finish_reason"):
                        stop_reason = choice["finish_reason"]
                        for call_id, name in open_calls.values():
                            yield types.ToolCallEnd(id=call_id, name=name)
                        open_calls.clear()

        if stop_reason is None:
            yield types.StreamError(message="openai: stream ended without a finish reason")
            return
        yield types.MessageEnd(stop_reason=stop_reason, usage=usage)

    async def complete(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
    ) -> types.Message:
        payload = self._build_payload(messages, options, stream=False)
        response = await self._client.post("/chat/completions", json=payload)
        await self._raise_for_status(response)
        data = response.json()

        message = data["choices"][0]["message"]
        blocks: list[types.ContentBlock] = []
        if message.get("content"):
            blocks.append(types.TextBlock(text=message["content"]))
        for tc in message.get("tool_calls") or []:
            blocks.append(
                types.ToolUseBlock(
                    id=tc["id"],
                    name=tc["function"]["name"],
                    input=_parse_arguments(tc["function"].get("arguments")),
                )
            )
        return types.Message(role="assistant", content=blocks)


def format_messages(
    messages: list[types.Message], system_prompt: str | None
) -> list[dict[str, _typing.Any]]:
    """Convert canonical history to Chat Completions messages.

    Tool results become separate ``tool`` role messages in block order.
    """
    formatted: list[dict[str, _typing.Any]] = []
    if system_prompt:
        formatted.append({"role": "system", "content": system_prompt})

    for message in base.wire_messages(messages):
        if isinstance(message.content, str):
            formatted.append({"role": message.role, "content": message.content})
            continue

        if message.role == "assistant":
            entry: dict[str, _typing.Any] = {"role": "assistant", "content": message.text or None}
            tool_calls = [
                {
                    "id": use.id,
                    "type": "function",
                    "function": {"name": use.name, "arguments": _json.dumps(use.input)},
                }
                for use in message.tool_uses
            ]
            if tool_calls:
                entry["tool_calls"] = tool_calls
            formatted.append(entry)
            continue

        for result in message.tool_results:
            formatted.append(
                {"role": "tool", "tool_call_id": result.tool_use_id, "content": result.content}
            )
        if message.text:
            formatted.append({"role": message.role, "content": message.text})

    return formatted


def _parse_arguments(arguments: str | None) -> dict[str, _typing.Any]:
    if not arguments:
        return {}
    try:
        parsed = _json.loads(arguments)
    except _json.JSONDecodeError:
        _logger.warning("Malformed tool arguments from OpenAI: %r", arguments[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}
