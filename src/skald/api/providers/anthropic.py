"""
Anthropic Messages API provider.

Talks to ``/v1/messages`` directly over httpx. Streaming responses are
Server-Sent Events whose content-block events map onto the canonical
stream: ``tool_use`` blocks become ToolCallStart/ToolCallDelta/ToolCallEnd
and ``text_delta`` fragments become TextDelta.
"""

from __future__ import annotations

import json as _json
import logging as _logging
import typing as _typing

import httpx as _httpx

import skald.api.base as base
import skald.api.sse as sse
import skald.api.types as types
import skald.constants as _constants

_logger = _logging.getLogger(__name__)


class AnthropicProvider(base.LLMProvider):
    """Anthropic Claude models via the Messages API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = _constants.ANTHROPIC_BASE_URL,
        timeout: float = 300.0,
        client: _httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the Anthropic provider.

        Args:
            api_key: Anthropic API key, passed through as ``x-api-key``.
            base_url: API root (without ``/v1``).
            timeout: Request timeout in seconds.
            client: Pre-built client (tests inject one with a mock transport).
        """
        if client is None:
            client = _httpx.AsyncClient(
                base_url=base_url.rstrip("/"),
                headers={
                    "x-api-key": api_key,
                    "anthropic-version": _constants.ANTHROPIC_API_VERSION,
                    "content-type": "application/json",
                    "user-agent": _constants.USER_AGENT,
                },
                timeout=timeout,
            )
        super().__init__(client)

    @property
    def name(self) -> str:
        return "anthropic"

    def _build_payload(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
        *,
        stream: bool,
    ) -> dict[str, _typing.Any]:
        system, conversation = base.system_text(messages, options.system_prompt)
        payload: dict[str, _typing.Any] = {
            "model": options.model,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": [_format_message(m) for m in base.wire_messages(conversation)],
        }
        if system:
            payload["system"] = system
        if options.tools:
            payload["tools"] = [t.to_anthropic_format() for t in options.tools]
        if stream:
            payload["stream"] = True
        return payload

    async def _stream_events(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
    ) -> _typing.AsyncIterator[types.StreamEvent]:
        payload = self._build_payload(messages, options, stream=True)

        # content-block index -> (tool id, tool name) for open tool_use blocks
        tool_blocks: dict[int, tuple[str, str]] = {}
        usage = types.Usage()
        stop_reason: str | None = None

        async with self._client.stream("POST", "/v1/messages", json=payload) as response:
            await self._raise_for_status(response)
            async for event in sse.iter_sse(response.aiter_lines()):
                data = event.json()
                kind = data.get("type", event.event)

                if kind == "message_start":
                    start_usage = data.get("message", {}).get("usage", {})
                    usage.input_tokens = start_usage.get("input_tokens", 0)

                elif kind == "content_block_start":
                    block = data.get("content_block", {})
                    if block.get("type") == "tool_use":
                        tool_blocks[data["index"]] = (block["id"], block["name"])
                        yield types.ToolCallStart(id=block["id"], name=block["name"])
                    elif block.get("type") == "text" and block.get("text"):
                        yield types.TextDelta(text=block["text"])

                elif kind == "content_block_delta":
                    delta = data.get("delta", {})
                    if delta.get("type") == "text_delta":
                        yield types.TextDelta(text=delta.get("text", ""))
                    elif delta.get("type") == "input_json_delta":
                        tool = tool_blocks.get(data["index"])
                        if tool is not None:
                            yield types.ToolCallDelta(
                                id=tool[0], input_fragment=delta.get("partial_json", "")
                            )

                elif kind == "content_block_stop":
                    tool = tool_blocks.pop(data["index"], None)
                    if tool is not None:
                        yield types.ToolCallEnd(id=tool[0], name=tool[1])

                elif kind == "message_delta":
                    stop_reason = data.get("delta", {}).get("stop_reason", stop_reason)
                    usage.output_tokens = data.get("usage", {}).get(
                        "output_tokens", usage.output_tokens
                    )

                elif kind == "message_stop":
                    yield types.MessageEnd(stop_reason=stop_reason, usage=usage)
                    return

                elif kind == "error":
                    error = data.get("error", {})
                    yield types.StreamError(
                        message=error.get("message") or _json.dumps(error)
                    )
                    return

    async def complete(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
    ) -> types.Message:
        payload = self._build_payload(messages, options, stream=False)
        response = await self._client.post("/v1/messages", json=payload)
        await self._raise_for_status(response)
        data = response.json()

        blocks: list[types.ContentBlock] = []
        for block in data.get("content", []):
            if block.get("type") == "text":
                blocks.append(types.TextBlock(text=block.get("text", "")))
            elif block.get("type") == "tool_use":
                blocks.append(
                    types.ToolUseBlock(
                        id=block["id"], name=block["name"], input=block.get("input") or {}
                    )
                )
        return types.Message(role="assistant", content=blocks)


def _format_message(message: types.Message) -> dict[str, _typing.Any]:
    if isinstance(message.content, str):
        return {"role": message.role, "content": message.content}

    content: list[dict[str, _typing.Any]] = []
    for block in message.content:
        if isinstance(block, types.TextBlock):
            content.append({"type": "text", "text": block.text})
        elif isinstance(block, types.ToolUseBlock):
            content.append(
                {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
            )
        elif isinstance(block, types.ToolResultBlock):
            item: dict[str, _typing.Any] = {
                "type": "tool_result",
                "tool_use_id": block.tool_use_id,
                "content": block.content,
            }
            if block.is_error:
                item["is_error"] = True
            content.append(item)
    return {"role": message.role, "content": content}
