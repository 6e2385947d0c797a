"""
Ollama API provider.

Uses Ollama's native ``/api/chat`` endpoint, which streams newline-delimited
JSON. Ollama delivers each tool call whole, so the adapter synthesizes a
ToolCallStart / ToolCallDelta (full JSON payload) / ToolCallEnd triple with
generated ``ollama-tc-<hex>`` ids. Ollama sends no ids of its own, and
generated ids must stay unique across the rounds of a turn and across a
resumed history.
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

TOOL_CALL_ID_PREFIX = "ollama-tc-"


def new_tool_call_id() -> str:
    return f"{TOOL_CALL_ID_PREFIX}{_uuid.uuid4().hex[:12]}"


def normalize_host(host: str) -> str:
    """Turn ``OLLAMA_HOST`` style values into a base URL.

    Accepts ``hostname``, ``hostname:port`` or a full ``http(s)://`` URL.
    """
    host = host.strip().rstrip("/")
    if host.startswith("http://") or host.startswith("https://"):
        return host
    if ":" in host:
        return f"http://{host}"
    return f"http://{host}:11434"


class OllamaProvider(base.LLMProvider):
    """
    Ollama API provider.

    Serves local models and remote Ollama instances. No credential is needed
    for a local server; ``api_key`` is sent as a bearer token when given.
    """

    def __init__(
        self,
        *,
        base_url: str = _constants.OLLAMA_BASE_URL,
        api_key: str | None = None,
        timeout: float = 300.0,  # Longer timeout for large models
        client: _httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = normalize_host(base_url)
        if client is None:
            headers: dict[str, str] = {
                "Content-Type": "application/json",
                "User-Agent": _constants.USER_AGENT,
            }
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
            client = _httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=timeout,
            )
        super().__init__(client)

    @property
    def name(self) -> str:
        return "ollama"

    @property
    def base_url(self) -> str:
        """Base URL being used for the Ollama server."""
        return self._base_url

    def _build_payload(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
        *,
        stream: bool,
    ) -> dict[str, _typing.Any]:
        payload: dict[str, _typing.Any] = {
            "model": options.model,
            "messages": format_messages(messages, options.system_prompt),
            "stream": stream,
            "options": {
                "num_predict": options.max_tokens,
                "temperature": options.temperature,
            },
        }
        if options.tools:
            payload["tools"] = [t.to_openai_format() for t in options.tools]
        return payload

    async def _stream_events(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
    ) -> _typing.AsyncIterator[types.StreamEvent]:
        payload = self._build_payload(messages, options, stream=True)

        async with self._client.stream("POST", "/api/chat", json=payload) as response:
            await self._raise_for_status(response)
            async for chunk in sse.iter_ndjson(response.aiter_lines()):
                if chunk.get("error"):
                    yield types.StreamError(message=str(chunk["error"]))
                    return

                message = chunk.get("message") or {}
                if message.get("content"):
                    yield types.TextDelta(text=message["content"])

                for tc in message.get("tool_calls") or []:
                    function = tc.get("function") or {}
                    call_id = new_tool_call_id()
                    name = function.get("name", "")
                    yield types.ToolCallStart(id=call_id, name=name)
                    yield types.ToolCallDelta(
                        id=call_id,
                        input_fragment=_json.dumps(function.get("arguments") or {}),
                    )
                    yield types.ToolCallEnd(id=call_id, name=name)

                if chunk.get("done"):
                    yield types.MessageEnd(
                        stop_reason=chunk.get("done_reason"),
                        usage=types.Usage(
                            input_tokens=chunk.get("prompt_eval_count", 0),
                            output_tokens=chunk.get("eval_count", 0),
                        ),
                    )
                    return

    async def complete(
        self,
        messages: list[types.Message],
        options: types.ProviderOptions,
    ) -> types.Message:
        payload = self._build_payload(messages, options, stream=False)
        response = await self._client.post("/api/chat", json=payload)
        await self._raise_for_status(response)
        message = response.json().get("message") or {}

        blocks: list[types.ContentBlock] = []
        if message.get("content"):
            blocks.append(types.TextBlock(text=message["content"]))
        for tc in message.get("tool_calls") or []:
            function = tc.get("function") or {}
            blocks.append(
                types.ToolUseBlock(
                    id=new_tool_call_id(),
                    name=function.get("name", ""),
                    input=function.get("arguments") or {},
                )
            )
        return types.Message(role="assistant", content=blocks)

    async def list_models(self) -> list[str]:
        """Names of the models installed on the server."""
        response = await self._client.get("/api/tags")
        await self._raise_for_status(response)
        return [m["name"] for m in response.json().get("models", [])]


def format_messages(
    messages: list[types.Message], system_prompt: str | None
) -> list[dict[str, _typing.Any]]:
    """Convert canonical history to Ollama chat messages.

    Ollama matches tool results to calls by position, so each result becomes
    a ``tool`` message in block order.
    """
    formatted: list[dict[str, _typing.Any]] = []
    if system_prompt:
        formatted.append({"role": "system", "content": system_prompt})

    for message in base.wire_messages(messages):
        if isinstance(message.content, str):
            formatted.append({"role": message.role, "content": message.content})
            continue

        if message.role == "assistant":
            entry: dict[str, _typing.Any] = {"role": "assistant", "content": message.text}
            if message.tool_uses:
                entry["tool_calls"] = [
                    {"function": {"name": use.name, "arguments": use.input}}
                    for use in message.tool_uses
                ]
            formatted.append(entry)
            continue

        for result in message.tool_results:
            formatted.append({"role": "tool", "content": result.content})
        if message.text:
            formatted.append({"role": message.role, "content": message.text})

    return formatted
