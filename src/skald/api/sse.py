"""
Line-oriented decoding of streamed HTTP bodies.

Anthropic and OpenAI stream Server-Sent Events; Ollama streams one JSON
object per line.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import json as _json
import typing as _typing


@_dataclasses.dataclass
class ServerSentEvent:
    """One dispatched SSE event."""

    event: str | None
    data: str

    def json(self) -> _typing.Any:
        return _json.loads(self.data)


async def iter_sse(lines: _typing.AsyncIterable[str]) -> _typing.AsyncIterator[ServerSentEvent]:
    """Group SSE lines into events.

    ``data:`` lines of one event are joined with newlines; a blank line
    dispatches the event. Comment lines (leading ``:``) are skipped.
    """
    event: str | None = None
    data: list[str] = []
    async for raw in lines:
        line = raw.rstrip("\r")
        if not line:
            if data:
                yield ServerSentEvent(event=event, data="\n".join(data))
            event, data = None, []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event = value
        elif field == "data":
            data.append(value)
    if data:
        yield ServerSentEvent(event=event, data="\n".join(data))


async def iter_ndjson(
    lines: _typing.AsyncIterable[str],
) -> _typing.AsyncIterator[dict[str, _typing.Any]]:
    """Decode newline-delimited JSON, skipping blank lines."""
    async for line in lines:
        line = line.strip()
        if line:
            yield _json.loads(line)
