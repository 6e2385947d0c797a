"""
Type definitions for LLM API interactions.

These types provide a provider-agnostic interface for conversations and
streamed responses. ``ContentBlock`` and ``StreamEvent`` are closed unions:
each variant carries only its own fields, so a provider adapter cannot build
an event or block with an invalid combination of fields.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import typing as _typing

Role = _typing.Literal["user", "assistant", "system"]


@_dataclasses.dataclass
class Usage:
    """Token usage information."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


# =============================================================================
# Content blocks
# =============================================================================


@_dataclasses.dataclass(frozen=True)
class TextBlock:
    """Plain text content."""

    text: str

    type: _typing.ClassVar[str] = "text"


@_dataclasses.dataclass(frozen=True)
class ToolUseBlock:
    """A tool invocation requested by the model."""

    id: str
    name: str
    input: dict[str, _typing.Any]

    type: _typing.ClassVar[str] = "tool_use"


@_dataclasses.dataclass(frozen=True)
class ToolResultBlock:
    """The answer to a ToolUseBlock, sent back in the following user message."""

    tool_use_id: str
    content: str
    is_error: bool = False

    type: _typing.ClassVar[str] = "tool_result"


ContentBlock = _typing.Union[TextBlock, ToolUseBlock, ToolResultBlock]


@_dataclasses.dataclass
class Message:
    """A conversation message.

    ``content`` is either plain text or an ordered list of content blocks.
    """

    role: Role
    content: str | list[ContentBlock]

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role="user", content=text)

    @classmethod
    def assistant(cls, text: str) -> Message:
        return cls(role="assistant", content=text)

    @property
    def blocks(self) -> list[ContentBlock]:
        """Content as a block list (plain text becomes one TextBlock)."""
        if isinstance(self.content, str):
            return [TextBlock(self.content)] if self.content else []
        return list(self.content)

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to send: no blocks, or only empty text."""
        return all(isinstance(b, TextBlock) and not b.text for b in self.blocks)

    @property
    def text(self) -> str:
        """Text parts of the message joined with newlines."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.blocks if isinstance(b, ToolUseBlock)]

    @property
    def tool_results(self) -> list[ToolResultBlock]:
        return [b for b in self.blocks if isinstance(b, ToolResultBlock)]

    def to_dict(self) -> dict[str, _typing.Any]:
        """Serialize for session storage."""
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        return {
            "role": self.role,
            "content": [block_to_dict(b) for b in self.content],
        }

    @classmethod
    def from_dict(cls, data: dict[str, _typing.Any]) -> Message:
        content = data["content"]
        if isinstance(content, str):
            return cls(role=data["role"], content=content)
        return cls(role=data["role"], content=[block_from_dict(b) for b in content])


def block_to_dict(block: ContentBlock) -> dict[str, _typing.Any]:
    """Serialize a content block with its ``type`` tag."""
    return {"type": block.type, **_dataclasses.asdict(block)}


def block_from_dict(data: dict[str, _typing.Any]) -> ContentBlock:
    """Rebuild a content block from :func:`block_to_dict` output.

    Raises:
        ValueError: If the block type is not one of the known variants.
    """
    kind = data.get("type")
    if kind == "text":
        return TextBlock(text=data["text"])
    if kind == "tool_use":
        return ToolUseBlock(id=data["id"], name=data["name"], input=dict(data.get("input") or {}))
    if kind == "tool_result":
        return ToolResultBlock(
            tool_use_id=data["tool_use_id"],
            content=data.get("content", ""),
            is_error=bool(data.get("is_error", False)),
        )
    raise ValueError(f"Unknown content block type: {kind!r}")


# =============================================================================
# Stream events
# =============================================================================


@_dataclasses.dataclass(frozen=True)
class TextDelta:
    """An incremental piece of assistant text."""

    text: str

    type: _typing.ClassVar[str] = "text_delta"


@_dataclasses.dataclass(frozen=True)
class ToolCallStart:
    """A tool call opened; deltas for ``id`` follow."""

    id: str
    name: str

    type: _typing.ClassVar[str] = "tool_call_start"


@_dataclasses.dataclass(frozen=True)
class ToolCallDelta:
    """A fragment of a tool call's JSON input, to be concatenated in order."""

    id: str
    input_fragment: str

    type: _typing.ClassVar[str] = "tool_call_delta"


@_dataclasses.dataclass(frozen=True)
class ToolCallEnd:
    """A tool call's input is complete."""

    id: str
    name: str

    type: _typing.ClassVar[str] = "tool_call_end"


@_dataclasses.dataclass(frozen=True)
class MessageEnd:
    """Successful end of a response stream."""

    stop_reason: str | None = None
    usage: Usage | None = None

    type: _typing.ClassVar[str] = "message_end"


@_dataclasses.dataclass(frozen=True)
class StreamError:
    """Abnormal end of a response stream."""

    message: str

    type: _typing.ClassVar[str] = "error"


StreamEvent = _typing.Union[
    TextDelta, ToolCallStart, ToolCallDelta, ToolCallEnd, MessageEnd, StreamError
]

TERMINAL_EVENTS = (MessageEnd, StreamError)
"""Event types that end a stream. Exactly one of them is the last event."""


# =============================================================================
# Tools and request options
# =============================================================================


@_dataclasses.dataclass(frozen=True)
class ToolCall:
    """A tool call materialized from accumulated stream events."""

    id: str
    name: str
    input: dict[str, _typing.Any]


@_dataclasses.dataclass
class ToolDefinition:
    """Definition of a tool offered to the model."""

    name: str
    description: str
    input_schema: dict[str, _typing.Any]

    def to_anthropic_format(self) -> dict[str, _typing.Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_openai_format(self) -> dict[str, _typing.Any]:
        """Function-tool format, also understood by Ollama."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


@_dataclasses.dataclass
class ProviderOptions:
    """Per-request options passed to a provider."""

    model: str
    max_tokens: int
    temperature: float = 0.0
    system_prompt: str | None = None
    tools: list[ToolDefinition] | None = None
