"""
Events the agent loop yields to its caller.

This is the loop's only public output surface: a UI renders these, a
one-shot runner prints them, and tests assert on their order.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import typing as _typing

import skald.api.types as api_types
import skald.tools.base as tools_base


@_dataclasses.dataclass(frozen=True)
class TextDeltaEvent:
    """A piece of assistant text, in arrival order."""

    text: str

    type: _typing.ClassVar[str] = "text_delta"


@_dataclasses.dataclass(frozen=True)
class ToolCallStartEvent:
    """The model opened a tool call; its input is still streaming."""

    id: str
    name: str

    type: _typing.ClassVar[str] = "tool_call_start"


@_dataclasses.dataclass(frozen=True)
class ToolCallInputEvent:
    """A tool call's input is complete and parsed (``{}`` if it was malformed)."""

    id: str
    name: str
    input: dict[str, _typing.Any]

    type: _typing.ClassVar[str] = "tool_call_input"


@_dataclasses.dataclass(frozen=True)
class ToolCallCompleteEvent:
    """A tool call finished (or was refused) and produced a result."""

    id: str
    name: str
    result: tools_base.ToolResult

    type: _typing.ClassVar[str] = "tool_call_complete"

    @property
    def success(self) -> bool:
        return self.result.success


@_dataclasses.dataclass(frozen=True)
class TurnCompleteEvent:
    """The model answered without tool calls; the turn is over."""

    message: api_types.Message
    usage: api_types.Usage | None = None

    type: _typing.ClassVar[str] = "turn_complete"


@_dataclasses.dataclass(frozen=True)
class ErrorEvent:
    """The turn ended abnormally.

    ``cancelled`` distinguishes a user abort from a provider failure.
    """

    message: str
    cancelled: bool = False

    type: _typing.ClassVar[str] = "error"


AgentEvent = _typing.Union[
    TextDeltaEvent,
    ToolCallStartEvent,
    ToolCallInputEvent,
    ToolCallCompleteEvent,
    TurnCompleteEvent,
    ErrorEvent,
]
