"""
Types for bridging external MCP tool servers.

These mirror the handful of MCP SDK results the adapter needs, so the
adapter and manager can be exercised without a live server.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import typing as _typing


class ServerStatus(str, _enum.Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


@_dataclasses.dataclass
class McpToolInfo:
    """A tool as advertised by a server's ``tools/list``."""

    name: str
    description: str | None = None
    input_schema: dict[str, _typing.Any] | None = None


@_dataclasses.dataclass
class McpContent:
    """One content part of a tool call result."""

    type: str
    text: str | None = None


@_dataclasses.dataclass
class McpCallResult:
    """Result of ``tools/call``."""

    content: list[McpContent]
    is_error: bool = False

    @property
    def text(self) -> str:
        """All text parts, newline-joined; other part types are dropped."""
        return "\n".join(c.text or "" for c in self.content if c.type == "text")


@_dataclasses.dataclass
class McpServerInfo:
    """Status of one configured server, for display."""

    name: str
    status: ServerStatus
    tool_count: int = 0
    error: str | None = None


class McpToolCaller(_typing.Protocol):
    """The part of a server connection the tool adapter uses."""

    async def call_tool(
        self, name: str, arguments: dict[str, _typing.Any]
    ) -> McpCallResult: ...
