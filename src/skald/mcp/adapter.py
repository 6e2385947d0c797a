"""
Adapter exposing one MCP server tool through the uniform Tool contract.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import skald.mcp.types as types
import skald.tools.base as tools_base
import skald.tools.context as context

_logger = _logging.getLogger(__name__)

NAME_SEPARATOR = "__"


def namespaced_name(server_name: str, tool_name: str) -> str:
    """``mcp__<server>__<tool>``, unique across built-ins and other servers."""
    return f"mcp{NAME_SEPARATOR}{server_name}{NAME_SEPARATOR}{tool_name}"


class McpToolAdapter(tools_base.Tool):
    """
    A tool living in an external MCP server.

    MCP tools can do anything the server can, so they always need the
    user's approval unless allowed for the session.
    """

    def __init__(
        self,
        caller: types.McpToolCaller,
        tool: types.McpToolInfo,
        server_name: str,
    ) -> None:
        self._caller = caller
        self._tool = tool
        self._server_name = server_name

    @property
    def name(self) -> str:
        return namespaced_name(self._server_name, self._tool.name)

    @property
    def description(self) -> str:
        return self._tool.description or f"MCP tool: {self._tool.name}"

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return self._tool.input_schema or {"type": "object", "properties": {}}

    @property
    def server_name(self) -> str:
        return self._server_name

    @property
    def remote_name(self) -> str:
        """The tool's name on its server."""
        return self._tool.name

    async def execute(
        self,
        input: dict[str, _typing.Any],
        ctx: context.ToolExecutionContext,
    ) -> tools_base.ToolResult:
        """Forward the call to the server and flatten its text output."""
        try:
            result = await context.run_cancellable(
                self._caller.call_tool(self._tool.name, input), ctx.cancellation
            )
        except context.OperationCancelledError as e:
            return tools_base.ToolResult.failure(e.reason)
        except Exception as e:
            _logger.debug("MCP call %s failed", self.name, exc_info=True)
            return tools_base.ToolResult.failure(f"MCP tool error: {e}")

        text = result.text
        if result.is_error:
            return tools_base.ToolResult.failure(text or "MCP tool reported an error")
        return tools_base.ToolResult(success=True, output=text)
