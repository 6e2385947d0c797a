"""
Tool registry for managing available tools.

The registry is a name → tool dispatch table. ``execute`` never raises:
unknown names and faults inside a tool both come back as failed results,
so the agent loop always gets a ToolResult to send to the model.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import skald.api.types as api_types
import skald.tools.base as base
import skald.tools.context as context

_logger = _logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry for tool instances.

    Tools are registered by name, looked up for execution, and listed as
    definitions for the model.
    """

    def __init__(self) -> None:
        self._tools: dict[str, base.Tool] = {}

    def register(self, tool: base.Tool) -> None:
        """
        Register a tool instance.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    def get(self, name: str) -> base.Tool | None:
        """Get a tool by name (case-sensitive), or None."""
        return self._tools.get(name)

    def list_tools(self) -> list[base.Tool]:
        """All registered tools, sorted by name."""
        return sorted(self._tools.values(), key=lambda t: t.name)

    def names(self) -> list[str]:
        return sorted(self._tools.keys())

    def definitions(self) -> list[api_types.ToolDefinition]:
        """Definitions to offer the model, sorted by name."""
        return [tool.definition for tool in self.list_tools()]

    async def execute(
        self,
        name: str,
        input: dict[str, _typing.Any],
        ctx: context.ToolExecutionContext,
    ) -> base.ToolResult:
        """
        Run the named tool.

        Args:
            name: Tool name as sent by the model.
            input: Parsed tool input.
            ctx: Execution context passed through to the tool.

        Returns:
            The tool's result; a failed result for unknown names or raised faults.
        """
        tool = self._tools.get(name)
        if tool is None:
            return base.ToolResult.failure(f"Unknown tool: {name}")

        try:
            return await tool.execute(input, ctx)
        except Exception as e:
            _logger.debug("Tool %s raised", name, exc_info=True)
            return base.ToolResult.failure(str(e) or type(e).__name__)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> _typing.Iterator[base.Tool]:
        return iter(self.list_tools())


def build_default_registry() -> ToolRegistry:
    """Create a registry with all built-in tools."""
    import skald.tools.bash as bash
    import skald.tools.file as file
    import skald.tools.glob as glob
    import skald.tools.grep as grep
    import skald.tools.web_fetch as web_fetch

    registry = ToolRegistry()
    for tool in (
        file.FileReadTool(),
        file.FileWriteTool(),
        file.FileEditTool(),
        bash.BashTool(),
        glob.GlobTool(),
        grep.GrepTool(),
        web_fetch.WebFetchTool(),
    ):
        registry.register(tool)
    return registry
