"""
Tools available to the model.

Built-in tools cover file I/O, shell, search and HTTP fetch; MCP servers
contribute more through ``skald.mcp``. All share the ``Tool`` contract.
"""

from skald.tools.base import MetricsCollector, PermissionLevel, Tool, ToolResult
from skald.tools.context import CancellationToken, ToolExecutionContext
from skald.tools.registry import ToolRegistry, build_default_registry

__all__ = [
    "CancellationToken",
    "MetricsCollector",
    "PermissionLevel",
    "Tool",
    "ToolExecutionContext",
    "ToolRegistry",
    "ToolResult",
    "build_default_registry",
]
