"""
Bridging external MCP tool servers into the tool registry.
"""

from skald.mcp.adapter import McpToolAdapter, namespaced_name
from skald.mcp.manager import McpManager
from skald.mcp.types import (
    McpCallResult,
    McpContent,
    McpServerInfo,
    McpToolInfo,
    ServerStatus,
)

__all__ = [
    "McpCallResult",
    "McpContent",
    "McpManager",
    "McpServerInfo",
    "McpToolAdapter",
    "McpToolInfo",
    "ServerStatus",
    "namespaced_name",
]
