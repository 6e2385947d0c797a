"""
Lifecycle of all configured MCP servers.

Servers connect concurrently and fail independently: one server that
cannot start, or that breaks while listing tools, is marked as errored and
contributes no tools, while the others keep working.
"""

from __future__ import annotations

import asyncio as _asyncio
import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import skald.config as config
import skald.constants as _constants
import skald.mcp.adapter as adapter
import skald.mcp.client as client
import skald.mcp.types as types

_logger = _logging.getLogger(__name__)


class McpConnection(_typing.Protocol):
    """What the manager needs from a server connection."""

    async def connect(self) -> None: ...

    async def list_tools(self) -> list[types.McpToolInfo]: ...

    async def call_tool(
        self, name: str, arguments: dict[str, _typing.Any]
    ) -> types.McpCallResult: ...

    async def close(self) -> None: ...


ClientFactory = _typing.Callable[[str, config.McpServerConfig], McpConnection]


@_dataclasses.dataclass
class _ManagedServer:
    name: str
    connection: McpConnection
    status: types.ServerStatus = types.ServerStatus.DISCONNECTED
    error: str | None = None
    tool_count: int = 0


class McpManager:
    """Connects, lists and shuts down every configured MCP server."""

    def __init__(
        self,
        configs: _typing.Mapping[str, config.McpServerConfig],
        *,
        client_factory: ClientFactory = client.McpClient,
        connect_timeout: float | None = _constants.MCP_CONNECT_TIMEOUT_SECONDS,
    ) -> None:
        """
        Args:
            configs: Server configs keyed by server name.
            client_factory: Builds one connection per server.
            connect_timeout: Seconds each server may take to connect (None: no limit).
        """
        self._configs = dict(configs)
        self._client_factory = client_factory
        self._connect_timeout = connect_timeout
        self._servers: dict[str, _ManagedServer] = {}

    async def connect_all(self) -> None:
        """Connect to every configured server concurrently.

        Failures are recorded per server and logged; this never raises.
        """
        for name, server_config in self._configs.items():
            self._servers[name] = _ManagedServer(
                name=name, connection=self._client_factory(name, server_config)
            )

        servers = list(self._servers.values())
        results = await _asyncio.gather(
            *(self._connect(server) for server in servers),
            return_exceptions=True,
        )
        for server, result in zip(servers, results):
            if isinstance(result, BaseException):
                server.status = types.ServerStatus.ERROR
                server.error = str(result) or type(result).__name__
                _logger.warning("Failed to connect MCP server %r: %s", server.name, server.error)
            else:
                server.status = types.ServerStatus.CONNECTED

    async def _connect(self, server: _ManagedServer) -> None:
        try:
            await _asyncio.wait_for(server.connection.connect(), self._connect_timeout)
        except TimeoutError:
            raise TimeoutError(
                f"Connection timed out after {self._connect_timeout:g} seconds"
            ) from None

    async def get_all_tools(self) -> list[adapter.McpToolAdapter]:
        """Adapters for every tool of every connected server.

        A server whose listing fails is demoted to the error state.
        """
        adapters: list[adapter.McpToolAdapter] = []
        for server in self._servers.values():
            if server.status is not types.ServerStatus.CONNECTED:
                continue
            try:
                tools = await server.connection.list_tools()
            except Exception as e:
                server.status = types.ServerStatus.ERROR
                server.error = str(e) or type(e).__name__
                server.tool_count = 0
                _logger.warning("MCP server %r failed to list tools: %s", server.name, server.error)
                continue
            server.tool_count = len(tools)
            adapters.extend(
                adapter.McpToolAdapter(server.connection, tool, server.name) for tool in tools
            )
        return adapters

    def server_info(self) -> list[types.McpServerInfo]:
        return [
            types.McpServerInfo(
                name=s.name, status=s.status, tool_count=s.tool_count, error=s.error
            )
            for s in self._servers.values()
        ]

    async def shutdown(self) -> None:
        """Close every server, ignoring individual close failures."""
        for server in self._servers.values():
            try:
                await server.connection.close()
            except Exception as e:
                _logger.warning("Error closing MCP server %r: %s", server.name, e)
        self._servers.clear()

    async def __aenter__(self) -> McpManager:
        await self.connect_all()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()
