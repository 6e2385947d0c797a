"""
Stdio connection to one MCP server, built on the ``mcp`` SDK.

The SDK's stdio transport and session are async context managers whose
cancel scopes must be entered and exited by the same task. Each client
therefore owns a runner task that opens the connection, signals readiness,
and keeps the contexts open until ``close()`` asks it to exit.
"""

from __future__ import annotations

import asyncio as _asyncio
import contextlib as _contextlib
import logging as _logging
import os as _os
import typing as _typing

import mcp as _mcp
import mcp.client.stdio as _mcp_stdio

import skald.config as config
import skald.mcp.types as types

_logger = _logging.getLogger(__name__)

DEFAULT_INIT_TIMEOUT = 30.0
"""Seconds to wait for a server subprocess to start and finish the handshake."""


class McpClient:
    """A live connection to one MCP server subprocess."""

    def __init__(
        self,
        name: str,
        server_config: config.McpServerConfig,
        *,
        init_timeout: float = DEFAULT_INIT_TIMEOUT,
    ) -> None:
        self._name = name
        self._config = server_config
        self._init_timeout = init_timeout
        self._session: _mcp.ClientSession | None = None
        self._runner: _asyncio.Task[None] | None = None
        self._ready: _asyncio.Future[None] | None = None
        self._closing = _asyncio.Event()

    @property
    def name(self) -> str:
        return self._name

    @property
    def connected(self) -> bool:
        return self._session is not None

    def _server_parameters(self) -> _mcp.StdioServerParameters:
        return _mcp.StdioServerParameters(
            command=self._config.command,
            args=list(self._config.args),
            env={**_os.environ, **self._config.env},
        )

    async def connect(self) -> None:
        """
        Start the server and complete the MCP handshake.

        Raises:
            TimeoutError: If the handshake takes longer than the init timeout.
            Exception: Whatever the transport raised while starting.
        """
        self._ready = _asyncio.get_running_loop().create_future()
        self._runner = _asyncio.create_task(self._run(), name=f"mcp-{self._name}")
        try:
            await _asyncio.wait_for(_asyncio.shield(self._ready), self._init_timeout)
        except BaseException:
            await self.close()
            raise
        _logger.debug("MCP server %s connected", self._name)

    async def _run(self) -> None:
        assert self._ready is not None
        try:
            async with _contextlib.AsyncExitStack() as stack:
                read_stream, write_stream = await stack.enter_async_context(
                    _mcp_stdio.stdio_client(self._server_parameters())
                )
                session = await stack.enter_async_context(
                    _mcp.ClientSession(read_stream, write_stream)
                )
                await session.initialize()
                self._session = session
                self._ready.set_result(None)
                await self._closing.wait()
        except Exception as e:
            if not self._ready.done():
                self._ready.set_exception(e)
            else:
                _logger.warning("MCP server %s stopped: %s", self._name, e)
        finally:
            self._session = None

    def _require_session(self) -> _mcp.ClientSession:
        if self._session is None:
            raise RuntimeError(f"MCP server {self._name} is not connected")
        return self._session

    async def list_tools(self) -> list[types.McpToolInfo]:
        result = await self._require_session().list_tools()
        return [
            types.McpToolInfo(
                name=tool.name,
                description=tool.description,
                input_schema=dict(tool.inputSchema) if tool.inputSchema else None,
            )
            for tool in result.tools
        ]

    async def call_tool(
        self, name: str, arguments: dict[str, _typing.Any]
    ) -> types.McpCallResult:
        result = await self._require_session().call_tool(name, arguments)
        return types.McpCallResult(
            content=[
                types.McpContent(type=item.type, text=getattr(item, "text", None))
                for item in result.content or []
            ],
            is_error=bool(result.isError),
        )

    async def close(self) -> None:
        """Ask the runner to close the session and stop the subprocess."""
        self._closing.set()
        runner, self._runner = self._runner, None
        if runner is None:
            return
        try:
            await _asyncio.wait_for(runner, self._init_timeout)
        except TimeoutError:
            runner.cancel()
            with _contextlib.suppress(_asyncio.CancelledError):
                await runner
        _logger.debug("MCP server %s closed", self._name)
