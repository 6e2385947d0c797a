"""Tests for the MCP adapter and manager using in-memory connections."""

import asyncio as _asyncio
import typing as _typing

import pytest as _pytest

import skald.config as config
import skald.mcp as mcp
import skald.mcp.client as mcp_client
import skald.tools.base as tools_base


class FakeConnection:
    """In-memory stand-in for an MCP server connection."""

    def __init__(
        self,
        tools: list[mcp.McpToolInfo] | None = None,
        *,
        connect_error: Exception | None = None,
        list_error: Exception | None = None,
        result: mcp.McpCallResult | None = None,
        call_delay: float | None = None,
        connect_gate: _asyncio.Event | None = None,
        close_error: Exception | None = None,
    ) -> None:
        self.tools = tools or []
        self.connect_error = connect_error
        self.list_error = list_error
        self.result = result or mcp.McpCallResult(content=[mcp.McpContent("text", "done")])
        self.call_delay = call_delay
        self.connect_gate = connect_gate
        self.close_error = close_error
        self.connected = _asyncio.Event()
        self.calls: list[tuple[str, dict[str, _typing.Any]]] = []
        self.closed = False

    async def connect(self) -> None:
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        if self.connect_error is not None:
            raise self.connect_error
        self.connected.set()

    async def list_tools(self) -> list[mcp.McpToolInfo]:
        if self.list_error is not None:
            raise self.list_error
        return self.tools

    async def call_tool(self, name: str, arguments: dict[str, _typing.Any]) -> mcp.McpCallResult:
        self.calls.append((name, arguments))
        if self.call_delay is not None:
            await _asyncio.sleep(self.call_delay)
        return self.result

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


SERVER = config.McpServerConfig(command="fake-server")


def _factory(connections: dict[str, FakeConnection]):
    def build(name: str, server_config: config.McpServerConfig) -> FakeConnection:
        return connections[name]

    return build


class TestMcpToolAdapter:
    def _adapter(self, connection: FakeConnection, **tool_kwargs) -> mcp.McpToolAdapter:
        tool = mcp.McpToolInfo(name="search", **tool_kwargs)
        return mcp.McpToolAdapter(connection, tool, "docs")

    def test_metadata(self) -> None:
        adapter = self._adapter(FakeConnection(), description="Search docs")
        assert adapter.name == "mcp__docs__search"
        assert adapter.remote_name == "search"
        assert adapter.description == "Search docs"
        assert adapter.input_schema == {"type": "object", "properties": {}}
        assert adapter.permission_level is tools_base.PermissionLevel.ASK

    @_pytest.mark.asyncio
    async def test_execute_joins_text_parts(self, tool_ctx) -> None:
        result = mcp.McpCallResult(
            content=[
                mcp.McpContent("text", "line one"),
                mcp.McpContent("image"),
                mcp.McpContent("text", "line two"),
            ]
        )
        connection = FakeConnection(result=result)

        outcome = await self._adapter(connection).execute({"q": "x"}, tool_ctx)

        assert connection.calls == [("search", {"q": "x"})]
        assert outcome == tools_base.ToolResult(success=True, output="line one\nline two")

    @_pytest.mark.asyncio
    async def test_server_reported_error(self, tool_ctx) -> None:
        result = mcp.McpCallResult(content=[mcp.McpContent("text", "index missing")], is_error=True)
        outcome = await self._adapter(FakeConnection(result=result)).execute({}, tool_ctx)
        assert outcome == tools_base.ToolResult.failure("index missing")

    @_pytest.mark.asyncio
    async def test_cancelled_call(self, tool_ctx) -> None:
        adapter = self._adapter(FakeConnection(call_delay=10))
        _asyncio.get_running_loop().call_later(0.02, tool_ctx.cancellation.cancel)
        outcome = await adapter.execute({}, tool_ctx)
        assert outcome.error == "Cancelled by user"


class TestMcpManager:
    @_pytest.mark.asyncio
    async def test_failures_are_isolated(self) -> None:
        """One broken server does not hide the tools of the others."""
        connections = {
            "good": FakeConnection([mcp.McpToolInfo("a"), mcp.McpToolInfo("b")]),
            "dead": FakeConnection(connect_error=OSError("no such command")),
            "flaky": FakeConnection(list_error=RuntimeError("protocol error")),
        }
        manager = mcp.McpManager(
            {name: SERVER for name in connections}, client_factory=_factory(connections)
        )

        async with manager:
            tools = await manager.get_all_tools()
            info = {s.name: s for s in manager.server_info()}

        assert [t.name for t in tools] == ["mcp__good__a", "mcp__good__b"]
        assert info["good"].status is mcp.ServerStatus.CONNECTED
        assert info["good"].tool_count == 2
        assert info["dead"].status is mcp.ServerStatus.ERROR
        assert info["dead"].error == "no such command"
        assert info["flaky"].status is mcp.ServerStatus.ERROR
        assert all(c.closed for c in connections.values())

    @_pytest.mark.asyncio
    async def test_shutdown_closes_every_server(self) -> None:
        """A server whose close fails does not stop the others from closing."""
        connections = {
            "first": FakeConnection(),
            "broken": FakeConnection(close_error=RuntimeError("pipe closed")),
            "last": FakeConnection(),
        }
        manager = mcp.McpManager(
            {name: SERVER for name in connections}, client_factory=_factory(connections)
        )
        await manager.connect_all()

        await manager.shutdown()

        assert all(c.closed for c in connections.values())
        assert manager.server_info() == []

    @_pytest.mark.asyncio
    async def test_slow_server_does_not_hold_up_others(self) -> None:
        """Servers connect concurrently: the slow one is still waiting when the fast one is up."""
        fast = FakeConnection([mcp.McpToolInfo("a")])
        slow = FakeConnection([mcp.McpToolInfo("b")], connect_gate=fast.connected)
        connections = {"slow": slow, "fast": fast}
        manager = mcp.McpManager(
            {name: SERVER for name in connections}, client_factory=_factory(connections)
        )

        await _asyncio.wait_for(manager.connect_all(), 1)

        statuses = {s.name: s.status for s in manager.server_info()}
        assert statuses == {
            "slow": mcp.ServerStatus.CONNECTED,
            "fast": mcp.ServerStatus.CONNECTED,
        }
        await manager.shutdown()

    @_pytest.mark.asyncio
    async def test_hanging_server_times_out(self) -> None:
        """A server that never finishes connecting is demoted to error."""
        connections = {
            "hung": FakeConnection(connect_gate=_asyncio.Event()),
            "good": FakeConnection([mcp.McpToolInfo("a")]),
        }
        manager = mcp.McpManager(
            {name: SERVER for name in connections},
            client_factory=_factory(connections),
            connect_timeout=0.05,
        )

        async with manager:
            tools = await manager.get_all_tools()
            info = {s.name: s for s in manager.server_info()}

        assert [t.name for t in tools] == ["mcp__good__a"]
        assert info["hung"].status is mcp.ServerStatus.ERROR
        assert info["hung"].error == "Connection timed out after 0.05 seconds"
        assert connections["hung"].closed

    @_pytest.mark.asyncio
    async def test_no_servers(self) -> None:
        async with mcp.McpManager({}) as manager:
            assert await manager.get_all_tools() == []
            assert manager.server_info() == []


class TestMcpClient:
    def test_server_parameters_merge_env(self, monkeypatch) -> None:
        monkeypatch.setenv("HOME", "/home/test")
        server = config.McpServerConfig(command="npx", args=["-y", "srv"], env={"TOKEN": "t"})
        params = mcp_client.McpClient("srv", server)._server_parameters()
        assert params.command == "npx"
        assert params.args == ["-y", "srv"]
        assert params.env["TOKEN"] == "t"
        assert params.env["HOME"] == "/home/test"

    @_pytest.mark.asyncio
    async def test_call_before_connect(self) -> None:
        client = mcp_client.McpClient("srv", SERVER)
        with _pytest.raises(RuntimeError, match="not connected"):
            await client.call_tool("x", {})
        await client.close()
