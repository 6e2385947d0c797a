"""Tests for the REPL slash commands."""

import pytest as _pytest

import skald.api as api
import skald.api.types as api_types
import skald.cli.commands as commands
import skald.core as core
import skald.permissions as permissions
import skald.session as session
import skald.tools as tools


def _history(n: int) -> list[api_types.Message]:
    return [
        api_types.Message.user(f"q{i}") if i % 2 == 0 else api_types.Message.assistant(f"a{i}")
        for i in range(n)
    ]


@_pytest.fixture
def make_ctx(clean_settings, session_manager, scripted_provider, mock_tool):
    """Build a CommandContext around scripted anthropic and ollama providers."""

    def build(*, with_executor: bool = True, anthropic=None) -> commands.CommandContext:
        anthropic = anthropic or scripted_provider(name="anthropic")
        registry = api.ProviderRegistry(catalog=clean_settings.models.catalog)
        registry.register(anthropic)
        registry.register(scripted_provider(name="ollama"))

        executor = None
        if with_executor:
            tool_registry = tools.ToolRegistry()
            tool_registry.register(mock_tool("reader"))
            tool_registry.register(mock_tool("writer", level=tools.PermissionLevel.ASK))
            executor = core.ToolExecutor(tool_registry, permissions.PermissionChecker())

        model = "claude-sonnet-4-20250514"
        agent = core.AgentLoop(anthropic, model=model, tool_executor=executor, max_tokens=100)
        return commands.CommandContext(
            agent=agent,
            providers=registry,
            settings=clean_settings,
            session=session.ConversationSession.create(model),
            session_manager=session_manager,
            executor=executor,
        )

    return build


class TestDispatch:
    @_pytest.mark.asyncio
    async def test_unknown(self, make_ctx) -> None:
        result = await commands.dispatch(make_ctx(), "/frobnicate now")
        assert result.output == "Unknown command: /frobnicate. Type /help for available commands."
        assert not result.exit

    @_pytest.mark.asyncio
    async def test_help_lists_every_command(self, make_ctx) -> None:
        result = await commands.dispatch(make_ctx(), "/help")
        for name in commands.command_names():
            assert f"/{name}" in result.output

    @_pytest.mark.asyncio
    @_pytest.mark.parametrize("line", ["/exit", "/quit"])
    async def test_exit(self, make_ctx, line: str) -> None:
        assert (await commands.dispatch(make_ctx(), line)).exit

    def test_is_command(self) -> None:
        assert commands.is_command("/help")
        assert not commands.is_command("help")


class TestHistoryCommands:
    @_pytest.mark.asyncio
    async def test_clear(self, make_ctx) -> None:
        ctx = make_ctx()
        ctx.agent.replace_messages(_history(3))
        ctx.session.replace_messages(_history(3))

        result = await commands.dispatch(ctx, "/clear")

        assert result.output == "Conversation cleared."
        assert ctx.agent.messages == []
        assert ctx.session.messages == []

    @_pytest.mark.asyncio
    async def test_compact(self, make_ctx) -> None:
        ctx = make_ctx()
        ctx.agent.replace_messages(_history(10))

        result = await commands.dispatch(ctx, "/compact")

        assert result.output == "Compacted 10 messages into 6."
        assert len(ctx.agent.messages) == 6
        assert ctx.session.messages == ctx.agent.messages
        assert ctx.agent.messages[0].text.startswith("[Previous conversation summary]: ")

    @_pytest.mark.asyncio
    async def test_compact_short_history(self, make_ctx) -> None:
        ctx = make_ctx()
        ctx.agent.replace_messages(_history(2))
        assert (await commands.dispatch(ctx, "/compact")).output == "Nothing to compact."

    @_pytest.mark.asyncio
    async def test_compact_failure_keeps_history(self, make_ctx, scripted_provider) -> None:
        class Failing(scripted_provider):
            async def complete(self, messages, options):
                raise api.ProviderAPIError("anthropic", 529, "overloaded")

        ctx = make_ctx(anthropic=Failing(name="anthropic"))
        ctx.agent.replace_messages(_history(10))

        result = await commands.dispatch(ctx, "/compact")

        assert result.output == "Compression failed: anthropic API error 529: overloaded"
        assert ctx.agent.messages == _history(10)


class TestModelCommand:
    @_pytest.mark.asyncio
    async def test_list_marks_current(self, make_ctx) -> None:
        output = (await commands.dispatch(make_ctx(), "/model")).output
        assert output.startswith("Current model: claude-sonnet-4-20250514 (anthropic)")
        assert " * claude-sonnet-4-20250514  [anthropic]" in output
        assert "llama3.1  [ollama]" in output
        assert "gpt-4o" not in output

    @_pytest.mark.asyncio
    async def test_switch_provider(self, make_ctx) -> None:
        ctx = make_ctx()
        result = await commands.dispatch(ctx, "/model llama3.1")

        assert result.output == "Switched to llama3.1 (ollama)."
        assert ctx.agent.model == "llama3.1"
        assert ctx.agent.provider.name == "ollama"
        assert ctx.session.model == "llama3.1"

    @_pytest.mark.asyncio
    async def test_unavailable_model(self, make_ctx) -> None:
        ctx = make_ctx()
        result = await commands.dispatch(ctx, "/model gpt-4o")
        assert result.output == "No provider available for model gpt-4o"
        assert ctx.agent.model == "claude-sonnet-4-20250514"


class TestStatusCommands:
    @_pytest.mark.asyncio
    async def test_plan_toggle(self, make_ctx) -> None:
        ctx = make_ctx()
        on = await commands.dispatch(ctx, "/plan")
        assert ctx.agent.planner.enabled
        assert on.output.startswith("Plan mode on")
        off = await commands.dispatch(ctx, "/plan")
        assert not ctx.agent.planner.enabled
        assert off.output.startswith("Plan mode off")

    @_pytest.mark.asyncio
    async def test_tools(self, make_ctx) -> None:
        ctx = make_ctx()
        ctx.executor.checker.session.allow_tool("writer")
        lines = (await commands.dispatch(ctx, "/tools")).output.splitlines()
        assert lines[0] == "Tools:"
        assert lines[1].split() == ["reader", "safe"]
        assert lines[2].split() == ["writer", "ask", "(allowed)"]

    @_pytest.mark.asyncio
    async def test_tools_without_executor(self, make_ctx) -> None:
        result = await commands.dispatch(make_ctx(with_executor=False), "/tools")
        assert result.output == "No tools available."

    @_pytest.mark.asyncio
    async def test_mcp_none(self, make_ctx) -> None:
        result = await commands.dispatch(make_ctx(), "/mcp")
        assert result.output == "No MCP servers configured."

    @_pytest.mark.asyncio
    async def test_status(self, make_ctx) -> None:
        ctx = make_ctx()
        output = (await commands.dispatch(ctx, "/status")).output
        assert f"Session:   {ctx.session.id}" in output
        assert "Messages:  0" in output
        assert "Plan mode: off" in output
        assert "Tool calls: 0 (0 failed, 0 tools)" in output
