"""Tests for ChatRunner: rendering, saving and automatic compaction."""

import io as _io

import pytest as _pytest
import rich.console as _rich_console

import skald.api as api
import skald.api.types as api_types
import skald.cli.commands as commands
import skald.cli.render as render
import skald.cli.repl as repl
import skald.core as core
import skald.session as session

MODEL = "test-model"


class ScriptedRenderer(render.ConsoleRenderer):
    """Renderer that reads input lines from a list and records to a buffer."""

    def __init__(self, lines: list[str]) -> None:
        self.buffer = _io.StringIO()
        super().__init__(_rich_console.Console(file=self.buffer, width=100, color_system=None))
        self._lines = list(lines)

    async def read_input(self, prompt: str = "> ") -> str:
        if not self._lines:
            raise EOFError
        return self._lines.pop(0)

    @property
    def output(self) -> str:
        return self.buffer.getvalue()


@_pytest.fixture
def make_runner(clean_settings, session_manager, scripted_provider):
    def build(script, lines=()) -> repl.ChatRunner:
        provider = scripted_provider(script)
        agent = core.AgentLoop(provider, model=MODEL, max_tokens=100)
        ctx = commands.CommandContext(
            agent=agent,
            providers=api.ProviderRegistry(),
            settings=clean_settings,
            session=session.ConversationSession.create(MODEL),
            session_manager=session_manager,
        )
        return repl.ChatRunner(ctx, ScriptedRenderer(list(lines)))

    return build


def _usage(input_tokens: int) -> api_types.Usage:
    return api_types.Usage(input_tokens=input_tokens, output_tokens=3)


class TestRunTurn:
    @_pytest.mark.asyncio
    async def test_renders_and_saves(self, make_runner, text_events, session_manager) -> None:
        runner = make_runner([text_events("Hello there", usage=_usage(10))])

        last = await runner.run_turn("hi")

        assert isinstance(last, core.TurnCompleteEvent)
        assert "Hello there" in runner._renderer.output
        saved = session_manager.load(runner.context.session.id)
        assert [m.text for m in saved.messages] == ["hi", "Hello there"]
        assert saved.title == "hi"

    @_pytest.mark.asyncio
    async def test_error_rendered(self, make_runner) -> None:
        runner = make_runner([[api_types.StreamError(message="backend down")]])

        last = await runner.run_turn("hi")

        assert isinstance(last, core.ErrorEvent)
        assert "Error: backend down" in runner._renderer.output

    @_pytest.mark.asyncio
    async def test_compacts_when_context_fills(self, make_runner, text_events) -> None:
        """Reported prompt size over the threshold triggers compaction."""
        runner = make_runner([text_events("ok", usage=_usage(127_000))])
        history = [
            api_types.Message.user("old question"),
            api_types.Message.assistant("old answer"),
        ] * 3
        runner.context.agent.replace_messages(history)

        await runner.run_turn("new question")

        assert "Compacted 8 messages into 6." in runner._renderer.output
        assert len(runner.context.agent.messages) == 6
        assert len(runner.context.session.messages) == 6


class TestRunInteractive:
    @_pytest.mark.asyncio
    async def test_commands_and_turns(self, make_runner, text_events) -> None:
        runner = make_runner(
            [text_events("answer", usage=_usage(5))],
            lines=["", "/plan", "question", "/bogus", "/exit", "never read"],
        )

        await runner.run_interactive()

        output = runner._renderer.output
        assert runner.context.agent.planner.enabled
        assert "answer" in output
        assert "Unknown command: /bogus" in output
        assert len(runner.context.agent.provider.stream_calls) == 1

    @_pytest.mark.asyncio
    async def test_end_of_input(self, make_runner) -> None:
        runner = make_runner([], lines=[])
        await runner.run_interactive()
        assert runner.context.agent.messages == []
