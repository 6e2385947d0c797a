"""
Shared pytest fixtures for Skald tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import asyncio as _asyncio
import copy as _copy
import os as _os
import pathlib as _pathlib
import typing as _typing
import unittest.mock as _mock

import httpx as _httpx
import pytest as _pytest

import skald.api.base as api_base
import skald.api.types as api_types
import skald.config as config
import skald.session as session
import skald.tools.base as tools_base
import skald.tools.context as tools_context

# Environment keys that should be cleared for isolated tests
ENV_KEYS_TO_CLEAR = [
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "OLLAMA_HOST",
    "SKALD_CONFIG_DIR",
    "SKALD_ENV_FILE",
]


@_pytest.fixture
def clean_env(tmp_path: _pathlib.Path) -> dict[str, str]:
    """
    Return environment dict with credentials and SKALD_* settings removed.

    The user config directory points at an empty temp dir so a real
    ~/.config/skald/config.yaml never leaks into tests.
    """
    env = {
        k: v
        for k, v in _os.environ.items()
        if k not in ENV_KEYS_TO_CLEAR and not k.startswith("SKALD_")
    }
    env["SKALD_CONFIG_DIR"] = str(tmp_path / "user-config")
    return env


@_pytest.fixture
def isolated_env(clean_env: dict[str, str]):
    """
    Context manager that isolates tests from environment variables.

    Usage:
        def test_something(isolated_env):
            with isolated_env:
                settings = config.Settings.construct_without_dotenv()
    """
    return _mock.patch.dict(_os.environ, clean_env, clear=True)


@_pytest.fixture
def clean_settings(isolated_env, tmp_path: _pathlib.Path, monkeypatch) -> config.Settings:
    """Settings isolated from the environment, .env files and project config."""
    monkeypatch.chdir(tmp_path)
    with isolated_env:
        return config.Settings.construct_without_dotenv()


@_pytest.fixture
def session_manager(tmp_path: _pathlib.Path) -> session.SessionManager:
    """SessionManager with a temporary directory for test isolation."""
    return session.SessionManager(tmp_path / "sessions")


@_pytest.fixture
def tool_ctx(tmp_path: _pathlib.Path) -> tools_context.ToolExecutionContext:
    """Execution context rooted at a fresh temp directory."""
    return tools_context.ToolExecutionContext(working_directory=tmp_path)


# =============================================================================
# Scripted provider
# =============================================================================


def text_response(text: str, usage: api_types.Usage | None = None) -> list[api_types.StreamEvent]:
    """Stream events for a plain text answer."""
    return [
        api_types.TextDelta(text=text),
        api_types.MessageEnd(stop_reason="end_turn", usage=usage),
    ]


def tool_response(
    *calls: tuple[str, str, str],
    text: str | None = None,
) -> list[api_types.StreamEvent]:
    """Stream events for tool calls given as (id, name, json-input) triples."""
    events: list[api_types.StreamEvent] = []
    if text:
        events.append(api_types.TextDelta(text=text))
    for call_id, name, raw_input in calls:
        events.append(api_types.ToolCallStart(id=call_id, name=name))
        events.append(api_types.ToolCallDelta(id=call_id, input_fragment=raw_input))
        events.append(api_types.ToolCallEnd(id=call_id, name=name))
    events.append(api_types.MessageEnd(stop_reason="tool_use"))
    return events


class ScriptedProvider(api_base.LLMProvider):
    """
    Provider that replays a script of canonical event lists.

    Each ``stream`` call consumes the next entry; ``complete`` returns the
    next queued message. Every request is recorded for assertions.
    """

    def __init__(
        self,
        script: list[list[api_types.StreamEvent]] | None = None,
        *,
        completions: list[api_types.Message] | None = None,
        name: str = "scripted",
    ) -> None:
        super().__init__(_httpx.AsyncClient())
        self._script = list(script or [])
        self._completions = list(completions or [])
        self._name = name
        self.stream_calls: list[tuple[list[api_types.Message], api_types.ProviderOptions]] = []
        self.complete_calls: list[tuple[list[api_types.Message], api_types.ProviderOptions]] = []

    @property
    def name(self) -> str:
        return self._name

    async def _stream_events(
        self,
        messages: list[api_types.Message],
        options: api_types.ProviderOptions,
    ) -> _typing.AsyncIterator[api_types.StreamEvent]:
        self.stream_calls.append((_copy.deepcopy(messages), options))
        events = self._script.pop(0) if self._script else text_response("[script exhausted]")
        for event in events:
            yield event

    async def complete(
        self,
        messages: list[api_types.Message],
        options: api_types.ProviderOptions,
    ) -> api_types.Message:
        self.complete_calls.append((_copy.deepcopy(messages), options))
        if self._completions:
            return self._completions.pop(0)
        return api_types.Message(role="assistant", content=[api_types.TextBlock("summary")])


class MockTool(tools_base.Tool):
    """A configurable tool that records its calls."""

    def __init__(
        self,
        name: str = "mock_tool",
        *,
        level: tools_base.PermissionLevel = tools_base.PermissionLevel.SAFE,
        result: tools_base.ToolResult | None = None,
        exception: Exception | None = None,
        delay: float | None = None,
    ) -> None:
        self._name = name
        self._level = level
        self._result = result or tools_base.ToolResult(success=True, output="mock output")
        self._exception = exception
        self._delay = delay
        self.calls: list[dict[str, _typing.Any]] = []
        self.contexts: list[tools_context.ToolExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "A mock tool for testing"

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {"type": "object", "properties": {}}

    @property
    def permission_level(self) -> tools_base.PermissionLevel:
        return self._level

    async def execute(
        self,
        input: dict[str, _typing.Any],
        ctx: tools_context.ToolExecutionContext,
    ) -> tools_base.ToolResult:
        self.calls.append(input)
        self.contexts.append(ctx)
        if self._delay is not None:
            await _asyncio.sleep(self._delay)
        if self._exception is not None:
            raise self._exception
        return self._result


@_pytest.fixture
def scripted_provider() -> type[ScriptedProvider]:
    """The ScriptedProvider class (build one per test with its own script)."""
    return ScriptedProvider


@_pytest.fixture
def mock_tool() -> type[MockTool]:
    """The MockTool class."""
    return MockTool


@_pytest.fixture
def text_events() -> _typing.Callable[..., list[api_types.StreamEvent]]:
    return text_response


@_pytest.fixture
def tool_events() -> _typing.Callable[..., list[api_types.StreamEvent]]:
    return tool_response
