"""
The agent loop: one conversation's state machine.

``AgentLoop.run_turn`` drives a turn through
``IDLE -> STREAMING -> (TOOL_EXECUTING -> STREAMING)* -> COMPLETE``:
it streams the provider's response, accumulates text and tool-call
fragments, commits the assistant message, runs the tool calls in order
through the tool executor, commits their results, and streams again until
the model answers without calling tools.

Provider failures never raise out of the loop; they end the turn with an
ErrorEvent and leave already-committed history in place for the next turn.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import json as _json
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import skald.api.base as api_base
import skald.api.types as api_types
import skald.constants as _constants
import skald.core.events as events
import skald.core.planner as planner_mod
import skald.core.tool_executor as executor_mod
import skald.tools.base as tools_base
import skald.tools.context as context

if _typing.TYPE_CHECKING:
    import skald.logging as skald_logging

_logger = _logging.getLogger(__name__)

NO_TOOL_EXECUTOR = "No tool executor configured"


class LoopState(str, _enum.Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    TOOL_EXECUTING = "tool_executing"
    COMPLETE = "complete"


def parse_tool_input(raw: str) -> dict[str, _typing.Any]:
    """Parse accumulated tool-call JSON, degrading to ``{}`` when malformed.

    An empty buffer is a call without arguments. Anything that does not
    parse to a JSON object is left for the tool's own validation to reject.
    """
    if not raw.strip():
        return {}
    try:
        parsed = _json.loads(raw)
    except _json.JSONDecodeError:
        _logger.warning("Malformed tool-call input, using {}: %r", raw[:200])
        return {}
    if not isinstance(parsed, dict):
        _logger.warning("Tool-call input is not an object, using {}: %r", raw[:200])
        return {}
    return parsed


@_dataclasses.dataclass
class _RoundState:
    """What one provider stream produced."""

    text_parts: list[str] = _dataclasses.field(default_factory=list)
    buffers: dict[str, list[str]] = _dataclasses.field(default_factory=dict)
    names: dict[str, str] = _dataclasses.field(default_factory=dict)
    order: list[str] = _dataclasses.field(default_factory=list)
    finished: dict[str, api_types.ToolCall] = _dataclasses.field(default_factory=dict)
    usage: api_types.Usage | None = None
    error: str | None = None
    cancelled: bool = False

    @property
    def text(self) -> str:
        return "".join(self.text_parts)

    def tool_calls(self) -> list[api_types.ToolCall]:
        """Finalized calls in the order their starts arrived."""
        dropped = [call_id for call_id in self.order if call_id not in self.finished]
        if dropped:
            _logger.warning("Dropping tool calls that never ended: %s", ", ".join(dropped))
        return [self.finished[call_id] for call_id in self.order if call_id in self.finished]


class AgentLoop:
    """
    Runs turns of one conversation against an LLM provider.

    One loop serves one conversation and runs at most one turn at a time.
    The model, provider, tools and planning mode can be changed between
    turns; the history is owned here and mirrored by the caller.
    """

    def __init__(
        self,
        provider: api_base.LLMProvider,
        *,
        model: str,
        tool_executor: executor_mod.ToolExecutor | None = None,
        tools: _typing.Iterable[api_types.ToolDefinition] | None = None,
        system_prompt: str | None = None,
        max_tokens: int = _constants.DEFAULT_MAX_TOKENS,
        temperature: float = _constants.DEFAULT_TEMPERATURE,
        working_directory: _pathlib.Path | None = None,
        planner: planner_mod.Planner | None = None,
        logger: skald_logging.ConversationLogger | None = None,
    ) -> None:
        """
        Initialize the agent loop.

        Args:
            provider: Backend used for streaming.
            model: Model id sent with every request.
            tool_executor: Runs tool calls; without one, every call fails.
            tools: Definitions offered to the model. None offers whatever
                the executor's registry holds at request time.
            system_prompt: Base system prompt.
            max_tokens: Completion limit per request.
            temperature: Sampling temperature.
            working_directory: Directory tools resolve paths against (default: cwd).
            planner: Planning-mode flag; when on, the plan instruction is appended.
            logger: Optional conversation logger.
        """
        self._provider = provider
        self._model = model
        self._executor = tool_executor
        self._tools = list(tools) if tools is not None else None
        self._system_prompt = system_prompt
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._working_directory = working_directory or _pathlib.Path.cwd()
        self._planner = planner if planner is not None else planner_mod.Planner()
        self._logger = logger

        self._messages: list[api_types.Message] = []
        self._state = LoopState.IDLE
        self._last_usage: api_types.Usage | None = None
        self._token: context.CancellationToken | None = None

    # ------------------------------------------------------------------
    # Runtime configuration
    # ------------------------------------------------------------------

    @property
    def provider(self) -> api_base.LLMProvider:
        return self._provider

    @property
    def model(self) -> str:
        return self._model

    @property
    def planner(self) -> planner_mod.Planner:
        return self._planner

    @property
    def tool_executor(self) -> executor_mod.ToolExecutor | None:
        return self._executor

    @property
    def system_prompt(self) -> str | None:
        return self._system_prompt

    @property
    def working_directory(self) -> _pathlib.Path:
        return self._working_directory

    def set_model(self, model: str) -> None:
        self._model = model

    def set_provider(self, provider: api_base.LLMProvider) -> None:
        self._provider = provider

    def set_tools(self, tools: _typing.Iterable[api_types.ToolDefinition] | None) -> None:
        self._tools = list(tools) if tools is not None else None

    def set_system_prompt(self, system_prompt: str | None) -> None:
        self._system_prompt = system_prompt

    # ------------------------------------------------------------------
    # History and state
    # ------------------------------------------------------------------

    @property
    def messages(self) -> list[api_types.Message]:
        """A copy of the live history."""
        return list(self._messages)

    def replace_messages(self, messages: _typing.Iterable[api_types.Message]) -> None:
        """Swap in a new history (after compression or when resuming a session)."""
        self._require_idle()
        self._messages = list(messages)

    def clear(self) -> None:
        self._require_idle()
        self._messages = []
        self._last_usage = None
        self._state = LoopState.IDLE

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state in (LoopState.STREAMING, LoopState.TOOL_EXECUTING)

    @property
    def last_usage(self) -> api_types.Usage | None:
        """Usage reported by the most recent completed stream."""
        return self._last_usage

    def cancel(self, reason: str = context.CANCELLED_BY_USER) -> None:
        """Abort the in-flight turn, if any."""
        if self._token is not None:
            self._token.cancel(reason)

    def _require_idle(self) -> None:
        if self.is_running:
            raise RuntimeError("Cannot modify history while a turn is in progress")

    # ------------------------------------------------------------------
    # Turn
    # ------------------------------------------------------------------

    async def run_turn(self, user_text: str) -> _typing.AsyncIterator[events.AgentEvent]:
        """
        Run one turn for ``user_text``.

        Yields:
            AgentEvents in order; the last one is TurnCompleteEvent or ErrorEvent.

        Raises:
            RuntimeError: If another turn is still in progress.
        """
        if self.is_running:
            raise RuntimeError("A turn is already in progress")

        token = context.CancellationToken()
        self._token = token
        self._append(api_types.Message.user(user_text))
        if self._logger:
            self._logger.log_user_message(user_text)

        try:
            while True:
                self._state = LoopState.STREAMING
                round_state = _RoundState()
                async for event in self._stream_round(round_state, token):
                    yield event

                if round_state.cancelled:
                    yield self._cancelled_event(token)
                    return
                if round_state.error is not None:
                    if self._logger:
                        self._logger.log_error(round_state.error, context="stream")
                    yield events.ErrorEvent(message=round_state.error)
                    return

                self._last_usage = round_state.usage
                if self._logger and round_state.usage is not None:
                    self._logger.log_usage(
                        round_state.usage.input_tokens, round_state.usage.output_tokens
                    )

                calls = round_state.tool_calls()
                assistant = self._build_assistant_message(round_state.text, calls)
                self._append(assistant)
                if self._logger:
                    self._logger.log_assistant_message(round_state.text, tool_calls=len(calls))

                if not calls:
                    yield events.TurnCompleteEvent(message=assistant, usage=round_state.usage)
                    return

                self._state = LoopState.TOOL_EXECUTING
                results: list[api_types.ContentBlock] = []
                for call in calls:
                    result = await self._execute(call, token)
                    results.append(
                        api_types.ToolResultBlock(
                            tool_use_id=call.id,
                            content=result.to_content(),
                            is_error=not result.success,
                        )
                    )
                    yield events.ToolCallCompleteEvent(id=call.id, name=call.name, result=result)
                self._append(api_types.Message(role="user", content=results))

                if token.cancelled:
                    yield self._cancelled_event(token)
                    return
        finally:
            self._state = LoopState.COMPLETE
            self._token = None

    async def _stream_round(
        self,
        state: _RoundState,
        token: context.CancellationToken,
    ) -> _typing.AsyncIterator[events.AgentEvent]:
        """Consume one provider stream into ``state``, forwarding progress."""
        stream = self._provider.stream(self._messages, self._build_options())
        try:
            while True:
                try:
                    event = await context.run_cancellable(anext(stream, None), token)
                except context.OperationCancelledError:
                    state.cancelled = True
                    return
                if event is None:
                    return

                if isinstance(event, api_types.TextDelta):
                    state.text_parts.append(event.text)
                    yield events.TextDeltaEvent(text=event.text)

                elif isinstance(event, api_types.ToolCallStart):
                    state.buffers[event.id] = []
                    state.names[event.id] = event.name
                    state.order.append(event.id)
                    yield events.ToolCallStartEvent(id=event.id, name=event.name)

                elif isinstance(event, api_types.ToolCallDelta):
                    buffer = state.buffers.get(event.id)
                    if buffer is None:
                        _logger.warning("Input fragment for unknown tool call %s", event.id)
                    else:
                        buffer.append(event.input_fragment)

                elif isinstance(event, api_types.ToolCallEnd):
                    buffer = state.buffers.get(event.id)
                    if buffer is None:
                        _logger.warning("End of unknown tool call %s", event.id)
                        continue
                    name = state.names[event.id] or event.name
                    call = api_types.ToolCall(
                        id=event.id, name=name, input=parse_tool_input("".join(buffer))
                    )
                    state.finished[event.id] = call
                    yield events.ToolCallInputEvent(id=call.id, name=call.name, input=call.input)

                elif isinstance(event, api_types.MessageEnd):
                    state.usage = event.usage

                elif isinstance(event, api_types.StreamError):
                    state.error = event.message
                    return
        finally:
            await stream.aclose()

    def _build_options(self) -> api_types.ProviderOptions:
        if self._tools is not None:
            tools = self._tools
        elif self._executor is not None:
            tools = self._executor.registry.definitions()
        else:
            tools = []
        return api_types.ProviderOptions(
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system_prompt=self._planner.augment(self._system_prompt),
            tools=tools or None,
        )

    @staticmethod
    def _build_assistant_message(
        text: str, calls: list[api_types.ToolCall]
    ) -> api_types.Message:
        blocks: list[api_types.ContentBlock] = []
        if text:
            blocks.append(api_types.TextBlock(text=text))
        for call in calls:
            blocks.append(api_types.ToolUseBlock(id=call.id, name=call.name, input=call.input))
        return api_types.Message(role="assistant", content=blocks)

    async def _execute(
        self,
        call: api_types.ToolCall,
        token: context.CancellationToken,
    ) -> tools_base.ToolResult:
        if token.cancelled:
            return tools_base.ToolResult.failure(token.reason or context.CANCELLED_BY_USER)
        if self._executor is None:
            return tools_base.ToolResult.failure(NO_TOOL_EXECUTOR)
        ctx = context.ToolExecutionContext(
            working_directory=self._working_directory, cancellation=token
        )
        return await self._executor.execute(call, ctx)

    def _cancelled_event(self, token: context.CancellationToken) -> events.ErrorEvent:
        reason = token.reason or context.CANCELLED_BY_USER
        if self._logger:
            self._logger.log_error(reason, context="cancelled")
        return events.ErrorEvent(message=reason, cancelled=True)

    def _append(self, message: api_types.Message) -> None:
        self._messages.append(message)
