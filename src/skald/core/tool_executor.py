"""
Tool execution with permission gating for Skald.

``ToolExecutor`` is the agent loop's tool-execution collaborator: it runs
one tool call through planning mode, the permission checker and, when the
checker says Ask, the caller's approver, then dispatches it through the
registry. Every outcome, including refusals, timeouts and aborts, is a
ToolResult; nothing here raises into the loop.
"""

from __future__ import annotations

import enum as _enum
import logging as _logging
import time as _time
import typing as _typing

import skald.api.types as api_types
import skald.constants as _constants
import skald.core.planner as planner_mod
import skald.permissions.checker as checker_mod
import skald.tools.base as tools_base
import skald.tools.context as context
import skald.tools.registry as tools_registry

if _typing.TYPE_CHECKING:
    import skald.logging as skald_logging

_logger = _logging.getLogger(__name__)

PERMISSION_DENIED = "Permission denied"
PERMISSION_TIMED_OUT = "Permission request timed out"


class Approval(str, _enum.Enum):
    """The user's answer to a permission prompt."""

    ALLOW_ONCE = "allow_once"
    ALLOW_TOOL = "allow_tool"
    """Allow this tool for the rest of the session."""
    ALLOW_ALL = "allow_all"
    """Allow every tool for the rest of the session."""
    DENY = "deny"


Approver = _typing.Callable[
    [api_types.ToolCall, tools_base.PermissionLevel], _typing.Awaitable[Approval]
]
"""Asks the user about a tool call the checker could not decide alone."""


class ToolExecutor:
    """
    Executes tool calls with consistent permission checking and logging.

    Tool metrics are always collected for calls that actually run.
    """

    def __init__(
        self,
        registry: tools_registry.ToolRegistry,
        checker: checker_mod.PermissionChecker,
        approver: Approver | None = None,
        *,
        tool_timeout: float | None = _constants.DEFAULT_TOOL_TIMEOUT_SECONDS,
        permission_timeout: float | None = None,
        planner: planner_mod.Planner | None = None,
        logger: skald_logging.ConversationLogger | None = None,
    ) -> None:
        """
        Initialize the tool executor.

        Args:
            registry: Tools available for dispatch.
            checker: Permission checker holding the session allow-list.
            approver: Resolves Ask decisions; without one, Ask means Deny.
            tool_timeout: Seconds a single tool call may run (None: no limit).
            permission_timeout: Seconds to wait for the approver (None: no limit).
            planner: When its flag is on, tool calls are refused.
            logger: Optional conversation logger.
        """
        self._registry = registry
        self._checker = checker
        self._approver = approver
        self._tool_timeout = tool_timeout
        self._permission_timeout = permission_timeout
        self._planner = planner
        self._logger = logger
        self._metrics = tools_base.MetricsCollector()

    @property
    def registry(self) -> tools_registry.ToolRegistry:
        return self._registry

    @property
    def checker(self) -> checker_mod.PermissionChecker:
        return self._checker

    @property
    def metrics(self) -> tools_base.MetricsCollector:
        return self._metrics

    def set_approver(self, approver: Approver | None) -> None:
        self._approver = approver

    async def execute(
        self,
        call: api_types.ToolCall,
        ctx: context.ToolExecutionContext,
    ) -> tools_base.ToolResult:
        """
        Run one tool call to a result.

        Args:
            call: The finalized tool call from the model.
            ctx: Working directory and the turn's cancellation token.

        Returns:
            The tool's result, or a failed result explaining why it did not run.
        """
        if self._logger:
            self._logger.log_tool_call(call.name, call.input, tool_id=call.id)

        tool = self._registry.get(call.name)
        if tool is None:
            # The registry owns the unknown-tool result
            return self._finish(call, await self._registry.execute(call.name, call.input, ctx))

        if self._planner is not None and self._planner.enabled:
            refused = tools_base.ToolResult.failure(planner_mod.PLAN_MODE_TOOL_ERROR)
            return self._finish(call, refused)

        if ctx.cancellation.cancelled:
            return self._finish(call, self._cancelled(ctx.cancellation))

        refusal = await self._check_permission(call, tool.permission_level, ctx.cancellation)
        if refusal is not None:
            return self._finish(call, refusal)

        return await self._run(call, ctx)

    async def _check_permission(
        self,
        call: api_types.ToolCall,
        level: tools_base.PermissionLevel,
        token: context.CancellationToken,
    ) -> tools_base.ToolResult | None:
        """None if the call may run, else the failed result to return instead."""
        request = checker_mod.PermissionRequest(
            tool_name=call.name, input=call.input, permission_level=level
        )
        decision = self._checker.decide(request)

        if decision is checker_mod.PermissionDecision.ASK:
            outcome = await self._ask(call, level, token)
            if isinstance(outcome, tools_base.ToolResult):
                self._log_permission(call, "cancelled")
                return outcome
            decision = outcome

        self._log_permission(call, decision.value)
        if decision is checker_mod.PermissionDecision.ALLOW:
            return None
        return tools_base.ToolResult.failure(PERMISSION_DENIED)

    async def _ask(
        self,
        call: api_types.ToolCall,
        level: tools_base.PermissionLevel,
        token: context.CancellationToken,
    ) -> checker_mod.PermissionDecision | tools_base.ToolResult:
        if self._approver is None:
            _logger.debug("No approver configured; denying %s", call.name)
            return checker_mod.PermissionDecision.DENY

        try:
            approval = await context.run_cancellable(
                self._approver(call, level), token, timeout=self._permission_timeout
            )
        except context.OperationCancelledError as e:
            return tools_base.ToolResult.failure(e.reason)
        except TimeoutError:
            return tools_base.ToolResult.failure(PERMISSION_TIMED_OUT)

        session = self._checker.session
        if approval is Approval.ALLOW_TOOL:
            session.allow_tool(call.name)
        elif approval is Approval.ALLOW_ALL:
            session.allow_all()
        elif approval is Approval.DENY:
            return checker_mod.PermissionDecision.DENY
        return checker_mod.PermissionDecision.ALLOW

    async def _run(
        self,
        call: api_types.ToolCall,
        ctx: context.ToolExecutionContext,
    ) -> tools_base.ToolResult:
        call_token = ctx.cancellation.child()
        call_ctx = context.ToolExecutionContext(
            working_directory=ctx.working_directory, cancellation=call_token
        )

        _logger.debug("Dispatching %s (%s)", call.name, call.id)
        start_time = _time.perf_counter()
        try:
            result = await context.run_cancellable(
                self._registry.execute(call.name, call.input, call_ctx),
                call_token,
                timeout=self._tool_timeout,
            )
        except context.OperationCancelledError as e:
            result = tools_base.ToolResult.failure(e.reason)
        except TimeoutError:
            message = f"Tool timed out after {self._tool_timeout:g} seconds"
            call_token.cancel(message)
            result = tools_base.ToolResult.failure(message)
        duration_ms = (_time.perf_counter() - start_time) * 1000

        self._metrics.record(call.name, result.success, duration_ms)
        return self._finish(call, result, duration_ms)

    @staticmethod
    def _cancelled(token: context.CancellationToken) -> tools_base.ToolResult:
        return tools_base.ToolResult.failure(token.reason or context.CANCELLED_BY_USER)

    def _log_permission(self, call: api_types.ToolCall, decision: str) -> None:
        if self._logger:
            self._logger.log_permission_decision(call.name, decision, tool_id=call.id)

    def _finish(
        self,
        call: api_types.ToolCall,
        result: tools_base.ToolResult,
        duration_ms: float | None = None,
    ) -> tools_base.ToolResult:
        """Log a result if a conversation logger is configured, and return it."""
        if self._logger:
            self._logger.log_tool_result(
                tool_name=call.name,
                success=result.success,
                output=result.output if result.success else None,
                error=result.error,
                tool_id=call.id,
                duration_ms=duration_ms,
            )
        return result
