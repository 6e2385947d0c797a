"""
Base classes for the tool system.

Tools are the primary way the LLM interacts with the outside world.
Each tool has a name, description, input schema, permission level and
execute method. Built-in tools and MCP-backed tools share this contract.
"""

from __future__ import annotations

import abc as _abc
import dataclasses as _dataclasses
import datetime as _dt
import enum as _enum
import typing as _typing

import skald.api.types as api_types
import skald.tools.context as context


class PermissionLevel(str, _enum.Enum):
    """How much scrutiny a tool call needs before it runs."""

    SAFE = "safe"
    """Read-only; runs without asking."""

    ASK = "ask"
    """Has side effects; the user is asked unless already allowed."""

    DANGEROUS = "dangerous"
    """Never runs unless explicitly allowed for the session."""


@_dataclasses.dataclass
class ToolResult:
    """
    Result of executing a tool.

    All tools return this standardized result format.
    """

    success: bool
    output: str
    error: str | None = None

    @classmethod
    def failure(cls, error: str, output: str = "") -> ToolResult:
        return cls(success=False, output=output, error=error)

    def to_content(self) -> str:
        """Text sent back to the model in the tool_result block."""
        if self.success:
            return self.output
        if self.output:
            return f"{self.output}\n\nError: {self.error}"
        return f"Error: {self.error}"

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to JSON-serializable dict."""
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
        }


@_dataclasses.dataclass
class ToolMetrics:
    """
    Metrics for a single tool's usage.

    Tracks call counts, durations, and success rates for the session.
    """

    tool_name: str
    call_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_duration_ms: float = 0.0
    last_used: str | None = None  # ISO timestamp

    @property
    def success_rate(self) -> float:
        """Success rate as a percentage (0.0 to 100.0)."""
        if self.call_count == 0:
            return 0.0
        return (self.success_count / self.call_count) * 100.0

    @property
    def average_duration_ms(self) -> float:
        if self.call_count == 0:
            return 0.0
        return self.total_duration_ms / self.call_count

    def record_call(self, success: bool, duration_ms: float) -> None:
        self.call_count += 1
        if success:
            self.success_count += 1
        else:
            self.failure_count += 1
        self.total_duration_ms += duration_ms
        self.last_used = _dt.datetime.now(_dt.timezone.utc).isoformat()


class MetricsCollector:
    """
    Collects tool metrics across a session.

    Metrics are recorded for every tool call the executor dispatches.
    """

    def __init__(self) -> None:
        self._metrics: dict[str, ToolMetrics] = {}

    def record(self, tool_name: str, success: bool, duration_ms: float) -> None:
        if tool_name not in self._metrics:
            self._metrics[tool_name] = ToolMetrics(tool_name=tool_name)
        self._metrics[tool_name].record_call(success, duration_ms)

    def get(self, tool_name: str) -> ToolMetrics | None:
        return self._metrics.get(tool_name)

    def all(self) -> list[ToolMetrics]:
        """All tool metrics, sorted by call count (descending)."""
        return sorted(self._metrics.values(), key=lambda m: m.call_count, reverse=True)

    def summary(self) -> dict[str, _typing.Any]:
        total_calls = sum(m.call_count for m in self._metrics.values())
        total_success = sum(m.success_count for m in self._metrics.values())
        return {
            "total_calls": total_calls,
            "total_success": total_success,
            "total_failures": total_calls - total_success,
            "tools_used": len(self._metrics),
        }


class Tool(_abc.ABC):
    """
    Abstract base class for all tools.

    Subclasses must implement:
    - name (property): The tool's identifier (used in API calls)
    - description (property): Description for the LLM
    - input_schema (property): JSON schema for the input
    - execute(): The actual tool implementation

    ``permission_level`` defaults to ASK; read-only tools override it with SAFE.
    """

    @property
    @_abc.abstractmethod
    def name(self) -> str:
        """Tool name (e.g., 'bash', 'file_read', 'grep')."""
        ...

    @property
    @_abc.abstractmethod
    def description(self) -> str:
        ...

    @property
    @_abc.abstractmethod
    def input_schema(self) -> dict[str, _typing.Any]:
        """JSON schema sent to the LLM to describe accepted parameters."""
        ...

    @property
    def permission_level(self) -> PermissionLevel:
        return PermissionLevel.ASK

    @property
    def definition(self) -> api_types.ToolDefinition:
        return api_types.ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )

    @_abc.abstractmethod
    async def execute(
        self,
        input: dict[str, _typing.Any],
        ctx: context.ToolExecutionContext,
    ) -> ToolResult:
        """
        Execute the tool with the given input.

        Long-running tools must stop promptly once ``ctx.cancellation`` fires.

        Args:
            input: Dictionary matching the input schema
            ctx: Working directory and cancellation token

        Returns:
            ToolResult with success status, output, and optional error
        """
        ...

    def __repr__(self) -> str:
        return f"<Tool {self.name}>"

    def _require_input(
        self,
        input: dict[str, _typing.Any],
        key: str,
        *,
        label: str | None = None,
    ) -> str | ToolResult:
        """
        Get a required string input, returning an error ToolResult if missing.

        Args:
            input: The input dictionary from execute()
            key: The key to look up
            label: Human-readable name for error messages (defaults to key)

        Returns:
            The input value if present and a non-empty string, or a ToolResult error
        """
        value = input.get(key)
        if not isinstance(value, str) or not value:
            return ToolResult.failure(f"No {label or key} provided")
        return value


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, noting the original length."""
    if len(text) <= limit:
        return text
    return text[:limit] + f"\n\n... (truncated, {len(text)} total characters)"
