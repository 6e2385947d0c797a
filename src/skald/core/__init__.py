"""
Core orchestration for Skald.

The agent loop, its caller-facing events, the tool executor that gates
tool calls through permissions, planning mode, and the default prompt.
"""

from skald.core.events import (
    AgentEvent,
    ErrorEvent,
    TextDeltaEvent,
    ToolCallCompleteEvent,
    ToolCallInputEvent,
    ToolCallStartEvent,
    TurnCompleteEvent,
)
from skald.core.loop import AgentLoop, LoopState, parse_tool_input
from skald.core.planner import PLAN_MODE_PROMPT, Planner
from skald.core.prompts import build_system_prompt
from skald.core.tool_executor import Approval, Approver, ToolExecutor

__all__ = [
    "AgentEvent",
    "AgentLoop",
    "Approval",
    "Approver",
    "ErrorEvent",
    "LoopState",
    "PLAN_MODE_PROMPT",
    "Planner",
    "TextDeltaEvent",
    "ToolCallCompleteEvent",
    "ToolCallInputEvent",
    "ToolCallStartEvent",
    "ToolExecutor",
    "TurnCompleteEvent",
    "build_system_prompt",
    "parse_tool_input",
]
