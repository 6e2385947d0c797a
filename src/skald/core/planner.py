"""
Planning mode.

While planning mode is on, the system prompt asks the model for a plan
instead of actions, and the tool executor refuses to run tools until the
user turns the mode off.
"""

import logging as _logging

_logger = _logging.getLogger(__name__)

PLAN_MODE_PROMPT = """\
You are in PLAN MODE. Before taking any action, create a detailed plan.
Do NOT execute any tools yet. Instead:
1. Analyze the user's request thoroughly
2. Break it down into clear, numbered steps
3. For each step, specify which tools you would use and why
4. Identify potential risks or edge cases
5. Present the plan clearly and ask the user for approval

Format your plan as:
## Plan
1. [Step description] - Tool: [tool_name]
2. ...

## Risks
- [Any potential issues]

After presenting the plan, ask: "Would you like me to proceed with this plan?\""""

PLAN_MODE_TOOL_ERROR = (
    "Plan mode is active: tool execution is disabled until the plan is approved"
)


class Planner:
    """Holds the planning-mode flag shared by the loop and the tool executor."""

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def toggle(self) -> bool:
        """Flip the flag and return the new value."""
        self.enabled = not self.enabled
        _logger.debug("Plan mode %s", "on" if self.enabled else "off")
        return self.enabled

    def augment(self, system_prompt: str | None) -> str | None:
        """The system prompt to send, with the planning instruction when enabled."""
        if not self.enabled:
            return system_prompt
        if not system_prompt:
            return PLAN_MODE_PROMPT
        return f"{system_prompt}\n\n{PLAN_MODE_PROMPT}"
