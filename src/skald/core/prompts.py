"""
System prompt for Skald.

``behavior.system_prompt`` in config replaces this prompt entirely.
"""

import pathlib as _pathlib
import platform as _platform
import typing as _typing

_SYSTEM_PROMPT_INTRO = """\
You are Skald, an AI assistant that works in the user's terminal.

You help users with software engineering tasks by reading, writing and editing
files, searching codebases, running shell commands and fetching web pages.
"""

_GUIDELINES = """\
When the user asks you to perform a task:
1. Use the appropriate tools to accomplish it
2. Explain what you're doing
3. Show relevant results

Prefer glob and grep over shell commands for finding files and text.
Read a file before editing it. Use paths relative to the working directory.
Be concise but helpful. When editing code, preserve existing style and conventions.
"""


def _format_tool_list(tool_names: _typing.Sequence[str]) -> str:
    if not tool_names:
        return "You have no tools available."
    return "You have access to the following tools: " + ", ".join(tool_names) + "."


def build_system_prompt(
    working_directory: _pathlib.Path | str,
    tool_names: _typing.Sequence[str] = (),
) -> str:
    """Generate the default system prompt.

    Args:
        working_directory: Directory tools resolve relative paths against.
        tool_names: Names of the tools offered to the model.

    Returns:
        The complete system prompt.
    """
    environment = (
        f"Working directory: {working_directory}\n"
        f"Platform: {_platform.system()} {_platform.release()}"
    )
    return (
        f"{_SYSTEM_PROMPT_INTRO}\n{environment}\n\n"
        f"{_format_tool_list(tool_names)}\n\n{_GUIDELINES}"
    )
