"""
Rich console rendering of agent events.

Streams assistant text as it arrives, shows tool calls and results in
panels, and asks the user about tool calls the permission checker could
not decide.
"""

from __future__ import annotations

import asyncio as _asyncio
import json as _json
import typing as _typing

import rich.console as _rich_console
import rich.panel as _rich_panel
import rich.text as _rich_text

import skald.api.types as api_types
import skald.constants as _constants
import skald.core.events as events
import skald.core.tool_executor as tool_executor
import skald.tools.base as tools_base

_APPROVAL_QUESTION = (
    "Allow [bold]{name}[/bold]? "
    "\\[y]es once / \\[a]lways for this tool / \\[A]ll tools / \\[n]o: "
)

_APPROVAL_CHOICES = {
    "y": tool_executor.Approval.ALLOW_ONCE,
    "a": tool_executor.Approval.ALLOW_TOOL,
    "A": tool_executor.Approval.ALLOW_ALL,
    "n": tool_executor.Approval.DENY,
}


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + f"... ({len(text) - limit} more characters)"


class ConsoleRenderer:
    """Renders AgentEvents to a rich Console."""

    def __init__(
        self,
        console: _rich_console.Console | None = None,
        *,
        no_color: bool = False,
        input_func: _typing.Callable[[str], str] | None = None,
    ) -> None:
        """
        Args:
            console: Console to render to (default: a new terminal console).
            no_color: Disable colors on the default console.
            input_func: Blocking line reader taking the prompt markup
                (default: ``console.input``).
        """
        self._console = console or _rich_console.Console(no_color=no_color)
        self._input = input_func or self._console.input
        self._pending_read: _asyncio.Future[str] | None = None
        self._in_text = False

    @property
    def console(self) -> _rich_console.Console:
        return self._console

    def show_event(self, event: events.AgentEvent) -> None:
        if isinstance(event, events.TextDeltaEvent):
            self._in_text = True
            self._console.print(event.text, end="", markup=False, highlight=False)
        elif isinstance(event, events.ToolCallStartEvent):
            self._end_text()
            self._console.print(f"[dim]… {event.name}[/dim]")
        elif isinstance(event, events.ToolCallInputEvent):
            self.show_tool_call(event.name, event.input)
        elif isinstance(event, events.ToolCallCompleteEvent):
            self.show_tool_result(event.name, event.result)
        elif isinstance(event, events.TurnCompleteEvent):
            self._end_text()
            if event.usage is not None:
                self._console.print(
                    f"[dim]{event.usage.input_tokens} in / "
                    f"{event.usage.output_tokens} out tokens[/dim]"
                )
        elif isinstance(event, events.ErrorEvent):
            self._end_text()
            if event.cancelled:
                self._console.print(f"[yellow]{event.message}[/yellow]")
            else:
                self.show_error(event.message)

    def show_tool_call(self, name: str, tool_input: dict[str, object]) -> None:
        self._end_text()
        rendered = _truncate(
            _json.dumps(tool_input, ensure_ascii=False),
            _constants.DEFAULT_INPUT_TRUNCATE_LENGTH,
        )
        self._console.print(
            _rich_panel.Panel(
                _rich_text.Text(rendered),
                title=f"[bold cyan]{name}[/bold cyan]",
                title_align="left",
                border_style="cyan",
            )
        )

    def show_tool_result(self, name: str, result: tools_base.ToolResult) -> None:
        body = result.output if result.success else result.to_content()
        body = _truncate(body or "(no output)", _constants.DEFAULT_OUTPUT_TRUNCATE_LENGTH)
        style = "green" if result.success else "red"
        self._console.print(
            _rich_panel.Panel(
                _rich_text.Text(body),
                title=f"[{style}]{name} {'ok' if result.success else 'failed'}[/{style}]",
                title_align="left",
                border_style=style,
            )
        )

    def show_info(self, message: str) -> None:
        self._end_text()
        self._console.print(_rich_text.Text(message, style="dim"))

    def show_output(self, message: str) -> None:
        """Plain command output, printed without markup interpretation."""
        self._end_text()
        self._console.print(message, markup=False, highlight=False)

    def show_error(self, message: str) -> None:
        self._end_text()
        text = _rich_text.Text("Error: ", style="bold red")
        text.append(message)
        self._console.print(text)

    def show_welcome(self, model: str, provider: str, session_id: str) -> None:
        self._console.print(
            f"[bold]skald[/bold] [dim]model[/dim] {model} [dim]via[/dim] {provider} "
            f"[dim]session[/dim] {session_id}\n"
            "[dim]Type /help for commands, Ctrl-C to interrupt a turn.[/dim]"
        )

    async def prompt_permission(
        self,
        call: api_types.ToolCall,
        level: tools_base.PermissionLevel,
    ) -> tool_executor.Approval:
        """Ask the user whether ``call`` may run.

        An empty answer or end of input denies.
        """
        self.show_tool_call(call.name, call.input)
        question = _APPROVAL_QUESTION.format(name=call.name)
        while True:
            try:
                answer = (await self._read_line(question)).strip() or "n"
            except EOFError:
                return tool_executor.Approval.DENY
            if answer in _APPROVAL_CHOICES:
                return _APPROVAL_CHOICES[answer]
            self._console.print("[red]Please answer y, a, A or n.[/red]")

    async def read_input(self, prompt: str = "> ") -> str:
        return await self._read_line(f"[bold blue]{prompt}[/bold blue]")

    async def _read_line(self, prompt: str) -> str:
        """Read one line from the terminal.

        Only one blocking read runs at a time. A read whose caller was
        cancelled (a permission prompt interrupted by Ctrl-C) stays pending,
        and the next caller receives its line.
        """
        if self._pending_read is None:
            self._pending_read = _asyncio.ensure_future(_asyncio.to_thread(self._input, prompt))
        else:
            self._console.print(prompt, end="")
        read = self._pending_read
        try:
            return await _asyncio.shield(read)
        finally:
            if read.done():
                self._pending_read = None

    def _end_text(self) -> None:
        if self._in_text:
            self._console.print()
            self._in_text = False
