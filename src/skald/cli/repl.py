"""
Turn runner shared by interactive and one-shot modes.

``ChatRunner`` feeds user input to the agent loop, renders the events,
compresses history when the context fills up, and saves the session
after every turn.
"""

from __future__ import annotations

import asyncio as _asyncio
import contextlib as _contextlib
import logging as _logging
import signal as _signal
import typing as _typing

import skald.cli.commands as commands
import skald.cli.render as render
import skald.conversation as conversation
import skald.core as core

_logger = _logging.getLogger(__name__)


class ChatRunner:
    """Drives an AgentLoop from the terminal."""

    def __init__(self, ctx: commands.CommandContext, renderer: render.ConsoleRenderer) -> None:
        self._ctx = ctx
        self._renderer = renderer

    @property
    def context(self) -> commands.CommandContext:
        return self._ctx

    async def run_turn(self, text: str) -> core.AgentEvent | None:
        """Run one turn, rendering as it goes.

        Returns:
            The final event of the turn (TurnCompleteEvent or ErrorEvent).
        """
        agent = self._ctx.agent
        last: core.AgentEvent | None = None
        with self._interrupts_cancel_turn():
            async for event in agent.run_turn(text):
                self._renderer.show_event(event)
                last = event

        self._save()
        if isinstance(last, core.TurnCompleteEvent):
            await self._maybe_compress()
        return last

    async def run_interactive(self) -> None:
        """Read-eval loop until /exit, /quit or end of input."""
        while True:
            try:
                line = (await self._renderer.read_input()).strip()
            except EOFError:
                break
            if not line:
                continue

            if commands.is_command(line):
                result = await commands.dispatch(self._ctx, line)
                if result.output:
                    self._renderer.show_output(result.output)
                if result.exit:
                    break
                self._save()
                continue

            await self.run_turn(line)

    async def _maybe_compress(self) -> None:
        agent = self._ctx.agent
        settings = self._ctx.settings
        monitor = conversation.ContextMonitor(
            settings.context_window(agent.model),
            threshold=settings.behavior.compression_threshold,
            model=agent.model,
        )
        usage = agent.last_usage
        if not monitor.should_compress(
            agent.messages,
            reported_input_tokens=usage.input_tokens if usage else None,
            system_prompt=agent.system_prompt,
        ):
            return
        self._renderer.show_info("Context is filling up; compacting older messages...")
        self._renderer.show_info(await commands.compact_history(self._ctx))
        self._save()

    def _save(self) -> None:
        ctx = self._ctx
        ctx.session.replace_messages(ctx.agent.messages)
        ctx.session.model = ctx.agent.model
        if not ctx.session.messages:
            return
        path = ctx.session_manager.save(ctx.session)
        _logger.debug("Saved session to %s", path)

    @_contextlib.contextmanager
    def _interrupts_cancel_turn(self) -> _typing.Iterator[None]:
        """While a turn runs, Ctrl-C cancels the turn instead of exiting."""
        loop = _asyncio.get_running_loop()
        try:
            loop.add_signal_handler(_signal.SIGINT, self._ctx.agent.cancel)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform or outside the main thread
            yield
            return
        try:
            yield
        finally:
            loop.remove_signal_handler(_signal.SIGINT)
