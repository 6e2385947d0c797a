"""
Slash commands for the interactive REPL.

Each handler takes the shared CommandContext and the argument string and
returns a CommandResult; the REPL prints ``output`` and stops when
``exit`` is set. Handlers never print directly.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import httpx as _httpx

import skald.api as api
import skald.config as config
import skald.conversation as conversation
import skald.core as core
import skald.mcp as mcp
import skald.session as session

if _typing.TYPE_CHECKING:
    import skald.logging as skald_logging

_logger = _logging.getLogger(__name__)


@_dataclasses.dataclass
class CommandContext:
    """Everything a slash command may read or change."""

    agent: core.AgentLoop
    providers: api.ProviderRegistry
    settings: config.Settings
    session: session.ConversationSession
    session_manager: session.SessionManager
    executor: core.ToolExecutor | None = None
    mcp_manager: mcp.McpManager | None = None
    logger: skald_logging.ConversationLogger | None = None


@_dataclasses.dataclass
class CommandResult:
    output: str = ""
    exit: bool = False


Handler = _typing.Callable[[CommandContext, str], _typing.Awaitable[CommandResult]]

_COMMANDS: dict[str, tuple[Handler, str]] = {}


def _command(name: str, help_text: str) -> _typing.Callable[[Handler], Handler]:
    def register(handler: Handler) -> Handler:
        _COMMANDS[name] = (handler, help_text)
        return handler

    return register


def is_command(line: str) -> bool:
    return line.startswith("/")


def command_names() -> list[str]:
    return sorted(_COMMANDS)


async def dispatch(ctx: CommandContext, line: str) -> CommandResult:
    """Run the slash command in ``line`` (which starts with ``/``)."""
    name, _, args = line[1:].strip().partition(" ")
    entry = _COMMANDS.get(name)
    if entry is None:
        return CommandResult(f"Unknown command: /{name}. Type /help for available commands.")
    handler, _ = entry
    return await handler(ctx, args.strip())


async def compact_history(ctx: CommandContext) -> str:
    """Summarize all but the most recent messages with the active provider.

    Returns:
        A one-line description of what happened.
    """
    before = ctx.agent.messages
    compressor = conversation.ConversationCompressor(
        ctx.agent.provider, keep_recent=ctx.settings.behavior.keep_recent_messages
    )
    try:
        compressed = await compressor.compress(before, ctx.agent.model)
    except (api.ProviderError, _httpx.HTTPError) as e:
        _logger.debug("Compression failed", exc_info=True)
        if ctx.logger:
            ctx.logger.log_error(str(e), context="compression")
        return f"Compression failed: {e}"

    if len(compressed) == len(before):
        return "Nothing to compact."

    ctx.agent.replace_messages(compressed)
    ctx.session.replace_messages(compressed)
    if ctx.logger:
        ctx.logger.log_compression(len(before), len(compressed))
    return f"Compacted {len(before)} messages into {len(compressed)}."


# =============================================================================
# Commands
# =============================================================================


@_command("help", "Show available commands")
async def _help(ctx: CommandContext, args: str) -> CommandResult:
    lines = ["Commands:"]
    for name in command_names():
        lines.append(f"  /{name:<8} {_COMMANDS[name][1]}")
    return CommandResult("\n".join(lines))


@_command("clear", "Clear the conversation history")
async def _clear(ctx: CommandContext, args: str) -> CommandResult:
    ctx.agent.clear()
    ctx.session.replace_messages([])
    return CommandResult("Conversation cleared.")


@_command("model", "Show models, or switch with /model <id>")
async def _model(ctx: CommandContext, args: str) -> CommandResult:
    if not args:
        lines = [f"Current model: {ctx.agent.model} ({ctx.agent.provider.name})"]
        for model_id, entry in ctx.providers.list_models():
            marker = "*" if model_id == ctx.agent.model else " "
            label = f"  {entry.label}" if entry.label else ""
            lines.append(f" {marker} {model_id}  [{entry.provider}]{label}")
        return CommandResult("\n".join(lines))

    try:
        provider = ctx.providers.get_for_model(args)
    except api.ProviderNotAvailableError as e:
        return CommandResult(str(e))

    ctx.agent.set_provider(provider)
    ctx.agent.set_model(args)
    ctx.session.model = args
    if ctx.logger:
        ctx.logger.log_event("model_switch", model=args, provider=provider.name)
    return CommandResult(f"Switched to {args} ({provider.name}).")


@_command("compact", "Summarize older messages to free context")
async def _compact(ctx: CommandContext, args: str) -> CommandResult:
    return CommandResult(await compact_history(ctx))


@_command("status", "Show model, history size, usage and tool metrics")
async def _status(ctx: CommandContext, args: str) -> CommandResult:
    agent = ctx.agent
    lines = [
        f"Session:   {ctx.session.id}",
        f"Model:     {agent.model} ({agent.provider.name})",
        f"Messages:  {len(agent.messages)}",
        f"Plan mode: {'on' if agent.planner.enabled else 'off'}",
    ]
    usage = agent.last_usage
    if usage is not None:
        window = ctx.settings.context_window(agent.model)
        lines.append(
            f"Last request: {usage.input_tokens} in / {usage.output_tokens} out "
            f"({usage.input_tokens / window:.0%} of {window} context)"
        )
    if ctx.executor is not None:
        summary = ctx.executor.metrics.summary()
        lines.append(
            f"Tool calls: {summary['total_calls']} "
            f"({summary['total_failures']} failed, {summary['tools_used']} tools)"
        )
        if ctx.executor.checker.session.is_all_allowed:
            lines.append("All tools allowed for this session.")
    return CommandResult("\n".join(lines))


@_command("plan", "Toggle plan mode")
async def _plan(ctx: CommandContext, args: str) -> CommandResult:
    enabled = ctx.agent.planner.toggle()
    if enabled:
        return CommandResult("Plan mode on: the model will plan and tools will not run.")
    return CommandResult("Plan mode off: tools may run again.")


@_command("tools", "List available tools")
async def _tools(ctx: CommandContext, args: str) -> CommandResult:
    if ctx.executor is None or len(ctx.executor.registry) == 0:
        return CommandResult("No tools available.")
    allowed = ctx.executor.checker.session
    lines = ["Tools:"]
    for tool in ctx.executor.registry.list_tools():
        grant = " (allowed)" if allowed.is_allowed(tool.name) else ""
        lines.append(f"  {tool.name:<28} {tool.permission_level.value}{grant}")
    return CommandResult("\n".join(lines))


@_command("mcp", "Show MCP server status")
async def _mcp(ctx: CommandContext, args: str) -> CommandResult:
    servers = ctx.mcp_manager.server_info() if ctx.mcp_manager else []
    if not servers:
        return CommandResult("No MCP servers configured.")
    lines = ["MCP servers:"]
    for info in servers:
        line = f"  {info.name:<20} {info.status.value:<12} {info.tool_count} tools"
        if info.error:
            line += f"  ({info.error})"
        lines.append(line)
    return CommandResult("\n".join(lines))


@_command("exit", "Exit skald")
async def _exit(ctx: CommandContext, args: str) -> CommandResult:
    return CommandResult(exit=True)


@_command("quit", "Exit skald")
async def _quit(ctx: CommandContext, args: str) -> CommandResult:
    return CommandResult(exit=True)
