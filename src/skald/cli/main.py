"""
Main CLI entry point for Skald.

Provides the command-line interface using Click. Without ``--prompt`` it
starts the interactive REPL; with it, runs a single turn and exits.
"""

from __future__ import annotations

import asyncio as _asyncio
import json as _json
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import click as _click
import pydantic as _pydantic
import rich.logging as _rich_logging

import skald
import skald.api as api
import skald.cli.commands as commands
import skald.cli.render as render
import skald.cli.repl as repl
import skald.config as config
import skald.core as core
import skald.logging as skald_logging
import skald.mcp as mcp
import skald.permissions as permissions
import skald.session as session
import skald.tools as tools

_logger = _logging.getLogger(__name__)

CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}


def _run_async(coro: _typing.Coroutine[_typing.Any, _typing.Any, _typing.Any]) -> _typing.Any:
    """Run an async coroutine synchronously."""
    return _asyncio.run(coro)


def _configure_logging(verbose: bool, level: str) -> None:
    _logging.basicConfig(
        level=_logging.DEBUG if verbose else getattr(_logging, level, _logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[_rich_logging.RichHandler(rich_tracebacks=verbose, show_path=verbose)],
    )
    if not verbose:
        # httpx logs every request at INFO
        _logging.getLogger("httpx").setLevel(_logging.WARNING)


def _load_settings() -> config.Settings:
    try:
        return config.Settings()
    except (config.ConfigFileError, _pydantic.ValidationError) as e:
        _click.echo(f"Configuration error: {e}", err=True)
        raise SystemExit(1) from None


@_click.group(invoke_without_command=True, context_settings=CONTEXT_SETTINGS)
@_click.version_option(skald.__version__, "-v", "--version", prog_name="skald")
@_click.option("--model", type=str, default=None, help="Model to use for completions")
@_click.option(
    "--provider",
    type=_click.Choice(list(api.BUILTIN_PROVIDER_TYPES)),
    default=None,
    help="Force a provider instead of resolving it from the model",
)
@_click.option("--plan", is_flag=True, help="Start in plan mode (tools disabled until approved)")
@_click.option("--resume", type=str, default=None, help="Resume a previous session by ID")
@_click.option("-p", "--prompt", type=str, default=None, help="Run one prompt and exit")
@_click.option(
    "-y", "--yes", "auto_approve", is_flag=True, help="Allow every tool call without asking"
)
@_click.option("--verbose", is_flag=True, help="Enable debug logging")
@_click.pass_context
def cli(
    ctx: _click.Context,
    model: str | None,
    provider: str | None,
    plan: bool,
    resume: str | None,
    prompt: str | None,
    auto_approve: bool,
    verbose: bool,
) -> None:
    """
    Skald - terminal AI agent.

    Run without arguments for interactive mode.

    \b
    Examples:
        skald                                # Interactive mode
        skald -p "list the python files"     # One-shot
        skald --model gpt-4o --plan          # Plan first with GPT-4o
        skald --resume k3x9a2bq              # Continue a saved session
        skald sessions                       # List saved sessions
    """
    settings = _load_settings()
    _configure_logging(verbose, settings.logging.level)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    if ctx.invoked_subcommand is not None:
        return

    try:
        exit_code = _run_async(
            _run_chat(
                settings,
                model=model,
                provider_name=provider,
                plan=plan,
                resume=resume,
                prompt=prompt,
                auto_approve=auto_approve,
            )
        )
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    if exit_code:
        raise SystemExit(exit_code)


def _load_resumed(
    manager: session.SessionManager, session_id: str
) -> session.ConversationSession:
    try:
        resumed = manager.load(session_id)
    except session.InvalidSessionIdError as e:
        _click.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None
    if resumed is None:
        _click.echo(f"Session not found: {session_id}", err=True)
        raise SystemExit(1)
    return resumed


def _select_provider(
    registry: api.ProviderRegistry, model: str, provider_name: str | None
) -> api.LLMProvider:
    if provider_name:
        provider = registry.get(provider_name)
        if provider is None:
            _click.echo(f"Error: provider {provider_name} is not configured", err=True)
            raise SystemExit(1)
        return provider
    try:
        return registry.get_for_model(model)
    except api.ProviderNotAvailableError as e:
        _click.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None


async def _build_tool_registry(manager: mcp.McpManager) -> tools.ToolRegistry:
    registry = tools.build_default_registry()
    for adapter in await manager.get_all_tools():
        try:
            registry.register(adapter)
        except ValueError as e:
            _logger.warning("Skipping MCP tool: %s", e)
    return registry


async def _run_chat(
    settings: config.Settings,
    *,
    model: str | None,
    provider_name: str | None,
    plan: bool,
    resume: str | None,
    prompt: str | None,
    auto_approve: bool,
) -> int:
    """Set up a conversation and run it; returns the process exit code."""
    session_manager = session.SessionManager(settings.sessions_dir)
    resumed = _load_resumed(session_manager, resume) if resume else None
    model = model or (resumed.model if resumed else settings.models.default)

    providers = api.ProviderRegistry.from_settings(settings)
    try:
        provider = _select_provider(providers, model, provider_name)
        conv = resumed or session.ConversationSession.create(model)
        working_directory = _pathlib.Path.cwd()
        renderer = render.ConsoleRenderer()

        async with mcp.McpManager(settings.mcp_servers) as mcp_manager:
            tool_registry = await _build_tool_registry(mcp_manager)

            with skald_logging.ConversationLogger(
                log_dir=settings.logs_dir,
                provider=provider.name,
                model=model,
                session_id=conv.id,
                enabled=settings.logging.enabled,
            ) as conv_logger:
                planner = core.Planner(enabled=plan)
                checker = permissions.PermissionChecker(permissions.SessionPermissions())
                if auto_approve:
                    checker.session.allow_all()
                # One-shot mode has nobody to ask, so Ask falls back to Deny
                approver = renderer.prompt_permission if prompt is None else None
                executor = core.ToolExecutor(
                    tool_registry,
                    checker,
                    approver,
                    tool_timeout=settings.behavior.tool_timeout,
                    permission_timeout=settings.behavior.permission_timeout,
                    planner=planner,
                    logger=conv_logger,
                )

                system_prompt = settings.behavior.system_prompt or core.build_system_prompt(
                    working_directory, tool_registry.names()
                )
                conv_logger.log_system_prompt(system_prompt)

                agent = core.AgentLoop(
                    provider,
                    model=model,
                    tool_executor=executor,
                    system_prompt=system_prompt,
                    max_tokens=settings.behavior.max_tokens,
                    temperature=settings.behavior.temperature,
                    working_directory=working_directory,
                    planner=planner,
                    logger=conv_logger,
                )
                if resumed:
                    agent.replace_messages(resumed.messages)

                runner = repl.ChatRunner(
                    commands.CommandContext(
                        agent=agent,
                        providers=providers,
                        settings=settings,
                        session=conv,
                        session_manager=session_manager,
                        executor=executor,
                        mcp_manager=mcp_manager,
                        logger=conv_logger,
                    ),
                    renderer,
                )

                if prompt is not None:
                    last = await runner.run_turn(prompt)
                    return 1 if isinstance(last, core.ErrorEvent) else 0

                renderer.show_welcome(model, provider.name, conv.id)
                if resumed:
                    renderer.show_info(f"Resumed {len(resumed.messages)} messages.")
                await runner.run_interactive()
                return 0
    finally:
        await providers.close()


@cli.command(name="sessions")
@_click.option("--json", "json_output", is_flag=True, help="JSON output")
@_click.option("--limit", type=int, default=None, help="Maximum sessions to list")
@_click.option("--delete", "delete_id", type=str, default=None, help="Delete a session by ID")
@_click.pass_context
def sessions_cmd(
    ctx: _click.Context, json_output: bool, limit: int | None, delete_id: str | None
) -> None:
    """List recent sessions (or delete one)."""
    settings: config.Settings = ctx.obj["settings"]
    manager = session.SessionManager(settings.sessions_dir)

    if delete_id:
        try:
            deleted = manager.delete(delete_id)
        except session.InvalidSessionIdError as e:
            _click.echo(f"Error: {e}", err=True)
            raise SystemExit(1) from None
        _click.echo(f"Deleted {delete_id}" if deleted else f"Session not found: {delete_id}")
        return

    summaries = [s.summary() for s in manager.list_recent(limit or settings.session.list_limit)]
    if json_output:
        _click.echo(_json.dumps(summaries, indent=2))
        return
    if not summaries:
        _click.echo("No sessions found.")
        return

    _click.echo("Recent Sessions:")
    for s in summaries:
        title = s.get("title") or "(untitled)"
        _click.echo(
            f"  {s['id']}  {s['updated_at'][:19]}  {s['message_count']:>3} msgs  {title}"
        )


if __name__ == "__main__":
    cli()
