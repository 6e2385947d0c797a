"""
Bash tool for executing shell commands.

Runs ``bash -c`` in the working directory with a filtered environment,
a per-call timeout, and process termination on cancellation.
"""

from __future__ import annotations

import asyncio as _asyncio
import os as _os
import typing as _typing

import skald.constants as _constants
import skald.tools.base as base
import skald.tools.context as context


class BashTool(base.Tool):
    """Execute bash commands."""

    @property
    def name(self) -> str:
        return "bash"

    @property
    def description(self) -> str:
        return (
            "Execute a bash command in the working directory. Use this for running "
            "builds, tests, git and other shell commands. Output (stdout, then "
            "stderr) is truncated for very long results."
        )

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The bash command to execute",
                },
                "timeout": {
                    "type": "number",
                    "description": (
                        "Timeout in milliseconds (default: "
                        f"{_constants.DEFAULT_BASH_TIMEOUT_MS}, max: "
                        f"{_constants.MAX_BASH_TIMEOUT_MS})"
                    ),
                },
            },
            "required": ["command"],
        }

    async def execute(
        self,
        input: dict[str, _typing.Any],
        ctx: context.ToolExecutionContext,
    ) -> base.ToolResult:
        """
        Execute a bash command.

        Returns:
            ToolResult with combined output; failure carries the exit code.
        """
        command = self._require_input(input, "command")
        if isinstance(command, base.ToolResult):
            return command

        timeout_ms = input.get("timeout") or _constants.DEFAULT_BASH_TIMEOUT_MS
        timeout_ms = min(float(timeout_ms), _constants.MAX_BASH_TIMEOUT_MS)

        try:
            proc = await _asyncio.create_subprocess_exec(
                "bash",
                "-c",
                command,
                stdout=_asyncio.subprocess.PIPE,
                stderr=_asyncio.subprocess.PIPE,
                cwd=str(ctx.working_directory),
                env=self._get_env(),
            )
        except FileNotFoundError:
            return base.ToolResult.failure(
                f"Working directory not found: {ctx.working_directory}"
            )
        except OSError as e:
            return base.ToolResult.failure(f"Command failed: {e}")

        try:
            stdout, stderr = await context.run_cancellable(
                proc.communicate(), ctx.cancellation, timeout=timeout_ms / 1000.0
            )
        except (context.OperationCancelledError, TimeoutError) as e:
            if proc.returncode is None:
                proc.kill()
            await proc.wait()
            if isinstance(e, TimeoutError):
                return base.ToolResult.failure(f"Command timed out after {int(timeout_ms)}ms")
            return base.ToolResult.failure(e.reason)
        except _asyncio.CancelledError:
            # The executor abandoned this call; the process must not outlive it
            if proc.returncode is None:
                proc.kill()
            raise

        output = stdout.decode("utf-8", errors="replace")
        stderr_str = stderr.decode("utf-8", errors="replace")
        if stderr_str:
            output += ("\n" if output else "") + f"STDERR:\n{stderr_str}"
        output = base.truncate(output, _constants.BASH_MAX_OUTPUT_CHARS)

        if proc.returncode != 0:
            return base.ToolResult(
                success=False, output=output, error=f"Exit code {proc.returncode}"
            )
        return base.ToolResult(success=True, output=output)

    # Environment variables that are safe to pass to subprocesses
    _ENV_ALLOWLIST: frozenset[str] = frozenset({
        "PATH",
        "HOME",
        "USER",
        "SHELL",
        "TERM",
        "LANG",
        "LC_ALL",
        "LC_CTYPE",
        "TZ",
        "EDITOR",
        "TMPDIR",
        "PYTHONPATH",
        "VIRTUAL_ENV",
        "GIT_AUTHOR_NAME",
        "GIT_AUTHOR_EMAIL",
        "GIT_COMMITTER_NAME",
        "GIT_COMMITTER_EMAIL",
        "XDG_CONFIG_HOME",
        "XDG_DATA_HOME",
        "XDG_CACHE_HOME",
    })

    # Substrings marking variables that must never reach the model's commands
    _ENV_BLOCKLIST_PATTERNS: tuple[str, ...] = (
        "_API_KEY",
        "_SECRET",
        "_TOKEN",
        "_PASSWORD",
        "_CREDENTIAL",
        "AWS_",
        "OPENAI_",
        "ANTHROPIC_",
    )

    def _get_env(self) -> dict[str, str]:
        """Allowlisted environment with credential-looking variables removed."""
        return {
            key: value
            for key, value in _os.environ.items()
            if key in self._ENV_ALLOWLIST
            and not any(p in key.upper() for p in self._ENV_BLOCKLIST_PATTERNS)
        }
