"""
Glob tool for file pattern matching.
"""

from __future__ import annotations

import pathlib as _pathlib
import typing as _typing

import skald.tools.base as base
import skald.tools.context as context

IGNORED_DIRS = frozenset({".git", "node_modules"})


def is_ignored(path: _pathlib.Path, root: _pathlib.Path) -> bool:
    """True if any directory between ``root`` and ``path`` is ignored."""
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        parts = path.parts
    return any(part in IGNORED_DIRS for part in parts[:-1])


class GlobTool(base.Tool):
    """
    Find files matching glob patterns.

    Returns matching file paths sorted by modification time (newest first).
    """

    @property
    def name(self) -> str:
        return "glob"

    @property
    def description(self) -> str:
        return (
            "Find files matching a glob pattern. Patterns without a leading "
            "'**/' match at any depth. Returns file paths sorted by modification "
            "time (newest first)."
        )

    @property
    def permission_level(self) -> base.PermissionLevel:
        return base.PermissionLevel.SAFE

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {
            "type": "object",
            "properties": {
                "pattern": {
                    "type": "string",
                    "description": 'The glob pattern to match (e.g. "**/*.py", "src/**/*.ts")',
                },
                "path": {
                    "type": "string",
                    "description": "The directory to search in. Defaults to working directory.",
                },
            },
            "required": ["pattern"],
        }

    async def execute(
        self,
        input: dict[str, _typing.Any],
        ctx: context.ToolExecutionContext,
    ) -> base.ToolResult:
        """Find files matching a glob pattern."""
        pattern = self._require_input(input, "pattern")
        if isinstance(pattern, base.ToolResult):
            return pattern

        search_input = input.get("path") or "."
        root = ctx.resolve_path(search_input)
        if not root.is_dir():
            return base.ToolResult.failure(f"Not a directory: {search_input}")

        # Make patterns like "*.py" work recursively
        if not pattern.startswith("**/") and not pattern.startswith("/"):
            pattern = "**/" + pattern

        try:
            files = [
                p for p in root.glob(pattern) if p.is_file() and not is_ignored(p, root)
            ]
            files.sort(key=lambda p: p.stat().st_mtime, reverse=True)
        except (OSError, ValueError) as e:
            return base.ToolResult.failure(f"Glob failed: {e}")

        if not files:
            return base.ToolResult(success=True, output="No files found matching pattern.")

        return base.ToolResult(
            success=True,
            output="\n".join(str(f.relative_to(root)) for f in files),
        )
