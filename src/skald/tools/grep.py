"""
Grep tool for searching file contents with regular expressions.
"""

from __future__ import annotations

import fnmatch as _fnmatch
import re as _re
import typing as _typing

import skald.constants as _constants
import skald.tools.base as base
import skald.tools.context as context
import skald.tools.glob as glob


class GrepTool(base.Tool):
    """
    Search file contents using a regex pattern.

    Matches are reported as ``path:line:`` headers followed by the matching
    line (marked ``>``) and any requested context lines.
    """

    @property
    def name(self) -> str:
        return "grep"

    @property
    def description(self) -> str:
        return (
            "Search file contents using a regex pattern. Returns matching lines "
            "with file paths and line numbers."
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
                    "description": "Regular expression pattern to search for",
                },
                "path": {
                    "type": "string",
                    "description": "File or directory to search in. Defaults to working directory.",
                },
                "file_glob": {
                    "type": "string",
                    "description": 'Glob pattern to filter file names (e.g. "*.py")',
                },
                "context": {
                    "type": "number",
                    "description": "Number of context lines before and after each match (default: 0)",
                },
            },
            "required": ["pattern"],
        }

    async def execute(
        self,
        input: dict[str, _typing.Any],
        ctx: context.ToolExecutionContext,
    ) -> base.ToolResult:
        pattern = self._require_input(input, "pattern")
        if isinstance(pattern, base.ToolResult):
            return pattern

        try:
            regex = _re.compile(pattern)
        except _re.error as e:
            return base.ToolResult.failure(f"Invalid regex: {e}")

        search_input = input.get("path") or "."
        root = ctx.resolve_path(search_input)
        file_glob = input.get("file_glob") or "*"
        context_lines = int(input.get("context") or 0)
        max_matches = _constants.GREP_MAX_MATCHES

        if root.is_file():
            candidates = [root]
        elif root.is_dir():
            candidates = sorted(
                p for p in root.rglob("*") if p.is_file() and not glob.is_ignored(p, root)
            )
        else:
            return base.ToolResult.failure(f"Path not found: {search_input}")

        results: list[str] = []
        match_count = 0
        for path in candidates:
            if match_count >= max_matches or ctx.cancellation.cancelled:
                break
            if not _fnmatch.fnmatch(path.name, file_glob):
                continue
            try:
                lines = path.read_text(encoding="utf-8").split("\n")
            except (OSError, UnicodeDecodeError):
                continue  # binary or unreadable

            for i, line in enumerate(lines):
                if match_count >= max_matches:
                    break
                if not regex.search(line):
                    continue
                match_count += 1
                results.append(f"{path}:{i + 1}:")
                for j in range(max(0, i - context_lines), min(len(lines), i + context_lines + 1)):
                    marker = ">" if j == i else " "
                    results.append(f"{marker} {j + 1}\t{lines[j]}")
                results.append("")

        if ctx.cancellation.cancelled:
            return base.ToolResult.failure(ctx.cancellation.reason or context.CANCELLED_BY_USER)
        if not results:
            return base.ToolResult(success=True, output="No matches found.")

        output = "\n".join(results)
        if match_count >= max_matches:
            output += f"\n(Showing first {max_matches} matches)"
        return base.ToolResult(success=True, output=output)
