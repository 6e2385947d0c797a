"""
File tools for reading, writing, and editing files.

Relative paths resolve against the execution context's working directory.
"""

from __future__ import annotations

import typing as _typing

import skald.constants as _constants
import skald.tools.base as base
import skald.tools.context as context


class FileReadTool(base.Tool):
    """
    Read file contents with line numbers.

    Supports reading a window of lines via offset/limit.
    """

    @property
    def name(self) -> str:
        return "file_read"

    @property
    def description(self) -> str:
        return "Read the contents of a file. Returns the file content with line numbers."

    @property
    def permission_level(self) -> base.PermissionLevel:
        return base.PermissionLevel.SAFE

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "The absolute path to the file to read",
                },
                "offset": {
                    "type": "number",
                    "description": "Line number to start reading from (1-based). Optional.",
                },
                "limit": {
                    "type": "number",
                    "description": (
                        "Maximum number of lines to read. Optional, defaults to "
                        f"{_constants.FILE_READ_DEFAULT_LIMIT}."
                    ),
                },
            },
            "required": ["file_path"],
        }

    async def execute(
        self,
        input: dict[str, _typing.Any],
        ctx: context.ToolExecutionContext,
    ) -> base.ToolResult:
        """Read a file and return its contents with line numbers."""
        file_path = self._require_input(input, "file_path")
        if isinstance(file_path, base.ToolResult):
            return file_path

        offset = int(input.get("offset") or 1)
        limit = int(input.get("limit") or _constants.FILE_READ_DEFAULT_LIMIT)

        path = ctx.resolve_path(file_path)
        if not path.exists():
            return base.ToolResult.failure(f"File not found: {file_path}")
        if not path.is_file():
            return base.ToolResult.failure(f"Not a file: {file_path}")

        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return base.ToolResult.failure(f"File is not valid UTF-8: {file_path}")
        except OSError as e:
            return base.ToolResult.failure(f"Failed to read file: {e}")

        lines = content.split("\n")
        start = max(0, offset - 1)
        selected = lines[start : start + limit]
        numbered = "\n".join(
            f"{start + i + 1:6}\t{line}" for i, line in enumerate(selected)
        )
        return base.ToolResult(success=True, output=numbered)


class FileWriteTool(base.Tool):
    """Create or overwrite a file, creating parent directories as needed."""

    @property
    def name(self) -> str:
        return "file_write"

    @property
    def description(self) -> str:
        return (
            "Write content to a file. Creates the file if it does not exist and "
            "overwrites it if it does. Parent directories are created as needed."
        )

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "The absolute path to the file to write",
                },
                "content": {
                    "type": "string",
                    "description": "The content to write to the file",
                },
            },
            "required": ["file_path", "content"],
        }

    async def execute(
        self,
        input: dict[str, _typing.Any],
        ctx: context.ToolExecutionContext,
    ) -> base.ToolResult:
        file_path = self._require_input(input, "file_path")
        if isinstance(file_path, base.ToolResult):
            return file_path
        content = input.get("content")
        if not isinstance(content, str):
            return base.ToolResult.failure("No content provided")

        path = ctx.resolve_path(file_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            return base.ToolResult.failure(f"Failed to write file: {e}")

        return base.ToolResult(
            success=True,
            output=f"File written: {file_path} ({len(content)} characters)",
        )


class FileEditTool(base.Tool):
    """
    Edit a file by exact string replacement.

    The old string must be unique in the file unless replace_all is set.
    """

    @property
    def name(self) -> str:
        return "file_edit"

    @property
    def description(self) -> str:
        return (
            "Edit a file by replacing an exact string match with new content. "
            "The old_string must be unique in the file."
        )

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "The absolute path to the file to edit",
                },
                "old_string": {
                    "type": "string",
                    "description": "The exact string to find and replace",
                },
                "new_string": {
                    "type": "string",
                    "description": "The replacement string",
                },
                "replace_all": {
                    "type": "boolean",
                    "description": "Replace all occurrences (default: false)",
                },
            },
            "required": ["file_path", "old_string", "new_string"],
        }

    async def execute(
        self,
        input: dict[str, _typing.Any],
        ctx: context.ToolExecutionContext,
    ) -> base.ToolResult:
        file_path = self._require_input(input, "file_path")
        if isinstance(file_path, base.ToolResult):
            return file_path
        old_string = self._require_input(input, "old_string")
        if isinstance(old_string, base.ToolResult):
            return old_string
        new_string = input.get("new_string")
        if not isinstance(new_string, str):
            return base.ToolResult.failure("No new_string provided")
        replace_all = bool(input.get("replace_all", False))

        path = ctx.resolve_path(file_path)
        if not path.is_file():
            return base.ToolResult.failure(f"File not found: {file_path}")

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return base.ToolResult.failure(f"Failed to edit file: {e}")

        count = content.count(old_string)
        if count == 0:
            return base.ToolResult.failure(
                "old_string not found in file. Make sure it matches exactly."
            )
        if count > 1 and not replace_all:
            return base.ToolResult.failure(
                f"old_string appears {count} times in the file. Provide more context "
                "to make it unique, or set replace_all to true."
            )

        content = content.replace(old_string, new_string, -1 if replace_all else 1)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            return base.ToolResult.failure(f"Failed to edit file: {e}")

        return base.ToolResult(success=True, output=f"File edited: {file_path}")
