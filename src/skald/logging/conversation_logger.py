"""
Conversation logger for Skald.

Logs one conversation to a JSONL file for debugging and analysis.
"""

import datetime as _datetime
import json as _json
import logging as _logging
import os as _os
import pathlib as _pathlib
import typing as _typing

_logger = _logging.getLogger(__name__)


class ConversationLogger:
    """
    Logs conversation events to a JSONL file.

    Each line is one JSON object carrying `timestamp`, `event_number`,
    `event_type` and `session_id`, plus the fields of the event:
    - session_start: Session metadata (model, provider, session id)
    - system_prompt: The system prompt sent to the model
    - user_message: User's input
    - assistant_message: Assistant's response text
    - tool_call: Tool invocation request
    - permission_decision: Outcome of the permission check for a tool call
    - tool_result: Result of tool execution
    - compression: History was summarized
    - error: Error events
    - session_end: Session completion

    Usage:
        with ConversationLogger(log_dir=path, provider="anthropic", model="claude-...") as log:
            log.log_user_message("Hello")
            log.log_assistant_message("Hi there!")
    """

    def __init__(
        self,
        *,
        log_dir: _pathlib.Path | str | None = None,
        log_file: _pathlib.Path | str | None = None,
        private_mode: bool = True,
        provider: str = "unknown",
        model: str = "unknown",
        session_id: str | None = None,
        enabled: bool = True,
    ) -> None:
        """
        Initialize the conversation logger.

        Args:
            log_dir: Directory for log files (default: ~/.skald/logs).
            log_file: Explicit log file path (overrides log_dir + auto name).
            private_mode: If True, restrict the log directory to the owner (0o700).
            provider: LLM provider name.
            model: Model name.
            session_id: Conversation session the log belongs to.
            enabled: Whether logging is enabled.
        """
        self._enabled = enabled
        self._file: _typing.TextIO | None = None
        self._file_path: _pathlib.Path | None = None
        self._timestamp = _datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        self._session_id = session_id
        self._event_count = 0

        if not enabled:
            return

        if log_file:
            self._file_path = _pathlib.Path(log_file)
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
        else:
            base_dir = (
                _pathlib.Path(log_dir).expanduser()
                if log_dir
                else _pathlib.Path("~/.skald/logs").expanduser()
            )
            base_dir.mkdir(parents=True, exist_ok=True)
            if private_mode:
                _os.chmod(base_dir, 0o700)

            suffix = f"_{session_id}" if session_id else ""
            self._file_path = base_dir / f"skald_{self._timestamp}{suffix}.jsonl"

        # Held as instance state, closed in close()
        self._file = open(self._file_path, "w", encoding="utf-8")  # noqa: SIM115

        self._write_event(
            "session_start",
            {"provider": provider, "model": model},
        )

    def _write_event(self, event_type: str, data: dict[str, _typing.Any]) -> None:
        if not self._enabled or not self._file:
            return

        self._event_count += 1
        event = {
            "timestamp": _datetime.datetime.now().isoformat(),
            "event_number": self._event_count,
            "event_type": event_type,
            "session_id": self._session_id,
            **data,
        }

        try:
            self._file.write(_json.dumps(event, default=str) + "\n")
            self._file.flush()
        except OSError as e:
            # Logging must not break the conversation
            _logger.debug("Conversation log write failed: %s", e)

    def log_system_prompt(self, prompt: str) -> None:
        self._write_event("system_prompt", {"content": prompt})

    def log_user_message(self, content: str) -> None:
        self._write_event("user_message", {"content": content})

    def log_assistant_message(self, content: str, tool_calls: int = 0) -> None:
        """Log a committed assistant message."""
        data: dict[str, _typing.Any] = {"content": content}
        if tool_calls:
            data["tool_calls"] = tool_calls
        self._write_event("assistant_message", data)

    def log_tool_call(
        self,
        tool_name: str,
        tool_input: dict[str, _typing.Any],
        tool_id: str | None = None,
    ) -> None:
        self._write_event(
            "tool_call",
            {"tool_name": tool_name, "tool_input": tool_input, "tool_id": tool_id},
        )

    def log_permission_decision(
        self,
        tool_name: str,
        decision: str,
        tool_id: str | None = None,
    ) -> None:
        self._write_event(
            "permission_decision",
            {"tool_name": tool_name, "decision": decision, "tool_id": tool_id},
        )

    def log_tool_result(
        self,
        tool_name: str,
        success: bool,
        output: str | None = None,
        error: str | None = None,
        tool_id: str | None = None,
        duration_ms: float | None = None,
    ) -> None:
        data: dict[str, _typing.Any] = {
            "tool_name": tool_name,
            "success": success,
            "output": output,
            "error": error,
            "tool_id": tool_id,
        }
        if duration_ms is not None:
            data["duration_ms"] = round(duration_ms, 2)
        self._write_event("tool_result", data)

    def log_compression(self, messages_before: int, messages_after: int) -> None:
        self._write_event(
            "compression",
            {"messages_before": messages_before, "messages_after": messages_after},
        )

    def log_usage(self, input_tokens: int, output_tokens: int) -> None:
        self._write_event(
            "usage",
            {
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            },
        )

    def log_error(self, error: str, context: str | None = None) -> None:
        self._write_event("error", {"error": error, "context": context})

    def log_event(self, event_type: str, **kwargs: _typing.Any) -> None:
        """Log an event that has no dedicated method.

        Args:
            event_type: The event type string (e.g., "model_switch").
            **kwargs: Key-value pairs included in the event.
        """
        self._write_event(event_type, dict(kwargs))

    @property
    def file_path(self) -> _pathlib.Path | None:
        return self._file_path

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def event_count(self) -> int:
        return self._event_count

    def close(self) -> None:
        """Write session_end and close the file. Safe to call twice."""
        if not self._enabled or not self._file:
            return

        self._write_event("session_end", {"total_events": self._event_count})
        try:
            self._file.close()
        except OSError as e:
            _logger.debug("Conversation log close failed: %s", e)
        finally:
            self._file = None

    def __enter__(self) -> "ConversationLogger":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: _typing.Any,
    ) -> None:
        if exc_type:
            self.log_error(str(exc_val), context=f"Exception: {exc_type.__name__}")
        self.close()
