"""
Execution context and cooperative cancellation for tools.

A ``CancellationToken`` is the abort signal handed to every tool execution.
Tokens form a tree: cancelling a turn's token cancels the per-call tokens
derived from it, while a per-call timeout cancels only that call.
"""

from __future__ import annotations

import asyncio as _asyncio
import dataclasses as _dataclasses
import logging as _logging
import pathlib as _pathlib
import typing as _typing

_logger = _logging.getLogger(__name__)

_T = _typing.TypeVar("_T")

CANCELLED_BY_USER = "Cancelled by user"


class OperationCancelledError(Exception):
    """Raised by :func:`run_cancellable` when the token fires first."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class CancellationToken:
    """A one-shot abort signal that tools poll or await."""

    def __init__(self) -> None:
        self._event = _asyncio.Event()
        self._reason: str | None = None
        self._children: list[CancellationToken] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = CANCELLED_BY_USER) -> None:
        """Fire the token and every token derived from it. Later calls are no-ops."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        for child in self._children:
            child.cancel(reason)

    def child(self) -> CancellationToken:
        """A token that fires with this one but can also be cancelled alone."""
        token = CancellationToken()
        if self.cancelled:
            token.cancel(self._reason or CANCELLED_BY_USER)
        else:
            self._children.append(token)
        return token

    async def wait(self) -> None:
        await self._event.wait()


async def run_cancellable(
    awaitable: _typing.Awaitable[_T],
    token: CancellationToken,
    timeout: float | None = None,
) -> _T:
    """
    Await ``awaitable`` unless ``token`` fires or ``timeout`` elapses first.

    The losing work is cancelled and awaited so nothing keeps running.

    Raises:
        OperationCancelledError: If the token fired first.
        TimeoutError: If the timeout elapsed first.
    """
    task = _asyncio.ensure_future(awaitable)
    waiter = _asyncio.ensure_future(token.wait())
    try:
        done, _ = await _asyncio.wait(
            {task, waiter}, timeout=timeout, return_when=_asyncio.FIRST_COMPLETED
        )
    except _asyncio.CancelledError:
        # The caller was cancelled; the work must not outlive it
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    try:
        await task
    except _asyncio.CancelledError:
        pass
    except Exception:
        _logger.debug("Cancelled operation raised during shutdown", exc_info=True)

    if token.cancelled:
        raise OperationCancelledError(token.reason or CANCELLED_BY_USER)
    raise TimeoutError(f"Timed out after {timeout} seconds")


@_dataclasses.dataclass
class ToolExecutionContext:
    """What a tool gets besides its input."""

    working_directory: _pathlib.Path
    cancellation: CancellationToken = _dataclasses.field(default_factory=CancellationToken)

    def resolve_path(self, path: str) -> _pathlib.Path:
        """Resolve a possibly relative, possibly ~-prefixed path against the working directory."""
        candidate = _pathlib.Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.working_directory / candidate
        return candidate
