"""
Permission decisions for tool calls.

``PermissionChecker.decide`` is a pure classification of a request against
the session's allow-list; it never executes tools or waits for input. The
allow-list lives in an explicit ``SessionPermissions`` object shared by the
caller (which records the user's answers) and the tool executor (which
reads it), guarded by a lock so both may run as separate tasks or threads.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import logging as _logging
import threading as _threading
import typing as _typing

import skald.tools.base as tools_base

_logger = _logging.getLogger(__name__)

ALL_TOOLS = "*"
"""Allow-list marker meaning every tool is allowed for the session."""


class PermissionDecision(str, _enum.Enum):
    ALLOW = "allow"
    DENY = "deny"
    ASK = "ask"


@_dataclasses.dataclass(frozen=True)
class PermissionRequest:
    """A tool call awaiting a permission decision."""

    tool_name: str
    input: dict[str, _typing.Any]
    permission_level: tools_base.PermissionLevel


class SessionPermissions:
    """Tools the user has allowed for the rest of this session."""

    def __init__(self, allowed: _typing.Iterable[str] = ()) -> None:
        self._lock = _threading.Lock()
        self._allowed: set[str] = set(allowed)

    def allow_tool(self, tool_name: str) -> None:
        with self._lock:
            self._allowed.add(tool_name)

    def revoke_tool(self, tool_name: str) -> None:
        with self._lock:
            self._allowed.discard(tool_name)

    def allow_all(self) -> None:
        """Trust mode: every tool call is allowed without asking."""
        with self._lock:
            self._allowed.add(ALL_TOOLS)

    def revoke_all(self) -> None:
        """Forget every session grant, including trust mode."""
        with self._lock:
            self._allowed.clear()

    @property
    def is_all_allowed(self) -> bool:
        with self._lock:
            return ALL_TOOLS in self._allowed

    def is_allowed(self, tool_name: str) -> bool:
        with self._lock:
            return ALL_TOOLS in self._allowed or tool_name in self._allowed

    def snapshot(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._allowed)


class PermissionChecker:
    """Classifies tool calls as allowed, denied, or needing the user's answer."""

    def __init__(self, session: SessionPermissions | None = None) -> None:
        self._session = session if session is not None else SessionPermissions()

    @property
    def session(self) -> SessionPermissions:
        return self._session

    def decide(self, request: PermissionRequest) -> PermissionDecision:
        """
        Decide whether a tool call may proceed.

        Session grants (all tools, or this tool) always win. Otherwise the
        tool's level decides: SAFE allows, DANGEROUS denies, ASK asks.
        """
        if self._session.is_allowed(request.tool_name):
            decision = PermissionDecision.ALLOW
        elif request.permission_level is tools_base.PermissionLevel.SAFE:
            decision = PermissionDecision.ALLOW
        elif request.permission_level is tools_base.PermissionLevel.DANGEROUS:
            decision = PermissionDecision.DENY
        else:
            decision = PermissionDecision.ASK
        _logger.debug("Permission for %s: %s", request.tool_name, decision.value)
        return decision
