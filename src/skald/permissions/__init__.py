"""
Permission gating for tool calls.
"""

from skald.permissions.checker import (
    ALL_TOOLS,
    PermissionChecker,
    PermissionDecision,
    PermissionRequest,
    SessionPermissions,
)

__all__ = [
    "ALL_TOOLS",
    "PermissionChecker",
    "PermissionDecision",
    "PermissionRequest",
    "SessionPermissions",
]
