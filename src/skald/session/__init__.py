"""
Session management for Skald.
"""

from skald.session.session import (
    ConversationSession,
    InvalidSessionIdError,
    SessionManager,
    generate_session_id,
    validate_session_id,
)

__all__ = [
    "ConversationSession",
    "InvalidSessionIdError",
    "SessionManager",
    "generate_session_id",
    "validate_session_id",
]
