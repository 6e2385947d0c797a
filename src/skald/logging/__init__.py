"""
Conversation logging for Skald.

Provides JSONL logging of full conversation history for debugging and analysis.
"""

from skald.logging.conversation_logger import ConversationLogger

__all__ = ["ConversationLogger"]
