"""
Conversation size management: compression and context monitoring.
"""

from skald.conversation.compressor import ConversationCompressor, render_transcript
from skald.conversation.tokens import ContextMonitor, estimate_tokens

__all__ = ["ContextMonitor", "ConversationCompressor", "estimate_tokens", "render_transcript"]
