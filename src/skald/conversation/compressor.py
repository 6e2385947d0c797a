"""
Summarization-based history compression.

When a conversation grows too long, everything but the most recent
messages is rendered as a transcript, summarized by one non-streaming
completion, and replaced by a summary message plus a fixed acknowledgment.
Compression runs only when the caller asks for it.
"""

from __future__ import annotations

import logging as _logging

import skald.api.base as api_base
import skald.api.types as api_types
import skald.constants as _constants

_logger = _logging.getLogger(__name__)

COMPRESSION_PROMPT = (
    "Summarize the following conversation concisely, preserving key context, "
    "decisions, and any important technical details that would be needed to "
    "continue the conversation. Focus on what was discussed and decided, not on "
    "the exact wording."
)

SUMMARY_PREFIX = "[Previous conversation summary]: "

ACKNOWLEDGMENT = (
    "Understood. I have the context from our previous conversation. "
    "How can I help you?"
)


def render_transcript(messages: list[api_types.Message]) -> str:
    """
    Flatten messages into ``[ROLE]: text`` lines separated by blank lines.

    Only text parts are kept; tool-use and tool-result blocks are dropped.
    """
    return "\n\n".join(f"[{m.role.upper()}]: {m.text}" for m in messages)


class ConversationCompressor:
    """Rewrites long histories into a summary plus a recent tail."""

    def __init__(
        self,
        provider: api_base.LLMProvider,
        *,
        keep_recent: int = _constants.DEFAULT_KEEP_RECENT_MESSAGES,
    ) -> None:
        """
        Args:
            provider: Provider used for the summarization call.
            keep_recent: Messages kept verbatim at the end of the history.
        """
        self._provider = provider
        self._keep_recent = keep_recent

    @property
    def provider(self) -> api_base.LLMProvider:
        return self._provider

    @provider.setter
    def provider(self, value: api_base.LLMProvider) -> None:
        self._provider = value

    async def compress(
        self,
        messages: list[api_types.Message],
        model: str,
        keep_recent: int | None = None,
    ) -> list[api_types.Message]:
        """
        Compress ``messages``.

        Args:
            messages: Full history.
            model: Model used for the summary.
            keep_recent: Overrides the configured tail length for this call.

        Returns:
            A new history: unchanged if it has at most ``keep_recent``
            messages, otherwise ``keep_recent + 2`` messages.

        Raises:
            ProviderAPIError, httpx.HTTPError: If the summarization call fails;
                the caller keeps its existing history.
        """
        keep = self._keep_recent if keep_recent is None else keep_recent
        if len(messages) <= keep:
            return list(messages)

        split = len(messages) - keep
        old, recent = messages[:split], messages[split:]

        request = api_types.Message.user(
            f"{COMPRESSION_PROMPT}\n\n---\n\n{render_transcript(old)}"
        )
        response = await self._provider.complete(
            [request],
            api_types.ProviderOptions(
                model=model,
                max_tokens=_constants.COMPRESSION_MAX_TOKENS,
                temperature=0.0,
            ),
        )
        summary = "".join(b.text for b in response.blocks if isinstance(b, api_types.TextBlock))

        _logger.debug(
            "Compressed %d messages into a %d-character summary", len(old), len(summary)
        )
        return [
            api_types.Message.user(f"{SUMMARY_PREFIX}{summary}"),
            api_types.Message.assistant(ACKNOWLEDGMENT),
            *recent,
        ]
