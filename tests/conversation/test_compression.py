"""Tests for history compression and context monitoring."""

import pytest as _pytest

import skald.api.errors as api_errors
import skald.api.types as api_types
import skald.conversation.compressor as compressor
import skald.conversation.tokens as tokens


def _history(n: int) -> list[api_types.Message]:
    return [
        api_types.Message.user(f"question {i}") if i % 2 == 0 else api_types.Message.assistant(f"answer {i}")
        for i in range(n)
    ]


class FailingProvider:
    """Provider double whose complete() always fails."""

    async def complete(self, messages, options):
        raise api_errors.ProviderAPIError("fake", 503, "overloaded")


class TestConversationCompressor:
    @_pytest.mark.asyncio
    async def test_short_history_unchanged(self, scripted_provider) -> None:
        provider = scripted_provider()
        history = _history(4)
        result = await compressor.ConversationCompressor(provider, keep_recent=4).compress(
            history, "m"
        )
        assert result == history
        assert result is not history
        assert provider.complete_calls == []

    @_pytest.mark.asyncio
    async def test_summary_plus_recent_tail(self, scripted_provider) -> None:
        summary = api_types.Message(role="assistant", content=[api_types.TextBlock("They talked.")])
        provider = scripted_provider(completions=[summary])
        history = _history(10)

        result = await compressor.ConversationCompressor(provider, keep_recent=4).compress(
            history, "small-model"
        )

        assert len(result) == 6
        assert result[0] == api_types.Message.user(
            "[Previous conversation summary]: They talked."
        )
        assert result[1] == api_types.Message.assistant(compressor.ACKNOWLEDGMENT)
        assert result[2:] == history[6:]

        sent, options = provider.complete_calls[0]
        assert options.model == "small-model"
        assert options.temperature == 0.0
        prompt = sent[0].text
        assert prompt.startswith(compressor.COMPRESSION_PROMPT + "\n\n---\n\n")
        assert "[USER]: question 0\n\n[ASSISTANT]: answer 1" in prompt
        assert "question 6" not in prompt

    @_pytest.mark.asyncio
    async def test_summary_text_blocks_are_concatenated(self, scripted_provider) -> None:
        """A summary split over several text blocks is joined without separators."""
        summary = api_types.Message(
            role="assistant",
            content=[api_types.TextBlock("They talked "), api_types.TextBlock("about tests.")],
        )
        provider = scripted_provider(completions=[summary])

        result = await compressor.ConversationCompressor(provider, keep_recent=2).compress(
            _history(4), "m"
        )

        assert result[0].text == "[Previous conversation summary]: They talked about tests."

    @_pytest.mark.asyncio
    async def test_keep_recent_override(self, scripted_provider) -> None:
        result = await compressor.ConversationCompressor(scripted_provider()).compress(
            _history(5), "m", keep_recent=1
        )
        assert len(result) == 3

    @_pytest.mark.asyncio
    async def test_failure_propagates(self) -> None:
        with _pytest.raises(api_errors.ProviderAPIError):
            await compressor.ConversationCompressor(FailingProvider(), keep_recent=1).compress(
                _history(3), "m"
            )

    def test_transcript_drops_tool_blocks(self) -> None:
        messages = [
            api_types.Message(
                role="assistant",
                content=[
                    api_types.TextBlock("Looking"),
                    api_types.ToolUseBlock(id="t", name="glob", input={}),
                ],
            ),
            api_types.Message(
                role="user", content=[api_types.ToolResultBlock(tool_use_id="t", content="a.py")]
            ),
        ]
        assert compressor.render_transcript(messages) == "[ASSISTANT]: Looking\n\n[USER]: "


def _words(text: str) -> int:
    return len(text.split())


class TestContextMonitor:
    def test_estimate_counts_all_block_kinds(self) -> None:
        messages = [
            api_types.Message.user("one two three"),
            api_types.Message(
                role="assistant",
                content=[api_types.ToolUseBlock(id="t", name="glob", input={"p": "x"})],
            ),
        ]
        # 3 words + overhead, 'glob {"p": "x"}' is 3 words + overhead
        assert tokens.estimate_tokens(messages, _words) == 3 + 4 + 3 + 4
        assert tokens.estimate_tokens([], _words, system_prompt="a b") == 2

    def test_threshold(self) -> None:
        monitor = tokens.ContextMonitor(100, threshold=0.5, counter=_words)
        small = [api_types.Message.user("word " * 10)]
        large = [api_types.Message.user("word " * 60)]
        assert not monitor.should_compress(small)
        assert monitor.should_compress(large)

    def test_reported_tokens_win(self) -> None:
        monitor = tokens.ContextMonitor(100, threshold=0.5, counter=_words)
        small = [api_types.Message.user("hi")]
        assert monitor.should_compress(small, reported_input_tokens=90)
        assert monitor.usage_ratio(small, reported_input_tokens=25) == 0.25

    @_pytest.mark.live
    def test_tiktoken_counter(self) -> None:
        """Needs the tiktoken encoding files, which may be downloaded on first use."""
        counter = tokens.tiktoken_counter("gpt-4o")
        assert counter("hello world") > 0
        assert tokens.get_encoder("some-local-model").name == "cl100k_base"
