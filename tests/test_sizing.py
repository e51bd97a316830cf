"""Tests for PromptSizing and count validation."""

import pytest

from prompt_tree.cancellation import CancellationSource
from prompt_tree.errors import (
    BudgetInvariantViolation,
    CancellationError,
    ConfigurationError,
    EvaluationError,
)
from prompt_tree.messages import ChatMessage, ChatRole
from prompt_tree.sizing import measure_message, measure_text
from prompt_tree.tokenizer import CallbackTokenizer

from conftest import AsyncWordTokenizer


class TestMeasureText:
    @pytest.mark.asyncio
    async def test_sync_tokenizer(self, tokenizer):
        assert await measure_text(tokenizer, "one two three") == 3

    @pytest.mark.asyncio
    async def test_async_tokenizer(self):
        assert await measure_text(AsyncWordTokenizer(), "one two") == 2

    @pytest.mark.asyncio
    async def test_negative_count_rejected(self):
        tokenizer = CallbackTokenizer(lambda value, _: -1)
        with pytest.raises(BudgetInvariantViolation):
            await measure_text(tokenizer, "x")

    @pytest.mark.asyncio
    async def test_non_integer_count_rejected(self):
        tokenizer = CallbackTokenizer(lambda value, _: 2.5)
        with pytest.raises(BudgetInvariantViolation):
            await measure_text(tokenizer, "x")

    @pytest.mark.asyncio
    async def test_tokenizer_failure_wrapped(self):
        def count(value, cancellation):
            raise RuntimeError("vocab missing")

        with pytest.raises(EvaluationError) as exc_info:
            await measure_text(CallbackTokenizer(count), "x")
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_prompt_errors_pass_through(self):
        def count(value, cancellation):
            raise ConfigurationError("bad")

        with pytest.raises(ConfigurationError):
            await measure_text(CallbackTokenizer(count), "x")

    @pytest.mark.asyncio
    async def test_cancelled_token_checked_first(self, tokenizer):
        source = CancellationSource()
        source.cancel()
        with pytest.raises(CancellationError):
            await measure_text(tokenizer, "x", source.token)
        assert tokenizer.calls == []


class TestMeasureMessage:
    @pytest.mark.asyncio
    async def test_includes_overhead(self):
        tokenizer = AsyncWordTokenizer(overhead=4)
        msg = ChatMessage(role=ChatRole.USER, content="a b")
        assert await measure_message(tokenizer, msg) == 6


class TestPromptSizing:
    @pytest.mark.asyncio
    async def test_count_tokens(self, make_sizing):
        assert await make_sizing(10).count_tokens("a b c") == 3

    @pytest.mark.asyncio
    async def test_count_message_tokens(self, make_sizing):
        msg = ChatMessage(role=ChatRole.USER, content="a b")
        assert await make_sizing(10).count_message_tokens(msg) == 2

    def test_with_budget_clamps_to_zero(self, make_sizing):
        assert make_sizing(10).with_budget(-3).token_budget == 0

    def test_with_budget_keeps_tokenizer(self, make_sizing):
        sizing = make_sizing(10)
        smaller = sizing.with_budget(4)
        assert smaller.token_budget == 4
        assert smaller.tokenizer is sizing.tokenizer
