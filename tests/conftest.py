"""Shared fixtures for prompt_tree tests."""

import pytest

from prompt_tree.messages import ChatMessage, Endpoint
from prompt_tree.sizing import PromptSizing
from prompt_tree.tokenizer import Tokenizer


class WordTokenizer(Tokenizer):
    """One token per whitespace-separated word.

    measure_message charges `overhead` on top of the content so envelope
    costs can be tested. Every measured string is recorded in `calls`.
    """

    def __init__(self, overhead: int = 0) -> None:
        self.overhead = overhead
        self.calls: list[str] = []

    def measure_text(self, text, cancellation=None):
        self.calls.append(text)
        return len(text.split())

    def measure_message(self, message: ChatMessage, cancellation=None):
        self.calls.append(message.content)
        return self.overhead + len(message.content.split())


class AsyncWordTokenizer(WordTokenizer):
    """WordTokenizer whose methods are coroutines."""

    async def measure_text(self, text, cancellation=None):
        return super().measure_text(text, cancellation)

    async def measure_message(self, message, cancellation=None):
        return super().measure_message(message, cancellation)


def words(count: int, word: str = "w") -> str:
    """A string costing exactly `count` tokens under WordTokenizer."""
    return " ".join([word] * count)


@pytest.fixture
def tokenizer():
    return WordTokenizer()


@pytest.fixture
def make_sizing(tokenizer):
    """Factory for PromptSizing bound to the word tokenizer."""
    def _create(budget: int, cancellation=None) -> PromptSizing:
        return PromptSizing(
            token_budget=budget,
            endpoint=Endpoint(max_prompt_tokens=max(budget, 0)),
            tokenizer=tokenizer,
            cancellation=cancellation,
        )
    return _create


@pytest.fixture
def greedy():
    """Factory for a render step that fills its budget up to a cap.

    Each call's granted budget is appended to `grants`.
    """
    def _create(cap: int, grants: list | None = None):
        def render(props, sizing):
            if grants is not None:
                grants.append(sizing.token_budget)
            return words(min(cap, sizing.token_budget))
        return render
    return _create
