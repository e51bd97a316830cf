"""Tokenizer capability: measures the token cost of text and messages.

The engine only depends on the Tokenizer interface. Methods may return an
int directly or an awaitable resolving to one; callers go through
PromptSizing, which awaits when needed.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Union

import httpx
from anthropic import APIError, AsyncAnthropic

from .cancellation import CancellationToken, check_cancelled
from .errors import ANTHROPIC_TIMEOUT, EvaluationError
from .messages import DEFAULT_MODEL, ChatMessage

logger = logging.getLogger(__name__)

TokenCount = Union[int, Awaitable[int]]


class Tokenizer(ABC):
    """Measures token cost. Must be deterministic for a given input."""

    @abstractmethod
    def measure_text(self, text: str, cancellation: CancellationToken | None = None) -> TokenCount:
        """Return the token length of a literal string."""

    @abstractmethod
    def measure_message(self, message: ChatMessage, cancellation: CancellationToken | None = None) -> TokenCount:
        """Return the token length of a whole role-tagged message."""


def estimate_tokens(text: str) -> int:
    """Rough offline estimate: the larger of the word count and chars / 4."""
    if not text:
        return 0

    words = len(text.split())
    return max(words, math.ceil(len(text) / 4))


class SimpleTokenizer(Tokenizer):
    """Estimating tokenizer for when no model tokenizer is available."""

    def measure_text(self, text: str, cancellation: CancellationToken | None = None) -> int:
        return estimate_tokens(text)

    def measure_message(self, message: ChatMessage, cancellation: CancellationToken | None = None) -> int:
        return estimate_tokens(message.content)


CountFunction = Callable[
    [Union[str, ChatMessage], Union[CancellationToken, None]], TokenCount
]


class CallbackTokenizer(Tokenizer):
    """Adapts a caller-supplied counting function.

    The function receives either a string or a ChatMessage plus the
    cancellation token, and returns an int or an awaitable int.
    """

    def __init__(self, count: CountFunction) -> None:
        self._count = count

    def measure_text(self, text: str, cancellation: CancellationToken | None = None) -> TokenCount:
        return self._count(text, cancellation)

    def measure_message(self, message: ChatMessage, cancellation: CancellationToken | None = None) -> TokenCount:
        return self._count(message, cancellation)


class AnthropicTokenizer(Tokenizer):
    """Measures with Anthropic's token-counting endpoint.

    Each distinct string costs one API call; results are cached on the
    instance so flex growth rounds don't repeat requests. Counts include
    the per-request message envelope, so totals err on the high side.
    """

    def __init__(self, client: AsyncAnthropic | None = None, model: str = DEFAULT_MODEL) -> None:
        self._client = client
        self.model = model
        self._cache: dict[str, int] = {}

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(timeout=ANTHROPIC_TIMEOUT)
        return self._client

    async def measure_text(self, text: str, cancellation: CancellationToken | None = None) -> int:
        if not text:
            return 0
        cached = self._cache.get(text)
        if cached is not None:
            return cached

        check_cancelled(cancellation)
        try:
            response = await self.client.messages.count_tokens(
                model=self.model,
                messages=[{"role": "user", "content": text}],
            )
        except (APIError, httpx.TransportError) as e:
            logger.warning("Token counting failed: %s: %s", type(e).__name__, e)
            raise EvaluationError(f"Token counting failed: {e}") from e

        tokens = response.input_tokens
        self._cache[text] = tokens
        return tokens

    async def measure_message(self, message: ChatMessage, cancellation: CancellationToken | None = None) -> int:
        return await self.measure_text(message.content, cancellation)
