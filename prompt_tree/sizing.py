"""Sizing context handed to each node's evaluation."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, replace

from .cancellation import CancellationToken, check_cancelled
from .errors import BudgetInvariantViolation, EvaluationError, PromptError
from .messages import ChatMessage, Endpoint
from .tokenizer import Tokenizer


async def _resolve(result: object, what: str) -> int:
    if inspect.isawaitable(result):
        result = await result
    if isinstance(result, bool) or not isinstance(result, int):
        raise BudgetInvariantViolation(f"Tokenizer returned a non-integer count for {what}: {result!r}")
    if result < 0:
        raise BudgetInvariantViolation(
            f"Tokenizer returned a negative count for {what}: {result}", actual=result,
        )
    return result


async def measure_text(tokenizer: Tokenizer, text: str, cancellation: CancellationToken | None = None) -> int:
    """Measure text, honoring cancellation and rejecting invalid counts."""
    check_cancelled(cancellation)
    try:
        return await _resolve(tokenizer.measure_text(text, cancellation), "text")
    except PromptError:
        raise
    except Exception as e:
        raise EvaluationError(f"Tokenizer failed measuring text: {e}") from e


async def measure_message(
    tokenizer: Tokenizer, message: ChatMessage, cancellation: CancellationToken | None = None,
) -> int:
    """Measure a whole message, honoring cancellation and rejecting invalid counts."""
    check_cancelled(cancellation)
    try:
        return await _resolve(tokenizer.measure_message(message, cancellation), "message")
    except PromptError:
        raise
    except Exception as e:
        raise EvaluationError(f"Tokenizer failed measuring message: {e}") from e


@dataclass(frozen=True)
class PromptSizing:
    """Budget granted to one node plus bound access to the tokenizer.

    A fresh instance is built for every node evaluation; render steps
    should not keep it after they return.
    """

    token_budget: int
    endpoint: Endpoint
    tokenizer: Tokenizer
    cancellation: CancellationToken | None = None

    async def count_tokens(self, text: str) -> int:
        """Token length of text under the render call's tokenizer."""
        return await measure_text(self.tokenizer, text, self.cancellation)

    async def count_message_tokens(self, message: ChatMessage) -> int:
        return await measure_message(self.tokenizer, message, self.cancellation)

    def with_budget(self, token_budget: int) -> PromptSizing:
        return replace(self, token_budget=max(0, token_budget))
