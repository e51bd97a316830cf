"""Render entry point: element tree in, budgeted chat messages out."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .cancellation import CancellationToken, check_cancelled
from .elements import Element, RenderStep, component
from .errors import BudgetInvariantViolation, ConfigurationError, PromptError
from .evaluator import Evaluator
from .flattener import flatten
from .messages import Endpoint, RenderResult
from .pruner import prune
from .tokenizer import SimpleTokenizer, Tokenizer

logger = logging.getLogger(__name__)


def _root_element(prompt: Element | RenderStep, props: Any) -> Element:
    if isinstance(prompt, Element):
        if props is not None:
            raise ConfigurationError(
                "props are only accepted with a render step, not a prebuilt Element",
                errors=["props given for an Element root"],
            )
        return prompt
    if callable(prompt):
        return component(prompt, props)
    raise ConfigurationError(
        f"Prompt must be an Element or a render step, got {type(prompt).__name__}",
        errors=[f"unsupported prompt type: {type(prompt).__name__}"],
    )


def _endpoint(endpoint: Endpoint | int) -> Endpoint:
    if isinstance(endpoint, Endpoint):
        return endpoint
    return Endpoint(max_prompt_tokens=endpoint)


async def render_prompt(
    prompt: Element | RenderStep,
    props: Any = None,
    endpoint: Endpoint | int = 4096,
    tokenizer: Tokenizer | None = None,
    *,
    cancellation: CancellationToken | None = None,
) -> RenderResult:
    """Render a prompt tree into role-tagged messages within the endpoint's budget.

    Args:
        prompt: Root Element, or a render step called as prompt(props, sizing).
        props: Properties for a render-step root.
        endpoint: Endpoint (or a bare max_prompt_tokens integer).
        tokenizer: Tokenizer capability; defaults to SimpleTokenizer.
        cancellation: Optional token; once cancelled the render fails.

    Returns:
        RenderResult with messages in declaration order and a token_count
        no larger than the budget.

    Raises:
        ConfigurationError: Invalid budget or malformed tree.
        EvaluationError: A render step or the tokenizer failed.
        BudgetInvariantViolation: A node broke the sizing contract.
        CancellationError: The cancellation token fired.
    """
    endpoint = _endpoint(endpoint)
    root = _root_element(prompt, props)
    tokenizer = tokenizer if tokenizer is not None else SimpleTokenizer()
    budget = endpoint.max_prompt_tokens

    check_cancelled(cancellation)
    evaluator = Evaluator(endpoint, tokenizer, cancellation)
    pieces = await evaluator.evaluate(root, budget)
    check_cancelled(cancellation)

    pruned = prune(pieces, budget)
    result = flatten(pruned.pieces)
    if result.token_count > budget:
        raise BudgetInvariantViolation(
            f"Rendered {result.token_count} tokens over a budget of {budget}",
            granted=budget,
            actual=result.token_count,
        )

    logger.debug(
        "Rendered %d message(s) using %d/%d tokens (%d unit(s) pruned)",
        len(result.messages), result.token_count, budget, len(pruned.dropped),
    )
    return result


def render_prompt_sync(
    prompt: Element | RenderStep,
    props: Any = None,
    endpoint: Endpoint | int = 4096,
    tokenizer: Tokenizer | None = None,
    *,
    cancellation: CancellationToken | None = None,
) -> RenderResult:
    """Blocking version of render_prompt for code without an event loop."""
    try:
        return asyncio.run(render_prompt(
            prompt, props, endpoint, tokenizer, cancellation=cancellation,
        ))
    except RuntimeError as e:
        if "cannot be called from a running event loop" in str(e):
            raise PromptError(
                "render_prompt_sync() cannot be called from async context. "
                "Use 'await render_prompt()' instead."
            ) from e
        raise
