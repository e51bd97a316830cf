"""Evaluation of the element tree into a piece tree.

Walks elements depth-first, calling component render steps with a fresh
PromptSizing, and hands every sibling group to the budget allocator.
"""

from __future__ import annotations

import inspect
import logging

from .allocator import allocate_group
from .cancellation import CancellationToken, check_cancelled
from .elements import DEFAULT_PRIORITY, Element, ElementKind, to_elements
from .errors import ConfigurationError, EvaluationError, PromptError
from .messages import ChatMessage, Endpoint
from .pieces import Piece, group_piece, message_piece, text_piece
from .sizing import PromptSizing, measure_message, measure_text
from .tokenizer import Tokenizer

logger = logging.getLogger(__name__)


class Evaluator:
    """Evaluates elements for one render call.

    Holds only what is shared by the whole call (endpoint, tokenizer,
    cancellation); budgets travel down as arguments.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        tokenizer: Tokenizer,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.tokenizer = tokenizer
        self.cancellation = cancellation

    def sizing(self, budget: int) -> PromptSizing:
        return PromptSizing(
            token_budget=max(0, budget),
            endpoint=self.endpoint,
            tokenizer=self.tokenizer,
            cancellation=self.cancellation,
        )

    async def evaluate(
        self,
        element: Element,
        budget: int,
        *,
        inherited_priority: int = DEFAULT_PRIORITY,
        in_message: bool = False,
    ) -> tuple[Piece, ...]:
        """Evaluate one element against a granted budget.

        Returns zero or more pieces: fragments and components splice their
        output into the parent, everything else yields a single piece.
        """
        check_cancelled(self.cancellation)
        budget = max(0, budget)
        priority = element.priority if element.priority is not None else inherited_priority
        kind = element.kind

        if kind is ElementKind.TEXT:
            pieces = await self._evaluate_text(element, priority, in_message)
        elif kind is ElementKind.MESSAGE:
            pieces = await self._evaluate_message(element, budget, priority, in_message)
        elif kind is ElementKind.FRAGMENT:
            pieces = await self.evaluate_group(
                element.children, budget, priority=inherited_priority, in_message=in_message,
            )
        elif kind is ElementKind.COMPONENT:
            children = await self._render_component(element, budget)
            pieces = await self.evaluate_group(
                children, budget, priority=priority, in_message=in_message,
            )
        else:
            raise ConfigurationError(f"Unknown element kind: {kind!r}")

        prunable = element.prunable and in_message
        carries_extras = kind is ElementKind.COMPONENT and (element.references or element.metadata)
        if (prunable or carries_extras) and pieces:
            pieces = (
                group_piece(
                    pieces,
                    priority,
                    prunable=prunable,
                    references=element.references,
                    metadata=element.metadata,
                ),
            )
        return pieces

    async def evaluate_group(
        self,
        children: tuple[Element, ...],
        budget: int,
        *,
        priority: int,
        in_message: bool,
    ) -> tuple[Piece, ...]:
        """Evaluate siblings sharing one budget."""

        async def evaluate_child(child: Element, granted: int) -> tuple[Piece, ...]:
            return await self.evaluate(
                child, granted, inherited_priority=priority, in_message=in_message,
            )

        return await allocate_group(children, budget, evaluate_child)

    async def _evaluate_text(self, element: Element, priority: int, in_message: bool) -> tuple[Piece, ...]:
        if not in_message:
            if not element.text.strip():
                return ()
            raise ConfigurationError(
                f"Text must be inside a message: {element.text[:40]!r}",
                errors=["text outside of a message container"],
            )
        cost = await measure_text(self.tokenizer, element.text, self.cancellation)
        if element.prunable:
            # The enclosing group carries the extras
            return (text_piece(element.text, cost, priority),)
        return (
            text_piece(
                element.text,
                cost,
                priority,
                references=element.references,
                metadata=element.metadata,
            ),
        )

    async def _evaluate_message(
        self, element: Element, budget: int, priority: int, in_message: bool,
    ) -> tuple[Piece, ...]:
        if in_message:
            raise ConfigurationError(
                f"A {element.label} cannot be nested inside another message",
                errors=["nested message container"],
            )
        envelope = ChatMessage(role=element.role, content="", name=element.name)
        overhead = await measure_message(self.tokenizer, envelope, self.cancellation)
        children = await self.evaluate_group(
            element.children, budget - overhead, priority=priority, in_message=True,
        )
        return (
            message_piece(
                element.role,
                children,
                priority,
                overhead=overhead,
                name=element.name,
                references=element.references,
                metadata=element.metadata,
            ),
        )

    async def _render_component(self, element: Element, budget: int) -> tuple[Element, ...]:
        sizing = self.sizing(budget)
        check_cancelled(self.cancellation)
        logger.debug("Rendering %s with budget %d", element.label, sizing.token_budget)
        try:
            result = element.render(element.props, sizing)
            if inspect.isawaitable(result):
                result = await result
        except PromptError:
            raise
        except Exception as e:
            raise EvaluationError(f"{element.label} failed: {e}") from e
        return to_elements(result)
