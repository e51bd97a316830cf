"""Budget allocation across a group of sibling elements.

Fixed siblings claim space first, in declaration order, each sized against
whatever the earlier siblings left. Flexible siblings (flex_grow > 0) then
share the remainder in proportion to their weights, after their flex_basis
reservations. Unused budget is handed back out in further rounds to the
flexible siblings that used all of their last grant.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .elements import Element, ElementKind
from .errors import BudgetInvariantViolation, ConfigurationError
from .pieces import Piece, total_cost

logger = logging.getLogger(__name__)

# Evaluates one sibling against a granted budget.
EvaluateFn = Callable[[Element, int], Awaitable[tuple[Piece, ...]]]


@dataclass
class _FlexSlot:
    """Per-render bookkeeping for one flexible sibling."""

    index: int
    element: Element
    weight: float
    granted: int = 0
    cost: int = 0
    pieces: tuple[Piece, ...] = ()
    growing: bool = True  # used its whole grant last time it was evaluated


def splice_fragments(children: tuple[Element, ...]) -> list[Element]:
    """Replace fragments with their children, recursively, keeping order."""
    siblings: list[Element] = []
    for child in children:
        if child.kind is ElementKind.FRAGMENT:
            siblings.extend(splice_fragments(child.children))
        else:
            siblings.append(child)
    return siblings


async def allocate_group(
    children: tuple[Element, ...],
    budget: int,
    evaluate: EvaluateFn,
) -> tuple[Piece, ...]:
    """Evaluate a sibling group within budget, returning pieces in declaration order.

    Args:
        children: Sibling elements, fragments not yet spliced.
        budget: Tokens the whole group may consume.
        evaluate: Callback that evaluates one sibling with a granted budget.

    Raises:
        ConfigurationError: A flexible sibling can never be granted tokens.
        BudgetInvariantViolation: A flexible sibling exceeded its grant or
            shrank when given more room.
    """
    siblings = splice_fragments(children)
    results: list[tuple[Piece, ...]] = [()] * len(siblings)
    remaining = max(0, budget)
    flex: list[_FlexSlot] = []

    for index, element in enumerate(siblings):
        if element.is_flex and element.flex_grow > 0:
            flex.append(_FlexSlot(index=index, element=element, weight=float(element.flex_grow)))
            continue

        if element.is_flex:
            # Zero weight: sized like a fixed sibling, but only to its basis.
            if element.flex_basis == 0:
                raise ConfigurationError(
                    f"{element.label} has flex_grow=0 and flex_basis=0 and can never be granted tokens",
                    errors=[f"{element.label}: zero flex weight without a flex_basis"],
                )
            granted = element.flex_basis
        else:
            granted = remaining

        pieces = await evaluate(element, granted)
        results[index] = pieces
        remaining = max(0, remaining - total_cost(pieces))

    if flex:
        await _distribute(flex, remaining, evaluate)
        for slot in flex:
            results[slot.index] = slot.pieces

    return tuple(piece for pieces in results for piece in pieces)


async def _evaluate_slot(slot: _FlexSlot, granted: int, evaluate: EvaluateFn) -> None:
    pieces = await evaluate(slot.element, granted)
    cost = total_cost(pieces)
    if cost > granted:
        raise BudgetInvariantViolation(
            f"{slot.element.label} used {cost} tokens but was granted {granted}",
            granted=granted,
            actual=cost,
        )
    slot.granted = granted
    slot.cost = cost
    slot.pieces = pieces
    # Stopping short of the grant means more room would not be used
    if cost < granted:
        slot.growing = False


async def _distribute(flex: list[_FlexSlot], pool: int, evaluate: EvaluateFn) -> None:
    """Share pool among flexible siblings, then regrow the ones still expanding."""
    reserved = sum(slot.element.flex_basis for slot in flex)
    growable = max(0, pool - reserved)
    total_weight = sum(slot.weight for slot in flex)

    for slot in flex:
        target = slot.element.flex_basis + math.floor(growable * slot.weight / total_weight)
        await _evaluate_slot(slot, target, evaluate)

    logger.debug(
        "Flex round 1: pool=%d, grants=%s, costs=%s",
        pool, [s.granted for s in flex], [s.cost for s in flex],
    )

    round_number = 1
    while True:
        leftover = pool - sum(slot.cost for slot in flex)
        candidates = [slot for slot in flex if slot.growing]
        if leftover <= 0 or not candidates:
            break

        candidate_weight = sum(slot.weight for slot in candidates)
        shares = [math.floor(leftover * slot.weight / candidate_weight) for slot in candidates]
        if not any(shares):
            break

        round_number += 1
        for slot, share in zip(candidates, shares):
            if share == 0:
                continue
            previous = slot.cost
            await _evaluate_slot(slot, slot.granted + share, evaluate)
            if slot.cost < previous:
                raise BudgetInvariantViolation(
                    f"{slot.element.label} shrank from {previous} to {slot.cost} tokens "
                    f"when granted more budget",
                    granted=slot.granted,
                    actual=slot.cost,
                )

        logger.debug(
            "Flex round %d: leftover=%d, grants=%s, costs=%s",
            round_number, leftover, [s.granted for s in flex], [s.cost for s in flex],
        )
