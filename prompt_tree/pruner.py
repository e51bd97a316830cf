"""Priority pruning of the evaluated piece tree.

Prunable units are every top-level message plus every group marked
prunable inside a message. Units are ranked by priority (ties keep
declaration order) and accepted greedily until the first one that does
not fit; that unit and every unit ranked after it are dropped. Units are
included or excluded whole, never truncated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import ConfigurationError
from .pieces import Piece, PieceKind, total_cost

logger = logging.getLogger(__name__)


@dataclass
class PruneUnit:
    """One independently prunable subtree.

    cost covers the unit's own content only; nested units are separate.
    priority is capped by the enclosing unit's priority so a container is
    always ranked before anything inside it.
    """

    piece: Piece
    order: int
    priority: int
    cost: int = 0

    @property
    def label(self) -> str:
        if self.piece.kind is PieceKind.MESSAGE:
            return f"{self.piece.role.value} message (priority {self.priority})"
        return f"content group (priority {self.priority})"


@dataclass(frozen=True)
class PruneResult:
    """Surviving piece tree plus what was dropped."""

    pieces: tuple[Piece, ...]
    token_count: int
    dropped: tuple[PruneUnit, ...] = ()


def collect_units(pieces: tuple[Piece, ...]) -> list[PruneUnit]:
    """List prunable units in declaration (pre-)order."""
    units: list[PruneUnit] = []

    def visit_top(piece: Piece) -> None:
        if piece.kind is PieceKind.MESSAGE:
            unit = PruneUnit(piece=piece, order=len(units), priority=piece.priority, cost=piece.overhead)
            units.append(unit)
            for child in piece.children:
                visit_inner(child, unit)
        elif piece.kind is PieceKind.GROUP:
            for child in piece.children:
                visit_top(child)
        elif piece.token_cost or piece.text.strip():
            raise ConfigurationError(
                "Text must be inside a message", errors=["text outside of a message container"],
            )

    def visit_inner(piece: Piece, owner: PruneUnit) -> None:
        if piece.kind is PieceKind.MESSAGE:
            raise ConfigurationError(
                "Messages cannot be nested inside messages", errors=["nested message container"],
            )
        if piece.kind is PieceKind.TEXT:
            owner.cost += piece.token_cost
            return
        if piece.prunable:
            nested = PruneUnit(
                piece=piece, order=len(units), priority=min(piece.priority, owner.priority),
            )
            units.append(nested)
            owner = nested
        for child in piece.children:
            visit_inner(child, owner)

    for piece in pieces:
        visit_top(piece)
    return units


def select_units(units: list[PruneUnit], budget: int) -> tuple[list[PruneUnit], list[PruneUnit]]:
    """Greedy priority selection. Returns (kept, dropped) in ranked order."""
    ranked = sorted(units, key=lambda unit: (-unit.priority, unit.order))
    total = 0
    for index, unit in enumerate(ranked):
        if total + unit.cost > budget:
            return ranked[:index], ranked[index:]
        total += unit.cost
    return ranked, []


def _has_text(piece: Piece) -> bool:
    if piece.kind is PieceKind.TEXT:
        return bool(piece.text)
    return any(_has_text(child) for child in piece.children)


def _rebuild(pieces: tuple[Piece, ...], removed: set[int]) -> tuple[Piece, ...]:
    """Copy the tree without the pieces whose ids are in removed.

    Groups left without children and messages left without text are
    removed as well.
    """
    survivors: list[Piece] = []
    for piece in pieces:
        if id(piece) in removed:
            continue
        if piece.children:
            piece = piece.with_children(_rebuild(piece.children, removed))
            if piece.kind is PieceKind.GROUP and not piece.children:
                continue
        if piece.kind is PieceKind.MESSAGE and not _has_text(piece):
            continue
        survivors.append(piece)
    return tuple(survivors)


def prune(pieces: tuple[Piece, ...], budget: int) -> PruneResult:
    """Drop whole units, lowest priority first, until the tree fits budget.

    Messages with no text are never emitted, so they are removed before
    ranking. A budget below the cheapest unit legitimately yields an empty
    tree.
    """
    pieces = _rebuild(pieces, set())
    units = collect_units(pieces)
    _, dropped = select_units(units, budget)

    if not dropped:
        return PruneResult(pieces=pieces, token_count=total_cost(pieces))

    logger.info(
        "Token budget: pruned %d of %d unit(s): %s",
        len(dropped), len(units), ", ".join(unit.label for unit in dropped),
    )

    survivors = _rebuild(pieces, {id(unit.piece) for unit in dropped})
    return PruneResult(
        pieces=survivors,
        token_count=total_cost(survivors),
        dropped=tuple(dropped),
    )
