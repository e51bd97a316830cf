"""Piece tree: the fully evaluated prompt, text and messages only."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .errors import BudgetInvariantViolation
from .messages import ChatRole


class PieceKind(Enum):
    TEXT = "text"
    MESSAGE = "message"
    GROUP = "group"  # container; an independent prune unit when prunable inside a message


@dataclass(frozen=True)
class Piece:
    """An evaluated node with its measured token cost.

    token_cost is fixed at construction: the literal text cost for TEXT
    pieces, otherwise overhead plus the children's costs.
    """

    kind: PieceKind
    priority: int
    token_cost: int
    text: str = ""
    children: tuple[Piece, ...] = ()
    overhead: int = 0
    role: ChatRole | None = None
    name: str | None = None
    prunable: bool = False
    references: tuple[Any, ...] = ()
    metadata: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if self.kind is not PieceKind.TEXT:
            expected = self.overhead + total_cost(self.children)
            if self.token_cost != expected:
                raise BudgetInvariantViolation(
                    f"{self.kind.value} piece cost {self.token_cost} != "
                    f"overhead {self.overhead} + children {expected - self.overhead}",
                    actual=self.token_cost,
                )

    def with_children(self, children: tuple[Piece, ...]) -> Piece:
        """Copy with different children and the cost recomputed."""
        return replace(
            self, children=children, token_cost=self.overhead + total_cost(children),
        )


def total_cost(pieces: tuple[Piece, ...] | list[Piece]) -> int:
    return sum(p.token_cost for p in pieces)


def text_piece(
    content: str,
    token_cost: int,
    priority: int,
    *,
    references: tuple[Any, ...] = (),
    metadata: tuple[Any, ...] = (),
) -> Piece:
    return Piece(
        kind=PieceKind.TEXT,
        priority=priority,
        token_cost=token_cost,
        text=content,
        references=references,
        metadata=metadata,
    )


def message_piece(
    role: ChatRole,
    children: tuple[Piece, ...],
    priority: int,
    *,
    overhead: int = 0,
    name: str | None = None,
    references: tuple[Any, ...] = (),
    metadata: tuple[Any, ...] = (),
) -> Piece:
    return Piece(
        kind=PieceKind.MESSAGE,
        priority=priority,
        token_cost=overhead + total_cost(children),
        children=children,
        overhead=overhead,
        role=role,
        name=name,
        references=references,
        metadata=metadata,
    )


def group_piece(
    children: tuple[Piece, ...],
    priority: int,
    *,
    prunable: bool = True,
    references: tuple[Any, ...] = (),
    metadata: tuple[Any, ...] = (),
) -> Piece:
    return Piece(
        kind=PieceKind.GROUP,
        priority=priority,
        token_cost=total_cost(children),
        children=children,
        prunable=prunable,
        references=references,
        metadata=metadata,
    )
