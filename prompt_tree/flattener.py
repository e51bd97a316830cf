"""Flattening of the pruned piece tree into ordered chat messages."""

from __future__ import annotations

from typing import Any

from .messages import ChatMessage, RenderResult
from .pieces import Piece, PieceKind, total_cost


def _message_text(piece: Piece) -> str:
    """Concatenate the text leaves under piece in declaration order."""
    if piece.kind is PieceKind.TEXT:
        return piece.text
    return "".join(_message_text(child) for child in piece.children)


def flatten(pieces: tuple[Piece, ...]) -> RenderResult:
    """Emit messages in declaration order along with the retained token count.

    Walks the tree without modifying it, so flattening the same pieces
    twice gives equal results.
    """
    messages: list[ChatMessage] = []
    references: list[Any] = []
    metadata: list[Any] = []

    def visit(piece: Piece) -> None:
        references.extend(piece.references)
        metadata.extend(piece.metadata)
        if piece.kind is PieceKind.MESSAGE:
            messages.append(
                ChatMessage(role=piece.role, content=_message_text(piece), name=piece.name)
            )
        for child in piece.children:
            visit(child)

    for piece in pieces:
        visit(piece)

    return RenderResult(
        messages=tuple(messages),
        token_count=total_cost(pieces),
        references=tuple(references),
        metadata=tuple(metadata),
    )
