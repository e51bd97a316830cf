"""Role vocabulary, neutral chat messages, endpoint and render result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ConfigurationError

# Model used by AnthropicTokenizer when the endpoint doesn't name one.
DEFAULT_MODEL = "claude-sonnet-4-20250514"


class ChatRole(Enum):
    """Role of a rendered chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A role-tagged message in the engine's neutral output shape."""

    role: ChatRole
    content: str
    name: str | None = None


@dataclass(frozen=True)
class Endpoint:
    """Describes the model a prompt is rendered for.

    max_prompt_tokens is the hard budget for the rendered prompt. Zero is
    allowed and renders to an empty message list.
    """

    max_prompt_tokens: int
    model: str = DEFAULT_MODEL

    def __post_init__(self) -> None:
        """Validate endpoint configuration."""
        errors = []

        if isinstance(self.max_prompt_tokens, bool) or not isinstance(self.max_prompt_tokens, int):
            errors.append(
                f"max_prompt_tokens must be an integer, got {self.max_prompt_tokens!r}"
            )
        elif self.max_prompt_tokens < 0:
            errors.append(
                f"max_prompt_tokens must be >= 0, got {self.max_prompt_tokens}"
            )
        if not self.model:
            errors.append("model cannot be empty")

        if errors:
            raise ConfigurationError(f"Invalid Endpoint: {'; '.join(errors)}", errors=errors)


@dataclass(frozen=True)
class RenderResult:
    """Result of rendering a prompt tree.

    Attributes:
        messages: Surviving messages in declaration order.
        token_count: Sum of the token costs of everything retained.
        references: Opaque values collected from surviving nodes, in
            declaration order.
        metadata: Opaque metadata collected from surviving nodes, in
            declaration order.
    """
    messages: tuple[ChatMessage, ...]
    token_count: int
    references: tuple[Any, ...] = field(default=())
    metadata: tuple[Any, ...] = field(default=())
