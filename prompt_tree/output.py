"""Conversion of rendered messages into vendor message shapes.

Pure mappings applied after rendering; no budget logic. They fail only on
malformed input.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any

from .messages import ChatMessage, ChatRole


class OutputMode(Enum):
    RAW = "raw"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


def _checked(messages: Iterable[ChatMessage]) -> list[ChatMessage]:
    checked = list(messages)
    for index, message in enumerate(checked):
        if not isinstance(message, ChatMessage):
            raise ValueError(
                f"Expected ChatMessage at index {index}, got {type(message).__name__}"
            )
        if not isinstance(message.role, ChatRole):
            raise ValueError(f"Message at index {index} has invalid role {message.role!r}")
    return checked


def to_openai(messages: Iterable[ChatMessage]) -> list[dict[str, str]]:
    """OpenAI chat-completions messages: role, content and optional name."""
    result = []
    for message in _checked(messages):
        entry = {"role": message.role.value, "content": message.content}
        if message.name:
            entry["name"] = message.name
        result.append(entry)
    return result


def to_anthropic(messages: Iterable[ChatMessage]) -> tuple[str, list[dict[str, str]]]:
    """Anthropic Messages API shape: (system, messages).

    System messages are joined with a blank line into the separate system
    parameter. Names are not supported by the API and are dropped.
    """
    system_parts: list[str] = []
    turns: list[dict[str, str]] = []
    for message in _checked(messages):
        if message.role is ChatRole.SYSTEM:
            system_parts.append(message.content)
        else:
            turns.append({"role": message.role.value, "content": message.content})
    return "\n\n".join(system_parts), turns


def to_mode(mode: OutputMode | str, messages: Iterable[ChatMessage]) -> Any:
    """Convert messages to the shape for the given output mode."""
    try:
        mode = OutputMode(mode)
    except ValueError:
        raise ValueError(
            f"Unknown output mode: {mode!r}. Must be one of: "
            f"{', '.join(m.value for m in OutputMode)}"
        ) from None

    if mode is OutputMode.RAW:
        return _checked(messages)
    if mode is OutputMode.OPENAI:
        return to_openai(messages)
    return to_anthropic(messages)
