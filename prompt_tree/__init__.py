"""Prompt tree: render prioritized prompt trees into budgeted chat messages."""

__version__ = "0.1.0"

from .cancellation import CancellationSource, CancellationToken
from .elements import (
    DEFAULT_PRIORITY,
    Element,
    ElementKind,
    assistant_message,
    component,
    fragment,
    message,
    system_message,
    text,
    user_message,
)
from .errors import (
    BudgetInvariantViolation,
    CancellationError,
    ConfigurationError,
    EvaluationError,
    PromptError,
)
from .file_context import FileSnippet, file_context
from .messages import ChatMessage, ChatRole, Endpoint, RenderResult
from .output import OutputMode, to_anthropic, to_mode, to_openai
from .renderer import render_prompt, render_prompt_sync
from .sizing import PromptSizing
from .tokenizer import AnthropicTokenizer, CallbackTokenizer, SimpleTokenizer, Tokenizer

__all__ = [
    "AnthropicTokenizer",
    "BudgetInvariantViolation",
    "CallbackTokenizer",
    "CancellationError",
    "CancellationSource",
    "CancellationToken",
    "ChatMessage",
    "ChatRole",
    "ConfigurationError",
    "DEFAULT_PRIORITY",
    "Element",
    "ElementKind",
    "Endpoint",
    "EvaluationError",
    "FileSnippet",
    "OutputMode",
    "PromptError",
    "PromptSizing",
    "RenderResult",
    "SimpleTokenizer",
    "Tokenizer",
    "assistant_message",
    "component",
    "file_context",
    "fragment",
    "message",
    "render_prompt",
    "render_prompt_sync",
    "system_message",
    "text",
    "to_anthropic",
    "to_mode",
    "to_openai",
    "user_message",
]
