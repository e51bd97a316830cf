"""Custom exceptions and shared constants for prompt rendering."""

# Timeout for Anthropic token-counting calls (seconds)
ANTHROPIC_TIMEOUT = 30.0


class PromptError(Exception):
    """Base exception for prompt rendering errors."""
    pass


class ConfigurationError(PromptError, ValueError):
    """Invalid budget, element attributes, or malformed prompt tree.

    Carries a list of validation errors so callers see all problems at once.
    """

    def __init__(self, message: str = "", *, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors: list[str] = errors if errors is not None else []


class EvaluationError(PromptError):
    """Raised when a component's render step or the tokenizer fails."""
    pass


class BudgetInvariantViolation(PromptError):
    """A node reported a token cost outside the budget it was granted.

    Raised instead of clamping so a node that breaks the cooperative
    sizing contract is visible.
    """

    def __init__(self, message: str = "", *, granted: int | None = None, actual: int | None = None) -> None:
        super().__init__(message)
        self.granted = granted
        self.actual = actual


class CancellationError(PromptError):
    """The render call's cancellation signal fired before completion."""
    pass
