"""Tests for the public API: package exports and version."""

import sys

import pytest

import prompt_tree
from prompt_tree import (
    ChatRole,
    Endpoint,
    fragment,
    render_prompt_sync,
    system_message,
    user_message,
)


class TestVersion:
    def test_version_is_set(self):
        assert prompt_tree.__version__ == "0.1.0"

    @pytest.mark.skipif(
        sys.version_info < (3, 11), reason="tomllib requires 3.11+"
    )
    def test_version_matches_pyproject(self):
        """Ensure __init__.__version__ matches pyproject.toml."""
        import tomllib
        from pathlib import Path

        pyproject = Path(__file__).parent.parent / "pyproject.toml"
        with open(pyproject, "rb") as f:
            data = tomllib.load(f)
        assert prompt_tree.__version__ == data["project"]["version"]


class TestAll:
    def test_every_name_is_importable(self):
        for name in prompt_tree.__all__:
            assert hasattr(prompt_tree, name), name

    def test_core_names_exported(self):
        expected = {
            "render_prompt",
            "render_prompt_sync",
            "Endpoint",
            "Tokenizer",
            "PromptSizing",
            "RenderResult",
            "PromptError",
            "ConfigurationError",
            "EvaluationError",
            "BudgetInvariantViolation",
            "CancellationError",
        }
        assert expected <= set(prompt_tree.__all__)


class TestTopLevelUsage:
    def test_render_from_package_imports(self):
        result = render_prompt_sync(
            fragment(system_message("Be helpful", priority=100), user_message("Hi")),
            endpoint=Endpoint(max_prompt_tokens=100),
        )
        assert [m.role for m in result.messages] == [ChatRole.SYSTEM, ChatRole.USER]
