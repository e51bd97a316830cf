"""Tests for file contents that expand to fill their budget."""

import pytest

from prompt_tree.elements import ElementKind
from prompt_tree.file_context import (
    FileContextTracker,
    FileSnippet,
    expand_files,
    file_context,
    render_file_context,
)
from prompt_tree.messages import Endpoint
from prompt_tree.sizing import PromptSizing
from prompt_tree.tokenizer import CallbackTokenizer

from conftest import WordTokenizer

FIVE_LINES = "l0\nl1\nl2\nl3\nl4"


def body(tracker):
    """The file lines inside the fence."""
    return str(tracker)[len(tracker.prefix):-len(tracker.suffix)]


class TestFileContextTracker:
    def test_expands_outward_from_focus(self):
        tracker = FileContextTracker(FileSnippet("f.txt", FIVE_LINES, focus_line=2))
        seen = []
        for _ in range(5):
            tracker.expand()
            seen.append(body(tracker))

        assert seen == [
            "l2",
            "l2\nl3",
            "l1\nl2\nl3",
            "l1\nl2\nl3\nl4",
            "l0\nl1\nl2\nl3\nl4",
        ]
        assert tracker.next_line() is None

    def test_focus_defaults_to_middle(self):
        tracker = FileContextTracker(FileSnippet("f.txt", FIVE_LINES))
        assert tracker.next_line() == "l2\n"

    def test_focus_clamped_into_file(self):
        tracker = FileContextTracker(FileSnippet("f.txt", FIVE_LINES, focus_line=99))
        assert tracker.next_line() == "l4\n"

    def test_next_line_previews_expand(self):
        tracker = FileContextTracker(FileSnippet("f.txt", FIVE_LINES, focus_line=0))
        tracker.expand()
        assert tracker.next_line() == "l1\n"
        tracker.expand()
        assert body(tracker) == "l0\nl1"

    def test_retract_undoes_expand(self):
        tracker = FileContextTracker(FileSnippet("f.txt", FIVE_LINES, focus_line=2))
        tracker.expand()
        tracker.expand()
        tracker.expand()

        assert tracker.retract() is True
        assert body(tracker) == "l2\nl3"
        assert tracker.next_line() == "l1\n"

    def test_retract_when_empty(self):
        tracker = FileContextTracker(FileSnippet("f.txt", FIVE_LINES))
        assert tracker.retract() is False

    def test_fenced_output(self):
        tracker = FileContextTracker(FileSnippet("src/app.py", "x = 1"))
        tracker.expand()
        assert str(tracker) == "# src/app.py\n```\nx = 1\n```\n"


class TestExpandFiles:
    # Under WordTokenizer the fenced header costs 3 tokens and the footer 1.

    @pytest.mark.asyncio
    async def test_header_that_does_not_fit_skips_file(self, make_sizing):
        trackers = await expand_files([FileSnippet("a.py", FIVE_LINES)], make_sizing(3))
        assert trackers == []

    @pytest.mark.asyncio
    async def test_lines_fill_budget(self, make_sizing):
        (tracker,) = await expand_files([FileSnippet("a.py", FIVE_LINES)], make_sizing(7))
        assert tracker.line_count == 3

    @pytest.mark.asyncio
    async def test_round_robin_across_files(self, make_sizing):
        files = [FileSnippet("a.py", FIVE_LINES), FileSnippet("b.py", FIVE_LINES)]
        first, second = await expand_files(files, make_sizing(13))
        assert (first.line_count, second.line_count) == (3, 2)

    @pytest.mark.asyncio
    async def test_whole_file_when_budget_allows(self, make_sizing):
        (tracker,) = await expand_files([FileSnippet("a.py", FIVE_LINES)], make_sizing(100))
        assert tracker.line_count == 5

    @pytest.mark.asyncio
    async def test_rendered_text_within_budget_at_every_size(self, make_sizing, tokenizer):
        files = [FileSnippet("a.py", FIVE_LINES), FileSnippet("b.py", FIVE_LINES, focus_line=0)]
        for budget in range(0, 25):
            trackers = await expand_files(files, make_sizing(budget))
            assert sum(tokenizer.measure_text(str(t)) for t in trackers) <= budget

    @pytest.mark.asyncio
    async def test_backs_off_when_joined_text_costs_more(self):
        """Lines are charged one at a time; the final text is re-measured."""
        def count(value, cancellation):
            cost = len(value.split())
            if "```" in value and "x" in value.split():
                cost += 10
            return cost

        sizing = PromptSizing(
            token_budget=20, endpoint=Endpoint(max_prompt_tokens=20), tokenizer=CallbackTokenizer(count),
        )
        content = "\n".join(["x"] * 30)

        (tracker,) = await expand_files([FileSnippet("a.py", content)], sizing)

        assert tracker.line_count == 6
        assert count(str(tracker), None) <= 20


class TestFileContextComponent:
    def test_builds_component_with_references(self):
        element = file_context(
            [FileSnippet("a.py", "x"), FileSnippet("b.py", "y")], priority=5, flex_grow=1,
        )
        assert element.kind is ElementKind.COMPONENT
        assert element.references == ("a.py", "b.py")
        assert element.flex_grow == 1

    @pytest.mark.asyncio
    async def test_render_step_output_fits_budget(self, make_sizing):
        sizing = make_sizing(9)
        output = await render_file_context({"files": [FileSnippet("a.py", FIVE_LINES)]}, sizing)
        assert len(output) == 1
        assert WordTokenizer().measure_text(output[0]) <= 9
