"""File contents that grow line by line to fill the budget they are granted.

Each file is expanded outward from a focus line, alternating above and
below, round-robin across files, until the next line would not fit.
Place the component inside a message, usually as a flexible node:

    user_message(file_context(files), priority=70, flex_grow=1)
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .elements import Element, component
from .sizing import PromptSizing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileSnippet:
    """A file to include. focus_line is zero-based; None means the middle line."""

    filename: str
    content: str
    focus_line: int | None = None


class _Next(Enum):
    ABOVE = "above"
    BELOW = "below"
    NONE = "none"


class FileContextTracker:
    """Expansion state for one file during one render step.

    State is the run of lines taken so far plus the cursors above and below
    it. expand() takes the line that next_line() previewed.
    """

    suffix = "\n```\n"

    def __init__(self, snippet: FileSnippet) -> None:
        self.snippet = snippet
        self.prefix = f"# {snippet.filename}\n```\n"
        self._all_lines = snippet.content.split("\n")
        focus = snippet.focus_line
        if focus is None:
            focus = len(self._all_lines) // 2
        focus = min(max(focus, 0), len(self._all_lines) - 1)
        self._above = focus
        self._below = focus
        self._next = _Next.ABOVE
        self._lines: deque[str] = deque()
        self._history: list[tuple[_Next, int, int]] = []

    async def header_tokens(self, sizing: PromptSizing) -> int:
        """Token cost of the fenced header and footer around the file."""
        before = await sizing.count_tokens(self.prefix)
        after = await sizing.count_tokens(self.suffix)
        return before + after

    def next_line(self) -> str | None:
        """The line the following expand() will add, with its newline."""
        if self._next is _Next.ABOVE and self._above >= 0:
            return self._all_lines[self._above] + "\n"
        if self._next is _Next.BELOW and self._below < len(self._all_lines):
            return self._all_lines[self._below] + "\n"
        return None

    def expand(self) -> None:
        """Add the previewed line and move the cursors."""
        last = len(self._all_lines) - 1
        self._history.append((self._next, self._above, self._below))

        if self._next is _Next.ABOVE and self._above >= 0:
            self._lines.appendleft(self._all_lines[self._above])
            if self._below < last:
                self._below += 1
                self._next = _Next.BELOW
            elif self._above > 0:
                self._above -= 1
            else:
                self._next = _Next.NONE
        elif self._next is _Next.BELOW and self._below < len(self._all_lines):
            self._lines.append(self._all_lines[self._below])
            if self._above > 0:
                self._above -= 1
                self._next = _Next.ABOVE
            elif self._below < last:
                self._below += 1
            else:
                self._next = _Next.NONE
        else:
            self._history.pop()

    def retract(self) -> bool:
        """Undo the most recent expand(). Returns False when nothing is left."""
        if not self._history:
            return False
        self._next, self._above, self._below = self._history.pop()
        if self._next is _Next.ABOVE:
            self._lines.popleft()
        else:
            self._lines.pop()
        return True

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def __str__(self) -> str:
        return self.prefix + "\n".join(self._lines) + self.suffix


async def expand_files(files: list[FileSnippet], sizing: PromptSizing) -> list[FileContextTracker]:
    """Grow every file as far as sizing.token_budget allows."""
    budget = sizing.token_budget
    trackers: list[FileContextTracker] = []
    token_count = 0

    for snippet in files:
        tracker = FileContextTracker(snippet)
        header = await tracker.header_tokens(sizing)
        if token_count + header > budget:
            logger.debug("Skipping %s: header does not fit in %d tokens", snippet.filename, budget)
            continue
        token_count += header
        trackers.append(tracker)

    expanded: list[FileContextTracker] = []
    while True:
        any_had_lines = False
        for tracker in trackers:
            line = tracker.next_line()
            if line is None:
                continue
            any_had_lines = True
            line_tokens = await sizing.count_tokens(line)
            if token_count + line_tokens > budget:
                return await _fit(trackers, expanded, sizing)
            tracker.expand()
            expanded.append(tracker)
            token_count += line_tokens

        if not any_had_lines:
            return await _fit(trackers, expanded, sizing)


async def _fit(
    trackers: list[FileContextTracker],
    expanded: list[FileContextTracker],
    sizing: PromptSizing,
) -> list[FileContextTracker]:
    # Lines were charged one at a time; the joined text can tokenize
    # differently, so re-measure and back off until it fits.
    while True:
        total = 0
        for tracker in trackers:
            total += await sizing.count_tokens(str(tracker))
        if total <= sizing.token_budget:
            return trackers
        if expanded:
            expanded.pop().retract()
        elif trackers:
            trackers.pop()
        else:
            return trackers


async def render_file_context(props: dict[str, Any], sizing: PromptSizing) -> list[str]:
    """Render step for file_context()."""
    trackers = await expand_files(props["files"], sizing)
    logger.debug(
        "File context: %s within %d tokens",
        ", ".join(f"{t.snippet.filename}={t.line_count} lines" for t in trackers),
        sizing.token_budget,
    )
    return [str(tracker) for tracker in trackers]


def file_context(
    files: list[FileSnippet],
    *,
    priority: int | None = None,
    flex_grow: float | None = None,
    flex_basis: int = 0,
    prunable: bool = False,
) -> Element:
    """Component rendering files that expand to fill their granted budget."""
    return component(
        render_file_context,
        {"files": list(files)},
        priority=priority,
        flex_grow=flex_grow,
        flex_basis=flex_basis,
        prunable=prunable,
        references=tuple(f.filename for f in files),
    )
