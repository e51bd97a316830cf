"""YAML prompt documents for the command line.

A document lists messages in declaration order:

    max_prompt_tokens: 4096
    messages:
      - role: system
        priority: 100
        content: You are a helpful assistant.
      - role: user
        priority: 80
        parts:
          - text: "Earlier notes: ..."
            priority: 40
      - role: user
        priority: 70
        flex_grow: 1
        files:
          - path: src/app.py
            focus_line: 12
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .elements import Element, fragment, message, text
from .errors import ConfigurationError
from .file_context import FileSnippet, file_context
from .messages import ChatRole

_VALID_ROLES = {r.value for r in ChatRole}
_BODY_KEYS = ("content", "parts", "files")
_MESSAGE_KEYS = {"role", "priority", "name", "flex_grow", "flex_basis", *_BODY_KEYS}


@dataclass(frozen=True)
class PromptDocument:
    """A loaded prompt document. max_prompt_tokens is None when not set."""

    root: Element
    max_prompt_tokens: int | None = None
    source: str = ""


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_parts(raw: Any, where: str, errors: list[str]) -> list[Element]:
    if not isinstance(raw, list):
        errors.append(f"{where}: 'parts' must be a list")
        return []
    parts = []
    for index, part in enumerate(raw):
        label = f"{where} part {index}"
        if not isinstance(part, dict) or not isinstance(part.get("text"), str):
            errors.append(f"{label}: needs a 'text' string")
            continue
        priority = part.get("priority")
        if priority is not None and not _is_int(priority):
            errors.append(f"{label}: non-integer priority {priority!r}")
            continue
        prunable = part.get("prunable", True)
        if not isinstance(prunable, bool):
            errors.append(f"{label}: prunable must be true or false, got {prunable!r}")
            continue
        parts.append(text(part["text"], priority=priority, prunable=prunable))
    return parts


def _parse_files(raw: Any, where: str, base_dir: Path, errors: list[str]) -> list[FileSnippet]:
    if not isinstance(raw, list):
        errors.append(f"{where}: 'files' must be a list")
        return []
    snippets = []
    for index, entry in enumerate(raw):
        label = f"{where} file {index}"
        if not isinstance(entry, dict) or not isinstance(entry.get("path"), str):
            errors.append(f"{label}: needs a 'path' string")
            continue
        focus_line = entry.get("focus_line")
        if focus_line is not None and not _is_int(focus_line):
            errors.append(f"{label}: non-integer focus_line {focus_line!r}")
            continue
        path = base_dir / entry["path"]
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            errors.append(f"{label}: cannot read {path}: {exc}")
            continue
        snippets.append(FileSnippet(filename=entry["path"], content=content, focus_line=focus_line))
    return snippets


def _parse_message(raw: Any, index: int, base_dir: Path, errors: list[str]) -> Element | None:
    where = f"Message {index}"
    if not isinstance(raw, dict):
        errors.append(f"{where}: must be a mapping")
        return None

    unknown = sorted(set(raw) - _MESSAGE_KEYS)
    if unknown:
        errors.append(f"{where}: unknown field(s) {unknown}")
    role = raw.get("role")
    if role not in _VALID_ROLES:
        errors.append(f"{where}: role must be one of {sorted(_VALID_ROLES)}, got {role!r}")
        return None

    bodies = [key for key in _BODY_KEYS if key in raw]
    if len(bodies) != 1:
        errors.append(f"{where}: needs exactly one of {list(_BODY_KEYS)}, got {bodies}")
        return None

    body = bodies[0]
    before = len(errors)
    if body == "content":
        if not isinstance(raw["content"], str):
            errors.append(f"{where}: 'content' must be a string")
        children: Any = raw.get("content")
    elif body == "parts":
        children = _parse_parts(raw["parts"], where, errors)
    else:
        children = file_context(_parse_files(raw["files"], where, base_dir, errors))
    if len(errors) > before:
        return None

    try:
        return message(
            ChatRole(role),
            children,
            priority=raw.get("priority"),
            name=raw.get("name"),
            flex_grow=raw.get("flex_grow"),
            flex_basis=raw.get("flex_basis", 0),
        )
    except ConfigurationError as exc:
        errors.extend(f"{where}: {e}" for e in exc.errors)
        return None


def parse_prompt(data: Any, source: str = "", base_dir: Path | None = None) -> PromptDocument:
    """Build a PromptDocument from already-parsed YAML data.

    Raises:
        ConfigurationError: Listing every problem found in the document.
    """
    base_dir = base_dir if base_dir is not None else Path.cwd()
    name = source or "<prompt>"

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid prompt document {name}: expected a mapping at the top level",
            errors=["top level must be a mapping"],
        )

    errors: list[str] = []
    max_prompt_tokens = data.get("max_prompt_tokens")
    if max_prompt_tokens is not None and not _is_int(max_prompt_tokens):
        errors.append(f"max_prompt_tokens must be an integer, got {max_prompt_tokens!r}")

    raw_messages = data.get("messages")
    if not isinstance(raw_messages, list) or not raw_messages:
        errors.append("'messages' must be a non-empty list")
        raw_messages = []

    messages = [_parse_message(raw, i, base_dir, errors) for i, raw in enumerate(raw_messages)]

    if errors:
        raise ConfigurationError(
            f"Invalid prompt document {name}: {len(errors)} problem(s)", errors=errors,
        )

    return PromptDocument(
        root=fragment(messages),
        max_prompt_tokens=max_prompt_tokens,
        source=source,
    )


def load_prompt(path: Path | str) -> PromptDocument:
    """Load a prompt document from a YAML file.

    File paths inside the document resolve relative to its directory.

    Raises:
        ConfigurationError: If the file is missing, is not valid YAML, or
            does not describe a prompt.
    """
    path = Path(path)
    source = str(path)

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read prompt document {source}: {exc}") from exc

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {source}: {exc}") from exc

    return parse_prompt(data, source=source, base_dir=path.parent)
