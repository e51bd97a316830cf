"""Element tree: the declarative prompt before evaluation.

Every node is an Element tagged with an ElementKind. The evaluator matches
on the kind; there is no per-kind subclassing. Use the constructor
functions below rather than building Elements directly:

    system_message("Be helpful", priority=100)
    user_message(text("Context: "), text(ctx, prunable=True), priority=80)
    component(render_history, props, priority=70, flex_grow=1)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from .errors import ConfigurationError
from .messages import ChatRole

if TYPE_CHECKING:
    from .sizing import PromptSizing

# Priority of nodes with no explicit priority and no prioritized ancestor.
# Unprioritized content outranks every explicit priority below this value.
DEFAULT_PRIORITY = 1_000_000


class ElementKind(Enum):
    MESSAGE = "message"
    TEXT = "text"
    FRAGMENT = "fragment"
    COMPONENT = "component"


# Anything accepted where children are expected. None and False are skipped
# so conditional children read naturally: `ctx and text(ctx)`.
Child = Union["Element", str, int, float, None, bool, list, tuple]

# Render step of a component: (props, sizing) -> children, sync or async.
RenderStep = Callable[[Any, "PromptSizing"], Union[Child, Awaitable[Child]]]


@dataclass(frozen=True)
class Element:
    """A node of the declarative prompt tree.

    priority, flex_grow and flex_basis are fixed at construction. A priority
    of None means "inherit from the nearest ancestor that has one".
    """

    kind: ElementKind
    priority: int | None = None
    flex_grow: float | None = None
    flex_basis: int = 0
    children: tuple[Element, ...] = ()
    text: str = ""
    role: ChatRole | None = None
    name: str | None = None
    render: RenderStep | None = None
    props: Any = None
    prunable: bool = False
    references: tuple[Any, ...] = ()
    metadata: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        """Validate node attributes."""
        errors = []

        if self.priority is not None and (
            isinstance(self.priority, bool) or not isinstance(self.priority, int)
        ):
            errors.append(f"priority must be an integer, got {self.priority!r}")
        if self.flex_grow is not None:
            if isinstance(self.flex_grow, bool) or not isinstance(self.flex_grow, (int, float)):
                errors.append(f"flex_grow must be a number, got {self.flex_grow!r}")
            elif self.flex_grow < 0:
                errors.append(f"flex_grow must be >= 0, got {self.flex_grow}")
        if isinstance(self.flex_basis, bool) or not isinstance(self.flex_basis, int):
            errors.append(f"flex_basis must be an integer, got {self.flex_basis!r}")
        elif self.flex_basis < 0:
            errors.append(f"flex_basis must be >= 0, got {self.flex_basis}")

        if self.kind is ElementKind.MESSAGE and not isinstance(self.role, ChatRole):
            errors.append(f"message elements need a ChatRole, got {self.role!r}")
        if self.kind is ElementKind.TEXT:
            if not isinstance(self.text, str):
                errors.append(f"text must be a string, got {type(self.text).__name__}")
            if self.children:
                errors.append("text elements cannot have children")
        if self.kind is ElementKind.COMPONENT and not callable(self.render):
            errors.append(f"component elements need a callable render step, got {self.render!r}")

        if errors:
            raise ConfigurationError(f"Invalid {self.kind.value} element: {'; '.join(errors)}", errors=errors)

    @property
    def is_flex(self) -> bool:
        return self.flex_grow is not None

    @property
    def label(self) -> str:
        """Short description for log and error messages."""
        if self.kind is ElementKind.MESSAGE:
            return f"{self.role.value} message"
        if self.kind is ElementKind.COMPONENT:
            return f"component {getattr(self.render, '__qualname__', repr(self.render))}"
        return self.kind.value


def to_elements(children: Child | tuple[Child, ...]) -> tuple[Element, ...]:
    """Normalize children into a flat tuple of Elements.

    Strings and numbers become text leaves, lists and tuples are flattened,
    None and booleans are dropped.
    """
    result: list[Element] = []
    _collect(children, result)
    return tuple(result)


def _collect(child: Any, out: list[Element]) -> None:
    if child is None or isinstance(child, bool):
        return
    if isinstance(child, Element):
        out.append(child)
    elif isinstance(child, str):
        out.append(Element(kind=ElementKind.TEXT, text=child))
    elif isinstance(child, (int, float)):
        out.append(Element(kind=ElementKind.TEXT, text=str(child)))
    elif isinstance(child, (list, tuple)):
        for item in child:
            _collect(item, out)
    else:
        raise ConfigurationError(
            f"Cannot use {type(child).__name__} as a prompt element",
            errors=[f"unsupported child type: {type(child).__name__}"],
        )


def text(
    content: str,
    *,
    priority: int | None = None,
    prunable: bool = False,
    references: tuple[Any, ...] = (),
    metadata: tuple[Any, ...] = (),
) -> Element:
    """A literal text leaf. Set prunable=True to let the pruner drop it on its own."""
    return Element(
        kind=ElementKind.TEXT,
        text=content,
        priority=priority,
        prunable=prunable,
        references=tuple(references),
        metadata=tuple(metadata),
    )


def message(
    role: ChatRole,
    *children: Child,
    priority: int | None = None,
    name: str | None = None,
    flex_grow: float | None = None,
    flex_basis: int = 0,
    references: tuple[Any, ...] = (),
    metadata: tuple[Any, ...] = (),
) -> Element:
    """A message container whose children render into one role-tagged message."""
    return Element(
        kind=ElementKind.MESSAGE,
        role=role,
        children=to_elements(children),
        priority=priority,
        name=name,
        flex_grow=flex_grow,
        flex_basis=flex_basis,
        references=tuple(references),
        metadata=tuple(metadata),
    )


def system_message(*children: Child, **kwargs: Any) -> Element:
    return message(ChatRole.SYSTEM, *children, **kwargs)


def user_message(*children: Child, **kwargs: Any) -> Element:
    return message(ChatRole.USER, *children, **kwargs)


def assistant_message(*children: Child, **kwargs: Any) -> Element:
    return message(ChatRole.ASSISTANT, *children, **kwargs)


def fragment(*children: Child) -> Element:
    """Group children without a node of their own; they splice into the parent."""
    return Element(kind=ElementKind.FRAGMENT, children=to_elements(children))


def component(
    render: RenderStep,
    props: Any = None,
    *,
    priority: int | None = None,
    flex_grow: float | None = None,
    flex_basis: int = 0,
    prunable: bool = False,
    references: tuple[Any, ...] = (),
    metadata: tuple[Any, ...] = (),
) -> Element:
    """A node whose content is produced by render(props, sizing) at evaluation time.

    The render step may be a plain function or a coroutine function and
    may return anything accepted as children, including further components.
    """
    return Element(
        kind=ElementKind.COMPONENT,
        render=render,
        props=props,
        priority=priority,
        flex_grow=flex_grow,
        flex_basis=flex_basis,
        prunable=prunable,
        references=tuple(references),
        metadata=tuple(metadata),
    )
