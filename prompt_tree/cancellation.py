"""Cancellation signal shared by every suspension point of one render call.

A CancellationSource owns the flag and broadcasts to subscribers exactly
once. Listeners registered after cancellation are called immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .errors import CancellationError

logger = logging.getLogger(__name__)

Listener = Callable[[], object]


class Subscription:
    """Handle returned by CancellationToken.on_cancelled()."""

    def __init__(self, token: CancellationToken, listener: Listener) -> None:
        self._token = token
        self._listener = listener

    def dispose(self) -> None:
        """Stop receiving the cancellation notification."""
        self._token._remove(self._listener)


class CancellationToken:
    """Read side of a cancellation signal, passed into render calls."""

    def __init__(self) -> None:
        self._cancelled = False
        self._listeners: list[Listener] = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def on_cancelled(self, listener: Listener) -> Subscription:
        """Register a listener; fires now if the token is already cancelled."""
        if self._cancelled:
            listener()
        else:
            self._listeners.append(listener)
        return Subscription(self, listener)

    def raise_if_cancelled(self) -> None:
        """Raise CancellationError if the signal has fired."""
        if self._cancelled:
            raise CancellationError("Render cancelled")

    def _remove(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _fire(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        listeners, self._listeners = self._listeners, []
        logger.debug("Cancellation requested, notifying %d listener(s)", len(listeners))
        for listener in listeners:
            listener()


class CancellationSource:
    """Creates and controls a CancellationToken.

    Usage:
        source = CancellationSource()
        task = asyncio.create_task(render_prompt(..., cancellation=source.token))
        source.cancel()
    """

    def __init__(self) -> None:
        self._token = CancellationToken()

    @property
    def token(self) -> CancellationToken:
        return self._token

    def cancel(self) -> None:
        """Fire the signal. Subsequent calls are no-ops."""
        self._token._fire()


def check_cancelled(token: CancellationToken | None) -> None:
    """Raise CancellationError if token is set and cancelled."""
    if token is not None:
        token.raise_if_cancelled()
