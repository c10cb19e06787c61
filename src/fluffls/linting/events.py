"""Event source the linting provider subscribes to."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fluffls.linting.types import LintDocument

__all__ = ["DocumentEvents", "Signal", "Subscription"]

logger = logging.getLogger("fluffls.linting.events")

Handler = Callable[..., Any]


class Subscription:
    """Handle returned by ``Signal.connect``; disposing it disconnects."""

    def __init__(self, signal: Signal, handler: Handler) -> None:
        self._signal = signal
        self._handler = handler
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._signal._disconnect(self)


class Signal:
    """A named list of handlers called synchronously on ``emit``."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: list[tuple[Subscription, Handler]] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def connect(self, handler: Handler) -> Subscription:
        subscription = Subscription(self, handler)
        self._subscriptions.append((subscription, handler))
        return subscription

    def emit(self, *args: Any) -> None:
        """Call every handler; a failing handler is logged and skipped."""
        for subscription, handler in list(self._subscriptions):
            if subscription.disposed:
                continue
            try:
                handler(*args)
            except Exception:
                logger.exception("Error in %s handler", self.name)

    def _disconnect(self, subscription: Subscription) -> None:
        self._subscriptions = [
            entry for entry in self._subscriptions if entry[0] is not subscription
        ]


class DocumentEvents:
    """Lifecycle events of documents plus configuration changes.

    ``opened``, ``saved`` and ``changed`` carry a ``LintDocument``;
    ``closed`` carries the document uri; ``configuration_changed`` carries
    nothing.
    """

    def __init__(self) -> None:
        self.opened = Signal("opened")
        self.saved = Signal("saved")
        self.changed = Signal("changed")
        self.closed = Signal("closed")
        self.configuration_changed = Signal("configuration_changed")

    def emit_opened(self, document: LintDocument) -> None:
        self.opened.emit(document)

    def emit_saved(self, document: LintDocument) -> None:
        self.saved.emit(document)

    def emit_changed(self, document: LintDocument) -> None:
        self.changed.emit(document)

    def emit_closed(self, uri: str) -> None:
        self.closed.emit(uri)

    def emit_configuration_changed(self) -> None:
        self.configuration_changed.emit()
