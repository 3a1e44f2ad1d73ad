"""
View-Model Signals.

Minimal synchronous observer used to push state changes from the engine
to the presentation layer (notes changed, search results changed,
selection changed, error raised).

Handlers run in connection order on the emitting call stack. A handler
that raises propagates to the emitter.

Usage:
    from modules.client.events.signals import Signal

    notes_changed = Signal("notes_changed")
    notes_changed.connect(render_list)
    notes_changed.emit(notes)
"""

from collections.abc import Callable
from typing import Any

from modules.client.core.logging import get_logger

logger = get_logger(__name__)

Handler = Callable[..., Any]


class Signal:
    """A named list of callbacks."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: list[Handler] = []

    def connect(self, handler: Handler) -> Callable[[], None]:
        """
        Register a handler.

        Connecting the same handler twice is a no-op.

        Returns:
            A callable that disconnects the handler
        """
        if handler not in self._handlers:
            self._handlers.append(handler)
        return lambda: self.disconnect(handler)

    def disconnect(self, handler: Handler) -> None:
        """Remove a handler if it is connected."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, *args: Any) -> None:
        """Call every connected handler with the given arguments."""
        logger.debug(
            "Signal emitted",
            extra={"signal": self.name, "handlers": len(self._handlers)},
        )
        for handler in list(self._handlers):
            handler(*args)

    def __len__(self) -> int:
        return len(self._handlers)
