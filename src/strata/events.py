"""
Synchronous event notifier.

Event is the only notification primitive used by the collection stack:
listeners are registered on an event and invoked in registration order,
synchronously, with a single payload whenever the event is raised.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

_logger = _logging.getLogger(__name__)

P = _typing.TypeVar("P")

Listener: _typing.TypeAlias = _typing.Callable[[P], _typing.Any]


class Event(_typing.Generic[P]):
    """
    A minimal synchronous publish mechanism.

    Listeners are called in the order they were added. Adding or removing
    listeners while the event is being raised does not affect the dispatch
    already in progress.

    A listener that raises is logged and skipped; the remaining listeners
    still run.

    Example:
        >>> event: Event[str] = Event()
        >>> remove = event.add_listener(print)
        >>> event.raise_event("hello")
        hello
        >>> remove()
    """

    def __init__(self) -> None:
        self._listeners: list[Listener[P]] = []
        self._destroyed = False

    @property
    def number_of_listeners(self) -> int:
        """Number of currently registered listeners."""
        return len(self._listeners)

    @property
    def destroyed(self) -> bool:
        """Whether destroy() has been called."""
        return self._destroyed

    def add_listener(self, listener: Listener[P]) -> _typing.Callable[[], bool]:
        """
        Register a listener.

        Args:
            listener: Callable invoked with the payload of each raise.

        Returns:
            A zero-argument callable that removes the listener again.
        """
        if self._destroyed:
            _logger.warning("Ignoring listener added to a destroyed event")
            return lambda: False

        self._listeners.append(listener)
        return lambda: self.remove_listener(listener)

    def remove_listener(self, listener: Listener[P]) -> bool:
        """
        Unregister a listener.

        Returns:
            True if the listener was registered, False otherwise.
        """
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def raise_event(self, payload: P) -> None:
        """Invoke all listeners synchronously with payload."""
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception as e:
                _logger.warning("Event listener %r failed: %s", listener, e)

    def destroy(self) -> None:
        """Remove all listeners and disable the event permanently."""
        self._listeners.clear()
        self._destroyed = True
