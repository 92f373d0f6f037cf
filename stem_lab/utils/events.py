"""
Publish/subscribe primitive used for every lab notification.

Each notification kind is one EventChannel holding an ordered listener list.
Components that subscribe to other components keep the listeners they
registered and remove them again in their ``dispose()`` method.
"""

from typing import Any, Callable, List

Listener = Callable[..., Any]


class EventChannel:
    """Ordered observer list for a single notification kind."""

    def __init__(self, name: str = ""):
        self.name = name
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Listener:
        """Add a listener (a listener already subscribed is not added twice)."""
        if listener not in self._listeners:
            self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Listener) -> bool:
        """Remove a listener; returns False when it was not subscribed."""
        try:
            self._listeners.remove(listener)
            return True
        except ValueError:
            return False

    def emit(self, *args) -> None:
        # Dispatch over a snapshot so listeners may unsubscribe while handling.
        for listener in list(self._listeners):
            listener(*args)

    def clear(self) -> None:
        self._listeners.clear()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def __repr__(self):
        return f"EventChannel({self.name!r}, listeners={len(self._listeners)})"
