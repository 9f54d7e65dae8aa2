"""Cells: one observable slot per value entry of a model.

A Cell holds the current value, the value it was created with, and the
listeners to call when it is written. Listeners are plain zero-argument
callables: a notification says "something changed, re-check", it carries no
payload.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]


class Cell(Generic[T]):
    """A single observable value with an insertion-ordered listener set."""

    __slots__ = ("key", "_value", "_initial", "_listeners")

    def __init__(self, key: str, value: T) -> None:
        self.key = key
        self._value = value
        self._initial = value
        # dict as an ordered set: re-adding a listener keeps its first position
        self._listeners: dict[Listener, None] = {}

    @property
    def initial(self) -> T:
        """The value the cell was created with."""
        return self._initial

    @property
    def listeners(self) -> tuple[Listener, ...]:
        return tuple(self._listeners)

    def read(self) -> T:
        return self._value

    def write(self, value: T) -> None:
        """Store value and notify every listener before returning."""
        self._value = value
        self._notify()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register listener. Returns a function that removes it."""
        self._listeners[listener] = None
        active = True

        def _unsubscribe() -> None:
            nonlocal active
            if active:
                active = False
                self._listeners.pop(listener, None)

        return _unsubscribe

    def _notify(self) -> None:
        # Snapshot: listeners may unsubscribe (or subscribe) while running.
        for listener in list(self._listeners):
            listener()

    def __repr__(self) -> str:
        return f"Cell({self.key!r}, {self._value!r})"

