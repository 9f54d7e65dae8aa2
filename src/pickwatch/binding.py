"""Binding: a minimal host for the external subscription primitive.

A host runtime (a UI framework, usually) gives the core one callable per
consumer: ``primitive(subscribe, get_snapshot, get_initial_snapshot)``.
Binding is the plain-Python version of that callable. Each render pass
re-declares its dependencies: entering ``render()`` drops the previous
pass's subscriptions, and every watch/pick inside the block subscribes
``on_change`` afresh.

Usage:
    todos = create_model({"todo": "", "done": 0})
    rerender = Binding(lambda: print("re-render"))

    with rerender.render():
        todo = todos.pick("todo")

    todos.get().todo = "milk"   # prints "re-render"
    rerender.dispose()
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator

from pickwatch._tracking import current_binding
from pickwatch.cell import Listener, Unsubscribe


class Binding:
    """Subscribes one change handler to every cell a render pass resolves."""

    __slots__ = ("_on_change", "_disposers", "_disposed")

    def __init__(self, on_change: Listener) -> None:
        self._on_change = on_change
        self._disposers: list[Unsubscribe] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def subscription_count(self) -> int:
        """Subscriptions held from the latest render pass."""
        return len(self._disposers)

    def __call__(
        self,
        subscribe: Callable[[Listener], Unsubscribe],
        get_snapshot: Callable[[], Any],
        get_initial_snapshot: Callable[[], Any],
    ) -> Any:
        if not self._disposed:
            self._disposers.append(subscribe(self._on_change))
        return get_snapshot()

    @contextmanager
    def render(self) -> Iterator[Binding]:
        """Make this binding the active one for a render pass."""
        self.release()
        token = current_binding.set(self)
        try:
            yield self
        finally:
            current_binding.reset(token)

    def release(self) -> None:
        """Drop every subscription from the previous pass."""
        disposers, self._disposers = self._disposers, []
        for dispose in disposers:
            dispose()

    def dispose(self) -> None:
        """Unsubscribe and stop accepting new subscriptions."""
        self._disposed = True
        self.release()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else f"{len(self._disposers)} subscriptions"
        return f"Binding({state})"
