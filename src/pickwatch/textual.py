"""Textual integration for pickwatch. Opt-in: requires textual.

Textual is the host runtime here: an AppBinding re-renders whatever it
guards whenever a cell picked or watched during its last render pass
changes.

    counter = create_model({"count": 0})

    class Counter(Static):
        def on_mount(self):
            self._binding = bind_widget(self.app, self)

        def render(self):
            with self._binding.render():
                return f"Count: {counter.pick('count')}"

        def on_unmount(self):
            self._binding.dispose()
"""

import functools
import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from pickwatch.binding import Binding

logger = logging.getLogger("pickwatch.textual")

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend app bindings while widgets are being replaced."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


class AppBinding(Binding):
    """Binding whose change handler is guarded for a Textual app.

    A change is dropped when the binding is disposed, the app is paused or
    not running. Changes from other threads are marshalled through
    ``app.call_from_thread``, and the disposed check runs again once they
    land, since the widget may unmount in between. NoMatches raised by the
    callback's widget queries is ignored.
    """

    __slots__ = ("_app", "_callback", "_main")

    def __init__(self, app, callback) -> None:
        super().__init__(self._guarded)
        self._app = app
        self._callback = callback
        self._main = threading.get_ident()

    def _guarded(self) -> None:
        if self.disposed or not is_safe(self._app):
            logger.debug("Skipped change: binding disposed or app not safe to update")
            return
        if threading.get_ident() != self._main:
            self._app.call_from_thread(self._deliver)
        else:
            self._deliver()

    def _deliver(self) -> None:
        if self.disposed:
            return
        try:
            self._callback()
        except NoMatches:
            logger.debug("Skipped change: widget query found no match")


def bind(app, callback) -> AppBinding:
    """AppBinding that calls callback on every change it depends on."""
    return AppBinding(app, callback)


def bind_widget(app, widget, *, layout: bool = False) -> AppBinding:
    """AppBinding that refreshes widget on every change it depends on."""
    return AppBinding(app, functools.partial(widget.refresh, layout=layout))
