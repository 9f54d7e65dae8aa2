"""ModelHandle: the public surface of a model.

``create_model`` wraps a record and returns a handle:

    counter = create_model({
        "count": 0,
        "increment": lambda self: setattr(self, "count", self.count + 1),
    })

    counter()                       # live view, untracked
    counter(["count"])              # watch count, returns the view
    counter.pick(lambda m: m.count * 2)
    counter.pick({"n": "count", "inc": "increment"})
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any

from pickwatch._tracking import FunctionMemo
from pickwatch.cell import Listener, Unsubscribe
from pickwatch.config import ModelOptions
from pickwatch.errors import InvalidArgumentError
from pickwatch.model import Model, View
from pickwatch.selection import Resolver

_UNSET = object()


class ModelHandle:
    """Callable handle onto a Model with watch/pick resolution."""

    __slots__ = ("_model", "_resolver")

    def __init__(self, model: Model) -> None:
        self._model = model
        self._resolver = Resolver(model)

    @property
    def model(self) -> Model:
        return self._model

    @property
    def memo(self) -> FunctionMemo:
        return self._model.memo

    def __call__(self, keys: Any = _UNSET) -> View:
        """No argument: the live view. A key list: watch those keys.

        ``True`` watches every key, ``False`` is the same as no argument.
        """
        if keys is _UNSET or keys is False:
            return self._model.view
        if keys is True:
            return self._resolver.resolve_all()
        if isinstance(keys, (list, tuple)):
            return self._resolver.resolve_all(keys)
        raise InvalidArgumentError("A model handle takes a list of keys, True, False, or nothing")

    def get(self) -> View:
        """The live view. Reads and writes here are never tracked."""
        return self._model.view

    def watch(self, keys: list[str] | tuple[str, ...] | None = None) -> View:
        return self._resolver.resolve_all(keys)

    def pick(self, selection: Any) -> Any:
        return self._resolver.pick(selection)

    def subscribe(self, key: str, listener: Listener) -> Unsubscribe:
        return self._model.subscribe(key, listener)

    def __repr__(self) -> str:
        return f"ModelHandle({self._model!r})"


def create_model(
    record: Mapping[str, Any],
    options: ModelOptions | Mapping[str, object] | None = None,
    *,
    debug: bool | None = None,
) -> ModelHandle:
    """Wrap record in a Model and return its handle.

    ``debug`` overrides the same field in options.
    """
    opts = ModelOptions.coerce(options)
    if debug is not None:
        opts = dataclasses.replace(opts, debug=debug)
    return ModelHandle(Model(record, opts))
