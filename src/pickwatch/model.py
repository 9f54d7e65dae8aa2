"""Model: the reactive cell registry.

A Model owns the record it was built from. Every value entry becomes a Cell;
every callable entry is installed as-is (plain functions are bound to the
model's View so ``self`` inside them reads and writes through the model).
The key table is closed once construction finishes: values change, keys
never do.
"""

from __future__ import annotations

import inspect
import logging
import types
from collections.abc import Iterator, Mapping
from typing import Any, Callable

from pickwatch._tracking import FunctionMemo
from pickwatch.cell import Cell, Listener, Unsubscribe
from pickwatch.config import ModelOptions
from pickwatch.errors import ConfigurationError, ReadOnlyError, UnknownKeyError

logger = logging.getLogger("pickwatch.model")


class Model:
    """Registry of cells and bound functions built from a plain mapping."""

    __slots__ = ("_entries", "_cells", "_functions", "_options", "_view", "memo")

    def __init__(
        self,
        record: Mapping[str, Any],
        options: ModelOptions | Mapping[str, object] | None = None,
    ) -> None:
        if not isinstance(record, Mapping):
            raise ConfigurationError(
                f"A model requires a mapping of keys to values, got {type(record).__name__}"
            )
        bad = [k for k in record if not isinstance(k, str)]
        if bad:
            raise ConfigurationError(f"Model keys must be strings, got {bad[0]!r}")
        dunders = [k for k in record if k.startswith("__") and k.endswith("__")]
        if dunders:
            raise ConfigurationError(
                f"Model keys of the form __name__ are reserved, got {dunders[0]!r}"
            )

        self._options = ModelOptions.coerce(options)
        self._entries: Mapping[str, Any] = types.MappingProxyType(dict(record))
        self._view = View(self)
        self.memo = FunctionMemo()

        cells: dict[str, Cell] = {}
        functions: dict[str, Callable] = {}
        for key, value in self._entries.items():
            if isinstance(value, staticmethod):
                functions[key] = value.__func__
            elif isinstance(value, classmethod):
                raise ConfigurationError(
                    f"{key!r} is a classmethod; use a plain function or a staticmethod"
                )
            elif callable(value):
                functions[key] = self._bind(value)
            else:
                cells[key] = Cell(key, value)

        # Closed tables from here on.
        self._cells: Mapping[str, Cell] = types.MappingProxyType(cells)
        self._functions: Mapping[str, Callable] = types.MappingProxyType(functions)

    def _bind(self, fn: Callable) -> Callable:
        if inspect.isfunction(fn):
            return types.MethodType(fn, self._view)
        return fn

    # --- Introspection ---

    @property
    def options(self) -> ModelOptions:
        return self._options

    @property
    def view(self) -> View:
        """The live, untracked view of this model."""
        return self._view

    @property
    def entries(self) -> Mapping[str, Any]:
        """The record the model was built from (read-only)."""
        return self._entries

    def keys(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def cell_keys(self) -> tuple[str, ...]:
        return tuple(self._cells)

    def is_function(self, key: str) -> bool:
        self._require(key)
        return key in self._functions

    def cell(self, key: str) -> Cell:
        """The Cell behind key. Function-backed keys have none."""
        self._require(key)
        try:
            return self._cells[key]
        except KeyError:
            raise ReadOnlyError(f"{key!r} is a function and has no observable state") from None

    def _require(self, key: object) -> None:
        if key not in self._entries:
            raise UnknownKeyError(key)

    # --- Registry operations ---

    def get(self, key: str) -> Any:
        """Current value of a cell, or the bound function."""
        self._require(key)
        if key in self._functions:
            return self._functions[key]
        return self._cells[key].read()

    def set(self, key: str, value: Any) -> None:
        """Write a cell and notify its listeners synchronously."""
        self._require(key)
        if key in self._functions:
            raise ReadOnlyError(f"{key!r} is a function and cannot be assigned")
        cell = self._cells[key]
        self.debug_log(key, value)
        cell.write(value)

    def subscribe(self, key: str, listener: Listener) -> Unsubscribe:
        """Register listener on key's cell. Returns an idempotent unsubscribe."""
        return self.cell(key).subscribe(listener)

    def debug_log(self, key: str, value: Any) -> None:
        if self._options.debug:
            logger.info("State change: %s = %r", key, value)

    def __repr__(self) -> str:
        state = ", ".join(f"{k}={c.read()!r}" for k, c in self._cells.items())
        return f"Model({state})"


def _model_of(view: View) -> Model:
    return object.__getattribute__(view, "_model")


class View:
    """Attribute and item access onto a Model.

    ``view.count`` reads the cell, ``view.count = 1`` writes it and notifies.
    Functions come back bound. Every non-dunder attribute is a record key, so
    keys never collide with the view's own internals. Keys outside the
    original record are rejected in both directions: the view cannot grow.
    """

    __slots__ = ("_model",)

    def __init__(self, model: Model) -> None:
        object.__setattr__(self, "_model", model)

    def __getattribute__(self, name: str) -> Any:
        # Dunders stay on the normal path so copy, pickle and hasattr
        # probing see plain AttributeErrors.
        if name.startswith("__") and name.endswith("__"):
            return object.__getattribute__(self, name)
        return _model_of(self).get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        _model_of(self).set(name, value)

    def __delattr__(self, name: str) -> None:
        _model_of(self)._require(name)
        raise ReadOnlyError(f"Cannot delete {name!r}: model keys are fixed")

    def __getitem__(self, key: str) -> Any:
        return _model_of(self).get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        _model_of(self).set(key, value)

    def __contains__(self, key: object) -> bool:
        return key in _model_of(self).entries

    def __iter__(self) -> Iterator[str]:
        return iter(_model_of(self).keys())

    def __dir__(self) -> list[str]:
        return sorted(_model_of(self).keys())

    def __repr__(self) -> str:
        return f"View({_model_of(self)!r})"
