"""Selection resolution: the watch and pick paths.

A selection is a key, a selector function, or a list/tuple/mapping of
those (nested freely). Resolution runs in two passes so that a bad selection
never leaves half its subscriptions behind:

1. plan: validate every key and trace every selector, collecting the cells
   to track;
2. commit: register the active binding on each of those cells once, then
   build the result in the same shape as the selection.
"""

from __future__ import annotations

import functools
from collections.abc import Mapping
from typing import Any, Callable

from pickwatch._tracking import current_binding, trace
from pickwatch.errors import InvalidArgumentError
from pickwatch.model import Model, View

_PICK_USAGE = (
    "Pick requires a model key string, function, or list/tuple/mapping "
    "containing keys and functions"
)


class _Plan:
    """Cells to track for one resolution call, in first-seen order."""

    __slots__ = ("keys", "snapshots")

    def __init__(self) -> None:
        self.keys: dict[str, None] = {}
        self.snapshots: dict[str, Any] = {}

    def track(self, keys) -> None:
        for key in keys:
            self.keys[key] = None


class Resolver:
    """Resolves watch/pick arguments against one Model."""

    __slots__ = ("_model",)

    def __init__(self, model: Model) -> None:
        self._model = model

    # --- Public operations ---

    def resolve_all(self, keys: list[str] | tuple[str, ...] | None = None) -> View:
        """Explicit watch. None tracks every cell. Returns the live view."""
        if keys is None:
            keys = self._model.cell_keys()
        elif not isinstance(keys, (list, tuple)) or not all(isinstance(k, str) for k in keys):
            raise InvalidArgumentError("Watch requires a list of model keys")

        plan = _Plan()
        # Functions are never tracked; naming one in a watch list is allowed.
        plan.track(k for k in keys if not self._model.is_function(k))
        self._commit(plan)
        return self._model.view

    def resolve_one(self, item: str | Callable) -> Any:
        """A single key or selector. Function-backed keys come back untracked."""
        if not isinstance(item, str) and not callable(item):
            raise InvalidArgumentError("Pick requires a model key string or function")
        return self.pick(item)

    def trace_function(self, fn: Callable) -> Any:
        """Track every key fn reads, then run fn against the live view."""
        if not callable(fn):
            raise InvalidArgumentError(f"Expected a selector function, got {type(fn).__name__}")
        return self.pick(fn)

    def resolve_sequence(self, items: list | tuple) -> list | tuple:
        if not isinstance(items, (list, tuple)):
            raise InvalidArgumentError(f"Expected a list or tuple, got {type(items).__name__}")
        return self.pick(items)

    def resolve_mapping(self, items: Mapping) -> dict:
        if not isinstance(items, Mapping):
            raise InvalidArgumentError(f"Expected a mapping, got {type(items).__name__}")
        return self.pick(items)

    def pick(self, selection: Any) -> Any:
        """Resolve selection, preserving its shape."""
        if selection is True:
            return self.resolve_all()
        if selection is False:
            return self._model.view

        plan = _Plan()
        node = self._plan(selection, plan, top=True)
        self._commit(plan)
        return self._build(node, plan)

    # --- Plan ---

    def _plan(self, selection: Any, plan: _Plan, top: bool = False):
        if isinstance(selection, str):
            if self._model.is_function(selection):
                return ("value", self._model.get(selection))
            plan.track((selection,))
            return ("key", selection)

        if isinstance(selection, (list, tuple)):
            shape = tuple if isinstance(selection, tuple) else list
            return ("seq", shape, [self._plan(s, plan) for s in selection])

        if isinstance(selection, Mapping):
            return ("map", {k: self._plan(s, plan) for k, s in selection.items()})

        if callable(selection):
            plan.track(trace(self._model, selection))
            return ("call", selection)

        if top:
            raise InvalidArgumentError(_PICK_USAGE)
        raise InvalidArgumentError(
            f"Pick requires a model key string or function, got {type(selection).__name__}"
        )

    # --- Commit ---

    def _commit(self, plan: _Plan) -> None:
        binding = current_binding.get()
        for key in plan.keys:
            plan.snapshots[key] = self._sync(binding, key)

    def _sync(self, binding, key: str) -> Any:
        cell = self._model.cell(key)
        if binding is None:
            return cell.read()
        return binding(
            functools.partial(self._model.subscribe, key),
            cell.read,
            lambda: cell.initial,
        )

    def _build(self, node, plan: _Plan) -> Any:
        kind = node[0]
        if kind == "key":
            return plan.snapshots[node[1]]
        if kind == "value":
            return node[1]
        if kind == "call":
            return node[1](self._model.view)
        if kind == "seq":
            return node[1](self._build(child, plan) for child in node[2])
        return {k: self._build(child, plan) for k, child in node[1].items()}
