"""Dependency tracking engine: the heart of pickwatch.

Two pieces of state drive tracking:

- ``current_binding`` names the external subscription primitive of whoever
  is resolving right now (a render pass, usually). Resolution registers that
  binding on every cell it touches.
- ``FunctionMemo`` remembers which keys each selector reads, so a selector
  is only traced through a RecordingView the first time it is seen.

Tracing assumes a selector reads the same keys every time it runs. A
selector whose reads depend on state (``m.b if m.a else m.c``) is cached
with whichever branch the trial run took.
"""

from __future__ import annotations

import contextvars
import inspect
import logging
from collections.abc import Hashable
from typing import TYPE_CHECKING, Any, Callable, Protocol

from pickwatch.errors import DependencyTraceError, UnknownKeyError

if TYPE_CHECKING:
    from pickwatch.cell import Listener, Unsubscribe
    from pickwatch.model import Model

logger = logging.getLogger("pickwatch.tracking")


class SubscriptionPrimitive(Protocol):
    """The host runtime's hook for binding a cell to its render cycle."""

    def __call__(
        self,
        subscribe: Callable[[Listener], Unsubscribe],
        get_snapshot: Callable[[], Any],
        get_initial_snapshot: Callable[[], Any],
    ) -> Any: ...


# The primitive of the consumer currently resolving, if any.
current_binding: contextvars.ContextVar[SubscriptionPrimitive | None] = contextvars.ContextVar(
    "current_binding", default=None
)


def selector(identity: Hashable) -> Callable[[Callable], Callable]:
    """Decorator: give a selector an explicit memo identity.

    Usage:
        @selector("cart.total")
        def total(m):
            return sum(m.prices)
    """

    def decorate(fn: Callable) -> Callable:
        fn.selector_id = identity
        return fn

    return decorate


class _ByIdentity:
    """Memo-key wrapper for unhashable captured values: equal only to itself."""

    __slots__ = ("obj",)

    def __init__(self, obj: object) -> None:
        self.obj = obj

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _ByIdentity) and other.obj is self.obj

    def __hash__(self) -> int:
        return id(self.obj)


def _freeze(value: object) -> Hashable:
    try:
        hash(value)
    except TypeError:
        return _ByIdentity(value)
    # Typed so that 1, 1.0 and True stay distinct captures.
    return (type(value), value)


def selector_identity(fn: Callable) -> Hashable:
    """Memo key for a selector.

    An explicit ``selector_id`` wins. Otherwise a plain function is keyed by
    its code object plus everything it captured: closure cells, defaults and
    the bound ``self``. Lambdas re-created from the same definition over the
    same values share a key; closures from one factory over different values
    do not. Other callables are keyed by themselves.
    """
    explicit = getattr(fn, "selector_id", None)
    if explicit is not None:
        return explicit
    code = getattr(fn, "__code__", None)
    if code is None:
        return fn
    try:
        cells = getattr(fn, "__closure__", None) or ()
        captured = tuple(_freeze(c.cell_contents) for c in cells)
    except ValueError:
        # Empty cell: the enclosing variable is not assigned yet.
        return fn
    defaults = tuple(_freeze(d) for d in getattr(fn, "__defaults__", None) or ())
    kwdefaults = getattr(fn, "__kwdefaults__", None) or {}
    # Code equality ignores the file name.
    return (
        code.co_filename,
        code,
        captured,
        defaults,
        tuple((k, _freeze(v)) for k, v in sorted(kwdefaults.items())),
        _freeze(getattr(fn, "__self__", None)),
    )


def describe(fn: Callable) -> str:
    """Short, single-line rendering of a selector for error messages."""
    name = getattr(fn, "__qualname__", None) or repr(fn)
    try:
        source = inspect.getsource(fn).strip()
    except (OSError, TypeError):
        return name
    first = source.splitlines()[0]
    if len(first) > 80:
        first = first[:77] + "..."
    return f"{name}: {first}"


def _noop(*args: Any, **kwargs: Any) -> None:
    return None


class RecordingView:
    """Stand-in view handed to a selector during its trial run.

    Every non-dunder attribute is a record key, so a key may share a name
    with the recorder's own internals. Value reads are appended to
    ``keys_read`` and answered from the model. Function reads get a no-op,
    writes are dropped: the trial run cannot change anything.
    """

    __slots__ = ("_model", "_keys_read")

    def __init__(self, model: Model, keys_read: list[str]) -> None:
        object.__setattr__(self, "_model", model)
        object.__setattr__(self, "_keys_read", keys_read)

    def _read(self, key: str) -> Any:
        model = object.__getattribute__(self, "_model")
        if model.is_function(key):
            return _noop
        object.__getattribute__(self, "_keys_read").append(key)
        return model.get(key)

    def __getattribute__(self, name: str) -> Any:
        if name.startswith("__") and name.endswith("__"):
            return object.__getattribute__(self, name)
        return object.__getattribute__(self, "_read")(name)

    def __getitem__(self, key: str) -> Any:
        return object.__getattribute__(self, "_read")(key)

    def __setattr__(self, name: str, value: Any) -> None:
        pass

    def __setitem__(self, key: str, value: Any) -> None:
        pass

    def __delattr__(self, name: str) -> None:
        pass

    def __contains__(self, key: object) -> bool:
        return key in object.__getattribute__(self, "_model").entries

    def __repr__(self) -> str:
        return f"RecordingView(keys_read={object.__getattribute__(self, '_keys_read')!r})"


class FunctionMemo:
    """Append-only map of selector identity -> keys the selector reads."""

    __slots__ = ("_keys", "traces")

    def __init__(self) -> None:
        self._keys: dict[Hashable, tuple[str, ...]] = {}
        self.traces = 0  # trial executions performed

    def get(self, identity: Hashable) -> tuple[str, ...] | None:
        return self._keys.get(identity)

    def record(self, identity: Hashable, keys: list[str]) -> tuple[str, ...]:
        deduped = tuple(dict.fromkeys(keys))
        # A concurrent duplicate trace writes the same keys; last one wins.
        self._keys[identity] = deduped
        return deduped

    def __contains__(self, fn: object) -> bool:
        if callable(fn):
            return selector_identity(fn) in self._keys
        return fn in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"FunctionMemo({len(self._keys)} selectors, {self.traces} traces)"


def trace(model: Model, fn: Callable) -> tuple[str, ...]:
    """Keys fn reads, from the memo or from a trial run against a RecordingView.

    UnknownKeyError from the trial propagates as-is; anything else the
    selector raises becomes a DependencyTraceError.
    """
    identity = selector_identity(fn)
    keys = model.memo.get(identity)
    if keys is not None:
        return keys

    keys_read: list[str] = []
    recorder = RecordingView(model, keys_read)
    try:
        fn(recorder)
    except UnknownKeyError:
        raise
    except Exception as e:
        raise DependencyTraceError(fn, describe(fn), str(e)) from e

    model.memo.traces += 1
    keys = model.memo.record(identity, keys_read)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Traced %s -> %s", describe(fn), keys)
    return keys
