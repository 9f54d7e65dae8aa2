"""Pickwatch error hierarchy.

All pickwatch errors inherit from PickwatchError for easy catching. Each one
also derives from the builtin a caller would reach for first, so
``except LookupError`` still sees an unknown key.
"""

from __future__ import annotations


class PickwatchError(Exception):
    """Base error for all pickwatch operations."""


class ConfigurationError(PickwatchError, TypeError):
    """The record or options passed to a model are unusable."""


class UnknownKeyError(PickwatchError, LookupError):
    """A key that was never part of the model's record."""

    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(f"Invalid key: {key!r}. Key does not exist in the model")


class ReadOnlyError(PickwatchError, AttributeError):
    """Write, subscribe, or delete on something that cannot change."""


class InvalidArgumentError(PickwatchError, TypeError):
    """A watch/pick argument of the wrong shape."""


class DependencyTraceError(PickwatchError):
    """A selector raised during its trial execution.

    ``describe`` is a short, log-friendly rendering of the selector; the
    original exception is chained as ``__cause__``.
    """

    def __init__(self, selector: object, describe: str, message: str) -> None:
        self.selector = selector
        self.describe = describe
        super().__init__(
            f"Failed to determine dependencies of a function\n\t{describe}\n{message}"
        )
