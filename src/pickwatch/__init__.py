"""Pickwatch: dependency-tracked reactive models for Python."""

from importlib.metadata import version as _version

__version__ = _version("pickwatch")

from pickwatch._tracking import current_binding, selector
from pickwatch.binding import Binding
from pickwatch.cell import Cell
from pickwatch.config import ModelOptions
from pickwatch.errors import (
    ConfigurationError,
    DependencyTraceError,
    InvalidArgumentError,
    PickwatchError,
    ReadOnlyError,
    UnknownKeyError,
)
from pickwatch.handle import ModelHandle, create_model
from pickwatch.model import Model, View
# textual is not auto-imported, it is opt-in

__all__ = [
    "Binding",
    "Cell",
    "ConfigurationError",
    "DependencyTraceError",
    "InvalidArgumentError",
    "Model",
    "ModelHandle",
    "ModelOptions",
    "PickwatchError",
    "ReadOnlyError",
    "UnknownKeyError",
    "View",
    "create_model",
    "current_binding",
    "selector",
]
