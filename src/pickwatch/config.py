"""Model configuration.

ModelOptions is frozen after creation; models never mutate their options.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields

from pickwatch.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class ModelOptions:
    """Options recognised by ``create_model``.

    Attributes:
        debug: Log every state change on the ``pickwatch.model`` logger.

    """

    debug: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.debug, bool):
            raise ConfigurationError(f"debug must be a bool, got {type(self.debug).__name__}")

    @classmethod
    def coerce(cls, value: ModelOptions | Mapping[str, object] | None) -> ModelOptions:
        """Build options from None, an existing ModelOptions, or a plain mapping."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise ConfigurationError(
                f"Model options must be a mapping or ModelOptions, got {type(value).__name__}"
            )
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(k) for k in value if k not in known)
        if unknown:
            raise ConfigurationError(f"Unknown model option(s): {', '.join(unknown)}")
        return cls(**value)
