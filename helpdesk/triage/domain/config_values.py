"""
Config Value Objects
====================

Typed entries of the runtime config store.

Each entry is one variant of a tagged union (boolean, number, string).
A variant validates its own value on construction, so an entry that
exists is always well-formed.
"""

import math
import re
from dataclasses import dataclass, replace
from typing import Any, ClassVar, List, Optional, Tuple, Union

from helpdesk.config import ConfigKey
from helpdesk.core import ValidationException


def bump_version(version: str) -> str:
    """
    Increment the patch component of a semver string.

    Raises:
        ValidationException: version has a non-numeric component
    """
    if not version:
        return "1.0.0"
    try:
        parts = [int(p) for p in version.split(".")]
    except ValueError as exc:
        raise ValidationException(
            f"Cannot bump non-numeric version '{version}'", {"version": version}
        ) from exc
    while len(parts) < 3:
        parts.append(0)
    parts[2] += 1
    return ".".join(str(p) for p in parts)


@dataclass(frozen=True)
class _ConfigEntry:
    key: str
    description: str = ""
    category: str = "system"
    is_public: bool = False
    version: str = "1.0.0"

    type: ClassVar[str] = ""

    def with_value(self, raw: Any) -> "ConfigValue":
        """
        Build an updated entry of the same variant and constraints.

        Raises:
            ValidationException: if raw does not fit this variant
        """
        return replace(self, value=raw, version=bump_version(self.version))


@dataclass(frozen=True)
class BoolConfig(_ConfigEntry):
    value: bool = False

    type: ClassVar[str] = "boolean"

    def __post_init__(self):
        if not isinstance(self.value, bool):
            raise ValidationException(
                f"Config '{self.key}' expects a boolean, got {type(self.value).__name__}",
                {"key": self.key}
            )


@dataclass(frozen=True)
class NumberConfig(_ConfigEntry):
    value: float = 0.0
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    type: ClassVar[str] = "number"

    def __post_init__(self):
        # bool is an int subclass
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise ValidationException(
                f"Config '{self.key}' expects a number, got {type(self.value).__name__}",
                {"key": self.key}
            )
        if not math.isfinite(self.value):
            raise ValidationException(
                f"Config '{self.key}' expects a finite number, got {self.value}",
                {"key": self.key}
            )
        if self.min_value is not None and self.value < self.min_value:
            raise ValidationException(
                f"Value {self.value} is below minimum {self.min_value}",
                {"key": self.key}
            )
        if self.max_value is not None and self.value > self.max_value:
            raise ValidationException(
                f"Value {self.value} is above maximum {self.max_value}",
                {"key": self.key}
            )


@dataclass(frozen=True)
class StringConfig(_ConfigEntry):
    value: str = ""
    pattern: Optional[str] = None
    choices: Tuple[str, ...] = ()

    type: ClassVar[str] = "string"

    def __post_init__(self):
        if not isinstance(self.value, str):
            raise ValidationException(
                f"Config '{self.key}' expects a string, got {type(self.value).__name__}",
                {"key": self.key}
            )
        if self.pattern is not None:
            try:
                matched = re.fullmatch(self.pattern, self.value) is not None
            except re.error as exc:
                raise ValidationException(
                    f"Invalid regex pattern: {self.pattern}", {"key": self.key}
                ) from exc
            if not matched:
                raise ValidationException(
                    f"Value {self.value!r} does not match pattern {self.pattern}",
                    {"key": self.key}
                )
        if self.choices and self.value not in self.choices:
            raise ValidationException(
                f"Value {self.value!r} is not in allowed values: {', '.join(self.choices)}",
                {"key": self.key}
            )


ConfigValue = Union[BoolConfig, NumberConfig, StringConfig]

CONFIG_VARIANTS = {
    BoolConfig.type: BoolConfig,
    NumberConfig.type: NumberConfig,
    StringConfig.type: StringConfig,
}


def default_config_entries() -> List[ConfigValue]:
    """Entries every deployment starts with."""
    return [
        BoolConfig(
            key=ConfigKey.AUTO_CLOSE_ENABLED,
            value=True,
            description="Enable automatic ticket closure for high-confidence suggestions",
            category="agent",
            is_public=True,
        ),
        NumberConfig(
            key=ConfigKey.CONFIDENCE_THRESHOLD,
            value=0.78,
            min_value=0.0,
            max_value=1.0,
            description="Minimum confidence score required for auto-close (0.0 - 1.0)",
            category="agent",
            is_public=True,
        ),
    ]
