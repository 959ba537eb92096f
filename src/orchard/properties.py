"""Configuration source used by value bindings.

Keys are looked up in a flat string mapping. Both keys and stored values may
be placeholder expressions, resolved recursively:

    ``${key}``          the value of ``key``; missing is an error
    ``${key:default}``  the value of ``key``, else ``default`` (itself resolvable)

Example:
    >>> props = ConfigProperties({"app.name": "demo", "greeting": "${app.title:${app.name}}"})
    >>> props.get_string("greeting")
    'demo'
    >>> props.get("${server.port:8080}", int)
    8080
"""

import os
import types
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Optional, Union, get_args, get_origin

from orchard.errors import MissingPropertyError, ResolutionError

__all__ = ["PropertyExpr", "ConfigProperties", "parse_property_expr", "convert", "strip_optional"]


@dataclass(frozen=True)
class PropertyExpr:
    key: str
    default_value: Optional[str]


def parse_property_expr(s: str) -> Optional[PropertyExpr]:
    """Parse ``${key}`` or ``${key:default}``; return ``None`` for anything else.

    Raises:
        ResolutionError: If the placeholder has an empty key.
    """
    if not (s.startswith("${") and s.endswith("}")):
        return None
    body = s[2:-1]
    key, sep, default = body.partition(":")
    if not key:
        raise ResolutionError(f"Invalid key in expression: {s}")
    return PropertyExpr(key, default if sep else None)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",")] if value.strip() else []


_CONVERTERS = {
    str: str,
    bool: _parse_bool,
    int: int,
    float: float,
    Decimal: Decimal,
    date: date.fromisoformat,
    time: time.fromisoformat,
    datetime: datetime.fromisoformat,
    Path: Path,
    list: _split,
    tuple: lambda value: tuple(_split(value)),
}


class ConfigProperties:
    """String properties with placeholder resolution and scalar conversion."""

    def __init__(self, properties: Optional[Mapping[str, str]] = None):
        self._properties: dict[str, str] = dict(properties or {})

    @classmethod
    def from_environ(
        cls, properties: Optional[Mapping[str, str]] = None
    ) -> "ConfigProperties":
        """Environment variables overlaid with ``properties``."""
        merged = dict(os.environ)
        merged.update(properties or {})
        return cls(merged)

    def contains(self, key: str) -> bool:
        return key in self._properties

    __contains__ = contains

    def set(self, key: str, value: str) -> "ConfigProperties":
        self._properties[key] = value
        return self

    def add_all(self, properties: Mapping[str, str]) -> "ConfigProperties":
        self._properties.update(properties)
        return self

    def merge(self, other: "ConfigProperties") -> "ConfigProperties":
        self._properties.update(other.to_dict())
        return self

    def to_dict(self) -> dict[str, str]:
        return dict(self._properties)

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Resolve ``key`` (a plain key or a placeholder expression) to a string.

        Raises:
            MissingPropertyError: If a ``${key}`` placeholder without default
                refers to a missing key.
            ResolutionError: If stored values refer back to themselves.
        """
        return self._resolve(key, default, ())

    def get_required_string(self, key: str) -> str:
        value = self.get_string(key)
        if value is None:
            raise MissingPropertyError(f"Property key '{key}' not found")
        return value

    def get(self, key: str, value_type: Any = str, default: Any = None) -> Any:
        """Resolve ``key`` and convert it to ``value_type``.

        Raises:
            ResolutionError: If the type is unsupported or the conversion fails.
        """
        value = self.get_string(key)
        if value is None:
            return default
        return convert(value, value_type, key)

    def get_required(self, key: str, value_type: Any = str) -> Any:
        value = self.get(key, value_type)
        if value is None:
            raise MissingPropertyError(f"Property key '{key}' not found")
        return value

    def _resolve(
        self, key: str, default: Optional[str], resolving: tuple[str, ...]
    ) -> Optional[str]:
        if parse_property_expr(key) is not None:
            value = self._parse_value(key, resolving)
        else:
            value = self._properties.get(key)
            if value is not None:
                if key in resolving:
                    chain = " -> ".join((*resolving, key))
                    raise ResolutionError(f"Circular property reference: {chain}")
                value = self._parse_value(value, (*resolving, key))
        if value is None and default is not None:
            return self._parse_value(default, resolving)
        return value

    def _parse_value(self, value: str, resolving: tuple[str, ...]) -> Optional[str]:
        expr = parse_property_expr(value)
        if expr is None:
            return value
        resolved = self._resolve(expr.key, expr.default_value, resolving)
        if resolved is None and expr.default_value is None:
            raise MissingPropertyError(f"Property key '{expr.key}' not found")
        return resolved

    def __repr__(self):
        return f"ConfigProperties({len(self._properties)} keys)"


def convert(value: str, value_type: Any, key: str = "") -> Any:
    """Convert a resolved string to ``value_type``; ``Optional[T]`` converts to ``T``."""
    value_type = strip_optional(value_type)
    converter = _CONVERTERS.get(get_origin(value_type) or value_type)
    if converter is None:
        raise ResolutionError(f"Unsupported type to convert for key '{key}': {value_type}")
    try:
        return converter(value)
    except (ValueError, InvalidOperation) as e:
        raise ResolutionError(
            f"Cannot convert value {value!r} of key '{key}' to {value_type}"
        ) from e


def strip_optional(value_type: Any) -> Any:
    if get_origin(value_type) in (Union, types.UnionType):
        args = [a for a in get_args(value_type) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return value_type
