"""
Built-in converters for the logical field types.

Drivers return these from ``create_converter`` when the store has no
native representation for a type. ``None`` passes through every converter
so nullable fields need no special casing.
"""

from __future__ import annotations

import base64
import datetime
from typing import Any

from .converter import Converter


class IdentityConverter(Converter):
    """Stores values unchanged."""

    def to_raw(self, value: Any) -> Any:
        return value

    def from_raw(self, raw: Any) -> Any:
        return raw


class StringConverter(Converter):
    def to_raw(self, value: Any) -> Any:
        return None if value is None else str(value)

    def from_raw(self, raw: Any) -> Any:
        return None if raw is None else str(raw)


class IntegerConverter(Converter):
    def to_raw(self, value: Any) -> Any:
        return None if value is None else int(value)

    def from_raw(self, raw: Any) -> Any:
        return None if raw is None else int(raw)


class FloatConverter(Converter):
    def to_raw(self, value: Any) -> Any:
        return None if value is None else float(value)

    def from_raw(self, raw: Any) -> Any:
        return None if raw is None else float(raw)


class BooleanConverter(Converter):
    """bool ↔ 0/1, for stores without a boolean column type."""

    def to_raw(self, value: Any) -> Any:
        if value is None:
            return None
        return 1 if value else 0

    def from_raw(self, raw: Any) -> Any:
        if raw is None:
            return None
        return bool(raw)


class DateConverter(Converter):
    """
    date and datetime ↔ ISO-8601 text.

    A plain date is stored without a time part and read back as a date.
    """

    def to_raw(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, datetime.date):
            return value.isoformat()
        raise TypeError(f"Expected a date or datetime, got {type(value).__name__}")

    def from_raw(self, raw: Any) -> Any:
        if raw is None:
            return None
        if "T" in raw:
            return datetime.datetime.fromisoformat(raw)
        return datetime.date.fromisoformat(raw)


class BinaryConverter(Converter):
    """bytes ↔ base64 text."""

    def to_raw(self, value: Any) -> Any:
        if value is None:
            return None
        return base64.b64encode(bytes(value)).decode("ascii")

    def from_raw(self, raw: Any) -> Any:
        if raw is None:
            return None
        return base64.b64decode(raw)
