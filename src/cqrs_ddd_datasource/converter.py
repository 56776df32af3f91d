"""Converter — bidirectional value transformer between model and store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Converter(ABC):
    """
    Strategy interface converting one field value in both directions.

    Both directions must be pure, and ``from_raw(to_raw(v)) == v`` must hold
    for every value of the field's logical type. Mappings rely on that law
    when they copy driver-assigned values back onto model instances.
    """

    @abstractmethod
    def to_raw(self, value: Any) -> Any:
        """Convert a model value to its data-source representation."""
        ...

    @abstractmethod
    def from_raw(self, raw: Any) -> Any:
        """Convert a data-source value back to its model representation."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
