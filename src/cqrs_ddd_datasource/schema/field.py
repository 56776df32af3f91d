"""CollectionField — immutable description of one stored field."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from ..converter import Converter
from ..types import FieldType


class CollectionField(BaseModel):
    """
    One physical field of a collection.

    Attributes:
        name: Field name, unique within its collection.
        type: Logical type.
        raw_type: Driver-specific physical type (e.g. ``VARCHAR``).
        converter: Value converter between model and store representations.
        primary_key: Whether the field is part of the primary key.
        sequence: ``True`` for an anonymous sequence, or the sequence name.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    type: FieldType
    raw_type: str = Field(min_length=1)
    converter: Converter
    primary_key: bool = False
    sequence: bool | Annotated[str, Field(min_length=1)] = False
