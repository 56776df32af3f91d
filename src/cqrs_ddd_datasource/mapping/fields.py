"""Mapping-level field descriptor and mapping configuration."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..converter import Converter
from ..schema.field import CollectionField
from ..types import FieldType


class MappingField(BaseModel):
    """
    A model attribute bound to a stored field.

    Attributes:
        name: Storage field name.
        ref: Model attribute name; defaults to ``name``.
        type: Logical type.
        raw_type: Physical type; coerced by the driver when omitted.
        converter: Value converter; created by the driver when omitted.
        primary_key: Whether the field is part of the primary key.
        sequence: ``True`` or a sequence name for driver-generated values.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    ref: str = Field(min_length=1)
    type: FieldType
    raw_type: str | None = Field(default=None, min_length=1)
    converter: Converter | None = None
    primary_key: bool = False
    sequence: bool | Annotated[str, Field(min_length=1)] = False

    @model_validator(mode="before")
    @classmethod
    def _default_ref(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("ref") is None and "name" in data:
            return {**data, "ref": data["name"]}
        return data

    def to_collection_field(self) -> CollectionField:
        """Return the physical field; the descriptor must be augmented."""
        return CollectionField(
            name=self.name,
            type=self.type,
            raw_type=self.raw_type,
            converter=self.converter,
            primary_key=self.primary_key,
            sequence=self.sequence,
        )


class MappingConfig(BaseModel):
    """Validated constructor arguments shared by every mapping strategy."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    model: Any
    name: str = Field(min_length=1)
    fields: tuple[Any, ...] = ()
    virtual: str | None = Field(default=None, min_length=1)
    extends: Any = None
    discriminator_values: dict[str, str] = Field(default_factory=dict)

    @field_validator("model")
    @classmethod
    def _check_model(cls, value: Any) -> Any:
        if not isinstance(value, type):
            raise ValueError(f"model must be a class, got {type(value).__name__}")
        return value

    @field_validator("extends")
    @classmethod
    def _check_extends(cls, value: Any) -> Any:
        from .base import Mapping

        if value is not None and not isinstance(value, Mapping):
            raise ValueError(f"extends must be a Mapping, got {type(value).__name__}")
        return value
