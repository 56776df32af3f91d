"""CollectionForeignKey — immutable local field → target field reference."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ForeignKeyTarget(BaseModel):
    """Referenced collection and field. The collection is not owned."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    collection: Any
    field: str = Field(min_length=1)

    @field_validator("collection")
    @classmethod
    def _check_collection(cls, value: Any) -> Any:
        from .collection import Collection

        if not isinstance(value, Collection):
            raise ValueError(
                f"target collection must be a Collection, got {type(value).__name__}"
            )
        return value


class CollectionForeignKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, min_length=1)
    field: str = Field(min_length=1)
    target: ForeignKeyTarget

    @property
    def fields(self) -> tuple[str, ...]:
        """Local fields involved, used to derive the default name."""
        return (self.field,)
