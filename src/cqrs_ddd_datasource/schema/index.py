"""CollectionIndex — immutable description of one index."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class CollectionIndex(BaseModel):
    """
    Index over an ordered list of fields.

    ``name`` may be omitted; the owning collection derives it when the
    index is added.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, min_length=1)
    fields: tuple[Annotated[str, Field(min_length=1)], ...] = Field(min_length=1)
    unique: bool = False
