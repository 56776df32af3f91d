"""
Find options: paging and ordering for human-written queries.

``FindOptions`` defines *how* results are returned; the filter expression
defines *what* is returned. Options are validated once, when the mapping
parses them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .ast import OrderClause


class FindOptions(BaseModel):
    """
    Immutable result-shaping parameters.

    Attributes:
        skip: Number of documents to skip.
        limit: Maximum number of documents; ``-1`` is unbounded, ``0`` means
            no document, ``None`` leaves the query's own default untouched.
        order_by: Ordering keys, applied in list order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    skip: int = Field(default=0, ge=0, strict=True)
    limit: int | None = Field(default=None, ge=-1, strict=True)
    order_by: tuple[OrderClause, ...] = ()

    def with_order_fields(self, rename: dict[str, str]) -> FindOptions:
        """Return a copy with ordering fields renamed through *rename*."""
        return self.model_copy(
            update={
                "order_by": tuple(
                    o.model_copy(update={"field": rename.get(o.field, o.field)})
                    for o in self.order_by
                )
            }
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"skip": self.skip}
        if self.limit is not None:
            result["limit"] = self.limit
        if self.order_by:
            result["order_by"] = [o.to_dict() for o in self.order_by]
        return result
