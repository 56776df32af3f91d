"""
Where-clause expression tree.

Nodes are immutable; ``Query.where_clause`` rebuilds them from the builder
state on every access, so a tree handed to a driver never changes under it.

Example::

    AndClause((
        Comparison(QueryOperator.EQ, "_id", 21),
        OrClause((
            Comparison(QueryOperator.REGEX, "email", "john.doe"),
            Comparison(QueryOperator.EQ, "active", True),
        )),
        NotClause(AndClause((
            Comparison(QueryOperator.IN, "rights", ("admin",)),
        ))),
    ))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, Field

from ..types import QueryOperator, SortOrder


@dataclass(frozen=True)
class Comparison:
    """Leaf: ``field <operator> value``."""

    operator: QueryOperator
    field: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {
            "operator": self.operator.value,
            "field": self.field,
            "value": value,
        }


@dataclass(frozen=True)
class AndClause:
    children: tuple[Clause, ...] = field(default_factory=tuple)

    operator: ClassVar[QueryOperator] = QueryOperator.AND

    def to_dict(self) -> dict[str, Any]:
        return {
            "operator": self.operator.value,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class OrClause:
    children: tuple[Clause, ...] = field(default_factory=tuple)

    operator: ClassVar[QueryOperator] = QueryOperator.OR

    def to_dict(self) -> dict[str, Any]:
        return {
            "operator": self.operator.value,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class NotClause:
    """Negation; always wraps exactly one AND branch."""

    child: AndClause

    operator: ClassVar[QueryOperator] = QueryOperator.NOT

    def to_dict(self) -> dict[str, Any]:
        return {
            "operator": self.operator.value,
            "child": self.child.to_dict(),
        }


Clause = Union[AndClause, OrClause, NotClause, Comparison]


class OrderClause(BaseModel):
    """One ordering key; several compose a multi-key sort, in call order."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(min_length=1)
    order: SortOrder = SortOrder.ASC

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "order": self.order.value}
