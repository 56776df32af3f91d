"""
Query — mutable builder for one logical query against one collection.

Example::

    query = (
        Query(users)
        .where()
            .or_()
                .operation("email", "$regex", "john.doe")
                .and_()
                    .operation("first_name", "$eq", "John")
                    .operation("last_name", "$eq", "Doe")
                .end()
            .end()
            .not_()
                .operation("active", "$eq", False)
            .end()
        .order_by("last_name")
        .skip(20)
        .limit(10)
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, NamedTuple, Union

from ..exceptions import EmptyWhereStackError, UnknownOperatorError, ValidationError
from ..schema.collection import Collection
from ..types import COMPARISON_OPERATORS, QueryOperator, SortOrder
from ..validation import validate_model
from .ast import AndClause, Comparison, NotClause, OrClause, OrderClause

if TYPE_CHECKING:
    from .ast import Clause


class _NotRef(NamedTuple):
    """Arena child standing for ``NOT(<and branch at index>)``."""

    branch: int


# Arena children: a leaf, the index of a nested AND/OR branch, or a NOT wrapper.
_Child = Union[Comparison, int, _NotRef]


@dataclass
class _Branch:
    operator: QueryOperator
    children: list[_Child] = field(default_factory=list)


_ROOT = 0


class Query:
    """
    Builds fields, joins, a where-clause tree, ordering and paging.

    The where-clause is built through a stack of open branches: ``where()``
    resets the stack to the root AND branch, ``and_()``/``or_()``/``not_()``
    open a nested branch, ``end()`` closes it and ``operation()`` appends a
    comparison to the innermost open branch. Branches live in an arena and
    the stack holds their indices.

    Not thread-safe: build each query from a single call sequence.
    """

    def __init__(self, collection: Collection, alias: str | None = None) -> None:
        if not isinstance(collection, Collection):
            raise ValidationError(
                {"collection": [f"Expected a Collection, got {type(collection).__name__}"]}
            )
        if alias is not None and (not isinstance(alias, str) or not alias):
            raise ValidationError({"alias": ["Alias must be a non-empty string"]})

        self._collection = collection
        self._alias = alias or collection.name
        self._fields: set[str] = set()
        self._joins: list[Query] = []
        self._arena: list[_Branch] = [_Branch(QueryOperator.AND)]
        self._where_stack: list[int] = []
        self._orders: list[OrderClause] = []
        self._offset = 0
        self._size = -1

    def __repr__(self) -> str:
        return f"Query({self._collection.name!r}, alias={self._alias!r})"

    # -- read-only state -----------------------------------------------------

    @property
    def collection(self) -> Collection:
        return self._collection

    @property
    def alias(self) -> str:
        return self._alias

    @property
    def fields(self) -> frozenset[str]:
        return frozenset(self._fields)

    @property
    def joins(self) -> tuple[Query, ...]:
        return tuple(self._joins)

    @property
    def where_clause(self) -> AndClause:
        root = self._freeze(_ROOT)
        assert isinstance(root, AndClause)
        return root

    @property
    def orders(self) -> tuple[OrderClause, ...]:
        return tuple(self._orders)

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def size(self) -> int:
        """Fetch size; ``-1`` means unbounded."""
        return self._size

    # -- selection & joins -----------------------------------------------------

    def select(self, field_name: str) -> Query:
        """Add *field_name* to the selection set."""
        if not isinstance(field_name, str) or not field_name:
            raise ValidationError({"field": ["Field name must be a non-empty string"]})
        self._fields.add(field_name)
        return self

    def join(self, query: Query) -> Query:
        """Append a joined sub-query; joins keep insertion order."""
        if not isinstance(query, Query):
            raise ValidationError({"query": [f"Expected a Query, got {type(query).__name__}"]})
        if query is self:
            raise ValidationError({"query": ["A query cannot join itself"]})
        self._joins.append(query)
        return self

    # -- where-clause ----------------------------------------------------------

    def where(self) -> Query:
        """Reset the where-clause pointer to the root level."""
        self._where_stack[:] = [_ROOT]
        return self

    def and_(self) -> Query:
        """Open an AND branch under the current one."""
        self._open_branch(QueryOperator.AND, "and_")
        return self

    def or_(self) -> Query:
        """Open an OR branch under the current one."""
        self._open_branch(QueryOperator.OR, "or_")
        return self

    def not_(self) -> Query:
        """
        Open a NOT branch under the current one.

        The NOT node wraps an AND branch and it is the AND branch that is
        pushed, so several operations can be chained inside the negation.
        """
        current = self._current_branch("not_")
        inner = self._new_branch(QueryOperator.AND)
        current.children.append(_NotRef(inner))
        self._where_stack.append(inner)
        return self

    def operation(
        self, field_name: str, operator: QueryOperator | str, value: Any
    ) -> Query:
        """Append ``field_name <operator> value`` to the current branch."""
        current = self._current_branch("operation")
        if not isinstance(field_name, str) or not field_name:
            raise ValidationError({"field": ["Field name must be a non-empty string"]})
        current.children.append(
            Comparison(_comparison_operator(operator), field_name, _freeze_value(value))
        )
        return self

    def end(self) -> Query:
        """Close the current branch, returning to its parent."""
        if len(self._where_stack) <= 1:
            raise EmptyWhereStackError("end")
        self._where_stack.pop()
        return self

    # -- ordering & paging -----------------------------------------------------

    def order_by(self, field_name: str, order: SortOrder | str = SortOrder.ASC) -> Query:
        self._orders.append(
            validate_model(OrderClause, {"field": field_name, "order": order})
        )
        return self

    def skip(self, value: int) -> Query:
        """Set the fetch offset."""
        if not _is_int(value) or value < 0:
            raise ValidationError({"skip": ["Offset must be an integer >= 0"]})
        self._offset = value
        return self

    def limit(self, value: int) -> Query:
        """Set the fetch size (``-1`` for unbounded, ``0`` for no rows)."""
        if not _is_int(value) or value < -1:
            raise ValidationError({"limit": ["Size must be an integer >= -1"]})
        self._size = value
        return self

    # -- serialisation ---------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self._collection.name,
            "alias": self._alias,
            "fields": sorted(self._fields),
            "joins": [j.to_dict() for j in self._joins],
            "where": self.where_clause.to_dict(),
            "orders": [o.to_dict() for o in self._orders],
            "offset": self._offset,
            "size": self._size,
        }

    # -- internals -------------------------------------------------------------

    def _current_branch(self, call: str) -> _Branch:
        if not self._where_stack:
            raise EmptyWhereStackError(call)
        return self._arena[self._where_stack[-1]]

    def _new_branch(self, operator: QueryOperator) -> int:
        self._arena.append(_Branch(operator))
        return len(self._arena) - 1

    def _open_branch(self, operator: QueryOperator, call: str) -> None:
        current = self._current_branch(call)
        index = self._new_branch(operator)
        current.children.append(index)
        self._where_stack.append(index)

    def _freeze(self, index: int) -> AndClause | OrClause:
        branch = self._arena[index]
        children = tuple(self._freeze_child(child) for child in branch.children)
        if branch.operator is QueryOperator.OR:
            return OrClause(children)
        return AndClause(children)

    def _freeze_child(self, child: _Child) -> Clause:
        if isinstance(child, Comparison):
            return child
        if isinstance(child, _NotRef):
            inner = self._freeze(child.branch)
            assert isinstance(inner, AndClause)
            return NotClause(inner)
        return self._freeze(child)


def _comparison_operator(operator: QueryOperator | str) -> QueryOperator:
    try:
        op = QueryOperator(operator)
    except ValueError:
        op = None
    if op is None or op not in COMPARISON_OPERATORS:
        raise UnknownOperatorError(
            str(getattr(operator, "value", operator)),
            [o.value for o in COMPARISON_OPERATORS],
        )
    return op


def _freeze_value(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(value)
    if isinstance(value, set):
        return frozenset(value)
    return value


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
