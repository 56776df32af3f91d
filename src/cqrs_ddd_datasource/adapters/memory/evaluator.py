"""
Filters rows of the :class:`InMemoryDriver` with a query's where-clause.

The driver hands every stored row to :meth:`OperatorEvaluator.matches`
together with ``query.where_clause``. Leaves are looked up by their
:class:`QueryOperator`, so a driver built with a custom evaluator can
replace or drop individual comparisons.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ...query.ast import AndClause, Comparison, NotClause, OrClause

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ...query.ast import Clause
    from ...types import QueryOperator


class MemoryOperator(ABC):
    """How one :class:`QueryOperator` compares a raw column value."""

    @property
    @abstractmethod
    def name(self) -> QueryOperator:
        ...

    @abstractmethod
    def evaluate(self, field_value: Any, condition_value: Any) -> bool:
        """Compare the row's column (``None`` when absent) with ``Comparison.value``."""
        ...


class OperatorEvaluator:
    """
    Operators keyed by :class:`QueryOperator`, applied over a clause tree.

    ::

        evaluator = build_default_evaluator()
        evaluator.matches(query.where_clause, {"age": 42})
        driver = InMemoryDriver(evaluator=evaluator)
    """

    def __init__(self) -> None:
        self._operators: dict[QueryOperator, MemoryOperator] = {}

    def register(self, operator: MemoryOperator) -> None:
        self._operators[operator.name] = operator

    def register_all(self, *operators: MemoryOperator) -> None:
        for op in operators:
            self.register(op)

    def has(self, name: QueryOperator) -> bool:
        return name in self._operators

    @property
    def supported_operators(self) -> set[QueryOperator]:
        return set(self._operators)

    def compare(self, name: QueryOperator, field_value: Any, condition_value: Any) -> bool:
        """Raises ``ValueError`` when *name* has no registered operator."""
        op = self._operators.get(name)
        if op is None:
            raise ValueError(f"Unsupported operator for in-memory evaluation: {name}")
        return op.evaluate(field_value, condition_value)

    def matches(self, clause: Clause, row: Mapping[str, Any]) -> bool:
        """Evaluate *clause* against a row of raw values keyed by field name."""
        if isinstance(clause, Comparison):
            return self.compare(clause.operator, row.get(clause.field), clause.value)
        if isinstance(clause, AndClause):
            return all(self.matches(child, row) for child in clause.children)
        if isinstance(clause, OrClause):
            # An empty OR matches nothing, like an empty SQL IN.
            return any(self.matches(child, row) for child in clause.children)
        if isinstance(clause, NotClause):
            return not self.matches(clause.child, row)
        raise TypeError(f"Unknown clause type: {type(clause).__name__}")
