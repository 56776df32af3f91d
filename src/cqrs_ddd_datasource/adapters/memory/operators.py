"""
Comparison operators of the in-memory driver.

Both sides of every comparison are raw values: the row holds what the
field converters stored, and the mappings convert the filter value with
the same converter before it reaches a :class:`Comparison`. A missing
column reads as ``None``, which only ``$eq``, ``$ne``, ``$in`` and
``$nin`` can match.
"""

from __future__ import annotations

import operator
import re
from collections.abc import Callable
from typing import Any

from ...types import QueryOperator
from .evaluator import MemoryOperator, OperatorEvaluator


class EqualOperator(MemoryOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.EQ

    def evaluate(self, field_value: Any, condition_value: Any) -> bool:
        return bool(field_value == condition_value)


class NotEqualOperator(MemoryOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.NEQ

    def evaluate(self, field_value: Any, condition_value: Any) -> bool:
        return bool(field_value != condition_value)


class OrderingOperator(MemoryOperator):
    """``$gt``, ``$gte``, ``$lt`` or ``$lte``; a null column never matches."""

    _COMPARATORS: dict[QueryOperator, Callable[[Any, Any], Any]] = {
        QueryOperator.GT: operator.gt,
        QueryOperator.GTE: operator.ge,
        QueryOperator.LT: operator.lt,
        QueryOperator.LTE: operator.le,
    }

    def __init__(self, name: QueryOperator) -> None:
        if name not in self._COMPARATORS:
            raise ValueError(f"{name} is not an ordering operator")
        self._name = name
        self._compare = self._COMPARATORS[name]

    @property
    def name(self) -> QueryOperator:
        return self._name

    def evaluate(self, field_value: Any, condition_value: Any) -> bool:
        if field_value is None:
            return False
        return bool(self._compare(field_value, condition_value))


class InOperator(MemoryOperator):
    """Membership in the tuple frozen by ``Query.operation``."""

    @property
    def name(self) -> QueryOperator:
        return QueryOperator.IN

    def evaluate(self, field_value: Any, condition_value: Any) -> bool:
        return field_value in condition_value


class NotInOperator(MemoryOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.NIN

    def evaluate(self, field_value: Any, condition_value: Any) -> bool:
        return field_value not in condition_value


class RegexOperator(MemoryOperator):
    """Unanchored ``re.search`` over the stored text."""

    @property
    def name(self) -> QueryOperator:
        return QueryOperator.REGEX

    def evaluate(self, field_value: Any, condition_value: Any) -> bool:
        if field_value is None:
            return False
        return re.search(str(condition_value), str(field_value)) is not None


def build_default_evaluator() -> OperatorEvaluator:
    """Evaluator the :class:`InMemoryDriver` uses when none is injected."""
    evaluator = OperatorEvaluator()
    evaluator.register_all(
        EqualOperator(),
        NotEqualOperator(),
        *(OrderingOperator(name) for name in OrderingOperator._COMPARATORS),
        InOperator(),
        NotInOperator(),
        RegexOperator(),
    )
    return evaluator
