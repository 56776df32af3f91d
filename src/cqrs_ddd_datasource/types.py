"""Logical field types, query operators and sort orders."""

from __future__ import annotations

from enum import Enum


class FieldType(str, Enum):
    """Logical field types understood by every driver."""

    STRING = "string"
    FLOAT = "float"
    DOUBLE = "double"
    REAL = "real"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    TEXT = "text"
    BINARY = "binary"


class QueryOperator(str, Enum):
    """Supported where-clause operators."""

    # Logical
    AND = "$and"
    OR = "$or"
    NOT = "$not"

    # Comparison
    EQ = "$eq"
    NEQ = "$neq"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"
    REGEX = "$regex"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


LOGICAL_OPERATORS: frozenset[QueryOperator] = frozenset(
    {QueryOperator.AND, QueryOperator.OR, QueryOperator.NOT}
)
COMPARISON_OPERATORS: frozenset[QueryOperator] = (
    frozenset(QueryOperator) - LOGICAL_OPERATORS
)

# Pre-compute raw operator values for key lookups in user filters
OPERATOR_VALUES: frozenset[str] = frozenset(op.value for op in QueryOperator)
