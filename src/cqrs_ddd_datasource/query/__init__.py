from .ast import AndClause, Clause, Comparison, NotClause, OrClause, OrderClause
from .options import FindOptions
from .query import Query

__all__ = [
    "AndClause",
    "Clause",
    "Comparison",
    "FindOptions",
    "NotClause",
    "OrClause",
    "OrderClause",
    "Query",
]
