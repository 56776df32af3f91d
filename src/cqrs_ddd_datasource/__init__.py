from .adapters.memory import InMemoryCursor, InMemoryDriver, OperatorEvaluator
from .converter import Converter
from .converters import (
    BinaryConverter,
    BooleanConverter,
    DateConverter,
    FloatConverter,
    IdentityConverter,
    IntegerConverter,
    StringConverter,
)
from .datasource import DataSource, Transaction
from .exceptions import (
    AbstractMethodNotImplementedError,
    CollectionNotFoundError,
    DataSourceError,
    DocumentNotFoundError,
    DuplicateNameError,
    EmptyWhereStackError,
    FieldNotFoundError,
    FieldRequiredError,
    ForeignKeyNotFoundError,
    IndexNotFoundError,
    MappingNotFoundError,
    MissingDiscriminatorValueError,
    MultipleFieldsInBranchError,
    NotFoundError,
    QueryError,
    SchemaSyncError,
    UnknownOperatorError,
    UnsupportedTypeError,
    UserQueryError,
    ValidationError,
)
from .mapping import (
    ClassHierarchyMapping,
    Mapping,
    MappingCursor,
    MappingField,
)
from .ports import Cursor, DataMap, Driver
from .query import (
    AndClause,
    Comparison,
    FindOptions,
    NotClause,
    OrClause,
    OrderClause,
    Query,
)
from .schema import (
    Collection,
    CollectionField,
    CollectionForeignKey,
    CollectionIndex,
    ForeignKeyTarget,
    Schema,
)
from .types import FieldType, QueryOperator, SortOrder

__all__ = [
    # Schema
    "Collection",
    "CollectionField",
    "CollectionForeignKey",
    "CollectionIndex",
    "ForeignKeyTarget",
    "Schema",
    "FieldType",
    # Query
    "Query",
    "QueryOperator",
    "SortOrder",
    "AndClause",
    "OrClause",
    "NotClause",
    "Comparison",
    "OrderClause",
    "FindOptions",
    # Mapping
    "Mapping",
    "MappingField",
    "MappingCursor",
    "ClassHierarchyMapping",
    # Contracts
    "Converter",
    "Cursor",
    "DataMap",
    "Driver",
    # Converters
    "IdentityConverter",
    "StringConverter",
    "IntegerConverter",
    "FloatConverter",
    "BooleanConverter",
    "DateConverter",
    "BinaryConverter",
    # Entry point
    "DataSource",
    "Transaction",
    # In-memory adapter
    "InMemoryDriver",
    "InMemoryCursor",
    "OperatorEvaluator",
    # Exceptions
    "DataSourceError",
    "ValidationError",
    "NotFoundError",
    "FieldNotFoundError",
    "IndexNotFoundError",
    "ForeignKeyNotFoundError",
    "CollectionNotFoundError",
    "MappingNotFoundError",
    "DocumentNotFoundError",
    "DuplicateNameError",
    "AbstractMethodNotImplementedError",
    "UnsupportedTypeError",
    "SchemaSyncError",
    "QueryError",
    "EmptyWhereStackError",
    "UserQueryError",
    "MultipleFieldsInBranchError",
    "FieldRequiredError",
    "UnknownOperatorError",
    "MissingDiscriminatorValueError",
]
