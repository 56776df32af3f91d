"""InMemoryDriver — dict-backed driver for unit tests and prototyping."""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any

from ...converters import (
    BinaryConverter,
    BooleanConverter,
    DateConverter,
    FloatConverter,
    IntegerConverter,
    StringConverter,
)
from ...exceptions import (
    CollectionNotFoundError,
    DocumentNotFoundError,
    UnsupportedTypeError,
    ValidationError,
)
from ...ports.driver import Driver
from ...types import FieldType, SortOrder
from .cursor import InMemoryCursor
from .operators import build_default_evaluator

if TYPE_CHECKING:
    from ...converter import Converter
    from ...ports.driver import DataMap
    from ...query.query import Query
    from ...schema.collection import Collection
    from ...schema.foreign_key import CollectionForeignKey
    from ...schema.index import CollectionIndex
    from .evaluator import OperatorEvaluator

logger = logging.getLogger("cqrs_ddd.datasource.memory")

_RAW_TYPES: dict[str, str] = {
    FieldType.STRING.value: "VARCHAR",
    FieldType.TEXT.value: "TEXT",
    FieldType.INTEGER.value: "INTEGER",
    FieldType.FLOAT.value: "REAL",
    FieldType.DOUBLE.value: "REAL",
    FieldType.REAL.value: "REAL",
    FieldType.BOOLEAN.value: "BOOLEAN",
    FieldType.DATE.value: "TIMESTAMP",
    FieldType.BINARY.value: "BLOB",
}

_CONVERTERS: dict[str, type[Converter]] = {
    "VARCHAR": StringConverter,
    "TEXT": StringConverter,
    "INTEGER": IntegerConverter,
    "REAL": FloatConverter,
    "BOOLEAN": BooleanConverter,
    "TIMESTAMP": DateConverter,
    "BLOB": BinaryConverter,
}

Row = dict[str, Any]


class InMemoryDriver(Driver):
    """
    In-memory implementation of :class:`Driver`.

    Rows are plain dicts of raw values. Writes go to a working copy that
    ``commit()`` publishes and ``rollback()`` discards; reads see the
    working copy. Sequence counters live outside transactions, like
    database sequences do.

    Records commit/rollback calls for assertions.
    """

    def __init__(self, evaluator: OperatorEvaluator | None = None) -> None:
        self._evaluator = evaluator or build_default_evaluator()
        self._collections: dict[str, Collection] = {}
        self._indexes: dict[str, dict[str, CollectionIndex]] = {}
        self._foreign_keys: dict[str, dict[str, CollectionForeignKey]] = {}
        self._committed: dict[str, list[Row]] = {}
        self._working: dict[str, list[Row]] = {}
        self._sequences: dict[str, int] = {}
        self.commit_count: int = 0
        self.rollback_count: int = 0
        self.closed: bool = False

    # -- types -------------------------------------------------------------------

    def coerce_type(self, type_name: str) -> str:
        raw_type = _RAW_TYPES.get(str(getattr(type_name, "value", type_name)))
        if raw_type is None:
            raise UnsupportedTypeError(str(type_name), type(self).__name__)
        return raw_type

    def create_converter(self, raw_type: str) -> Converter:
        converter_cls = _CONVERTERS.get(raw_type)
        if converter_cls is None:
            raise UnsupportedTypeError(raw_type, type(self).__name__)
        return converter_cls()

    # -- provisioning ------------------------------------------------------------

    async def ensure_collection(self, collection: Collection) -> None:
        self._collections[collection.name] = collection
        self._indexes.setdefault(collection.name, {})
        self._foreign_keys.setdefault(collection.name, {})
        self._committed.setdefault(collection.name, [])
        self._working.setdefault(collection.name, [])
        logger.debug("Ensured collection %s", collection.name)

    async def ensure_index(self, collection: Collection, index: CollectionIndex) -> None:
        known = self._collection(collection.name)
        for name in index.fields:
            known.get_field(name)
        assert index.name is not None
        self._indexes[collection.name][index.name] = index
        logger.debug("Ensured index %s", index.name)

    async def ensure_foreign_key(
        self, collection: Collection, foreign_key: CollectionForeignKey
    ) -> None:
        self._collection(collection.name).get_field(foreign_key.field)
        target = self._collection(foreign_key.target.collection.name)
        target.get_field(foreign_key.target.field)
        assert foreign_key.name is not None
        self._foreign_keys[collection.name][foreign_key.name] = foreign_key
        logger.debug("Ensured foreign key %s", foreign_key.name)

    # -- documents ---------------------------------------------------------------

    async def find(self, query: Query) -> InMemoryCursor[DataMap]:
        if query.joins:
            raise ValidationError({"joins": [f"{type(self).__name__} does not support joins"]})
        name = query.collection.name
        collection = self._collection(name)
        where = query.where_clause
        rows = [row for row in self._rows(name) if self._evaluator.matches(where, row)]

        # Stable sorts applied last key first give a multi-key ordering.
        for order in reversed(query.orders):
            collection.get_field(order.field)
            descending = order.order is SortOrder.DESC
            rows.sort(
                key=lambda row, f=order.field, d=descending: _sort_key(row.get(f), d),
                reverse=descending,
            )

        rows = rows[query.offset :]
        if query.size >= 0:
            rows = rows[: query.size]

        selected = query.fields
        documents: list[DataMap] = [
            {
                name: {
                    key: [copy.deepcopy(value)]
                    for key, value in row.items()
                    if not selected or key in selected
                }
            }
            for row in rows
        ]
        return InMemoryCursor(documents)

    async def find_one(self, query: Query) -> DataMap | None:
        cursor = await self.find(query)
        async with cursor:
            return await cursor.next()

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        known = self._collection(collection)
        row: Row = {}
        for key, value in data.items():
            known.get_field(key)
            row[key] = copy.deepcopy(value)

        for field in known.fields:
            if field.sequence and row.get(field.name) is None:
                sequence = (
                    field.sequence
                    if isinstance(field.sequence, str)
                    else f"{collection}.{field.name}"
                )
                self._sequences[sequence] = self._sequences.get(sequence, 0) + 1
                row[field.name] = self._sequences[sequence]

        rows = self._rows(collection)
        self._check_unique(collection, row, rows)
        rows.append(row)
        return dict(row)

    async def save(
        self,
        collection: str,
        primary_key: dict[str, Any],
        data: dict[str, Any],
    ) -> None:
        known = self._collection(collection)
        for key in data:
            known.get_field(key)
        rows = self._rows(collection)
        position = self._locate(collection, rows, primary_key)
        updated = {**rows[position], **copy.deepcopy(data)}
        self._check_unique(collection, updated, rows[:position] + rows[position + 1 :])
        rows[position] = updated

    async def remove(self, collection: str, primary_key: dict[str, Any]) -> None:
        rows = self._rows(collection)
        del rows[self._locate(collection, rows, primary_key)]

    # -- transactions & lifecycle -----------------------------------------------

    async def commit(self) -> None:
        self._committed = copy.deepcopy(self._working)
        self.commit_count += 1

    async def rollback(self) -> None:
        self._working = copy.deepcopy(self._committed)
        self.rollback_count += 1

    async def close(self) -> None:
        self.closed = True

    # ── Test helpers ─────────────────────────────────────────────

    def rows(self, collection: str, *, committed: bool = False) -> list[Row]:
        """Return a copy of the stored rows of *collection*."""
        self._collection(collection)
        source = self._committed if committed else self._working
        return copy.deepcopy(source[collection])

    # -- internals ---------------------------------------------------------------

    def _collection(self, name: str) -> Collection:
        collection = self._collections.get(name)
        if collection is None:
            raise CollectionNotFoundError(name, type(self).__name__, self._collections)
        return collection

    def _rows(self, name: str) -> list[Row]:
        self._collection(name)
        return self._working[name]

    def _locate(self, collection: str, rows: list[Row], primary_key: dict[str, Any]) -> int:
        if not primary_key:
            raise ValidationError({"primary_key": ["Primary key must not be empty"]})
        for position, row in enumerate(rows):
            if all(row.get(k) == v for k, v in primary_key.items()):
                return position
        label = ", ".join(f"{k}={v!r}" for k, v in primary_key.items())
        raise DocumentNotFoundError(label, collection)

    def _check_unique(self, collection: str, row: Row, others: list[Row]) -> None:
        constraints: list[tuple[str, tuple[str, ...]]] = []
        primary_key = tuple(f.name for f in self._collections[collection].primary_key)
        if primary_key:
            constraints.append(("primary key", primary_key))
        constraints.extend(
            (f"unique index '{index.name}'", index.fields)
            for index in self._indexes[collection].values()
            if index.unique
        )

        for label, fields in constraints:
            key = tuple(row.get(f) for f in fields)
            if any(v is None for v in key):
                continue
            if any(tuple(other.get(f) for f in fields) == key for other in others):
                raise ValidationError(
                    {
                        ".".join(fields): [
                            f"Duplicate value {key!r} violates {label} of '{collection}'"
                        ]
                    }
                )


def _sort_key(value: Any, descending: bool) -> tuple[bool, Any]:
    # Nulls sort last in both directions.
    missing = value is None
    return (not missing if descending else missing, value)
