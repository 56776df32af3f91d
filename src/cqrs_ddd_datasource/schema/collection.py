"""Collection — physical shape of one storage collection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..exceptions import (
    DuplicateNameError,
    FieldNotFoundError,
    ForeignKeyNotFoundError,
    IndexNotFoundError,
    ValidationError,
)
from ..validation import validate_model
from .field import CollectionField
from .foreign_key import CollectionForeignKey
from .index import CollectionIndex

if TYPE_CHECKING:
    from collections.abc import Mapping


class Collection:
    """
    A table / document collection: fields, indexes and foreign keys.

    Elements are added incrementally, at most once per name, and are
    immutable once added::

        users = Collection("users")
        users.add_field(
            {"name": "id", "type": "integer", "raw_type": "INTEGER",
             "converter": IntegerConverter(), "primary_key": True}
        )
        users.add_index({"fields": ["email"], "unique": True})
        users.get_index("users.email").unique  # True
    """

    def __init__(self, name: str) -> None:
        if not isinstance(name, str) or not name:
            raise ValidationError({"name": ["Collection name must be a non-empty string"]})
        self._name = name
        self._fields: dict[str, CollectionField] = {}
        self._indexes: dict[str, CollectionIndex] = {}
        self._foreign_keys: dict[str, CollectionForeignKey] = {}

    def __repr__(self) -> str:
        return f"Collection({self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def fields(self) -> tuple[CollectionField, ...]:
        return tuple(self._fields.values())

    @property
    def indexes(self) -> tuple[CollectionIndex, ...]:
        return tuple(self._indexes.values())

    @property
    def foreign_keys(self) -> tuple[CollectionForeignKey, ...]:
        return tuple(self._foreign_keys.values())

    @property
    def primary_key(self) -> tuple[CollectionField, ...]:
        return tuple(f for f in self._fields.values() if f.primary_key)

    # -- fields ----------------------------------------------------------------

    def has_field(self, name: str) -> bool:
        return name in self._fields

    def get_field(self, name: str) -> CollectionField:
        field = self._fields.get(name)
        if field is None:
            raise FieldNotFoundError(name, self._name, self._fields)
        return field

    def add_field(
        self, descriptor: CollectionField | Mapping[str, Any]
    ) -> CollectionField:
        field = validate_model(CollectionField, descriptor)
        if field.name in self._fields:
            raise DuplicateNameError("field", field.name, self._name)
        self._fields[field.name] = field
        return field

    # -- indexes ---------------------------------------------------------------

    def has_index(self, name: str) -> bool:
        return name in self._indexes

    def get_index(self, name: str) -> CollectionIndex:
        index = self._indexes.get(name)
        if index is None:
            raise IndexNotFoundError(name, self._name, self._indexes)
        return index

    def add_index(
        self, descriptor: CollectionIndex | Mapping[str, Any]
    ) -> CollectionIndex:
        index = validate_model(CollectionIndex, descriptor)
        if index.name is None:
            index = index.model_copy(update={"name": self.derive_name(index.fields)})
        if index.name in self._indexes:
            raise DuplicateNameError("index", index.name, self._name)
        self._indexes[index.name] = index
        return index

    # -- foreign keys ----------------------------------------------------------

    def get_foreign_key(self, name: str) -> CollectionForeignKey:
        foreign_key = self._foreign_keys.get(name)
        if foreign_key is None:
            raise ForeignKeyNotFoundError(name, self._name, self._foreign_keys)
        return foreign_key

    def add_foreign_key(
        self, descriptor: CollectionForeignKey | Mapping[str, Any]
    ) -> CollectionForeignKey:
        foreign_key = validate_model(CollectionForeignKey, descriptor)
        if foreign_key.name is None:
            foreign_key = foreign_key.model_copy(
                update={"name": self.derive_name(foreign_key.fields)}
            )
        if foreign_key.name in self._foreign_keys:
            raise DuplicateNameError("foreign key", foreign_key.name, self._name)
        self._foreign_keys[foreign_key.name] = foreign_key
        return foreign_key

    # -- naming ----------------------------------------------------------------

    def derive_name(self, fields: tuple[str, ...]) -> str:
        """Default index or foreign-key name over *fields*."""
        return ".".join((self._name, *fields))
