"""
ClassHierarchyMapping — one collection per class hierarchy.

The root mapping owns the collection; every mapping extending it stores
its own fields in the same collection, and rows are told apart by the
discriminator fields of the virtual mappings along the chain::

    animals = ClassHierarchyMapping(
        Animal, driver, schema,
        fields=[{"name": "id", "type": "integer", "primary_key": True,
                 "sequence": True}],
        virtual="kind",
    )
    dogs = ClassHierarchyMapping(
        Dog, driver, schema,
        fields=[{"name": "good_boy", "type": "boolean"}],
        extends=animals,
        discriminator_values={"kind": "dog"},
    )

    await animals.find({"id": {"$lt": 10}})  # yields Dog instances for dog rows
"""

from __future__ import annotations

import logging
from collections.abc import Mapping as MappingABC
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from ..exceptions import DuplicateNameError, FieldNotFoundError, ValidationError
from ..query.options import FindOptions
from ..query.query import Query
from ..schema.collection import Collection
from ..schema.index import CollectionIndex
from ..types import FieldType, QueryOperator
from ..validation import validate_model
from .base import Mapping
from .fields import MappingField

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..ports.driver import DataMap, Driver
    from ..schema.schema import Schema
    from .cursor import MappingCursor

logger = logging.getLogger("cqrs_ddd.datasource.mapping")

TModel = TypeVar("TModel", bound=BaseModel)

_LIST_OPERATORS = frozenset({QueryOperator.IN, QueryOperator.NIN})


class ClassHierarchyMapping(Mapping[TModel]):
    """
    Maps a pydantic model hierarchy onto a single collection.

    Extra arguments:
        collection: Collection name, root mappings only; defaults to the
            lower-cased mapping name.
        indexes: Index descriptors whose ``fields`` are model attribute names.
    """

    _collection: Collection

    def __init__(
        self,
        model: type[TModel],
        driver: Driver,
        schema: Schema,
        *,
        fields: Iterable[MappingField | MappingABC[str, Any]] = (),
        name: str | None = None,
        virtual: str | None = None,
        extends: ClassHierarchyMapping[Any] | None = None,
        discriminator_values: MappingABC[str, str] | None = None,
        collection: str | None = None,
        indexes: Iterable[CollectionIndex | MappingABC[str, Any]] = (),
    ) -> None:
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise ValidationError({"model": ["Expected a pydantic model class"]})
        if extends is not None and not isinstance(extends, ClassHierarchyMapping):
            raise ValidationError(
                {"extends": ["A class hierarchy mapping can only extend another one"]}
            )
        if collection is not None and extends is not None:
            raise ValidationError(
                {"collection": ["Only the root mapping of a hierarchy names the collection"]}
            )
        if collection is not None and (not isinstance(collection, str) or not collection):
            raise ValidationError({"collection": ["Collection name must be a non-empty string"]})

        self._collection_name = collection
        self._index_descriptors = tuple(indexes)
        self._discriminator_field: MappingField | None = None
        super().__init__(
            model,
            driver,
            schema,
            fields=fields,
            name=name,
            virtual=virtual,
            extends=extends,
            discriminator_values=discriminator_values,
        )

    @property
    def collection(self) -> Collection:
        return self._collection

    # -- setup -------------------------------------------------------------------

    def _setup(self) -> None:
        # Nothing reaches the schema until every name has been checked.
        if self._parent is None:
            collection = Collection(self._collection_name or self._name.lower())
            if self._schema.has_collection(collection.name):
                raise DuplicateNameError("collection", collection.name)
        else:
            assert isinstance(self._parent, ClassHierarchyMapping)
            collection = self._parent._collection
        self._collection = collection

        if self._virtual is not None:
            self._discriminator_field = self._augment_field(
                {"name": self._virtual, "type": FieldType.STRING}
            )
        own = [self._discriminator_field] if self._discriminator_field else []
        columns = [field.to_collection_field() for field in [*own, *self._fields]]

        indexes: list[CollectionIndex] = []
        for descriptor in self._index_descriptors:
            index = validate_model(CollectionIndex, descriptor)
            names = tuple(self._field_by_ref(ref).name for ref in index.fields)
            indexes.append(
                index.model_copy(
                    update={"fields": names, "name": index.name or collection.derive_name(names)}
                )
            )

        seen: set[str] = set()
        for column in columns:
            if column.name in seen or collection.has_field(column.name):
                raise DuplicateNameError("field", column.name, collection.name)
            seen.add(column.name)
        seen.clear()
        for index in indexes:
            assert index.name is not None
            if index.name in seen or collection.has_index(index.name):
                raise DuplicateNameError("index", index.name, collection.name)
            seen.add(index.name)

        if self._parent is None:
            self._schema.add_collection(collection)
        for column in columns:
            collection.add_field(column)
        for index in indexes:
            collection.add_index(index)

    # -- field lookup --------------------------------------------------------------

    def _chain(self) -> list[ClassHierarchyMapping[Any]]:
        return [*self._ancestors(), self]  # type: ignore[list-item]

    def _known_fields(self) -> dict[str, MappingField]:
        """Queryable fields keyed by model attribute name, discriminators included."""
        known: dict[str, MappingField] = {}
        for mapping in self._chain():
            if mapping._discriminator_field is not None:
                known[mapping._discriminator_field.ref] = mapping._discriminator_field
            for field in mapping._fields:
                known[field.ref] = field
        return known

    def _field_by_ref(self, ref: str) -> MappingField:
        known = self._known_fields()
        field = known.get(ref)
        if field is None:
            raise FieldNotFoundError(ref, self._name, known)
        return field

    def _translate(
        self, query: Query, ref: str, operator: QueryOperator, value: Any
    ) -> None:
        field = self._field_by_ref(ref)
        converter = field.converter
        assert converter is not None
        try:
            if operator in _LIST_OPERATORS:
                if not isinstance(value, list | tuple | set | frozenset):
                    raise ValidationError(
                        {ref: [f"'{operator.value}' expects a list of values"]}
                    )
                raw: Any = [converter.to_raw(v) for v in value]
            elif operator is QueryOperator.REGEX:
                raw = value
            else:
                raw = converter.to_raw(value)
        except (TypeError, ValueError) as exc:
            raise ValidationError({ref: [str(exc)]}) from exc
        query.operation(field.name, operator, raw)

    # -- queries -------------------------------------------------------------------

    def _create_query(self) -> Query:
        query = Query(self._collection)
        query.where()
        for ancestor in self._ancestors():
            assert isinstance(ancestor, ClassHierarchyMapping)
            discriminator = ancestor._discriminator_field
            assert discriminator is not None and discriminator.converter is not None
            query.operation(
                discriminator.name,
                QueryOperator.EQ,
                discriminator.converter.to_raw(self._discriminator_values[discriminator.name]),
            )
        return query

    def _prepare_options(
        self, options: FindOptions | MappingABC[str, Any] | None
    ) -> FindOptions:
        find_options = validate_model(FindOptions, options if options is not None else {})
        return find_options.with_order_fields(
            {o.field: self._field_by_ref(o.field).name for o in find_options.order_by}
        )

    async def find(
        self,
        user_query: MappingABC[str, Any] | None = None,
        options: FindOptions | MappingABC[str, Any] | None = None,
    ) -> MappingCursor[TModel]:
        query = self._parse_user_query(
            {} if user_query is None else user_query,
            self._prepare_options(options),
            self._translate,
        )
        cursor = await self._driver.find(query)
        return self._decorate_cursor(cursor)

    async def find_one(
        self, user_query: MappingABC[str, Any] | None = None
    ) -> TModel | None:
        query = self._parse_user_query(
            {} if user_query is None else user_query,
            FindOptions(limit=1),
            self._translate,
        )
        data = await self._driver.find_one(query)
        if data is None:
            return None
        return self._build(self._convert_from(data))

    def _resolve_mapping(self, values: dict[str, list[Any]]) -> ClassHierarchyMapping[Any]:
        """Walk down virtual mappings to the one matching the row's discriminators."""
        mapping: ClassHierarchyMapping[Any] = self
        while mapping._virtual is not None:
            discriminator = mapping._virtual
            value = next(iter(values.get(discriminator) or [None]))
            child = next(
                (
                    c
                    for c in mapping._children
                    if c._discriminator_values.get(discriminator) == value
                ),
                None,
            )
            if child is None:
                break
            assert isinstance(child, ClassHierarchyMapping)
            mapping = child
        return mapping

    def _build(self, data: DataMap) -> TModel:
        values = data.get(self._collection.name, {})
        mapping = self._resolve_mapping(values)
        payload = {
            field.ref: values[field.name][0]
            for field in mapping._collect_fields()
            if values.get(field.name)
        }
        return validate_model(mapping.model, payload)

    # -- writes --------------------------------------------------------------------

    def _mapping_for(self, instance: Any) -> ClassHierarchyMapping[Any]:
        """Most specific mapping in this subtree whose model is the instance's class."""
        pending: list[ClassHierarchyMapping[Any]] = [self]
        while pending:
            mapping = pending.pop(0)
            if type(instance) is mapping.model:
                return mapping
            pending.extend(c for c in mapping._children if isinstance(c, ClassHierarchyMapping))
        if isinstance(instance, self._model):
            return self
        raise ValidationError(
            {"instance": [f"Expected a {self._model.__name__}, got {type(instance).__name__}"]}
        )

    def _instance_data(self, instance: Any, *, skip_unset_sequences: bool) -> dict[str, Any]:
        data: dict[str, list[Any]] = {}
        for field in self._collect_fields():
            value = getattr(instance, field.ref, None)
            if skip_unset_sequences and field.sequence and value is None:
                continue
            data[field.name] = [value]
        for key, value in self._discriminator_values.items():
            data[key] = [value]
        converted = self._convert_to({self._collection.name: data})[self._collection.name]
        return {name: values[0] for name, values in converted.items()}

    def _primary_key(self, data: dict[str, Any]) -> dict[str, Any]:
        keys = [f.name for f in self._collect_fields() if f.primary_key]
        if not keys:
            raise ValidationError({self._name: ["Mapping has no primary key field"]})
        return {key: data.get(key) for key in keys}

    async def create(self, instance: TModel) -> TModel:
        mapping = self._mapping_for(instance)
        data = mapping._instance_data(instance, skip_unset_sequences=True)
        document = await self._driver.create(self._collection.name, data)

        stored = self._convert_from(
            {self._collection.name: {k: [v] for k, v in document.items()}}
        )[self._collection.name]
        for field in mapping._collect_fields():
            if field.name not in stored:
                continue
            value = stored[field.name][0]
            if getattr(instance, field.ref, None) != value:
                setattr(instance, field.ref, value)
        logger.debug("Created %s in %s", mapping.name, self._collection.name)
        return instance

    async def save(self, instance: TModel) -> TModel:
        mapping = self._mapping_for(instance)
        data = mapping._instance_data(instance, skip_unset_sequences=False)
        primary_key = mapping._primary_key(data)
        changes = {k: v for k, v in data.items() if k not in primary_key}
        await self._driver.save(self._collection.name, primary_key, changes)
        return instance

    async def remove(self, instance: TModel) -> TModel:
        mapping = self._mapping_for(instance)
        data = mapping._instance_data(instance, skip_unset_sequences=False)
        await self._driver.remove(self._collection.name, mapping._primary_key(data))
        return instance

    async def sync(self) -> None:
        await self._driver.ensure_collection(self._collection)
        for index in self._collection.indexes:
            await self._driver.ensure_index(self._collection, index)
