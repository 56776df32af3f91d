"""
Mapping — translation layer between a model type and stored collections.

A mapping knows the model's fields, asks the driver for the physical
types and converters it lacks, parses human-written filters into a
:class:`Query`, and converts data in both directions. Storage strategies
(one collection per class hierarchy, per class, per concrete class)
subclass it and implement the abstract surface.

Human-written filters::

    {
        "id": 21,                                 # implicit $eq
        "name": {"$neq": "test"},
        "$or": [{"age": {"$lt": 18}}, {"age": {"$gt": 65}}],
        "rights": {"$in": ["read"], "$regex": "^[a-z]+$"},
        "$not": {"active": False},
    }
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping as MappingABC
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..exceptions import (
    DuplicateNameError,
    FieldRequiredError,
    MissingDiscriminatorValueError,
    MultipleFieldsInBranchError,
    UnknownOperatorError,
    ValidationError,
)
from ..ports.driver import Driver
from ..query.options import FindOptions
from ..schema.schema import Schema
from ..types import OPERATOR_VALUES, QueryOperator
from ..validation import validate_model
from .cursor import MappingCursor
from .fields import MappingConfig, MappingField

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from ..ports.cursor import Cursor
    from ..ports.driver import DataMap
    from ..query.query import Query

    # (query, model field, operator, value) -> None; registers the operation.
    UserQueryTranslator = Callable[["Query", str, QueryOperator, Any], None]

logger = logging.getLogger("cqrs_ddd.datasource.mapping")

TModel = TypeVar("TModel")


class Mapping(ABC, Generic[TModel]):
    """
    Base mapping for a model class.

    Inheritance is data driven: a mapping declared ``virtual`` names a
    discriminator field, and mappings that ``extends`` it must give a
    discriminator value for every ancestor in the chain. Fields are
    collected root to leaf; a descendant may not re-declare a field name
    already declared by an ancestor.
    """

    def __init__(
        self,
        model: type[TModel],
        driver: Driver,
        schema: Schema,
        *,
        fields: Iterable[MappingField | MappingABC[str, Any]] = (),
        name: str | None = None,
        virtual: str | None = None,
        extends: Mapping[Any] | None = None,
        discriminator_values: MappingABC[str, str] | None = None,
    ) -> None:
        if not isinstance(driver, Driver):
            raise ValidationError({"driver": [f"Expected a Driver, got {type(driver).__name__}"]})
        if not isinstance(schema, Schema):
            raise ValidationError({"schema": [f"Expected a Schema, got {type(schema).__name__}"]})
        config = validate_model(
            MappingConfig,
            {
                "model": model,
                "name": name if name is not None else getattr(model, "__name__", None),
                "fields": tuple(fields),
                "virtual": virtual,
                "extends": extends,
                "discriminator_values": dict(discriminator_values or {}),
            },
        )

        self._model: type[TModel] = config.model
        self._driver = driver
        self._schema = schema
        self._name: str = config.name
        self._virtual: str | None = config.virtual
        self._parent: Mapping[Any] | None = config.extends
        self._children: list[Mapping[Any]] = []
        self._discriminator_values: dict[str, str] = dict(config.discriminator_values)
        self._fields: tuple[MappingField, ...] = tuple(
            self._augment_field(f) for f in config.fields
        )

        self._check_inheritance()
        self._check_field_names()
        self._setup()
        if self._parent is not None:
            self._parent._children.append(self)
        logger.debug(
            "Mapping %s ready (%d fields, parent=%s)",
            self._name,
            len(self._fields),
            self._parent.name if self._parent else None,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"

    # -- read-only state -------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> type[TModel]:
        return self._model

    @property
    def driver(self) -> Driver:
        return self._driver

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def fields(self) -> tuple[MappingField, ...]:
        """Fields declared by this mapping only (see ``_collect_fields``)."""
        return self._fields

    @property
    def parent(self) -> Mapping[Any] | None:
        return self._parent

    @property
    def children(self) -> tuple[Mapping[Any], ...]:
        return tuple(self._children)

    @property
    def is_virtual(self) -> bool:
        return self._virtual is not None

    @property
    def discriminator(self) -> str | None:
        return self._virtual

    @property
    def discriminator_values(self) -> dict[str, str]:
        return dict(self._discriminator_values)

    # -- construction helpers --------------------------------------------------

    def _setup(self) -> None:
        """Hook for strategies, run once validation passed and before the
        mapping is attached to its parent."""

    def _check_inheritance(self) -> None:
        parent = self._parent
        if parent is None:
            if self._discriminator_values:
                raise ValidationError(
                    {"discriminator_values": ["Only extending mappings take discriminator values"]}
                )
            return

        if not parent.is_virtual:
            raise ValidationError(
                {"extends": [f"Mapping '{parent.name}' is not virtual and cannot be extended"]}
            )

        ancestors = self._ancestors()
        expected = {a.discriminator for a in ancestors}
        for ancestor in ancestors:
            assert ancestor.discriminator is not None
            if ancestor.discriminator not in self._discriminator_values:
                raise MissingDiscriminatorValueError(
                    self._name, ancestor.name, ancestor.discriminator
                )

        unknown = sorted(set(self._discriminator_values) - expected)
        if unknown:
            raise ValidationError(
                {"discriminator_values": [f"Unknown discriminator(s): {', '.join(unknown)}"]}
            )

        # Values inherited through the parent must agree with the parent's own.
        for key, value in parent._discriminator_values.items():
            if self._discriminator_values[key] != value:
                raise ValidationError(
                    {
                        f"discriminator_values.{key}": [
                            f"Value '{self._discriminator_values[key]}' conflicts with "
                            f"'{value}' inherited from '{parent.name}'"
                        ]
                    }
                )

    def _check_field_names(self) -> None:
        taken: dict[str, str] = {}
        for ancestor in self._ancestors():
            assert ancestor.discriminator is not None
            taken[ancestor.discriminator] = ancestor.name
            for f in ancestor._fields:
                taken[f.name] = ancestor.name
                taken[f.ref] = ancestor.name
        if self._virtual is not None:
            if self._virtual in taken:
                raise DuplicateNameError("field", self._virtual, taken[self._virtual])
            taken[self._virtual] = self._name

        local_refs: set[str] = set()
        for f in self._fields:
            if f.name in taken:
                raise DuplicateNameError("field", f.name, taken[f.name])
            if f.ref in taken or f.ref in local_refs:
                raise DuplicateNameError("field", f.ref, taken.get(f.ref, self._name))
            taken[f.name] = self._name
            local_refs.add(f.ref)

    def _augment_field(self, field: MappingField | MappingABC[str, Any]) -> MappingField:
        """
        Fill the gaps of a field descriptor.

        ``raw_type`` is coerced from ``type`` and ``converter`` is created
        from ``raw_type`` by the driver when they are not given. Driver
        errors (e.g. ``UnsupportedTypeError``) propagate.
        """
        descriptor = validate_model(MappingField, field)
        update: dict[str, Any] = {}
        raw_type = descriptor.raw_type
        if raw_type is None:
            raw_type = update["raw_type"] = self._driver.coerce_type(descriptor.type.value)
        if descriptor.converter is None:
            update["converter"] = self._driver.create_converter(raw_type)
        return descriptor.model_copy(update=update) if update else descriptor

    def _ancestors(self) -> list[Mapping[Any]]:
        """Ancestors from the root down to the direct parent."""
        chain: list[Mapping[Any]] = []
        current = self._parent
        while current is not None:
            chain.append(current)
            current = current._parent
        chain.reverse()
        return chain

    def _collect_fields(self) -> list[MappingField]:
        """Fields of the whole chain, root first."""
        return [f for m in (*self._ancestors(), self) for f in m._fields]

    # -- user query parsing ----------------------------------------------------

    def _parse_user_query(
        self,
        user_query: MappingABC[str, Any],
        options: FindOptions | MappingABC[str, Any] | None,
        translator: UserQueryTranslator,
    ) -> Query:
        """
        Parse a human-written filter into a new query.

        Field names and right-hand values go through *translator*, which is
        where model-to-storage renaming and value conversion happen.

        Raises:
            ValidationError: On malformed filters or options, including the
                ``UserQueryError`` family.
        """
        if not isinstance(user_query, MappingABC):
            raise ValidationError(
                {"user_query": [f"Expected a mapping, got {type(user_query).__name__}"]}
            )
        if not callable(translator):
            raise ValidationError({"translator": ["Translator must be callable"]})
        find_options = validate_model(FindOptions, options if options is not None else {})

        query = self._create_query()
        query.where()
        self._parse_user_query_expression(query, user_query, translator)

        query.skip(find_options.skip)
        if find_options.limit is not None:
            query.limit(find_options.limit)
        for order in find_options.order_by:
            query.order_by(order.field, order.order)

        logger.debug("Parsed user query for %s: %s", self._name, query.where_clause)
        return query

    def _parse_user_query_expression(
        self,
        query: Query,
        expression: Any,
        translator: UserQueryTranslator,
        field: str | None = None,
    ) -> None:
        """Parse every key of *expression* into the current query branch."""
        if not isinstance(expression, MappingABC):
            raise ValidationError(
                {field or "__root__": [f"Expected a mapping, got {type(expression).__name__}"]}
            )

        for key, data in expression.items():
            if key in OPERATOR_VALUES or (isinstance(key, str) and key.startswith("$")):
                self._parse_user_query_operation(query, key, data, translator, field)
                continue

            if field is not None:
                raise MultipleFieldsInBranchError(field, key)
            if isinstance(data, MappingABC):
                self._parse_conjunction(query, data, translator, key)
            else:
                self._parse_user_query_operation(
                    query, QueryOperator.EQ, data, translator, key
                )

    def _parse_conjunction(
        self,
        query: Query,
        expression: Any,
        translator: UserQueryTranslator,
        field: str | None,
    ) -> None:
        # Multi-key expressions get their own AND branch so they stay a
        # conjunction when the enclosing branch is an OR.
        if isinstance(expression, MappingABC) and len(expression) > 1:
            query.and_()
            self._parse_user_query_expression(query, expression, translator, field)
            query.end()
        else:
            self._parse_user_query_expression(query, expression, translator, field)

    def _parse_user_query_operation(
        self,
        query: Query,
        operator: QueryOperator | str,
        data: Any,
        translator: UserQueryTranslator,
        field: str | None = None,
    ) -> None:
        try:
            op = QueryOperator(operator)
        except ValueError:
            raise UnknownOperatorError(str(operator), OPERATOR_VALUES) from None

        if op is QueryOperator.AND or op is QueryOperator.OR:
            items = _expect_expressions(op, data, field)
            if op is QueryOperator.AND:
                query.and_()
                for item in items:
                    self._parse_user_query_expression(query, item, translator, field)
            else:
                query.or_()
                for item in items:
                    self._parse_conjunction(query, item, translator, field)
            query.end()
        elif op is QueryOperator.NOT:
            query.not_()
            self._parse_user_query_expression(query, data, translator, field)
            query.end()
        else:
            if field is None:
                raise FieldRequiredError(op.value)
            translator(query, field, op, data)

    # -- conversion ------------------------------------------------------------

    def _convert(self, data: DataMap, to_store: bool) -> DataMap:
        result: DataMap = {}
        for collection_name, values_by_field in data.items():
            collection = self._schema.get_collection(collection_name)
            converted: dict[str, list[Any]] = {}
            for field_name, values in values_by_field.items():
                field = collection.get_field(field_name)
                convert = field.converter.to_raw if to_store else field.converter.from_raw
                converted[field.name] = [convert(v) for v in values]
            result[collection.name] = converted
        return result

    def _convert_to(self, data: DataMap) -> DataMap:
        """Convert model-side values to the data-source format."""
        return self._convert(data, to_store=True)

    def _convert_from(self, data: DataMap) -> DataMap:
        """Convert data-source values to the model-side format."""
        return self._convert(data, to_store=False)

    def _decorate_cursor(self, cursor: Cursor[DataMap]) -> MappingCursor[TModel]:
        """Wrap a driver cursor so it yields model instances."""
        return MappingCursor(cursor, lambda data: self._build(self._convert_from(data)))

    # -- abstract surface --------------------------------------------------------

    @abstractmethod
    def _create_query(self) -> Query:
        """Create the query a user filter is parsed into."""
        ...

    @abstractmethod
    def _build(self, data: DataMap) -> TModel:
        """Construct a model instance from converted data."""
        ...

    @abstractmethod
    async def find(
        self,
        user_query: MappingABC[str, Any] | None = None,
        options: FindOptions | MappingABC[str, Any] | None = None,
    ) -> Cursor[TModel]:
        """Return a lazy cursor of instances honouring skip/limit/order_by."""
        ...

    @abstractmethod
    async def find_one(
        self, user_query: MappingABC[str, Any] | None = None
    ) -> TModel | None:
        """Return one matching instance, or ``None`` when nothing matches."""
        ...

    @abstractmethod
    async def create(self, instance: TModel) -> TModel:
        """
        Persist a new instance.

        The instance may be completed with driver-assigned values such as
        sequence-generated primary keys.
        """
        ...

    @abstractmethod
    async def save(self, instance: TModel) -> TModel:
        ...

    @abstractmethod
    async def remove(self, instance: TModel) -> TModel:
        ...

    @abstractmethod
    async def sync(self) -> None:
        """Provision the collection(s) backing this mapping."""
        ...


def _expect_expressions(
    op: QueryOperator, data: Any, field: str | None
) -> Sequence[MappingABC[str, Any]]:
    # Under an open field, {"$or": {"$lt": 1, "$gt": 9}} is one item per operator.
    if field is not None and isinstance(data, MappingABC) and data:
        return [{key: value} for key, value in data.items()]
    if (
        not isinstance(data, list | tuple)
        or not data
        or not all(isinstance(item, MappingABC) for item in data)
    ):
        raise ValidationError(
            {field or op.value: [f"'{op.value}' expects a non-empty list of expressions"]}
        )
    return data
