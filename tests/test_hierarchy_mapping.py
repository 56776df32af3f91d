"""Tests for ClassHierarchyMapping: inheritance rules and CRUD on the in-memory driver."""

from __future__ import annotations

import datetime
from dataclasses import dataclass

import pytest
import pytest_asyncio
from pydantic import BaseModel

from cqrs_ddd_datasource.adapters.memory import InMemoryDriver
from cqrs_ddd_datasource.exceptions import (
    DocumentNotFoundError,
    DuplicateNameError,
    FieldNotFoundError,
    MissingDiscriminatorValueError,
    UnsupportedTypeError,
    ValidationError,
)
from cqrs_ddd_datasource.mapping import ClassHierarchyMapping, MappingCursor
from cqrs_ddd_datasource.query import Comparison
from cqrs_ddd_datasource.schema import Schema
from cqrs_ddd_datasource.types import QueryOperator
from tests.conftest import Animal, Cat, Dog, Kitten


@dataclass
class Zoo:
    driver: InMemoryDriver
    schema: Schema
    animals: ClassHierarchyMapping[Animal]
    dogs: ClassHierarchyMapping[Dog]
    cats: ClassHierarchyMapping[Cat]
    kittens: ClassHierarchyMapping[Kitten]


def build_zoo() -> Zoo:
    driver, schema = InMemoryDriver(), Schema()
    animals = ClassHierarchyMapping(
        Animal,
        driver,
        schema,
        collection="animals",
        virtual="kind",
        fields=[
            {"name": "id", "type": "integer", "primary_key": True, "sequence": True},
            {"name": "name", "type": "string"},
            {"name": "age", "type": "integer"},
        ],
        indexes=[{"fields": ["name"], "unique": True}],
    )
    dogs = ClassHierarchyMapping(
        Dog,
        driver,
        schema,
        extends=animals,
        discriminator_values={"kind": "dog"},
        fields=[{"name": "is_good", "ref": "good_boy", "type": "boolean"}],
        indexes=[{"fields": ["good_boy"]}],
    )
    cats = ClassHierarchyMapping(
        Cat,
        driver,
        schema,
        extends=animals,
        virtual="variant",
        discriminator_values={"kind": "cat"},
        fields=[{"name": "lives", "type": "integer"}],
    )
    kittens = ClassHierarchyMapping(
        Kitten,
        driver,
        schema,
        extends=cats,
        discriminator_values={"kind": "cat", "variant": "kitten"},
        fields=[{"name": "toy", "type": "string"}],
    )
    return Zoo(driver, schema, animals, dogs, cats, kittens)


@pytest.fixture
def zoo() -> Zoo:
    return build_zoo()


class TestConstruction:
    def test_hierarchy_shares_one_collection(self, zoo: Zoo) -> None:
        collection = zoo.schema.get_collection("animals")

        assert zoo.dogs.collection is collection
        assert zoo.kittens.collection is collection
        assert [f.name for f in collection.fields] == [
            "kind", "id", "name", "age", "is_good", "variant", "lives", "toy",
        ]
        assert collection.get_field("kind").raw_type == "VARCHAR"
        assert list(zoo.schema.collections) == ["animals"]

    def test_fields_are_augmented_by_the_driver(self, zoo: Zoo) -> None:
        (field,) = zoo.dogs.fields

        assert field.raw_type == "BOOLEAN"
        assert field.converter is not None
        assert field.ref == "good_boy"

    def test_index_fields_are_translated(self, zoo: Zoo) -> None:
        collection = zoo.animals.collection

        assert collection.get_index("animals.name").unique is True
        assert collection.get_index("animals.is_good").fields == ("is_good",)

    def test_parent_and_children(self, zoo: Zoo) -> None:
        assert zoo.animals.children == (zoo.dogs, zoo.cats)
        assert zoo.kittens.parent is zoo.cats
        assert zoo.cats.is_virtual and zoo.cats.discriminator == "variant"
        assert not zoo.dogs.is_virtual
        assert zoo.kittens.discriminator_values == {"kind": "cat", "variant": "kitten"}

    def test_collected_fields_run_root_first(self, zoo: Zoo) -> None:
        assert [f.ref for f in zoo.kittens._collect_fields()] == [
            "id", "name", "age", "lives", "toy",
        ]

    def test_name_defaults_to_model_name(self, zoo: Zoo) -> None:
        assert zoo.dogs.name == "Dog"

    def test_cannot_extend_a_concrete_mapping(self, zoo: Zoo) -> None:
        class Puppy(Dog):
            pass

        with pytest.raises(ValidationError):
            ClassHierarchyMapping(
                Puppy, zoo.driver, zoo.schema, extends=zoo.dogs,
                discriminator_values={"kind": "dog"},
            )

    def test_missing_discriminator_value(self, zoo: Zoo) -> None:
        with pytest.raises(MissingDiscriminatorValueError) as exc_info:
            ClassHierarchyMapping(
                Kitten, zoo.driver, zoo.schema, name="Kitten2", extends=zoo.cats,
                discriminator_values={"kind": "cat"},
            )

        assert exc_info.value.discriminator == "variant"
        assert exc_info.value.ancestor == "Cat"

    def test_unknown_discriminator_key(self, zoo: Zoo) -> None:
        with pytest.raises(ValidationError):
            ClassHierarchyMapping(
                Dog, zoo.driver, zoo.schema, name="Dog2", extends=zoo.animals,
                discriminator_values={"kind": "dog", "size": "small"},
            )

    def test_conflicting_inherited_value(self, zoo: Zoo) -> None:
        with pytest.raises(ValidationError):
            ClassHierarchyMapping(
                Kitten, zoo.driver, zoo.schema, name="Kitten2", extends=zoo.cats,
                discriminator_values={"kind": "dog", "variant": "kitten"},
            )

    def test_field_shadowing_is_rejected(self, zoo: Zoo) -> None:
        with pytest.raises(DuplicateNameError):
            ClassHierarchyMapping(
                Dog, zoo.driver, zoo.schema, name="Dog2", extends=zoo.animals,
                discriminator_values={"kind": "dog"},
                fields=[{"name": "name", "type": "string"}],
            )

    def test_failed_child_is_not_registered(self, zoo: Zoo) -> None:
        with pytest.raises(DuplicateNameError):
            ClassHierarchyMapping(
                Dog, zoo.driver, zoo.schema, name="Dog2", extends=zoo.animals,
                discriminator_values={"kind": "dog"},
                fields=[{"name": "age", "type": "integer"}],
            )

        assert len(zoo.animals.children) == 2

    def test_sibling_clash_leaves_the_collection_untouched(self, zoo: Zoo) -> None:
        before = [f.name for f in zoo.animals.collection.fields]

        with pytest.raises(DuplicateNameError):
            ClassHierarchyMapping(
                Dog, zoo.driver, zoo.schema, name="Dog2", extends=zoo.animals,
                discriminator_values={"kind": "dog"},
                fields=[
                    {"name": "barks", "type": "boolean"},
                    {"name": "lives", "type": "integer"},
                ],
            )

        assert [f.name for f in zoo.animals.collection.fields] == before
        assert len(zoo.animals.children) == 2

    def test_index_clash_leaves_the_collection_untouched(self, zoo: Zoo) -> None:
        before = [f.name for f in zoo.animals.collection.fields]

        with pytest.raises(DuplicateNameError):
            ClassHierarchyMapping(
                Dog, zoo.driver, zoo.schema, name="Dog2", extends=zoo.animals,
                discriminator_values={"kind": "dog"},
                fields=[{"name": "barks", "type": "boolean"}],
                indexes=[{"name": "animals.name", "fields": ["barks"]}],
            )

        assert [f.name for f in zoo.animals.collection.fields] == before
        assert not zoo.animals.collection.has_index("animals.barks")

    def test_rejected_root_does_not_register_its_collection(self) -> None:
        schema = Schema()

        with pytest.raises(FieldNotFoundError):
            ClassHierarchyMapping(
                Animal, InMemoryDriver(), schema,
                fields=[{"name": "id", "type": "integer"}],
                indexes=[{"fields": ["nickname"]}],
            )

        assert not schema.has_collection("animal")

    def test_root_takes_no_discriminator_values(self) -> None:
        with pytest.raises(ValidationError):
            ClassHierarchyMapping(
                Animal, InMemoryDriver(), Schema(), discriminator_values={"kind": "x"}
            )

    def test_only_pydantic_models(self) -> None:
        class Plain:
            pass

        with pytest.raises(ValidationError):
            ClassHierarchyMapping(Plain, InMemoryDriver(), Schema())  # type: ignore[type-var]

    def test_unsupported_field_type_propagates(self) -> None:
        with pytest.raises(UnsupportedTypeError):
            ClassHierarchyMapping(
                Animal, InMemoryDriver(), Schema(),
                fields=[{"name": "age", "type": "integer", "raw_type": "UUID"}],
            )

    def test_child_cannot_name_the_collection(self, zoo: Zoo) -> None:
        with pytest.raises(ValidationError):
            ClassHierarchyMapping(
                Dog, zoo.driver, zoo.schema, name="Dog2", extends=zoo.animals,
                discriminator_values={"kind": "dog"}, collection="dogs",
            )


class TestQueries:
    def test_child_query_is_seeded_with_discriminators(self, zoo: Zoo) -> None:
        query = zoo.kittens._create_query()

        assert query.where_clause.children == (
            Comparison(QueryOperator.EQ, "kind", "cat"),
            Comparison(QueryOperator.EQ, "variant", "kitten"),
        )

    def test_root_query_is_unfiltered(self, zoo: Zoo) -> None:
        assert zoo.animals._create_query().where_clause.children == ()


@pytest.mark.asyncio
class TestCrud:
    @pytest_asyncio.fixture
    async def stocked(self, zoo: Zoo) -> Zoo:
        await zoo.animals.sync()
        await zoo.animals.create(Dog(name="Rex", age=3, good_boy=True))
        await zoo.animals.create(Cat(name="Tom", age=7, lives=9))
        await zoo.kittens.create(Kitten(name="Mia", age=1, lives=9, toy="yarn"))
        await zoo.dogs.create(Dog(name="Bolt", age=5, good_boy=False))
        return zoo

    async def test_create_assigns_sequence_and_discriminators(self, zoo: Zoo) -> None:
        await zoo.animals.sync()
        dog = Dog(name="Rex", age=3)

        returned = await zoo.animals.create(dog)

        assert returned is dog
        assert dog.id == 1
        assert zoo.driver.rows("animals") == [
            {"kind": "dog", "name": "Rex", "age": 3, "is_good": 1, "id": 1}
        ]

    async def test_root_find_builds_the_most_specific_model(self, stocked: Zoo) -> None:
        cursor = await stocked.animals.find()
        found = await cursor.to_list()

        assert isinstance(cursor, MappingCursor)
        assert [type(a) for a in found] == [Dog, Cat, Kitten, Dog]
        assert found[2] == Kitten(id=3, name="Mia", age=1, lives=9, toy="yarn")

    async def test_child_find_is_restricted_to_its_rows(self, stocked: Zoo) -> None:
        dogs = await (await stocked.dogs.find()).to_list()
        cats = await (await stocked.cats.find()).to_list()

        assert [d.name for d in dogs] == ["Rex", "Bolt"]
        assert [type(c) for c in cats] == [Cat, Kitten]

    async def test_find_with_filter_and_options(self, stocked: Zoo) -> None:
        cursor = await stocked.animals.find(
            {"age": {"$gte": 3}},
            {"order_by": [{"field": "age", "order": "desc"}], "limit": 2},
        )

        assert [a.name for a in await cursor.to_list()] == ["Tom", "Bolt"]

    async def test_find_on_renamed_field(self, stocked: Zoo) -> None:
        cursor = await stocked.dogs.find({"good_boy": False})

        assert [d.name for d in await cursor.to_list()] == ["Bolt"]

    async def test_find_skip(self, stocked: Zoo) -> None:
        cursor = await stocked.animals.find(None, {"skip": 3})

        assert [a.name for a in await cursor.to_list()] == ["Bolt"]

    async def test_find_one(self, stocked: Zoo) -> None:
        kitten = await stocked.cats.find_one({"variant": "kitten"})
        missing = await stocked.dogs.find_one({"name": "Tom"})

        assert isinstance(kitten, Kitten)
        assert kitten.name == "Mia"
        assert missing is None

    async def test_cursor_each_is_sequential(self, stocked: Zoo) -> None:
        names: list[str] = []

        async def collect(animal: Animal) -> None:
            names.append(animal.name)

        cursor = await stocked.animals.find({"$or": [{"name": "Rex"}, {"name": "Mia"}]})
        await cursor.each(collect)

        assert names == ["Rex", "Mia"]

    async def test_save_updates_the_row(self, stocked: Zoo) -> None:
        rex = await stocked.dogs.find_one({"name": "Rex"})
        assert rex is not None
        rex.age = 4

        await stocked.animals.save(rex)

        again = await stocked.dogs.find_one({"id": rex.id})
        assert again is not None and again.age == 4

    async def test_unique_index_is_enforced(self, stocked: Zoo) -> None:
        with pytest.raises(ValidationError):
            await stocked.dogs.create(Dog(name="Rex"))

    async def test_remove(self, stocked: Zoo) -> None:
        tom = await stocked.cats.find_one({"name": "Tom"})
        assert tom is not None

        await stocked.cats.remove(tom)

        assert await stocked.cats.find_one({"name": "Tom"}) is None
        with pytest.raises(DocumentNotFoundError):
            await stocked.cats.remove(tom)

    async def test_wrong_instance_type(self, stocked: Zoo) -> None:
        with pytest.raises(ValidationError):
            await stocked.dogs.create(Cat(name="Felix"))

    async def test_save_without_primary_key(self) -> None:
        class Note(BaseModel):
            text: str = ""

        driver = InMemoryDriver()
        notes = ClassHierarchyMapping(
            Note, driver, Schema(), fields=[{"name": "text", "type": "text"}]
        )
        await notes.sync()
        note = await notes.create(Note(text="hello"))

        with pytest.raises(ValidationError):
            await notes.save(note)
        with pytest.raises(ValidationError):
            await notes.remove(note)

    async def test_create_keeps_plain_dates(self) -> None:
        class Member(BaseModel):
            id: int | None = None
            born: datetime.date | None = None
            seen: datetime.datetime | None = None

        driver = InMemoryDriver()
        members = ClassHierarchyMapping(
            Member,
            driver,
            Schema(),
            fields=[
                {"name": "id", "type": "integer", "primary_key": True, "sequence": True},
                {"name": "born", "type": "date"},
                {"name": "seen", "type": "date"},
            ],
        )
        await members.sync()
        member = Member(born=datetime.date(1990, 5, 1), seen=datetime.datetime(2024, 1, 2))

        await members.create(member)
        found = await members.find_one({"id": member.id})

        assert type(member.born) is datetime.date
        assert driver.rows("member")[0]["born"] == "1990-05-01"
        assert found is not None
        assert type(found.born) is datetime.date
        assert found.born == datetime.date(1990, 5, 1)
        assert type(found.seen) is datetime.datetime
