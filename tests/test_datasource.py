"""Tests for DataSource wiring and transactions."""

from __future__ import annotations

import logging

import pytest

from cqrs_ddd_datasource import DataSource
from cqrs_ddd_datasource.adapters.memory import InMemoryDriver
from cqrs_ddd_datasource.exceptions import (
    DataSourceError,
    DuplicateNameError,
    MappingNotFoundError,
    ValidationError,
)
from cqrs_ddd_datasource.mapping import ClassHierarchyMapping
from cqrs_ddd_datasource.schema import Schema
from tests.conftest import Animal


def animal_mapping(source: DataSource, **extra) -> ClassHierarchyMapping[Animal]:
    return ClassHierarchyMapping(
        Animal,
        source.driver,
        source.schema,
        collection="animals",
        fields=[
            {"name": "id", "type": "integer", "primary_key": True, "sequence": True},
            {"name": "name", "type": "string"},
        ],
        **extra,
    )


class TestRegistry:
    def test_default_schema(self) -> None:
        source = DataSource(InMemoryDriver())

        assert isinstance(source.schema, Schema)
        assert source.mappings == {}

    def test_register_and_lookup(self) -> None:
        source = DataSource(InMemoryDriver())
        animals = source.register_mapping(animal_mapping(source))

        assert source.mapping("Animal") is animals
        assert source.mappings == {"Animal": animals}

    def test_duplicate_registration(self) -> None:
        source = DataSource(InMemoryDriver())
        animals = source.register_mapping(animal_mapping(source))

        with pytest.raises(DuplicateNameError):
            source.register_mapping(animals)

    def test_mapping_bound_elsewhere_is_rejected(self) -> None:
        source = DataSource(InMemoryDriver())
        other = DataSource(InMemoryDriver())

        with pytest.raises(ValidationError):
            source.register_mapping(animal_mapping(other))

    def test_missing_mapping_suggests(self) -> None:
        source = DataSource(InMemoryDriver())
        source.register_mapping(animal_mapping(source))

        with pytest.raises(MappingNotFoundError) as exc_info:
            source.mapping("Animals")

        assert exc_info.value.suggestions == ["Animal"]

    def test_driver_type_is_checked(self) -> None:
        with pytest.raises(ValidationError):
            DataSource(object())  # type: ignore[arg-type]


@pytest.mark.asyncio
class TestLifecycle:
    async def test_sync_provisions_the_schema(self) -> None:
        driver = InMemoryDriver()
        source = DataSource(driver)
        animal_mapping(source)

        await source.sync()

        assert driver.rows("animals") == []

    async def test_transaction_commits(self) -> None:
        driver = InMemoryDriver()
        source = DataSource(driver)
        animals = animal_mapping(source)
        await source.sync()

        async with source.transaction():
            await animals.create(Animal(name="Rex"))

        assert driver.commit_count == 1
        assert driver.rows("animals", committed=True) == [{"name": "Rex", "id": 1}]

    async def test_transaction_rolls_back_and_reraises(self, caplog) -> None:
        driver = InMemoryDriver()
        source = DataSource(driver)
        animals = animal_mapping(source)
        await source.sync()

        with caplog.at_level(logging.WARNING, logger="cqrs_ddd.datasource"):
            with pytest.raises(RuntimeError, match="boom"):
                async with source.transaction():
                    await animals.create(Animal(name="Rex"))
                    raise RuntimeError("boom")

        assert driver.rollback_count == 1
        assert driver.commit_count == 0
        assert driver.rows("animals") == []
        assert "rolled back" in caplog.text

    async def test_data_source_errors_propagate_through_transactions(self) -> None:
        driver = InMemoryDriver()
        source = DataSource(driver)
        animals = animal_mapping(source)
        await source.sync()

        with pytest.raises(DataSourceError):
            async with source.transaction():
                await animals.save(Animal(id=42, name="ghost"))

        assert driver.rollback_count == 1

    async def test_context_manager_closes_driver(self) -> None:
        driver = InMemoryDriver()

        async with DataSource(driver) as source:
            assert source.driver is driver

        assert driver.closed is True
