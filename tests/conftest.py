"""Shared fixtures for data-source tests."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import BaseModel

from cqrs_ddd_datasource.adapters.memory import InMemoryDriver, build_default_evaluator
from cqrs_ddd_datasource.converters import IntegerConverter, StringConverter
from cqrs_ddd_datasource.schema import Collection, Schema


@pytest.fixture
def driver() -> InMemoryDriver:
    return InMemoryDriver()


@pytest.fixture
def schema() -> Schema:
    return Schema()


@pytest.fixture
def evaluator():
    """Default in-memory operator evaluator."""
    return build_default_evaluator()


def make_field(name: str, type_: str = "string", **extra: Any) -> dict[str, Any]:
    converter = IntegerConverter() if type_ == "integer" else StringConverter()
    raw_type = "INTEGER" if type_ == "integer" else "VARCHAR"
    return {
        "name": name,
        "type": type_,
        "raw_type": raw_type,
        "converter": converter,
        **extra,
    }


@pytest.fixture
def users() -> Collection:
    collection = Collection("users")
    collection.add_field(make_field("id", "integer", primary_key=True, sequence=True))
    collection.add_field(make_field("email"))
    collection.add_field(make_field("name"))
    collection.add_field(make_field("age", "integer"))
    return collection


# ── Model hierarchy used by mapping tests ──────────────────────────


class Animal(BaseModel):
    id: int | None = None
    name: str = ""
    age: int = 0


class Dog(Animal):
    good_boy: bool = True


class Cat(Animal):
    lives: int = 9


class Kitten(Cat):
    toy: str | None = None
