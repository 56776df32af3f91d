"""DataSource — driver, schema and mappings of one storage backend."""

from __future__ import annotations

import logging
from typing import Any

from .exceptions import DuplicateNameError, MappingNotFoundError, ValidationError
from .mapping.base import Mapping
from .ports.driver import Driver
from .schema.schema import Schema

logger = logging.getLogger("cqrs_ddd.datasource")


class Transaction:
    """
    Async context manager bracketing driver writes.

    Commits when the block exits normally; on error rolls back and
    re-raises the original exception.
    """

    def __init__(self, driver: Driver) -> None:
        self._driver = driver

    async def __aenter__(self) -> Transaction:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is None:
            await self._driver.commit()
            return
        await self._driver.rollback()
        logger.warning("Transaction rolled back after %s: %s", exc_type.__name__, exc_val)


class DataSource:
    """
    Entry point wiring a driver to a schema and the mappings built on them.

    Example:
        ```python
        source = DataSource(InMemoryDriver())
        users = ClassHierarchyMapping(User, source.driver, source.schema, fields=[...])
        source.register_mapping(users)
        await source.sync()

        async with source.transaction():
            await users.create(User(name="ada"))
        ```
    """

    def __init__(self, driver: Driver, schema: Schema | None = None) -> None:
        if not isinstance(driver, Driver):
            raise ValidationError({"driver": [f"Expected a Driver, got {type(driver).__name__}"]})
        if schema is not None and not isinstance(schema, Schema):
            raise ValidationError({"schema": [f"Expected a Schema, got {type(schema).__name__}"]})
        self._driver = driver
        self._schema = schema if schema is not None else Schema()
        self._mappings: dict[str, Mapping[Any]] = {}

    @property
    def driver(self) -> Driver:
        return self._driver

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def mappings(self) -> dict[str, Mapping[Any]]:
        return dict(self._mappings)

    def register_mapping(self, mapping: Mapping[Any]) -> Mapping[Any]:
        """Register *mapping* under its name; it must share this source's driver and schema."""
        if not isinstance(mapping, Mapping):
            raise ValidationError({"mapping": [f"Expected a Mapping, got {type(mapping).__name__}"]})
        if mapping.driver is not self._driver or mapping.schema is not self._schema:
            raise ValidationError(
                {"mapping": [f"Mapping '{mapping.name}' is bound to another driver or schema"]}
            )
        if mapping.name in self._mappings:
            raise DuplicateNameError("mapping", mapping.name)
        self._mappings[mapping.name] = mapping
        return mapping

    def mapping(self, name: str) -> Mapping[Any]:
        found = self._mappings.get(name)
        if found is None:
            raise MappingNotFoundError(name, available=self._mappings)
        return found

    async def sync(self) -> None:
        """Provision every collection of the schema."""
        logger.debug("Syncing %d collection(s)", len(self._schema.collections))
        await self._schema.sync(self._driver)

    def transaction(self) -> Transaction:
        return Transaction(self._driver)

    async def close(self) -> None:
        await self._driver.close()

    async def __aenter__(self) -> DataSource:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()
