"""Schema — registry of collections and their provisioning."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ..exceptions import (
    CollectionNotFoundError,
    DuplicateNameError,
    SchemaSyncError,
    ValidationError,
)
from .collection import Collection

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from ..ports.driver import Driver

logger = logging.getLogger("cqrs_ddd.datasource.schema")


class Schema:
    """Physical schema of a data source: collections keyed by name."""

    def __init__(self) -> None:
        self._collections: dict[str, Collection] = {}

    @property
    def collections(self) -> dict[str, Collection]:
        return dict(self._collections)

    def has_collection(self, name: str) -> bool:
        return name in self._collections

    def get_collection(self, name: str) -> Collection:
        collection = self._collections.get(name)
        if collection is None:
            raise CollectionNotFoundError(name, available=self._collections)
        return collection

    def add_collection(self, collection: Collection) -> Collection:
        if not isinstance(collection, Collection):
            raise ValidationError(
                {"collection": [f"Expected a Collection, got {type(collection).__name__}"]}
            )
        if collection.name in self._collections:
            raise DuplicateNameError("collection", collection.name)
        self._collections[collection.name] = collection
        return collection

    async def sync(self, driver: Driver) -> None:
        """
        Provision every collection through *driver*.

        Three phases run one after the other, each one fanned out
        concurrently: collections, then indexes, then foreign keys (which
        reference two collections and need both to exist). Every call of a
        phase is attempted; if any failed, later phases are skipped and
        :class:`SchemaSyncError` is raised.
        """
        collections = list(self._collections.values())
        self._check_foreign_key_targets(collections)

        await self._run_phase(
            "collections",
            [driver.ensure_collection(c) for c in collections],
        )
        await self._run_phase(
            "indexes",
            [driver.ensure_index(c, index) for c in collections for index in c.indexes],
        )
        await self._run_phase(
            "foreign keys",
            [
                driver.ensure_foreign_key(c, foreign_key)
                for c in collections
                for foreign_key in c.foreign_keys
            ],
        )

    def _check_foreign_key_targets(self, collections: list[Collection]) -> None:
        for collection in collections:
            for foreign_key in collection.foreign_keys:
                target = foreign_key.target.collection
                if self._collections.get(target.name) is not target:
                    raise ValidationError(
                        {
                            f"{collection.name}.foreign_keys.{foreign_key.name}": [
                                f"Target collection '{target.name}' is not part "
                                f"of this schema"
                            ]
                        }
                    )

    @staticmethod
    async def _run_phase(phase: str, calls: list[Awaitable[Any]]) -> None:
        if not calls:
            return
        logger.debug("Ensuring %d %s", len(calls), phase)
        results = await asyncio.gather(*calls, return_exceptions=True)
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            logger.debug("%d/%d %s failed to sync", len(errors), len(calls), phase)
            raise SchemaSyncError(phase, errors) from errors[0]
