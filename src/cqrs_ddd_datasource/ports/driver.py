"""Driver — storage-engine binding consumed by the schema and mappings."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ..exceptions import AbstractMethodNotImplementedError

if TYPE_CHECKING:
    from ..converter import Converter
    from ..query.query import Query
    from ..schema.collection import Collection
    from ..schema.foreign_key import CollectionForeignKey
    from ..schema.index import CollectionIndex
    from .cursor import Cursor

# {collection name: {field name: [raw values]}}: one fetched row or document.
DataMap = dict[str, dict[str, list[Any]]]


class Driver(ABC):
    """
    Storage-specific implementation of the physical operations.

    Type coercion is synchronous; every other operation is a coroutine and
    may fail with driver-specific errors, which callers propagate without
    retrying.

    ``ensure_index``, ``ensure_foreign_key``, ``commit`` and ``rollback`` are
    optional capabilities: the defaults raise
    :class:`AbstractMethodNotImplementedError`.

    Example:
        ```python
        class SQLiteDriver(Driver):
            def coerce_type(self, type_name):
                return {"string": "TEXT", "integer": "INTEGER"}[type_name]
            ...
        ```
    """

    # -- types -----------------------------------------------------------------

    @abstractmethod
    def coerce_type(self, type_name: str) -> str:
        """
        Return the raw type backing logical type *type_name*.

        Raises:
            UnsupportedTypeError: If the type cannot be stored.
        """
        ...

    @abstractmethod
    def create_converter(self, raw_type: str) -> Converter:
        """
        Return a new converter for *raw_type*.

        Raises:
            UnsupportedTypeError: If the raw type is unknown.
        """
        ...

    # -- provisioning ----------------------------------------------------------

    @abstractmethod
    async def ensure_collection(self, collection: Collection) -> None:
        """Create *collection* in the store unless it exists."""
        ...

    async def ensure_index(
        self, collection: Collection, index: CollectionIndex
    ) -> None:
        raise AbstractMethodNotImplementedError(type(self).__name__, "ensure_index")

    async def ensure_foreign_key(
        self, collection: Collection, foreign_key: CollectionForeignKey
    ) -> None:
        raise AbstractMethodNotImplementedError(
            type(self).__name__, "ensure_foreign_key"
        )

    # -- documents -------------------------------------------------------------

    @abstractmethod
    async def find(self, query: Query) -> Cursor[DataMap]:
        """Return a cursor over the documents matching *query*."""
        ...

    @abstractmethod
    async def find_one(self, query: Query) -> DataMap | None:
        """Return the first document matching *query*, or ``None``."""
        ...

    @abstractmethod
    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert *data* into *collection*.

        Returns the stored document, including driver-assigned fields such
        as sequence values.
        """
        ...

    @abstractmethod
    async def save(
        self,
        collection: str,
        primary_key: dict[str, Any],
        data: dict[str, Any],
    ) -> None:
        """Update the document identified by *primary_key* with *data*."""
        ...

    @abstractmethod
    async def remove(self, collection: str, primary_key: dict[str, Any]) -> None:
        """Delete the document identified by *primary_key*."""
        ...

    # -- transactions & lifecycle ---------------------------------------------

    async def commit(self) -> None:
        raise AbstractMethodNotImplementedError(type(self).__name__, "commit")

    async def rollback(self) -> None:
        raise AbstractMethodNotImplementedError(type(self).__name__, "rollback")

    @abstractmethod
    async def close(self) -> None:
        ...
