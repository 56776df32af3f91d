"""Cursor — lazy, sequential iterator over query results."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")


class Cursor(ABC, Generic[T]):
    """
    Lazy result sequence.

    ``next()`` returns ``None`` once exhausted. ``each()`` and ``async for``
    fetch one document at a time and only ask for the next one when the
    previous one has been handled, so at most one document is in flight::

        async with await driver.find(query) as cursor:
            async for document in cursor:
                ...
    """

    @abstractmethod
    def is_closed(self) -> bool:
        ...

    @abstractmethod
    async def next(self) -> T | None:
        """Return the next item, or ``None`` when the cursor is exhausted."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    async def each(self, callback: Callable[[T], Any]) -> None:
        """
        Call *callback* for every remaining item, in order.

        Awaitable callback results are awaited before the next fetch.
        Returns once the cursor is exhausted.
        """
        while True:
            item = await self.next()
            if item is None:
                return
            result = callback(item)
            if inspect.isawaitable(result):
                await result

    async def to_list(self) -> list[T]:
        """Exhaust the cursor into a list.

        .. note:: This buffers every remaining item. Use with care on
           unbounded result sets.
        """
        items: list[T] = []
        await self.each(items.append)
        return items

    # -- async protocols -----------------------------------------------------

    def __aiter__(self) -> Cursor[T]:
        return self

    async def __anext__(self) -> T:
        item = await self.next()
        if item is None:
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> Cursor[T]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if not self.is_closed():
            await self.close()
