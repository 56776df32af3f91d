"""InMemoryCursor — list-backed cursor for tests and prototyping."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, TypeVar

from ...ports.cursor import Cursor

if TYPE_CHECKING:
    from collections.abc import Iterable

T = TypeVar("T")


class InMemoryCursor(Cursor[T]):
    """Yields the given items in order; a closed cursor yields nothing."""

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: deque[T] = deque(items)
        self._closed = False

    def is_closed(self) -> bool:
        return self._closed

    async def next(self) -> T | None:
        if self._closed or not self._items:
            return None
        return self._items.popleft()

    async def close(self) -> None:
        self._closed = True
        self._items.clear()
