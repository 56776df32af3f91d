from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from ..ports.cursor import Cursor

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")


class MappingCursor(Cursor[T]):
    """Cursor decorator applying *transform* to every item of *cursor*."""

    def __init__(self, cursor: Cursor[Any], transform: Callable[[Any], T]) -> None:
        self._cursor = cursor
        self._transform = transform

    def is_closed(self) -> bool:
        return self._cursor.is_closed()

    async def next(self) -> T | None:
        item = await self._cursor.next()
        if item is None:
            return None
        return self._transform(item)

    async def close(self) -> None:
        await self._cursor.close()
