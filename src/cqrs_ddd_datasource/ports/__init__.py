from .cursor import Cursor
from .driver import DataMap, Driver

__all__ = [
    "Cursor",
    "DataMap",
    "Driver",
]
