from .collection import Collection
from .field import CollectionField
from .foreign_key import CollectionForeignKey, ForeignKeyTarget
from .index import CollectionIndex
from .schema import Schema

__all__ = [
    "Collection",
    "CollectionField",
    "CollectionForeignKey",
    "CollectionIndex",
    "ForeignKeyTarget",
    "Schema",
]
