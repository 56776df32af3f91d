from .base import Mapping
from .cursor import MappingCursor
from .fields import MappingConfig, MappingField
from .hierarchy import ClassHierarchyMapping

__all__ = [
    "ClassHierarchyMapping",
    "Mapping",
    "MappingConfig",
    "MappingCursor",
    "MappingField",
]
