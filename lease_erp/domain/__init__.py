"""Domain layer definitions."""

from .records import ANONYMOUS, EntityTable, Principal

__all__ = [
    "ANONYMOUS",
    "EntityTable",
    "Principal",
]
