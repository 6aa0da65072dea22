"""
Utils Package

Serialization and utility functions.
"""

from .serialization import (
    workbook_row,
    workbook_from_row,
    chapter_row,
    chapter_from_row,
    serialize_store,
    deserialize_store,
)

__all__ = [
    "workbook_row",
    "workbook_from_row",
    "chapter_row",
    "chapter_from_row",
    "serialize_store",
    "deserialize_store",
]
