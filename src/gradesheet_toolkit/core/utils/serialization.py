"""
Serialization Utilities

Provides to/from JSON utilities for the store document.

- `serialize_store()` / `deserialize_store()` convert between the whole
  document and model lists
- `workbook_row()` / `chapter_row()` and their `*_from_row()` partners
  handle single rows; all models have `to_dict()` / `from_dict()`
- Validation via schemas before deserialization
"""

from __future__ import annotations

from typing import Any, Iterable

from ..models.chapter import Chapter
from ..models.workbook import Workbook
from ..schemas.validator import STORE_SCHEMA_VERSION, validate_store


# ─────────────────────────────────────────────────────────────────────────────
# Row Serialization
# ─────────────────────────────────────────────────────────────────────────────

def workbook_row(workbook: Workbook) -> dict[str, Any]:
    """Serialize a Workbook to a store row."""
    return workbook.to_dict()


def workbook_from_row(data: dict[str, Any]) -> Workbook:
    """Deserialize a Workbook from a store row."""
    return Workbook.from_dict(data)


def chapter_row(chapter: Chapter) -> dict[str, Any]:
    """Serialize a Chapter to a store row."""
    return chapter.to_dict()


def chapter_from_row(data: dict[str, Any]) -> Chapter:
    """Deserialize a Chapter from a store row."""
    return Chapter.from_dict(data)


# ─────────────────────────────────────────────────────────────────────────────
# Document Serialization
# ─────────────────────────────────────────────────────────────────────────────

def serialize_store(
    workbooks: Iterable[Workbook],
    chapters: Iterable[Chapter],
) -> dict[str, Any]:
    """
    Serialize model lists into a store document.

    Args:
        workbooks: Workbooks to include
        chapters: Chapters to include

    Returns:
        Dictionary suitable for JSON serialization
    """
    return {
        "schema_version": STORE_SCHEMA_VERSION,
        "workbooks": [workbook_row(w) for w in workbooks],
        "chapters": [chapter_row(c) for c in chapters],
    }


def deserialize_store(
    data: dict[str, Any],
    *,
    validate: bool = True,
    lenient: bool = False,
) -> tuple[list[Workbook], list[Chapter]]:
    """
    Deserialize a store document into model lists.

    Args:
        data: Dictionary from JSON
        validate: Whether to validate against schema first
        lenient: Validate with the read schema, leaving repairable row
            contents to the model decoders

    Returns:
        Tuple of (workbooks, chapters)

    Raises:
        SchemaError: If validate=True and data is invalid
    """
    if validate:
        validate_store(data, lenient=lenient)

    workbooks = [workbook_from_row(w) for w in data.get("workbooks", [])]
    chapters = [chapter_from_row(c) for c in data.get("chapters", [])]
    return workbooks, chapters

