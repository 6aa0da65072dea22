"""
Schema Validation Utilities

Validates store documents before they are trusted by a gateway.

Two layers:
- `validate_store()` runs jsonschema against `store.schema.json`
  (types, required fields, mark codes)
- cross-row checks jsonschema cannot express: mark array length matches
  problem_count, chapters point at an existing workbook, chapter
  intervals lie inside their workbook and do not overlap each other

Reads use `validate_store(data, lenient=True)`: `store_read.schema.json`
leaves out what the models repair while decoding (unknown mark codes,
mark or label arrays of the wrong length, legacy chapter_title /
chapter_note columns), so one such row does not make the store
unreadable. Writes always use the strict check.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema


# Schema version constants
STORE_SCHEMA_VERSION = 1


# Load schemas lazily
_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


class SchemaError(Exception):
    """Raised when a store document fails validation."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


def empty_store() -> dict[str, Any]:
    """A valid store document with no rows."""
    return {"schema_version": STORE_SCHEMA_VERSION, "workbooks": [], "chapters": []}


def validate_store(data: dict[str, Any], *, lenient: bool = False) -> None:
    """
    Validate a whole store document.

    Args:
        data: Parsed JSON document
        lenient: Check only what decoding cannot repair (read path)

    Raises:
        SchemaError: If data is invalid
    """
    version = data.get("schema_version") if isinstance(data, dict) else None
    if version != STORE_SCHEMA_VERSION:
        raise SchemaError(
            f"Unsupported store schema version: {version} (expected {STORE_SCHEMA_VERSION})",
            path="schema_version",
        )

    try:
        jsonschema.validate(data, _load_schema("store_read" if lenient else "store"))
    except jsonschema.ValidationError as e:
        raise SchemaError(
            f"Schema validation failed: {e.message}",
            path=".".join(str(p) for p in e.absolute_path),
            errors=[e.message],
        ) from e

    counts: dict[str, int] = {}
    for i, wb in enumerate(data["workbooks"]):
        if not lenient:
            _validate_workbook(wb, f"workbooks[{i}]")
        if wb["id"] in counts:
            raise SchemaError(f"Duplicate workbook id: {wb['id']!r}", path=f"workbooks[{i}].id")
        counts[wb["id"]] = wb["problem_count"]

    spans: dict[str, list[tuple[int, int, str]]] = {}
    for i, ch in enumerate(data["chapters"]):
        path = f"chapters[{i}]"
        count = counts.get(ch["workbook_id"])
        if count is None:
            raise SchemaError(
                f"Chapter {ch['id']!r} references unknown workbook {ch['workbook_id']!r}",
                path=f"{path}.workbook_id",
            )
        lo, hi = sorted((ch["start_index"], ch["end_index"]))
        if hi >= count:
            raise SchemaError(
                f"Chapter {ch['id']!r} ends at {hi}, beyond problem_count {count}",
                path=f"{path}.end_index",
            )
        for other_lo, other_hi, other_id in spans.setdefault(ch["workbook_id"], []):
            if not (hi < other_lo or other_hi < lo):
                raise SchemaError(
                    f"Chapter {ch['id']!r} overlaps chapter {other_id!r}",
                    path=path,
                )
        spans[ch["workbook_id"]].append((lo, hi, ch["id"]))


def _validate_workbook(data: dict[str, Any], path: str) -> None:
    """Cross-field checks for one workbook row."""
    count = data["problem_count"]
    if len(data["marks"]) != count:
        raise SchemaError(
            f"marks has {len(data['marks'])} entries, expected {count}",
            path=f"{path}.marks",
        )
    labels = data.get("labels")
    if labels is not None and len(labels) != count:
        raise SchemaError(
            f"labels has {len(labels)} entries, expected {count}",
            path=f"{path}.labels",
        )
