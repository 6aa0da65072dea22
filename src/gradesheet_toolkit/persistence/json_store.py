"""
Module: persistence.json_store

Purpose:
    PersistenceGateway backed by a single JSON document on disk:

        {"schema_version": 1, "workbooks": [...], "chapters": [...]}

    Every write is one locked read-modify-write of the whole document,
    Reads are checked against store_read.schema.json and decoded
    leniently (stray mark codes, short mark arrays, legacy chapter
    columns); the document written back always passes store.schema.json,
    so the first write after such a read stores the repaired rows.

Key Classes:
    - JsonFileGateway: File-backed gateway

Dependencies:
    - portalocker (through persistence.file_locking)
    - jsonschema (through core.schemas.validator)

Used By:
    - cli
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from portalocker.exceptions import BaseLockException

from ..core.models.chapter import Chapter, utc_now
from ..core.models.marks import Mark
from ..core.models.workbook import Workbook
from ..core.schemas.validator import SchemaError, empty_store, validate_store
from ..core.utils.serialization import deserialize_store, serialize_store
from ..engine.errors import PersistenceError
from .file_locking import locked_read_json, locked_read_modify_write_json
from .gateway import new_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

Rows = Tuple[Dict[str, Workbook], Dict[str, Chapter]]

# Failures that mean "the store could not complete the call"
_STORE_ERRORS = (OSError, ValueError, SchemaError, BaseLockException)


class JsonFileGateway:
    """
    File-backed store shared safely between processes.

    Usage:
        gateway = JsonFileGateway(Path("grades.json"))
        session = GradeSession(gateway)
        session.load("student-1")

    Attributes:
        path: Location of the store document (created on first write)
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    # ─────────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────────

    def _read(self, operation: str) -> Tuple[List[Workbook], List[Chapter]]:
        try:
            return deserialize_store(locked_read_json(self.path, empty_store), lenient=True)
        except _STORE_ERRORS as e:
            raise PersistenceError(f"Cannot read store {self.path}: {e}", operation, e) from e

    def load_workbooks(self, owner_id: str) -> List[Workbook]:
        workbooks, _ = self._read("load_workbooks")
        return [w for w in workbooks if w.owner_id == owner_id]

    def load_chapters(self, workbook_ids: Iterable[str]) -> List[Chapter]:
        wanted = set(workbook_ids)
        _, chapters = self._read("load_chapters")
        return [c for c in chapters if c.workbook_id in wanted]

    # ─────────────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────────────

    def _write(self, operation: str, change: Callable[[Rows], T]) -> T:
        """
        Apply change to the decoded rows and write the document back.

        The change receives (workbooks_by_id, chapters_by_id) and edits
        them in place. Nothing is written if it raises or if the result
        fails validation.
        """
        def modifier(document: dict) -> T:
            workbooks, chapters = deserialize_store(document, lenient=True)
            rows: Rows = ({w.id: w for w in workbooks}, {c.id: c for c in chapters})
            result = change(rows)
            updated = serialize_store(rows[0].values(), rows[1].values())
            validate_store(updated)
            document.clear()
            document.update(updated)
            return result

        try:
            result = locked_read_modify_write_json(self.path, modifier, empty_store)
        except PersistenceError:
            raise
        except _STORE_ERRORS as e:
            raise PersistenceError(f"{operation} failed on {self.path}: {e}", operation, e) from e
        logger.debug(f"{operation} committed to {self.path.name}")
        return result

    @staticmethod
    def _workbook(rows: Rows, workbook_id: str, operation: str) -> Workbook:
        try:
            return rows[0][workbook_id]
        except KeyError:
            raise PersistenceError(f"Workbook {workbook_id!r} does not exist", operation) from None

    @staticmethod
    def _chapter(rows: Rows, chapter_id: str, operation: str) -> Chapter:
        try:
            return rows[1][chapter_id]
        except KeyError:
            raise PersistenceError(f"Chapter {chapter_id!r} does not exist", operation) from None

    def create_workbook(
        self,
        owner_id: str,
        title: str,
        problem_count: int,
        *,
        labels: Optional[Sequence[str]] = None,
        template_id: Optional[str] = None,
        is_template: bool = False,
    ) -> Workbook:
        def change(rows: Rows) -> Workbook:
            workbook = Workbook.blank(
                new_id(),
                owner_id,
                title,
                problem_count,
                labels=labels,
                template_id=template_id,
                is_template=is_template,
            )
            rows[0][workbook.id] = workbook
            return workbook

        return self._write("create_workbook", change)

    def delete_workbook(self, workbook_id: str) -> None:
        def change(rows: Rows) -> None:
            self._workbook(rows, workbook_id, "delete_workbook")
            del rows[0][workbook_id]
            for chapter_id in [c.id for c in rows[1].values() if c.workbook_id == workbook_id]:
                del rows[1][chapter_id]

        self._write("delete_workbook", change)

    def save_marks(self, workbook_id: str, marks: Sequence[Mark]) -> None:
        def change(rows: Rows) -> None:
            workbook = self._workbook(rows, workbook_id, "save_marks")
            rows[0][workbook_id] = workbook.with_marks(marks)

        self._write("save_marks", change)

    def create_chapter(self, workbook_id: str, start_index: int, end_index: int, note: str) -> Chapter:
        def change(rows: Rows) -> Chapter:
            self._workbook(rows, workbook_id, "create_chapter")
            chapter = Chapter(new_id(), workbook_id, start_index, end_index, note, utc_now())
            rows[1][chapter.id] = chapter
            return chapter

        return self._write("create_chapter", change)

    def delete_chapter(self, chapter_id: str) -> None:
        def change(rows: Rows) -> None:
            self._chapter(rows, chapter_id, "delete_chapter")
            del rows[1][chapter_id]

        self._write("delete_chapter", change)

    def update_chapter_note(self, chapter_id: str, note: str) -> None:
        def change(rows: Rows) -> None:
            chapter = self._chapter(rows, chapter_id, "update_chapter_note")
            rows[1][chapter_id] = chapter.with_note(note)

        self._write("update_chapter_note", change)
