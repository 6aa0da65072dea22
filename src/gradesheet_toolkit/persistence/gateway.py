"""
Module: persistence.gateway

Purpose:
    The persistence contract the grading engine talks to, plus an
    in-process implementation used by tests and by hosts that keep their
    own storage.

Key Classes:
    - PersistenceGateway: Structural protocol every store implements
    - InMemoryGateway: Dictionary-backed store

Contract:
    Every call is synchronous. Every failure, whether transport or store
    validation, surfaces as PersistenceError. Deleting a workbook deletes
    its chapters. There is no version check: the last write wins.
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, runtime_checkable

from ..core.models.chapter import Chapter, utc_now
from ..core.models.marks import Mark
from ..core.models.workbook import Workbook
from ..engine.errors import PersistenceError

logger = logging.getLogger(__name__)


@runtime_checkable
class PersistenceGateway(Protocol):
    """Store operations used by GradeSession, ChapterStore and distribution."""

    def load_workbooks(self, owner_id: str) -> List[Workbook]:
        ...

    def load_chapters(self, workbook_ids: Iterable[str]) -> List[Chapter]:
        ...

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
        ...

    def delete_workbook(self, workbook_id: str) -> None:
        ...

    def save_marks(self, workbook_id: str, marks: Sequence[Mark]) -> None:
        ...

    def create_chapter(self, workbook_id: str, start_index: int, end_index: int, note: str) -> Chapter:
        ...

    def delete_chapter(self, chapter_id: str) -> None:
        ...

    def update_chapter_note(self, chapter_id: str, note: str) -> None:
        ...


def new_id() -> str:
    """Fresh store identifier."""
    return uuid.uuid4().hex


class InMemoryGateway:
    """
    PersistenceGateway backed by two dictionaries.

    Usage:
        gateway = InMemoryGateway()
        wb = gateway.create_workbook("student-1", "Focus Gold", 10)
        gateway.save_marks(wb.id, [Mark.CORRECT] * 10)

    Rows are stored as immutable model objects, so callers never share
    mutable state with the store.
    """

    def __init__(
        self,
        workbooks: Iterable[Workbook] = (),
        chapters: Iterable[Chapter] = (),
    ):
        self._workbooks: Dict[str, Workbook] = {w.id: w for w in workbooks}
        self._chapters: Dict[str, Chapter] = {c.id: c for c in chapters}

    # ─────────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────────

    def load_workbooks(self, owner_id: str) -> List[Workbook]:
        return [w for w in self._workbooks.values() if w.owner_id == owner_id]

    def load_chapters(self, workbook_ids: Iterable[str]) -> List[Chapter]:
        wanted = set(workbook_ids)
        return [c for c in self._chapters.values() if c.workbook_id in wanted]

    def get_workbook(self, workbook_id: str) -> Workbook:
        """Stored row of one workbook (PersistenceError if missing)."""
        try:
            return self._workbooks[workbook_id]
        except KeyError:
            raise PersistenceError(f"Workbook {workbook_id!r} does not exist", "get_workbook") from None

    # ─────────────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────────────

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
        try:
            workbook = Workbook.blank(
                new_id(),
                owner_id,
                title,
                problem_count,
                labels=labels,
                template_id=template_id,
                is_template=is_template,
            )
        except ValueError as e:
            raise PersistenceError(f"Rejected workbook row: {e}", "create_workbook", e) from e
        self._workbooks[workbook.id] = workbook
        return workbook

    def delete_workbook(self, workbook_id: str) -> None:
        self.get_workbook(workbook_id)
        del self._workbooks[workbook_id]
        for chapter_id in [c.id for c in self._chapters.values() if c.workbook_id == workbook_id]:
            del self._chapters[chapter_id]

    def save_marks(self, workbook_id: str, marks: Sequence[Mark]) -> None:
        workbook = self.get_workbook(workbook_id)
        try:
            self._workbooks[workbook_id] = workbook.with_marks(marks)
        except ValueError as e:
            raise PersistenceError(f"Rejected marks for {workbook_id!r}: {e}", "save_marks", e) from e
        logger.debug(f"Saved marks for workbook {workbook_id}")

    def create_chapter(self, workbook_id: str, start_index: int, end_index: int, note: str) -> Chapter:
        workbook = self.get_workbook(workbook_id)
        if end_index >= workbook.problem_count:
            raise PersistenceError(
                f"Chapter end {end_index} beyond workbook {workbook_id!r}", "create_chapter"
            )
        try:
            chapter = Chapter(new_id(), workbook_id, start_index, end_index, note, utc_now())
        except ValueError as e:
            raise PersistenceError(f"Rejected chapter row: {e}", "create_chapter", e) from e
        self._chapters[chapter.id] = chapter
        return chapter

    def delete_chapter(self, chapter_id: str) -> None:
        if self._chapters.pop(chapter_id, None) is None:
            raise PersistenceError(f"Chapter {chapter_id!r} does not exist", "delete_chapter")

    def update_chapter_note(self, chapter_id: str, note: str) -> None:
        chapter = self._chapters.get(chapter_id)
        if chapter is None:
            raise PersistenceError(f"Chapter {chapter_id!r} does not exist", "update_chapter_note")
        self._chapters[chapter_id] = chapter.with_note(note)
        logger.debug(f"Saved note for chapter {chapter_id}")
