"""
Module: session

Purpose:
    GradeSession is the facade a host UI drives: it loads an owner's
    workbooks and chapters, applies mark and chapter edits addressed by
    user-typed tokens, rebuilds segment partitions for display and keeps
    the store up to date through two debounced autosave schedulers (marks
    keyed by workbook id, notes keyed by chapter id).

Key Classes:
    - GradeSession: Session facade (QObject)
    - ChapterPlan: One chapter of a workbook created from a plan

Dependencies:
    - PySide6.QtCore (QObject, Signal)
    - engine.* (MarkSequence, ChapterStore, labels, segments)
    - persistence.autosave.AutosaveScheduler

Ordering:
    - Mark and note edits change local state first, then schedule a save.
    - Workbook/chapter create and delete call the gateway first and only
      change local state once it succeeded.
    - Validation, overlap and not-found errors are raised before anything
      changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

from PySide6.QtCore import QObject, Signal

from .config import DEFAULT_CONFIG, EngineConfig
from .core.models.chapter import Chapter, ChapterNote, IndexRange
from .core.models.marks import Mark, MarkTally
from .core.models.segment import Segment
from .core.models.workbook import Workbook
from .engine.chapter_store import ChapterStore
from .engine.errors import NotFoundError, PersistenceError, ValidationError
from .engine.labels import format_range, resolve_index, resolve_range
from .engine.mark_sequence import FilterMode, MarkSequence
from .engine.segments import build_segments
from .persistence.autosave import AutosaveScheduler
from .persistence.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChapterPlan:
    """
    One chapter of a workbook created from a plan.

    Attributes:
        title: Chapter title (first line of its note)
        count: Number of problems in the chapter
    """

    title: str
    count: int

    def __post_init__(self) -> None:
        if self.count <= 0:
            raise ValueError(f"count must be positive: {self.count}")


class GradeSession(QObject):
    """
    Grading session for one owner's workbooks.

    Usage:
        session = GradeSession(JsonFileGateway("grades.json"))
        session.statusChanged.connect(status_bar.showMessage)
        session.load("student-1")
        session.cycle_mark(wb_id, "3")
        session.create_chapter(wb_id, "1", "4", ChapterNote("Vectors"))
        ...
        session.close()

    Signals:
        statusChanged(str): Last autosave status ("saved" / failure text)
    """

    statusChanged = Signal(str)

    def __init__(
        self,
        gateway: PersistenceGateway,
        config: Optional[EngineConfig] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.gateway = gateway
        self.config = config or DEFAULT_CONFIG
        self._status = ""

        self._workbooks: Dict[str, Workbook] = {}
        self._sequences: Dict[str, MarkSequence] = {}

        self.marks_autosave = AutosaveScheduler(
            self._persist_marks, config=self.config, name="marks", parent=self
        )
        self.notes_autosave = AutosaveScheduler(
            self._persist_note, config=self.config, name="notes", parent=self
        )
        self.marks_autosave.statusChanged.connect(self._set_status)
        self.notes_autosave.statusChanged.connect(self._set_status)

        self.chapters = ChapterStore(
            gateway, config=self.config, on_note_change=self.notes_autosave.schedule
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Loading & Lookup
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def status(self) -> str:
        """Last status line emitted by either scheduler."""
        return self._status

    def load(self, owner_id: str) -> List[Workbook]:
        """
        Replace local state with an owner's workbooks and chapters.

        Pending saves of the previous state are flushed first.

        Raises:
            PersistenceError: If the gateway cannot read
        """
        self.marks_autosave.shutdown(flush=True)
        self.notes_autosave.shutdown(flush=True)

        workbooks = self.gateway.load_workbooks(owner_id)
        chapters = self.gateway.load_chapters([w.id for w in workbooks])

        self._workbooks.clear()
        self._sequences.clear()
        self.chapters.clear()
        for workbook in workbooks:
            self._register(workbook)
        self.chapters.load(chapters)

        logger.info(f"Loaded {len(workbooks)} workbooks and {len(chapters)} chapters for {owner_id}")
        return self.workbooks()

    def workbooks(self) -> List[Workbook]:
        """Loaded workbooks ordered by title."""
        return sorted(self._workbooks.values(), key=lambda w: (w.title, w.id))

    def workbook(self, workbook_id: str) -> Workbook:
        """
        Loaded workbook row (metadata and labels).

        Current marks live in sequence(workbook_id); the row keeps the
        marks it was loaded or created with.

        Raises:
            NotFoundError: If the workbook is not loaded
        """
        try:
            return self._workbooks[workbook_id]
        except KeyError:
            raise NotFoundError(f"Workbook {workbook_id!r} is not loaded") from None

    def sequence(self, workbook_id: str) -> MarkSequence:
        """Live mark sequence of a loaded workbook."""
        self.workbook(workbook_id)
        return self._sequences[workbook_id]

    def _register(self, workbook: Workbook) -> None:
        self._workbooks[workbook.id] = workbook
        self._sequences[workbook.id] = MarkSequence.from_workbook(
            workbook, on_change=self.marks_autosave.schedule
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Workbook Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def create_workbook(
        self,
        owner_id: str,
        title: str,
        problem_count: Optional[int] = None,
        *,
        labels: Optional[Sequence[str]] = None,
        chapter_plan: Optional[Sequence[ChapterPlan]] = None,
        template: bool = False,
    ) -> Workbook:
        """
        Create a workbook with every mark cleared.

        With a chapter_plan the problem count is the sum of the plan's
        counts (problem_count may be omitted, or must agree) and one
        chapter is created per plan entry, back to back from index 0.

        Args:
            owner_id: Owning user
            title: Collection name (must not be blank)
            problem_count: Number of problems, 1..max_problem_count
            labels: Optional custom labels, one per problem
            chapter_plan: Optional consecutive chapters
            template: Create a read-only template sheet for distribution

        Raises:
            ValidationError: For a blank title, a bad count or label list
            PersistenceError: If the gateway rejects the insert. When a
                chapter of the plan is rejected, the new workbook is deleted
                again before the error propagates.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("Workbook title must not be empty", field="title")

        plan = list(chapter_plan or [])
        if plan:
            total = sum(p.count for p in plan)
            if problem_count is not None and problem_count != total:
                raise ValidationError(
                    f"problem_count {problem_count} disagrees with chapter plan total {total}",
                    field="problem_count",
                )
            problem_count = total
        if problem_count is None:
            raise ValidationError("problem_count is required", field="problem_count")
        if not (1 <= problem_count <= self.config.max_problem_count):
            raise ValidationError(
                f"problem_count must be within 1..{self.config.max_problem_count}: {problem_count}",
                field="problem_count",
            )
        if labels is not None and len(labels) != problem_count:
            raise ValidationError(
                f"labels has {len(labels)} entries, expected {problem_count}",
                field="labels",
            )

        workbook = self.gateway.create_workbook(
            owner_id, title, problem_count, labels=labels, is_template=template
        )
        self._register(workbook)
        logger.info(f"Created workbook {workbook.id} ({title!r}, {problem_count} problems)")

        cursor = 0
        try:
            for entry in plan:
                self.chapters.create(workbook, cursor, cursor + entry.count - 1, ChapterNote(entry.title))
                cursor += entry.count
        except PersistenceError:
            self._discard(workbook.id)
            raise
        return workbook

    def _discard(self, workbook_id: str) -> None:
        """Remove a workbook whose chapter plan could not be stored."""
        try:
            self.gateway.delete_workbook(workbook_id)
        except PersistenceError as e:
            logger.warning(f"Could not remove partially created workbook {workbook_id}: {e}")
        self._forget(workbook_id)

    def _forget(self, workbook_id: str) -> None:
        self.marks_autosave.cancel(workbook_id)
        for chapter in self.chapters.forget_workbook(workbook_id):
            self.notes_autosave.cancel(chapter.id)
        del self._workbooks[workbook_id]
        del self._sequences[workbook_id]

    def delete_workbook(self, workbook_id: str) -> None:
        """
        Delete a workbook and its chapters, dropping their pending saves.

        Raises:
            NotFoundError: If the workbook is not loaded
            PersistenceError: If the gateway delete fails (nothing dropped)
        """
        self.workbook(workbook_id)
        self.gateway.delete_workbook(workbook_id)
        self._forget(workbook_id)
        logger.info(f"Deleted workbook {workbook_id}")

    # ─────────────────────────────────────────────────────────────────────────
    # Marks
    # ─────────────────────────────────────────────────────────────────────────

    def set_mark(self, workbook_id: str, token: str, mark: Mark) -> int:
        """Set the mark of the problem named by token; returns its index."""
        index = resolve_index(self.workbook(workbook_id), token)
        self.sequence(workbook_id).set_mark(index, mark)
        return index

    def cycle_mark(self, workbook_id: str, token: str) -> Mark:
        """Advance the problem named by token through the click cycle."""
        index = resolve_index(self.workbook(workbook_id), token)
        return self.sequence(workbook_id).cycle_mark(index)

    def apply_range(self, workbook_id: str, start_token: str, end_token: str, mark: Mark) -> IndexRange:
        """
        Set every problem between two typed tokens (inclusive) to mark.

        Raises:
            ValidationError: If either token does not resolve
        """
        rng = resolve_range(self.workbook(workbook_id), start_token, end_token)
        return self.sequence(workbook_id).apply_range(rng.lo, rng.hi, mark)

    def apply_to_chapter(self, chapter_id: str, mark: Mark) -> IndexRange:
        """Set every problem of one chapter to mark."""
        chapter = self.chapters.get(chapter_id)
        return self.sequence(chapter.workbook_id).apply_range(
            chapter.start_index, chapter.end_index, mark
        )

    def tally(self, workbook_id: str, rng: Optional[IndexRange] = None) -> MarkTally:
        return self.sequence(workbook_id).tally(rng)

    def filter_indices(
        self,
        workbook_id: str,
        mode: FilterMode,
        rng: Optional[IndexRange] = None,
    ) -> List[int]:
        return self.sequence(workbook_id).filter_indices(mode, rng)

    # ─────────────────────────────────────────────────────────────────────────
    # Chapters
    # ─────────────────────────────────────────────────────────────────────────

    def create_chapter(
        self,
        workbook_id: str,
        start_token: str,
        end_token: str,
        note: Union[str, ChapterNote, None] = None,
    ) -> Chapter:
        """
        Create a chapter between two typed tokens.

        Raises:
            ValidationError: If either token does not resolve
            OverlapConflict: If the range intersects an existing chapter
            PersistenceError: If the gateway insert fails
        """
        workbook = self.workbook(workbook_id)
        rng = resolve_range(workbook, start_token, end_token)
        return self.chapters.create(workbook, rng.lo, rng.hi, note)

    def remove_chapter(self, workbook_id: str, start_token: str, end_token: str) -> Chapter:
        """
        Remove the chapter matching (or containing) a typed range.

        Raises:
            ValidationError: If either token does not resolve
            NotFoundError: If no chapter matches or contains the range
            PersistenceError: If the gateway delete fails
        """
        rng = resolve_range(self.workbook(workbook_id), start_token, end_token)
        chapter = self.chapters.remove(workbook_id, rng.lo, rng.hi)
        self.notes_autosave.cancel(chapter.id)
        return chapter

    def update_chapter_note(self, chapter_id: str, raw: Union[str, ChapterNote, None]) -> Chapter:
        """Replace a chapter's note; the store is updated by the notes autosave."""
        return self.chapters.update_note(chapter_id, raw)

    def segments(self, workbook_id: str) -> List[Segment]:
        """Display partition of a workbook, rebuilt from its current chapters."""
        workbook = self.workbook(workbook_id)
        return build_segments(workbook.problem_count, self.chapters.chapters_for(workbook_id))

    def chapter_label(self, chapter: Chapter) -> str:
        """Title and label range of a chapter, e.g. "Vectors (3~6)"."""
        workbook = self.workbook(chapter.workbook_id)
        rng = format_range(workbook, chapter.range, self.config.range_separator)
        return f"{self.chapters.display_title(chapter)} ({rng})"

    def recent_chapter(self, workbook_id: str) -> Optional[Chapter]:
        self.workbook(workbook_id)
        return self.chapters.recent(workbook_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Saving
    # ─────────────────────────────────────────────────────────────────────────

    def save_marks_now(self, workbook_id: str) -> bool:
        """Manual save of a workbook's marks; True on success."""
        self.workbook(workbook_id)
        return self.marks_autosave.flush_now(workbook_id)

    def save_note_now(self, chapter_id: str) -> bool:
        """Manual save of a chapter's note; True on success."""
        self.chapters.get(chapter_id)
        return self.notes_autosave.flush_now(chapter_id)

    def close(self, flush: bool = True) -> None:
        """Tear down both schedulers, saving pending edits when flush is set."""
        self.marks_autosave.shutdown(flush=flush)
        self.notes_autosave.shutdown(flush=flush)

    def _persist_marks(self, workbook_id: str) -> None:
        sequence = self._sequences.get(workbook_id)
        if sequence is None:
            logger.debug(f"Skipping marks save for unloaded workbook {workbook_id}")
            return
        self.gateway.save_marks(workbook_id, sequence.snapshot())

    def _persist_note(self, chapter_id: str) -> None:
        try:
            chapter = self.chapters.get(chapter_id)
        except NotFoundError:
            logger.debug(f"Skipping note save for removed chapter {chapter_id}")
            return
        self.gateway.update_chapter_note(chapter_id, chapter.note)

    def _set_status(self, text: str) -> None:
        self._status = text
        self.statusChanged.emit(text)
