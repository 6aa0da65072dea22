"""
Module: engine.chapter_store

Purpose:
    Local set of chapters per workbook. Enforces the non-overlap rule on
    insert, finds the chapter to remove for a typed range and applies note
    edits. Inserts and removals go through the persistence gateway first
    and only touch local state once the gateway succeeded.

Key Classes:
    - ChapterStore: create / remove / update_note / lookups

Dependencies:
    - core.models (Chapter, ChapterNote, IndexRange, Workbook)
    - persistence.gateway.PersistenceGateway (structural)
    - engine.errors
    - engine.labels (conflict messages)

Used By:
    - session.GradeSession
    - engine.distribution
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Union

from ..config import DEFAULT_CONFIG, EngineConfig
from ..core.models.chapter import Chapter, ChapterNote, IndexRange
from ..core.models.workbook import Workbook
from .errors import NotFoundError, OverlapConflict, ValidationError
from .labels import format_range

if TYPE_CHECKING:
    from ..persistence.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


def overlaps(a: IndexRange, b: IndexRange) -> bool:
    """Closed-interval overlap test: not (a.hi < b.lo or b.hi < a.lo)."""
    return a.overlaps(b)


def _note_text(note: Union[str, ChapterNote, None]) -> str:
    if isinstance(note, ChapterNote):
        return note.compose()
    return (note or "").replace("\r\n", "\n")


class ChapterStore:
    """
    Non-overlapping chapters of every loaded workbook.

    Usage:
        store = ChapterStore(gateway, on_note_change=notes_autosave.schedule)
        store.load(gateway.load_chapters([wb.id]))
        store.create(wb, 2, 5, ChapterNote("Vectors", "Redo 4"))
        store.remove(wb.id, 3, 4)        # falls back to the containing chapter

    Attributes:
        gateway: Persistence gateway used for insert/delete
        config: Display strings (placeholder title, range separator)
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        config: Optional[EngineConfig] = None,
        on_note_change: Optional[Callable[[str], None]] = None,
    ):
        self.gateway = gateway
        self.config = config or DEFAULT_CONFIG
        self._on_note_change = on_note_change
        self._by_id: Dict[str, Chapter] = {}

    # ─────────────────────────────────────────────────────────────────────────
    # Local State
    # ─────────────────────────────────────────────────────────────────────────

    def load(self, chapters: Iterable[Chapter]) -> None:
        """Add (or replace) chapters read from the gateway."""
        for chapter in chapters:
            self._by_id[chapter.id] = chapter

    def clear(self) -> None:
        """Drop every local chapter."""
        self._by_id.clear()

    def forget_workbook(self, workbook_id: str) -> List[Chapter]:
        """Drop every local chapter of a workbook and return them."""
        dropped = [c for c in self._by_id.values() if c.workbook_id == workbook_id]
        for chapter in dropped:
            del self._by_id[chapter.id]
        return dropped

    def get(self, chapter_id: str) -> Chapter:
        """
        Look up a chapter by id.

        Raises:
            NotFoundError: If no loaded chapter has this id
        """
        try:
            return self._by_id[chapter_id]
        except KeyError:
            raise NotFoundError(f"Chapter {chapter_id!r} not found") from None

    def chapters_for(self, workbook_id: str) -> List[Chapter]:
        """Chapters of one workbook sorted by (start, end)."""
        return sorted(
            (c for c in self._by_id.values() if c.workbook_id == workbook_id),
            key=lambda c: (c.start_index, c.end_index),
        )

    def recent(self, workbook_id: str) -> Optional[Chapter]:
        """Most recently updated chapter of a workbook, or None."""
        chapters = self.chapters_for(workbook_id)
        if not chapters:
            return None
        return max(chapters, key=lambda c: c.updated_at)

    def find_conflict(self, workbook_id: str, rng: IndexRange) -> Optional[Chapter]:
        """First chapter (in index order) overlapping rng, or None."""
        for chapter in self.chapters_for(workbook_id):
            if overlaps(chapter.range, rng):
                return chapter
        return None

    def display_title(self, chapter: Chapter) -> str:
        """Chapter title, or the configured placeholder when blank."""
        return chapter.parsed_note.display_title(self.config.untitled_chapter_title)

    # ─────────────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────────────

    def create(
        self,
        workbook: Workbook,
        start: int,
        end: int,
        note: Union[str, ChapterNote, None] = None,
    ) -> Chapter:
        """
        Insert a chapter over [min(start, end), max(start, end)].

        Args:
            workbook: Sheet the chapter belongs to
            start: One endpoint (0-based)
            end: Other endpoint (0-based)
            note: Raw note blob or an explicit ChapterNote

        Returns:
            The persisted chapter

        Raises:
            ValidationError: If the range leaves [0, problem_count-1]
            OverlapConflict: If an existing chapter shares any index
            PersistenceError: If the gateway insert fails (nothing stored)
        """
        rng = IndexRange.of(start, end)
        if rng.lo < 0 or rng.hi >= workbook.problem_count:
            raise ValidationError(
                f"Range {rng.lo}..{rng.hi} is outside 0..{workbook.problem_count - 1}",
                field="range",
            )

        conflict = self.find_conflict(workbook.id, rng)
        if conflict is not None:
            raise OverlapConflict(
                conflict,
                self.display_title(conflict),
                format_range(workbook, conflict.range, self.config.range_separator),
            )

        chapter = self.gateway.create_chapter(workbook.id, rng.lo, rng.hi, _note_text(note))
        self._by_id[chapter.id] = chapter
        logger.info(f"Created chapter {chapter.id} [{rng.lo}, {rng.hi}] in workbook {workbook.id}")
        return chapter

    def locate(self, workbook_id: str, start: int, end: int) -> Chapter:
        """
        Find the chapter a typed range refers to.

        An exact interval match wins; otherwise the chapter that fully
        contains the range (at most one, since chapters never overlap).

        Raises:
            NotFoundError: If neither exists
        """
        rng = IndexRange.of(start, end)
        chapters = self.chapters_for(workbook_id)
        for chapter in chapters:
            if chapter.range == rng:
                return chapter
        for chapter in chapters:
            if chapter.range.contains(rng):
                return chapter
        raise NotFoundError(f"No chapter covers {rng.lo}..{rng.hi} in workbook {workbook_id!r}")

    def remove(self, workbook_id: str, start: int, end: int) -> Chapter:
        """
        Delete the chapter located by a typed range.

        Returns:
            The removed chapter

        Raises:
            NotFoundError: If no chapter matches or contains the range
            PersistenceError: If the gateway delete fails (chapter kept)
        """
        chapter = self.locate(workbook_id, start, end)
        self.gateway.delete_chapter(chapter.id)
        del self._by_id[chapter.id]
        logger.info(f"Removed chapter {chapter.id} from workbook {workbook_id}")
        return chapter

    def update_note(self, chapter_id: str, raw_text: Union[str, ChapterNote, None]) -> Chapter:
        """
        Replace a chapter's note locally and request an autosave.

        The interval is unchanged; updated_at is refreshed.

        Raises:
            NotFoundError: If the chapter id is unknown
        """
        chapter = self.get(chapter_id).with_note(_note_text(raw_text))
        self._by_id[chapter_id] = chapter
        logger.debug(f"Note changed for chapter {chapter_id}")
        if self._on_note_change is not None:
            self._on_note_change(chapter_id)
        return chapter

    def __len__(self) -> int:
        return len(self._by_id)
