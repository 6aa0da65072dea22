"""
Module: engine.mark_sequence

Purpose:
    The in-memory, mutable mark array of one workbook. Owns every mark
    mutation and the outcome cycle, and reports each successful change
    so the session can schedule an autosave.

Key Classes:
    - MarkSequence: set / cycle / range-apply marks, tally and filter
    - FilterMode: Which problems a filtered view shows

Dependencies:
    - core.models (Mark, MarkTally, IndexRange, Workbook)
    - engine.errors

Used By:
    - session.GradeSession
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..core.models.chapter import IndexRange
from ..core.models.marks import Mark, MarkTally
from ..core.models.workbook import Workbook
from .errors import ReadOnlyWorkbookError, ValidationError

logger = logging.getLogger(__name__)


class FilterMode(str, Enum):
    """Which problems a filtered chapter view shows."""
    ALL = "all"
    INCORRECT = "x"                  # × only
    BLANK = "blank"                  # Unmarked only
    INCORRECT_OR_BLANK = "x_blank"   # × or unmarked (what still needs work)

    def __str__(self) -> str:
        return self.value

    def accepts(self, mark: Mark) -> bool:
        """Whether a problem with this mark is shown."""
        if self is FilterMode.ALL:
            return True
        if self is FilterMode.INCORRECT:
            return mark is Mark.INCORRECT
        if self is FilterMode.BLANK:
            return mark is Mark.NONE
        return mark in (Mark.INCORRECT, Mark.NONE)


class MarkSequence:
    """
    Fixed-length mark array for one workbook.

    Every mutation is synchronous and validated before anything changes;
    on success the on_change callback receives the workbook id exactly
    once per operation.

    Usage:
        seq = MarkSequence.from_workbook(workbook, on_change=autosave.schedule)
        seq.cycle_mark(3)            # NONE -> CORRECT
        seq.apply_range(5, 2, Mark.INCORRECT)
        gateway.save_marks(seq.workbook_id, seq.snapshot())

    Attributes:
        workbook_id: Owning workbook id
        read_only: True for template sheets (marks cannot change)
    """

    def __init__(
        self,
        workbook_id: str,
        marks: Tuple[Mark, ...],
        *,
        read_only: bool = False,
        on_change: Optional[Callable[[str], None]] = None,
    ):
        if not marks:
            raise ValueError("a mark sequence needs at least one problem")
        self.workbook_id = workbook_id
        self.read_only = read_only
        self._marks: List[Mark] = list(marks)
        self._on_change = on_change

    @classmethod
    def from_workbook(
        cls,
        workbook: Workbook,
        on_change: Optional[Callable[[str], None]] = None,
    ) -> MarkSequence:
        """Create a sequence holding a loaded workbook's marks."""
        return cls(
            workbook.id,
            workbook.marks,
            read_only=workbook.is_template,
            on_change=on_change,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def problem_count(self) -> int:
        return len(self._marks)

    def __len__(self) -> int:
        return len(self._marks)

    def __getitem__(self, index: int) -> Mark:
        self._check_index(index)
        return self._marks[index]

    def snapshot(self) -> Tuple[Mark, ...]:
        """Current marks as an immutable tuple (what autosave sends)."""
        return tuple(self._marks)

    def tally(self, rng: Optional[IndexRange] = None) -> MarkTally:
        """
        Count each outcome over the whole sheet or one range.

        Args:
            rng: Range to count, or None for every problem
        """
        if rng is None:
            return MarkTally.count(self._marks)
        self._check_range(rng)
        return MarkTally.count(self._marks[rng.lo:rng.hi + 1])

    def filter_indices(self, mode: FilterMode, rng: Optional[IndexRange] = None) -> List[int]:
        """
        Indices whose mark passes a filter.

        Args:
            mode: Filter to apply
            rng: Range to search, or None for every problem

        Returns:
            Matching indices in ascending order
        """
        if rng is None:
            rng = IndexRange(0, len(self._marks) - 1)
        self._check_range(rng)
        return [i for i in rng.indices() if mode.accepts(self._marks[i])]

    # ─────────────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────────────

    def set_mark(self, index: int, mark: Mark) -> None:
        """
        Replace the mark of one problem.

        Raises:
            ValidationError: If index is outside [0, problem_count-1]
            ReadOnlyWorkbookError: If this is a template sheet
        """
        self._check_writable()
        self._check_index(index)
        self._marks[index] = Mark(mark)
        self._changed()

    def cycle_mark(self, index: int) -> Mark:
        """
        Advance one problem through NONE → CORRECT → INCORRECT → PARTIAL → NONE.

        Returns:
            The new mark
        """
        self._check_writable()
        self._check_index(index)
        new = self._marks[index].next()
        self._marks[index] = new
        self._changed()
        return new

    def apply_range(self, start: int, end: int, mark: Mark) -> IndexRange:
        """
        Set every problem in a closed range to one mark.

        Endpoints may be given in either order. NONE clears the range.
        This is a direct set, not a cycle.

        Returns:
            The normalized range that was written
        """
        self._check_writable()
        rng = IndexRange.of(start, end)
        self._check_range(rng)
        mark = Mark(mark)
        for i in rng.indices():
            self._marks[i] = mark
        self._changed()
        return rng

    # ─────────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────────

    def _check_writable(self) -> None:
        if self.read_only:
            raise ReadOnlyWorkbookError(
                f"Workbook {self.workbook_id!r} is a template; its marks cannot be edited",
                field="marks",
            )

    def _check_index(self, index: int) -> None:
        if not (0 <= index < len(self._marks)):
            raise ValidationError(
                f"Problem index {index} is outside 0..{len(self._marks) - 1}",
                field="index",
            )

    def _check_range(self, rng: IndexRange) -> None:
        if rng.lo < 0 or rng.hi >= len(self._marks):
            raise ValidationError(
                f"Range {rng.lo}..{rng.hi} is outside 0..{len(self._marks) - 1}",
                field="range",
            )

    def _changed(self) -> None:
        logger.debug(f"Marks changed for workbook {self.workbook_id}")
        if self._on_change is not None:
            self._on_change(self.workbook_id)

    def __repr__(self) -> str:
        return "MarkSequence(" + "".join(m.symbol or "-" for m in self._marks) + ")"
