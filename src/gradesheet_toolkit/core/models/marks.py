"""
Module: marks

Purpose:
    Provides the Mark enum - the outcome recorded for one problem of a
    workbook - and the MarkTally counter used for sheet and chapter
    summaries.

Key Functions:
    - Mark.next(): Advance through the click cycle
    - Mark.parse(raw): Tolerant decode of a stored code
    - Mark.symbol: Display symbol (○ × △)
    - MarkTally.count(marks): Count each outcome

Dependencies:
    - enum (std)
    - dataclasses (std)

Used By:
    - core.models.workbook.Workbook
    - core.utils.serialization
    - engine.mark_sequence.MarkSequence
    - cli

Storage Codes:
    The hosted store keeps marks as one-letter codes: "" (no mark),
    "O" (correct), "X" (incorrect), "T" (partial). The enum values ARE
    those codes so a Mark can be written to JSON unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable


class Mark(str, Enum):
    """Outcome of a single problem."""
    NONE = ""          # Not attempted / cleared
    CORRECT = "O"      # ○
    INCORRECT = "X"    # ×
    PARTIAL = "T"      # △

    def __str__(self) -> str:
        return self.value

    @property
    def symbol(self) -> str:
        """Display symbol for this mark (empty for NONE)."""
        return _SYMBOLS[self]

    def next(self) -> Mark:
        """
        Next mark in the click cycle.

        NONE → CORRECT → INCORRECT → PARTIAL → NONE

        Returns:
            The mark a single click turns this one into
        """
        return _CYCLE[self]

    @classmethod
    def parse(cls, raw: Any) -> Mark:
        """
        Decode a stored mark code.

        Anything that is not a known code (None, numbers, stray strings)
        reads as NONE, matching how the store's rows were always displayed.

        Args:
            raw: Value read from storage

        Returns:
            Decoded Mark
        """
        if isinstance(raw, Mark):
            return raw
        if isinstance(raw, str):
            try:
                return cls(raw)
            except ValueError:
                return cls.NONE
        return cls.NONE


_SYMBOLS = {
    Mark.NONE: "",
    Mark.CORRECT: "○",
    Mark.INCORRECT: "×",
    Mark.PARTIAL: "△",
}

_CYCLE = {
    Mark.NONE: Mark.CORRECT,
    Mark.CORRECT: Mark.INCORRECT,
    Mark.INCORRECT: Mark.PARTIAL,
    Mark.PARTIAL: Mark.NONE,
}


@dataclass(frozen=True, slots=True)
class MarkTally:
    """
    Count of each outcome over a run of problems.

    Attributes:
        correct: Number of ○ marks
        incorrect: Number of × marks
        partial: Number of △ marks
        blank: Number of unmarked problems

    Example:
        >>> t = MarkTally.count([Mark.CORRECT, Mark.NONE, Mark.CORRECT])
        >>> (t.correct, t.blank, t.total)
        (2, 1, 3)
    """

    correct: int = 0
    incorrect: int = 0
    partial: int = 0
    blank: int = 0

    @classmethod
    def count(cls, marks: Iterable[Mark]) -> MarkTally:
        """
        Tally an iterable of marks.

        Args:
            marks: Marks to count

        Returns:
            MarkTally with one bucket per outcome
        """
        buckets = {m: 0 for m in Mark}
        for m in marks:
            buckets[m] += 1
        return cls(
            correct=buckets[Mark.CORRECT],
            incorrect=buckets[Mark.INCORRECT],
            partial=buckets[Mark.PARTIAL],
            blank=buckets[Mark.NONE],
        )

    @property
    def total(self) -> int:
        """Number of problems counted."""
        return self.correct + self.incorrect + self.partial + self.blank

    @property
    def attempted(self) -> int:
        """Number of problems carrying any mark."""
        return self.total - self.blank

    def describe(self) -> str:
        """One-line summary, e.g. '○3 ×1 △0 -6'."""
        return (
            f"{Mark.CORRECT.symbol}{self.correct} "
            f"{Mark.INCORRECT.symbol}{self.incorrect} "
            f"{Mark.PARTIAL.symbol}{self.partial} "
            f"-{self.blank}"
        )
