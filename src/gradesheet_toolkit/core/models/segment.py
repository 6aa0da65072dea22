"""
Module: segment

Purpose:
    Provides the Segment dataclass - one piece of the display partition
    of a workbook. A segment is either a chapter or a free run of
    problems between chapters. Segments are derived, never stored.

Dependencies:
    - dataclasses (std)
    - enum (std)
    - .chapter.Chapter, .chapter.IndexRange

Used By:
    - engine.segments.build_segments
    - session.GradeSession.segments
    - cli
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .chapter import Chapter, IndexRange


class SegmentKind(str, Enum):
    """Type of display segment."""
    CHAPTER = "chapter"  # Covered by a chapter
    FREE = "free"        # Gap between chapters

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Segment:
    """
    Contiguous run of problem indices in the display partition.

    Attributes:
        kind: CHAPTER or FREE
        start_index: First index (inclusive)
        end_index: Last index (inclusive)
        chapter: The covering chapter (CHAPTER segments only)

    Invariants:
        - start_index <= end_index
        - chapter is set iff kind is CHAPTER
    """

    kind: SegmentKind
    start_index: int
    end_index: int
    chapter: Optional[Chapter] = None

    def __post_init__(self) -> None:
        """Validate segment on construction."""
        if self.start_index > self.end_index:
            raise ValueError(
                f"start_index must be <= end_index: {self.start_index} > {self.end_index}"
            )
        if (self.kind is SegmentKind.CHAPTER) != (self.chapter is not None):
            raise ValueError(f"chapter must be set exactly for chapter segments: {self.kind}")

    @classmethod
    def free(cls, start_index: int, end_index: int) -> Segment:
        """Create a free segment."""
        return cls(SegmentKind.FREE, start_index, end_index)

    @classmethod
    def for_chapter(cls, chapter: Chapter, rng: IndexRange) -> Segment:
        """Create a chapter segment over an (already clipped) range."""
        return cls(SegmentKind.CHAPTER, rng.lo, rng.hi, chapter)

    @property
    def is_chapter(self) -> bool:
        return self.kind is SegmentKind.CHAPTER

    @property
    def range(self) -> IndexRange:
        """Closed interval covered by this segment."""
        return IndexRange(self.start_index, self.end_index)

    @property
    def length(self) -> int:
        return self.end_index - self.start_index + 1

    def __repr__(self) -> str:
        if self.is_chapter:
            return f"Chapter[{self.start_index},{self.end_index}]"
        return f"Free[{self.start_index},{self.end_index}]"
