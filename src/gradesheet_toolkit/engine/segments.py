"""
Module: engine.segments

Purpose:
    Rebuild the display partition of a workbook: chapters in index order
    with "free" gaps between them, covering every problem exactly once.

Key Functions:
    - build_segments(): Problem count + chapters -> ordered segments
    - segment_at(): Segment covering an index

Algorithm:
    1. Sort chapters by (start, end); cursor = 0
    2. Clip each chapter to [0, N-1] and to start no earlier than the
       cursor; skip it when nothing remains
    3. Emit a free segment for [cursor, start-1] when non-empty
    4. Emit the chapter segment and move the cursor past it
    5. Emit a trailing free segment for [cursor, N-1] when non-empty

    The output is recomputed from scratch on every call.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from ..core.models.chapter import Chapter, IndexRange
from ..core.models.segment import Segment

logger = logging.getLogger(__name__)


def build_segments(problem_count: int, chapters: Iterable[Chapter]) -> List[Segment]:
    """
    Partition [0, problem_count-1] into chapter and free segments.

    Args:
        problem_count: Number of problems in the workbook
        chapters: Chapters of that workbook (any order)

    Returns:
        Segments in index order; their ranges are contiguous and their
        lengths sum to problem_count

    Example:
        >>> c = Chapter("c1", "w1", 2, 5)
        >>> build_segments(10, [c])
        [Free[0,1], Chapter[2,5], Free[6,9]]
    """
    if problem_count <= 0:
        return []

    ordered = sorted(chapters, key=lambda c: (c.start_index, c.end_index))
    segments: List[Segment] = []
    cursor = 0

    for chapter in ordered:
        clipped = chapter.range.clip(problem_count)
        if clipped is None or clipped.hi < cursor:
            logger.debug(f"Skipping chapter {chapter.id} outside [{cursor}, {problem_count - 1}]")
            continue
        if clipped.lo < cursor:
            # Overlapping rows from a store: the earlier chapter keeps the shared indices
            clipped = IndexRange(cursor, clipped.hi)

        if clipped.lo > cursor:
            segments.append(Segment.free(cursor, clipped.lo - 1))
        segments.append(Segment.for_chapter(chapter, clipped))
        cursor = clipped.hi + 1

    if cursor <= problem_count - 1:
        segments.append(Segment.free(cursor, problem_count - 1))

    return segments


def segment_at(segments: Sequence[Segment], index: int) -> Optional[Segment]:
    """Return the segment covering index, or None when it is out of range."""
    for segment in segments:
        if segment.start_index <= index <= segment.end_index:
            return segment
    return None
