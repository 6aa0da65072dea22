"""
Gradesheet Toolkit Core Package

Shared data models, the store document schema and serialization helpers.
Nothing in this package talks to a gateway or a timer.
"""

from .models import (
    Chapter,
    ChapterNote,
    IndexRange,
    Mark,
    MarkTally,
    Segment,
    SegmentKind,
    Workbook,
)

__all__ = [
    "Chapter",
    "ChapterNote",
    "IndexRange",
    "Mark",
    "MarkTally",
    "Segment",
    "SegmentKind",
    "Workbook",
]
