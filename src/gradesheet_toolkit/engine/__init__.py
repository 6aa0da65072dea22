"""
Engine Package

In-memory grading engine: mark sequences, label resolution, chapters,
segment partitions and template distribution.
"""

from .errors import (
    GradesheetError,
    ValidationError,
    ReadOnlyWorkbookError,
    OverlapConflict,
    NotFoundError,
    PersistenceError,
)
from .mark_sequence import MarkSequence, FilterMode
from .labels import resolve, resolve_range, resolve_index, label_of, format_range
from .chapter_store import ChapterStore, overlaps
from .segments import build_segments, segment_at
from .distribution import distribute_template, DistributionResult

__all__ = [
    "GradesheetError",
    "ValidationError",
    "ReadOnlyWorkbookError",
    "OverlapConflict",
    "NotFoundError",
    "PersistenceError",
    "MarkSequence",
    "FilterMode",
    "resolve",
    "resolve_range",
    "resolve_index",
    "label_of",
    "format_range",
    "ChapterStore",
    "overlaps",
    "build_segments",
    "segment_at",
    "distribute_template",
    "DistributionResult",
]
