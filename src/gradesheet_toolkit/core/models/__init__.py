"""
Core Models Package

Immutable, validated data models shared by the engine and the gateways.

**DESIGN RATIONALE:**

All persisted models in this package are frozen dataclasses. Mutation
happens only in the engine (MarkSequence, ChapterStore), which replaces
whole instances. This ensures:
1. A snapshot handed to a gateway can never change under it
2. Loaded rows can be shared between the session and the UI safely
3. Chapters can be compared and sorted without defensive copies
"""

from .marks import Mark, MarkTally
from .chapter import Chapter, ChapterNote, IndexRange
from .segment import Segment, SegmentKind
from .workbook import Workbook

__all__ = [
    "Mark",
    "MarkTally",
    "Chapter",
    "ChapterNote",
    "IndexRange",
    "Segment",
    "SegmentKind",
    "Workbook",
]
