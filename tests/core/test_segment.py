"""Unit tests for the Segment model."""

import pytest

from gradesheet_toolkit.core.models.chapter import Chapter, IndexRange
from gradesheet_toolkit.core.models.segment import Segment, SegmentKind


class TestSegment:
    """Tests for Segment construction."""

    def test_free_when_created_then_no_chapter(self):
        seg = Segment.free(0, 1)

        assert seg.kind is SegmentKind.FREE
        assert seg.chapter is None
        assert seg.length == 2
        assert repr(seg) == "Free[0,1]"

    def test_for_chapter_when_created_then_uses_given_range(self):
        chapter = Chapter("c", "w", 2, 9)

        seg = Segment.for_chapter(chapter, IndexRange(2, 5))

        assert seg.is_chapter
        assert seg.range == IndexRange(2, 5)
        assert repr(seg) == "Chapter[2,5]"

    def test_init_when_chapter_kind_without_chapter_then_raises_error(self):
        with pytest.raises(ValueError, match="chapter must be set"):
            Segment(SegmentKind.CHAPTER, 0, 1)

    def test_init_when_reversed_then_raises_error(self):
        with pytest.raises(ValueError, match="start_index must be <= end_index"):
            Segment.free(3, 2)
