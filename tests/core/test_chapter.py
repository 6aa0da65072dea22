"""
Unit Tests for IndexRange, ChapterNote and Chapter
"""

from datetime import datetime, timezone

import pytest

from gradesheet_toolkit.core.models.chapter import Chapter, ChapterNote, IndexRange


class TestIndexRange:
    """Tests for IndexRange."""

    def test_of_when_reversed_then_normalizes(self):
        """Endpoints given high-to-low are swapped."""
        assert IndexRange.of(5, 2) == IndexRange(2, 5)

    def test_init_when_lo_above_hi_then_raises_error(self):
        """Direct construction requires lo <= hi."""
        with pytest.raises(ValueError, match="lo must be <= hi"):
            IndexRange(5, 2)

    def test_length_when_single_index_then_one(self):
        assert IndexRange(3, 3).length == 1

    @pytest.mark.parametrize("a, b, expected", [
        ((2, 5), (5, 9), True),    # shared endpoint
        ((2, 5), (6, 9), False),   # adjacent
        ((2, 5), (0, 1), False),
        ((2, 5), (3, 4), True),    # contained
        ((3, 4), (2, 5), True),    # containing
        ((0, 9), (4, 4), True),
    ])
    def test_overlaps_when_pairs_given_then_closed_interval_rule(self, a, b, expected):
        """Overlap uses closed intervals and is symmetric."""
        ra, rb = IndexRange(*a), IndexRange(*b)
        assert ra.overlaps(rb) is expected
        assert rb.overlaps(ra) is expected

    def test_contains_when_inside_then_true(self):
        assert IndexRange(2, 5).contains(IndexRange(3, 5))
        assert not IndexRange(2, 5).contains(IndexRange(1, 3))

    def test_clip_when_partly_outside_then_trimmed(self):
        """Clipping keeps the part inside [0, count-1]."""
        assert IndexRange(8, 12).clip(10) == IndexRange(8, 9)

    def test_clip_when_fully_outside_then_none(self):
        assert IndexRange(10, 12).clip(10) is None


class TestChapterNote:
    """Tests for the note blob convention."""

    def test_parse_when_multiline_then_first_line_is_title(self):
        note = ChapterNote.parse("Quadratics\nRedo 4\nand 7")

        assert note.title == "Quadratics"
        assert note.body == "Redo 4\nand 7"

    def test_parse_when_crlf_then_normalized(self):
        note = ChapterNote.parse("Vectors\r\nbody line")

        assert note == ChapterNote("Vectors", "body line")

    def test_parse_when_empty_first_line_then_empty_title(self):
        note = ChapterNote.parse("\nonly a remark")

        assert note.title == ""
        assert note.display_title("(untitled)") == "(untitled)"

    def test_parse_when_none_then_empty(self):
        assert ChapterNote.parse(None) == ChapterNote()

    def test_compose_when_no_body_then_title_only(self):
        assert ChapterNote("Vectors").compose() == "Vectors"

    def test_compose_when_parsed_then_rebuilds_blob(self):
        raw = "Vectors\nline 1\nline 2"
        assert ChapterNote.parse(raw).compose() == raw


class TestChapter:
    """Tests for Chapter."""

    def test_init_when_negative_start_then_raises_error(self):
        with pytest.raises(ValueError, match="start_index must be >= 0"):
            Chapter("c", "w", -1, 3)

    def test_init_when_end_before_start_then_raises_error(self):
        with pytest.raises(ValueError, match="end_index must be >= start_index"):
            Chapter("c", "w", 5, 2)

    def test_title_when_note_set_then_derived(self):
        chapter = Chapter("c", "w", 2, 5, "Vectors\nredo")

        assert chapter.title == "Vectors"
        assert chapter.body == "redo"
        assert chapter.range == IndexRange(2, 5)
        assert list(chapter.iter_indices()) == [2, 3, 4, 5]

    def test_with_note_when_called_then_interval_kept_and_stamp_refreshed(self):
        old = datetime(2020, 1, 1, tzinfo=timezone.utc)
        chapter = Chapter("c", "w", 2, 5, "a", old)

        updated = chapter.with_note("b")

        assert updated.note == "b"
        assert (updated.start_index, updated.end_index) == (2, 5)
        assert updated.updated_at > old

    def test_from_dict_when_reversed_endpoints_then_normalized(self):
        chapter = Chapter.from_dict(
            {"id": "c", "workbook_id": "w", "start_index": 7, "end_index": 3, "note": ""}
        )

        assert (chapter.start_index, chapter.end_index) == (3, 7)

    def test_from_dict_when_legacy_columns_then_folded_into_note(self):
        chapter = Chapter.from_dict({
            "id": "c", "workbook_id": "w", "start_index": 0, "end_index": 1,
            "chapter_title": "Limits", "chapter_note": "check 2",
        })

        assert chapter.note == "Limits\ncheck 2"

    def test_to_dict_when_serialized_then_iso_timestamp(self):
        stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        data = Chapter("c", "w", 0, 1, "x", stamp).to_dict()

        assert data["updated_at"] == "2024-05-01T12:00:00+00:00"
        assert Chapter.from_dict(data).updated_at == stamp
