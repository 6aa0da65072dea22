"""
Unit tests for MarkSequence.
"""

from unittest.mock import MagicMock

import pytest

from gradesheet_toolkit.core.models.chapter import IndexRange
from gradesheet_toolkit.core.models.marks import Mark
from gradesheet_toolkit.core.models.workbook import Workbook
from gradesheet_toolkit.engine.errors import ReadOnlyWorkbookError, ValidationError
from gradesheet_toolkit.engine.mark_sequence import FilterMode, MarkSequence


@pytest.fixture
def on_change():
    return MagicMock()


@pytest.fixture
def seq(workbook, on_change):
    return MarkSequence.from_workbook(workbook, on_change=on_change)


class TestSetAndCycle:
    """Tests for single-problem mutations."""

    def test_set_mark_when_in_range_then_replaced_and_notified(self, seq, on_change):
        seq.set_mark(3, Mark.PARTIAL)

        assert seq[3] is Mark.PARTIAL
        on_change.assert_called_once_with("wb-1")

    @pytest.mark.parametrize("index", [-1, 10, 99])
    def test_set_mark_when_out_of_range_then_rejected_without_change(self, seq, on_change, index):
        with pytest.raises(ValidationError):
            seq.set_mark(index, Mark.CORRECT)

        assert seq.snapshot() == (Mark.NONE,) * 10
        on_change.assert_not_called()

    def test_cycle_mark_when_clicked_four_times_then_full_cycle(self, seq, on_change):
        results = [seq.cycle_mark(0) for _ in range(4)]

        assert results == [Mark.CORRECT, Mark.INCORRECT, Mark.PARTIAL, Mark.NONE]
        assert on_change.call_count == 4

    def test_cycle_mark_when_out_of_range_then_rejected(self, seq):
        with pytest.raises(ValidationError):
            seq.cycle_mark(10)


class TestApplyRange:
    """Tests for apply_range."""

    def test_apply_range_when_reversed_then_normalized(self, seq):
        rng = seq.apply_range(5, 2, Mark.CORRECT)

        assert rng == IndexRange(2, 5)
        assert [i for i, m in enumerate(seq.snapshot()) if m is Mark.CORRECT] == [2, 3, 4, 5]

    def test_apply_range_when_applied_twice_then_idempotent(self, seq):
        seq.apply_range(1, 4, Mark.INCORRECT)
        once = seq.snapshot()
        seq.apply_range(1, 4, Mark.INCORRECT)

        assert seq.snapshot() == once

    def test_apply_range_when_correct_then_none_then_all_cleared(self, seq):
        """apply(2,5,CORRECT) then apply(2,5,NONE) leaves every mark NONE."""
        seq.apply_range(2, 5, Mark.CORRECT)
        seq.apply_range(2, 5, Mark.NONE)

        assert seq.snapshot() == (Mark.NONE,) * 10

    def test_apply_range_when_other_marks_present_then_direct_set(self, seq):
        """Range apply overwrites rather than cycling."""
        seq.set_mark(3, Mark.PARTIAL)
        seq.apply_range(2, 4, Mark.CORRECT)

        assert seq[3] is Mark.CORRECT

    def test_apply_range_when_notified_then_once_per_call(self, seq, on_change):
        seq.apply_range(0, 9, Mark.CORRECT)

        on_change.assert_called_once_with("wb-1")

    def test_apply_range_when_end_out_of_range_then_rejected(self, seq, on_change):
        with pytest.raises(ValidationError):
            seq.apply_range(8, 10, Mark.CORRECT)

        assert seq[8] is Mark.NONE
        on_change.assert_not_called()


class TestReadOnly:
    """Tests for template sheets."""

    def test_mutations_when_template_then_rejected(self, on_change):
        template = Workbook.blank("t", "teacher", "Unit 3", 3, is_template=True)
        seq = MarkSequence.from_workbook(template, on_change=on_change)

        with pytest.raises(ReadOnlyWorkbookError):
            seq.set_mark(0, Mark.CORRECT)
        with pytest.raises(ReadOnlyWorkbookError):
            seq.cycle_mark(0)
        with pytest.raises(ValidationError):
            seq.apply_range(0, 2, Mark.CORRECT)
        on_change.assert_not_called()


class TestQueries:
    """Tests for tally and filter_indices."""

    @pytest.fixture
    def marked(self, seq):
        for i, m in enumerate([Mark.CORRECT, Mark.INCORRECT, Mark.NONE, Mark.PARTIAL, Mark.INCORRECT]):
            seq.set_mark(i, m)
        return seq

    def test_tally_when_whole_sheet_then_counts_all(self, marked):
        tally = marked.tally()

        assert (tally.correct, tally.incorrect, tally.partial, tally.blank) == (1, 2, 1, 6)

    def test_tally_when_range_given_then_counts_range(self, marked):
        tally = marked.tally(IndexRange(0, 2))

        assert (tally.correct, tally.incorrect, tally.blank) == (1, 1, 1)

    @pytest.mark.parametrize("mode, expected", [
        (FilterMode.ALL, [0, 1, 2, 3, 4]),
        (FilterMode.INCORRECT, [1, 4]),
        (FilterMode.BLANK, [2]),
        (FilterMode.INCORRECT_OR_BLANK, [1, 2, 4]),
    ])
    def test_filter_indices_when_mode_given_then_matching_indices(self, marked, mode, expected):
        assert marked.filter_indices(mode, IndexRange(0, 4)) == expected

    def test_filter_indices_when_no_range_then_whole_sheet(self, marked):
        assert marked.filter_indices(FilterMode.BLANK) == [2, 5, 6, 7, 8, 9]

    def test_tally_when_range_out_of_bounds_then_rejected(self, marked):
        with pytest.raises(ValidationError):
            marked.tally(IndexRange(5, 10))
