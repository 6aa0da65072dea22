"""
Tests for GradeSession: token addressing, chapter edits, autosave wiring.
"""

from unittest.mock import MagicMock

import pytest

from gradesheet_toolkit.core.models.chapter import ChapterNote, IndexRange
from gradesheet_toolkit.core.models.marks import Mark
from gradesheet_toolkit.engine.errors import (
    NotFoundError,
    OverlapConflict,
    PersistenceError,
    ReadOnlyWorkbookError,
    ValidationError,
)
from gradesheet_toolkit.engine.mark_sequence import FilterMode
from gradesheet_toolkit.persistence.gateway import InMemoryGateway
from gradesheet_toolkit.session import ChapterPlan, GradeSession


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def session(qtbot, gateway, fast_config):
    s = GradeSession(gateway, fast_config)
    yield s
    s.close(flush=False)


@pytest.fixture
def wb(session):
    return session.create_workbook("s1", "Focus Gold", 10)


class TestWorkbookLifecycle:
    """Tests for create/load/delete."""

    def test_create_when_valid_then_registered_with_blank_marks(self, session, gateway, wb):
        assert session.workbook(wb.id) is wb
        assert session.sequence(wb.id).snapshot() == (Mark.NONE,) * 10
        assert gateway.load_workbooks("s1") == [wb]

    @pytest.mark.parametrize("title", ["", "   "])
    def test_create_when_blank_title_then_validation_error(self, session, gateway, title):
        with pytest.raises(ValidationError):
            session.create_workbook("s1", title, 5)
        assert gateway.load_workbooks("s1") == []

    @pytest.mark.parametrize("count", [0, -3, 1001])
    def test_create_when_count_out_of_bounds_then_validation_error(self, session, count):
        with pytest.raises(ValidationError):
            session.create_workbook("s1", "Focus Gold", count)

    def test_create_when_no_count_and_no_plan_then_validation_error(self, session):
        with pytest.raises(ValidationError):
            session.create_workbook("s1", "Focus Gold")

    def test_create_when_chapter_plan_then_consecutive_chapters(self, session):
        wb = session.create_workbook(
            "s1", "Unit 3", chapter_plan=[ChapterPlan("Vectors", 3), ChapterPlan("Matrices", 4)]
        )

        assert wb.problem_count == 7
        chapters = session.chapters.chapters_for(wb.id)
        assert [(c.start_index, c.end_index, c.title) for c in chapters] == [
            (0, 2, "Vectors"), (3, 6, "Matrices"),
        ]
        assert [repr(s) for s in session.segments(wb.id)] == ["Chapter[0,2]", "Chapter[3,6]"]

    def test_create_when_plan_disagrees_with_count_then_validation_error(self, session):
        with pytest.raises(ValidationError):
            session.create_workbook("s1", "Unit 3", 5, chapter_plan=[ChapterPlan("A", 3)])

    def test_create_when_labels_wrong_length_then_validation_error(self, session):
        with pytest.raises(ValidationError):
            session.create_workbook("s1", "Unit 3", 3, labels=["a"])

    def test_load_when_store_has_rows_then_state_replaced(self, qtbot, gateway, fast_config):
        stored = gateway.create_workbook("s1", "Focus Gold", 4)
        gateway.save_marks(stored.id, [Mark.CORRECT, Mark.NONE, Mark.NONE, Mark.INCORRECT])
        gateway.create_chapter(stored.id, 0, 1, "Vectors")
        gateway.create_workbook("s2", "Not mine", 2)
        session = GradeSession(gateway, fast_config)

        loaded = session.load("s1")

        assert [w.id for w in loaded] == [stored.id]
        assert session.sequence(stored.id)[3] is Mark.INCORRECT
        assert len(session.chapters.chapters_for(stored.id)) == 1
        session.close(flush=False)

    def test_delete_when_called_then_gateway_and_local_state_cleared(self, session, gateway, wb):
        chapter = session.create_chapter(wb.id, "1", "3", "Vectors")
        session.cycle_mark(wb.id, "1")
        session.update_chapter_note(chapter.id, "Vectors\nx")

        session.delete_workbook(wb.id)

        assert gateway.load_workbooks("s1") == []
        assert session.marks_autosave.pending_keys() == []
        assert session.notes_autosave.pending_keys() == []
        with pytest.raises(NotFoundError):
            session.workbook(wb.id)

    def test_delete_when_gateway_fails_then_local_state_kept(self, qtbot, fast_config):
        gateway = MagicMock()
        gateway.create_workbook.side_effect = InMemoryGateway().create_workbook
        gateway.delete_workbook.side_effect = PersistenceError("down", "delete_workbook")
        session = GradeSession(gateway, fast_config)
        wb = session.create_workbook("s1", "Focus Gold", 3)

        with pytest.raises(PersistenceError):
            session.delete_workbook(wb.id)

        assert session.workbook(wb.id) is wb

    def test_create_when_plan_chapter_rejected_then_workbook_removed(self, qtbot, fast_config):
        """A half-stored chapter plan leaves no workbook behind."""
        store = InMemoryGateway()
        created = []

        def create_chapter(workbook_id, start_index, end_index, note):
            if created:
                raise PersistenceError("down", "create_chapter")
            created.append(store.create_chapter(workbook_id, start_index, end_index, note))
            return created[-1]

        gateway = MagicMock(wraps=store)
        gateway.create_chapter.side_effect = create_chapter
        session = GradeSession(gateway, fast_config)

        with pytest.raises(PersistenceError):
            session.create_workbook(
                "s1", "Unit 3", chapter_plan=[ChapterPlan("Vectors", 3), ChapterPlan("Matrices", 4)]
            )

        assert store.load_workbooks("s1") == []
        wb_id = created[0].workbook_id
        assert store.load_chapters([wb_id]) == []
        assert session.workbooks() == []
        assert session.chapters.chapters_for(wb_id) == []
        session.close(flush=False)

    def test_create_when_rollback_delete_fails_then_original_error_raised(self, qtbot, fast_config):
        gateway = MagicMock(wraps=InMemoryGateway())
        gateway.create_chapter.side_effect = PersistenceError("chapter down", "create_chapter")
        gateway.delete_workbook.side_effect = PersistenceError("delete down", "delete_workbook")
        session = GradeSession(gateway, fast_config)

        with pytest.raises(PersistenceError, match="chapter down"):
            session.create_workbook("s1", "Unit 3", chapter_plan=[ChapterPlan("Vectors", 3)])

        gateway.delete_workbook.assert_called_once()
        assert session.workbooks() == []
        session.close(flush=False)


class TestMarks:
    """Tests for token-addressed mark edits."""

    def test_cycle_mark_when_numeric_token_then_position(self, session, wb):
        assert session.cycle_mark(wb.id, "3") is Mark.CORRECT
        assert session.sequence(wb.id)[2] is Mark.CORRECT

    def test_set_mark_when_label_token_then_labelled_problem(self, session):
        wb = session.create_workbook("s1", "Blue Chart", 3, labels=["1a", "1b", "2"])

        index = session.set_mark(wb.id, "1b", Mark.PARTIAL)

        assert index == 1
        assert session.sequence(wb.id)[1] is Mark.PARTIAL

    def test_set_mark_when_unknown_token_then_validation_error(self, session, wb):
        with pytest.raises(ValidationError):
            session.set_mark(wb.id, "11", Mark.CORRECT)
        assert not session.marks_autosave.is_pending(wb.id)

    def test_apply_range_when_then_cleared_then_all_none(self, session, wb):
        session.apply_range(wb.id, "3", "6", Mark.CORRECT)
        session.apply_range(wb.id, "6", "3", Mark.NONE)

        assert session.sequence(wb.id).snapshot() == (Mark.NONE,) * 10

    def test_apply_to_chapter_when_called_then_chapter_range_set(self, session, wb):
        chapter = session.create_chapter(wb.id, "3", "6", "Vectors")

        rng = session.apply_to_chapter(chapter.id, Mark.INCORRECT)

        assert rng == IndexRange(2, 5)
        assert session.filter_indices(wb.id, FilterMode.INCORRECT) == [2, 3, 4, 5]
        assert session.tally(wb.id, chapter.range).incorrect == 4

    def test_set_mark_when_template_then_read_only(self, session):
        tpl = session.create_workbook("teacher", "Unit 3", 3, template=True)

        with pytest.raises(ReadOnlyWorkbookError):
            session.cycle_mark(tpl.id, "1")


class TestChapters:
    """Tests for token-addressed chapter edits."""

    def test_walk_when_tokens_used_then_segments_follow(self, session, wb):
        def shape():
            return [repr(s) for s in session.segments(wb.id)]

        assert shape() == ["Free[0,9]"]
        session.create_chapter(wb.id, "3", "6", ChapterNote("Vectors", "redo"))
        assert shape() == ["Free[0,1]", "Chapter[2,5]", "Free[6,9]"]

        with pytest.raises(OverlapConflict) as exc_info:
            session.create_chapter(wb.id, "5", "8")
        assert exc_info.value.range_label == "3~6"

        session.create_chapter(wb.id, "7", "10")
        assert shape() == ["Free[0,1]", "Chapter[2,5]", "Chapter[6,9]"]

        session.remove_chapter(wb.id, "7", "10")
        assert shape() == ["Free[0,1]", "Chapter[2,5]", "Free[6,9]"]

    def test_remove_when_no_chapter_then_not_found(self, session, wb):
        with pytest.raises(NotFoundError):
            session.remove_chapter(wb.id, "1", "2")

    def test_chapter_label_when_titled_then_title_and_range(self, session, wb):
        chapter = session.create_chapter(wb.id, "3", "6", "Vectors")

        assert session.chapter_label(chapter) == "Vectors (3~6)"

    def test_chapter_label_when_untitled_then_placeholder(self, session, wb):
        chapter = session.create_chapter(wb.id, "1", "1", "\nremark only")

        assert session.chapter_label(chapter) == "(untitled chapter) (1~1)"

    def test_recent_chapter_when_note_edited_then_that_chapter(self, session, wb):
        first = session.create_chapter(wb.id, "1", "2", "A")
        session.create_chapter(wb.id, "3", "4", "B")

        session.update_chapter_note(first.id, "A\nnew remark")

        assert session.recent_chapter(wb.id).id == first.id


class TestAutosaveWiring:
    """Tests for debounced and manual saves through the session."""

    def test_mark_edits_when_burst_then_one_save_of_final_state(self, qtbot, fast_config):
        gateway = MagicMock(wraps=InMemoryGateway())
        session = GradeSession(gateway, fast_config)
        wb = session.create_workbook("s1", "Focus Gold", 10)

        for _ in range(5):
            session.cycle_mark(wb.id, "1")

        qtbot.waitUntil(lambda: gateway.save_marks.call_count == 1, timeout=2000)
        qtbot.wait(150)

        assert gateway.save_marks.call_count == 1
        _, marks = gateway.save_marks.call_args.args
        assert marks[0] is Mark.CORRECT   # five clicks: O X T "" O
        assert session.status == "saved"

    def test_note_edit_when_debounced_then_gateway_updated(self, qtbot, session, gateway, wb):
        chapter = session.create_chapter(wb.id, "1", "2", "A")

        session.update_chapter_note(chapter.id, "A\nremark")

        qtbot.waitUntil(lambda: gateway.load_chapters([wb.id])[0].note == "A\nremark", timeout=2000)

    def test_notes_and_marks_when_both_pending_then_independent(self, session, wb):
        chapter = session.create_chapter(wb.id, "1", "2", "A")
        session.cycle_mark(wb.id, "1")
        session.update_chapter_note(chapter.id, "A\nx")

        assert session.save_marks_now(wb.id) is True

        assert session.notes_autosave.is_pending(chapter.id)

    def test_save_failure_when_store_down_then_local_marks_kept(self, qtbot, fast_config):
        gateway = MagicMock(wraps=InMemoryGateway())
        gateway.save_marks.side_effect = PersistenceError("store offline", "save_marks")
        session = GradeSession(gateway, fast_config)
        wb = session.create_workbook("s1", "Focus Gold", 3)

        with qtbot.waitSignal(session.statusChanged, timeout=2000) as blocker:
            session.set_mark(wb.id, "2", Mark.INCORRECT)

        assert blocker.args == ["autosave failed - save manually"]
        assert session.sequence(wb.id)[1] is Mark.INCORRECT
        assert session.save_marks_now(wb.id) is False

    def test_close_when_flush_then_pending_saved(self, qtbot, gateway, fast_config):
        session = GradeSession(gateway, fast_config)
        wb = session.create_workbook("s1", "Focus Gold", 3)
        session.set_mark(wb.id, "1", Mark.CORRECT)

        session.close(flush=True)

        assert gateway.get_workbook(wb.id).marks[0] is Mark.CORRECT

    def test_remove_chapter_when_note_pending_then_save_dropped(self, session, wb):
        chapter = session.create_chapter(wb.id, "1", "2", "A")
        session.update_chapter_note(chapter.id, "A\nx")

        session.remove_chapter(wb.id, "1", "2")

        assert not session.notes_autosave.is_pending(chapter.id)
