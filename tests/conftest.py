import os
import sys
from pathlib import Path

import pytest

# Timers need a QApplication but no display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Add src to sys.path so we can import gradesheet_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from gradesheet_toolkit.config import EngineConfig  # noqa: E402
from gradesheet_toolkit.core.models import Chapter, Workbook  # noqa: E402
from gradesheet_toolkit.persistence.gateway import InMemoryGateway  # noqa: E402


# Common test fixtures
@pytest.fixture
def fast_config():
    """Config with a short autosave window so timer tests stay quick."""
    return EngineConfig(autosave_delay_ms=50)


@pytest.fixture
def workbook():
    """Blank 10-problem workbook with default labels."""
    return Workbook.blank("wb-1", "student-1", "Focus Gold", 10)


@pytest.fixture
def labelled_workbook():
    """6-problem workbook with custom labels (one blank, one numeric)."""
    return Workbook.blank(
        "wb-2", "student-1", "Blue Chart", 6,
        labels=["1a", "1b", "2", "ex.3", "", "A-1"],
    )


@pytest.fixture
def gateway():
    """Empty in-memory gateway."""
    return InMemoryGateway()


@pytest.fixture
def make_chapter():
    """Factory for chapters of wb-1."""
    def _make(start: int, end: int, note: str = "", chapter_id: str = "", workbook_id: str = "wb-1"):
        return Chapter(chapter_id or f"c-{start}-{end}", workbook_id, start, end, note)
    return _make
