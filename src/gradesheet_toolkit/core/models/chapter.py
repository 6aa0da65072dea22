"""
Module: chapter

Purpose:
    Provides the Chapter dataclass - a named, remarked interval over a
    workbook's problems - together with IndexRange (the closed interval
    it covers) and ChapterNote (the title/body view of its note blob).

Key Functions:
    - IndexRange.of(a, b): Normalized closed interval
    - IndexRange.overlaps(other): Closed-interval overlap test
    - IndexRange.contains(other): Full containment test
    - IndexRange.clip(count): Restrict to [0, count-1]
    - ChapterNote.parse(raw) / ChapterNote.compose(): Blob <-> title/body
    - Chapter.to_dict() / Chapter.from_dict(): Serialization

Dependencies:
    - dataclasses (std)
    - datetime (std)

Used By:
    - engine.chapter_store.ChapterStore
    - engine.segments.build_segments
    - core.utils.serialization
    - persistence gateways

Note Blob Convention:
    Storage has a single text column per chapter. Its first line is the
    chapter title and every following line is free-form remark body.
    ChapterNote is the explicit two-field record used at the boundary;
    the stored blob is always ChapterNote.compose() output.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Iterator, Optional


def utc_now() -> datetime:
    """Timezone-aware current time used for updated_at stamps."""
    return datetime.now(timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# IndexRange
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class IndexRange:
    """
    Closed interval of 0-based problem indices.

    Both ends are inclusive. Construct through IndexRange.of() when the
    endpoints may arrive reversed.

    Attributes:
        lo: First index (inclusive)
        hi: Last index (inclusive)

    Invariants:
        - lo <= hi

    Example:
        >>> r = IndexRange.of(5, 2)
        >>> (r.lo, r.hi, r.length)
        (2, 5, 4)
        >>> r.overlaps(IndexRange(5, 9))
        True
    """

    lo: int
    hi: int

    def __post_init__(self) -> None:
        """Validate ordering on construction."""
        if self.lo > self.hi:
            raise ValueError(f"lo must be <= hi: {self.lo} > {self.hi}")

    @classmethod
    def of(cls, start: int, end: int) -> IndexRange:
        """Build a range from endpoints in either order."""
        return cls(min(start, end), max(start, end))

    @property
    def length(self) -> int:
        """Number of indices covered."""
        return self.hi - self.lo + 1

    def indices(self) -> range:
        """Iterable of every index in the range."""
        return range(self.lo, self.hi + 1)

    def overlaps(self, other: IndexRange) -> bool:
        """
        Check whether two closed intervals share at least one index.

        Touching endpoints overlap: [2, 5] and [5, 9] share index 5.
        Adjacent ranges such as [2, 5] and [6, 9] do not.
        """
        return not (self.hi < other.lo or other.hi < self.lo)

    def contains(self, other: IndexRange) -> bool:
        """Check whether other lies entirely inside this range."""
        return self.lo <= other.lo and other.hi <= self.hi

    def contains_index(self, index: int) -> bool:
        """Check whether a single index lies inside this range."""
        return self.lo <= index <= self.hi

    def clip(self, count: int) -> Optional[IndexRange]:
        """
        Restrict this range to [0, count-1].

        Args:
            count: Number of problems in the workbook

        Returns:
            Clipped range, or None when nothing remains
        """
        lo = max(self.lo, 0)
        hi = min(self.hi, count - 1)
        if lo > hi:
            return None
        return IndexRange(lo, hi)

    def __repr__(self) -> str:
        return f"IndexRange({self.lo}, {self.hi})"


# ─────────────────────────────────────────────────────────────────────────────
# ChapterNote
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class ChapterNote:
    """
    Title and remark body of a chapter.

    Attributes:
        title: First line of the stored note (may be empty)
        body: Remaining lines, newline-joined

    Example:
        >>> n = ChapterNote.parse("Quadratics\\nRedo 4 and 7")
        >>> (n.title, n.body)
        ('Quadratics', 'Redo 4 and 7')
        >>> n.compose()
        'Quadratics\\nRedo 4 and 7'
    """

    title: str = ""
    body: str = ""

    @classmethod
    def parse(cls, raw: Optional[str]) -> ChapterNote:
        """
        Split a stored note blob into title and body.

        CRLF line endings are normalized first. An empty first line gives
        an empty title; the body is kept verbatim.
        """
        text = (raw or "").replace("\r\n", "\n")
        title, _, body = text.partition("\n")
        return cls(title=title, body=body)

    def compose(self) -> str:
        """Join title and body back into the single stored blob."""
        if not self.body:
            return self.title
        return f"{self.title}\n{self.body}"

    def display_title(self, placeholder: str) -> str:
        """Title for display, or placeholder when the first line is blank."""
        return self.title.strip() or placeholder


# ─────────────────────────────────────────────────────────────────────────────
# Chapter
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class Chapter:
    """
    Named interval of a workbook carrying a free-text note.

    Attributes:
        id: Store-assigned identifier
        workbook_id: Owning workbook
        start_index: First problem (0-based, inclusive)
        end_index: Last problem (0-based, inclusive)
        note: Stored note blob (first line is the title)
        updated_at: Last modification time

    Invariants:
        - 0 <= start_index (upper bound checked against the workbook)
        - start_index <= end_index

    Example:
        >>> c = Chapter("c1", "w1", 2, 5, "Vectors\\nbody")
        >>> c.title, c.range
        ('Vectors', IndexRange(2, 5))
    """

    id: str
    workbook_id: str
    start_index: int
    end_index: int
    note: str = ""
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        """Validate interval on construction."""
        if self.start_index < 0:
            raise ValueError(f"start_index must be >= 0: {self.start_index}")
        if self.end_index < self.start_index:
            raise ValueError(
                f"end_index must be >= start_index: {self.end_index} < {self.start_index}"
            )

    # ─────────────────────────────────────────────────────────────────────────
    # Properties
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def range(self) -> IndexRange:
        """Closed interval covered by this chapter."""
        return IndexRange(self.start_index, self.end_index)

    @property
    def parsed_note(self) -> ChapterNote:
        """Title/body view of the note blob."""
        return ChapterNote.parse(self.note)

    @property
    def title(self) -> str:
        """First line of the note."""
        return self.parsed_note.title

    @property
    def body(self) -> str:
        """Everything after the first line of the note."""
        return self.parsed_note.body

    def iter_indices(self) -> Iterator[int]:
        """Iterate over every problem index in the chapter."""
        return iter(self.range.indices())

    def with_note(self, note: str, updated_at: Optional[datetime] = None) -> Chapter:
        """Copy of this chapter with a replaced note and fresh timestamp."""
        return replace(self, note=note, updated_at=updated_at or utc_now())

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """Serialize to a JSON-ready dictionary."""
        return {
            "id": self.id,
            "workbook_id": self.workbook_id,
            "start_index": self.start_index,
            "end_index": self.end_index,
            "note": self.note,
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Chapter:
        """
        Deserialize from dictionary.

        Endpoints stored in reverse order are normalized. Rows written by
        the older two-column layout (chapter_title / chapter_note) are
        folded into a single note blob.
        """
        rng = IndexRange.of(int(data["start_index"]), int(data["end_index"]))
        note = data.get("note")
        if note is None:
            note = ChapterNote(
                title=data.get("chapter_title") or "",
                body=data.get("chapter_note") or "",
            ).compose()
        updated = data.get("updated_at")
        return cls(
            id=str(data["id"]),
            workbook_id=str(data["workbook_id"]),
            start_index=rng.lo,
            end_index=rng.hi,
            note=note,
            updated_at=datetime.fromisoformat(updated) if updated else utc_now(),
        )

    def __repr__(self) -> str:
        return f"Chapter({self.id!r}, [{self.start_index}, {self.end_index}], {self.title!r})"
