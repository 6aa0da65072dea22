"""
Module: workbook

Purpose:
    Provides the Workbook dataclass - one student's grade sheet for a
    problem collection: a fixed number of problems, the mark recorded
    for each, and optional custom problem labels.

Key Functions:
    - Workbook.blank(...): New sheet with every mark cleared
    - Workbook.label_of(index): Display label with positional fallback
    - Workbook.with_marks(marks): Copy with a replaced mark array
    - Workbook.to_dict() / Workbook.from_dict(): Serialization

Dependencies:
    - dataclasses (std)
    - datetime (std)
    - .marks.Mark

Used By:
    - engine.mark_sequence.MarkSequence
    - engine.labels
    - engine.distribution
    - persistence gateways
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Sequence, Tuple

from .chapter import utc_now
from .marks import Mark


@dataclass(frozen=True, slots=True)
class Workbook:
    """
    Grade sheet for one owner and one problem collection.

    Attributes:
        id: Store-assigned identifier
        owner_id: Student (or teacher, for templates) owning the sheet
        title: Collection name
        problem_count: Number of problems, fixed at creation
        marks: One Mark per problem
        labels: Custom problem labels, or None for 1..N
        template_id: Template this sheet was distributed from, if any
        is_template: True for a teacher's distributable template sheet
        updated_at: Last modification time

    Invariants:
        - problem_count > 0
        - len(marks) == problem_count
        - labels is None or len(labels) == problem_count

    Example:
        >>> wb = Workbook.blank("w1", "s1", "Focus Gold", 3)
        >>> wb.marks
        (<Mark.NONE: ''>, <Mark.NONE: ''>, <Mark.NONE: ''>)
        >>> wb.label_of(0)
        '1'
    """

    id: str
    owner_id: str
    title: str
    problem_count: int
    marks: Tuple[Mark, ...]
    labels: Optional[Tuple[str, ...]] = None
    template_id: Optional[str] = None
    is_template: bool = False
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        """Validate shape on construction."""
        if self.problem_count <= 0:
            raise ValueError(f"problem_count must be positive: {self.problem_count}")
        if len(self.marks) != self.problem_count:
            raise ValueError(
                f"marks length {len(self.marks)} != problem_count {self.problem_count}"
            )
        if self.labels is not None and len(self.labels) != self.problem_count:
            raise ValueError(
                f"labels length {len(self.labels)} != problem_count {self.problem_count}"
            )

    # ─────────────────────────────────────────────────────────────────────────
    # Factory Methods
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def blank(
        cls,
        id: str,
        owner_id: str,
        title: str,
        problem_count: int,
        *,
        labels: Optional[Sequence[str]] = None,
        template_id: Optional[str] = None,
        is_template: bool = False,
    ) -> Workbook:
        """
        Create a sheet with every mark set to NONE.

        Args:
            id: Identifier for the new sheet
            owner_id: Owning user
            title: Collection name
            problem_count: Number of problems
            labels: Optional custom labels (defaults to 1..N)
            template_id: Optional template this sheet was copied from
            is_template: Whether this sheet is itself a template

        Returns:
            Workbook with cleared marks
        """
        return cls(
            id=id,
            owner_id=owner_id,
            title=title,
            problem_count=problem_count,
            marks=(Mark.NONE,) * problem_count,
            labels=tuple(labels) if labels is not None else None,
            template_id=template_id,
            is_template=is_template,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Properties
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def effective_labels(self) -> Tuple[str, ...]:
        """Display label of every problem, applying the positional fallback."""
        return tuple(self.label_of(i) for i in range(self.problem_count))

    # ─────────────────────────────────────────────────────────────────────────
    # Query Methods
    # ─────────────────────────────────────────────────────────────────────────

    def label_of(self, index: int) -> str:
        """
        Display label of one problem.

        Blank or missing custom labels fall back to the 1-based position.
        """
        if self.labels is not None and 0 <= index < len(self.labels):
            label = self.labels[index].strip()
            if label:
                return label
        return str(index + 1)

    def with_marks(self, marks: Sequence[Mark], updated_at: Optional[datetime] = None) -> Workbook:
        """Copy of this sheet with a replaced mark array."""
        return replace(self, marks=tuple(marks), updated_at=updated_at or utc_now())

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """Serialize to a JSON-ready dictionary (marks as storage codes)."""
        d = {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "problem_count": self.problem_count,
            "marks": [m.value for m in self.marks],
            "labels": list(self.labels) if self.labels is not None else None,
            "updated_at": self.updated_at.isoformat(),
        }
        if self.template_id is not None:
            d["template_id"] = self.template_id
        if self.is_template:
            d["is_template"] = True
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Workbook:
        """
        Deserialize from dictionary.

        Stored rows are decoded leniently: unknown mark codes read as NONE,
        a mark array of the wrong length is padded or truncated, and a
        label array of the wrong length is dropped in favour of 1..N.
        """
        count = int(data["problem_count"])
        raw_marks = data.get("marks") or []
        marks = [Mark.parse(m) for m in raw_marks[:count]]
        marks.extend([Mark.NONE] * (count - len(marks)))

        raw_labels = data.get("labels")
        labels: Optional[Tuple[str, ...]] = None
        if isinstance(raw_labels, list) and len(raw_labels) == count:
            labels = tuple(x if isinstance(x, str) else "" for x in raw_labels)

        updated = data.get("updated_at")
        return cls(
            id=str(data["id"]),
            owner_id=str(data["owner_id"]),
            title=str(data["title"]),
            problem_count=count,
            marks=tuple(marks),
            labels=labels,
            template_id=data.get("template_id"),
            is_template=bool(data.get("is_template", False)),
            updated_at=datetime.fromisoformat(updated) if updated else utc_now(),
        )

    def __repr__(self) -> str:
        return f"Workbook({self.id!r}, {self.title!r}, n={self.problem_count})"
