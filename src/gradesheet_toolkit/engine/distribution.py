"""
Module: engine.distribution

Purpose:
    Copy a teacher's template workbook (and its chapters) to a list of
    student owners. Each copy remembers the template it came from through
    template_id, so a second distribution can skip or overwrite it.

Key Functions:
    - distribute_template(): Create/overwrite/skip one copy per owner

Dependencies:
    - persistence.gateway.PersistenceGateway (structural)

Used By:
    - cli (distribute command)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

from ..core.models.chapter import Chapter
from ..core.models.workbook import Workbook
from .errors import ValidationError

if TYPE_CHECKING:
    from ..persistence.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


@dataclass
class DistributionResult:
    """
    Outcome of one distribution run.

    Attributes:
        created: Owner ids that received a new copy
        overwritten: Owner ids whose existing copy was replaced
        skipped: Owner ids that already held a copy (overwrite=False)
    """

    created: List[str] = field(default_factory=list)
    overwritten: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def touched(self) -> int:
        """Number of owners whose store rows changed."""
        return len(self.created) + len(self.overwritten)


def _existing_copy(gateway: PersistenceGateway, owner_id: str, template_id: str) -> Optional[Workbook]:
    for workbook in gateway.load_workbooks(owner_id):
        if workbook.template_id == template_id and not workbook.is_template:
            return workbook
    return None


def _copy_chapters(gateway: PersistenceGateway, workbook_id: str, chapters: Sequence[Chapter]) -> None:
    for chapter in chapters:
        gateway.create_chapter(workbook_id, chapter.start_index, chapter.end_index, chapter.note)


def _create_copy(gateway: PersistenceGateway, owner_id: str, template: Workbook, chapters: Sequence[Chapter]) -> Workbook:
    copy = gateway.create_workbook(
        owner_id,
        template.title,
        template.problem_count,
        labels=template.labels,
        template_id=template.id,
    )
    if any(copy.marks[i] != m for i, m in enumerate(template.marks)):
        gateway.save_marks(copy.id, template.marks)
    _copy_chapters(gateway, copy.id, chapters)
    return copy


def distribute_template(
    gateway: PersistenceGateway,
    template: Workbook,
    chapters: Iterable[Chapter],
    owner_ids: Iterable[str],
    *,
    overwrite: bool = False,
) -> DistributionResult:
    """
    Copy a template workbook to every owner.

    The copy receives the template's title, problem count, marks and
    labels plus one chapter per template chapter. Owners that already
    hold a copy of this template are skipped, unless overwrite is set:
    then their marks are replaced and their chapters re-synced to the
    template's. A copy whose problem count no longer matches is deleted
    and created again.

    Args:
        gateway: Store to write through
        template: Source workbook (must be a template)
        chapters: The template's chapters
        owner_ids: Receiving owners; duplicates are handled once
        overwrite: Replace existing copies instead of skipping them

    Returns:
        DistributionResult listing what happened per owner

    Raises:
        ValidationError: If template is not a template workbook
        PersistenceError: On the first gateway failure (earlier owners
            keep their copies)
    """
    if not template.is_template:
        raise ValidationError(f"Workbook {template.id!r} is not a template", field="template")

    template_chapters = [c for c in chapters if c.workbook_id == template.id]
    result = DistributionResult()
    seen = set()

    for owner_id in owner_ids:
        if owner_id in seen:
            continue
        seen.add(owner_id)

        existing = _existing_copy(gateway, owner_id, template.id)
        if existing is None:
            _create_copy(gateway, owner_id, template, template_chapters)
            result.created.append(owner_id)
            continue

        if not overwrite:
            logger.debug(f"Owner {owner_id} already has a copy of {template.id}; skipping")
            result.skipped.append(owner_id)
            continue

        if existing.problem_count != template.problem_count:
            gateway.delete_workbook(existing.id)
            _create_copy(gateway, owner_id, template, template_chapters)
        else:
            gateway.save_marks(existing.id, template.marks)
            for chapter in gateway.load_chapters([existing.id]):
                gateway.delete_chapter(chapter.id)
            _copy_chapters(gateway, existing.id, template_chapters)
        result.overwritten.append(owner_id)

    logger.info(
        f"Distributed {template.id}: {len(result.created)} created, "
        f"{len(result.overwritten)} overwritten, {len(result.skipped)} skipped"
    )
    return result
