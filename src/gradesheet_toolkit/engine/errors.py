"""
Module: engine.errors

Purpose:
    Exception hierarchy for the grading engine.

    ValidationError, OverlapConflict and NotFoundError are raised BEFORE
    any local change, so callers can reject the request outright.
    PersistenceError is raised by gateways; when it follows an optimistic
    local change that change is kept (no rollback).

Key Classes:
    - GradesheetError: Base class
    - ValidationError / ReadOnlyWorkbookError: Bad user input
    - OverlapConflict: Chapter insert intersects an existing chapter
    - NotFoundError: Nothing matches the requested chapter/workbook
    - PersistenceError: Gateway failed to complete a call
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..core.models.chapter import Chapter


class GradesheetError(Exception):
    """Base class for all engine errors."""


class ValidationError(GradesheetError):
    """User-supplied input cannot be applied (bad token, index or count)."""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field


class ReadOnlyWorkbookError(ValidationError):
    """A template workbook's marks cannot be edited."""


class OverlapConflict(GradesheetError):
    """
    A chapter insert intersects an existing chapter.

    Attributes:
        conflict: The existing chapter that blocks the insert
        title: Display title of the conflicting chapter
        range_label: Label-formatted range of the conflicting chapter
    """

    def __init__(self, conflict: Chapter, title: str, range_label: str):
        super().__init__(f"Overlaps existing chapter {title!r} ({range_label})")
        self.conflict = conflict
        self.title = title
        self.range_label = range_label


class NotFoundError(GradesheetError):
    """No workbook or chapter matches the request."""


class PersistenceError(GradesheetError):
    """
    The store rejected or failed to complete a call.

    Attributes:
        operation: Gateway operation name (e.g. "save_marks")
        cause: Underlying transport/store exception, if any
    """

    def __init__(self, message: str, operation: str = "", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.operation = operation
        self.cause = cause
