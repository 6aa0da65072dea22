"""
Module: config

Purpose:
    Configuration dataclass for the grading engine. Immutable
    configuration with validation on construction.

Key Classes:
    - EngineConfig: Timing, bounds and display strings for a session

Dependencies:
    - dataclasses (std)

Used By:
    - session.GradeSession
    - persistence.autosave.AutosaveScheduler
    - engine.labels / engine.chapter_store (display strings)
    - cli
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    """
    Configuration for a grading session (immutable).

    Attributes:
        autosave_delay_ms: Debounce window before a scheduled save fires
        max_problem_count: Largest problem count a workbook may be created with
        untitled_chapter_title: Shown when a chapter note has an empty first line
        autosave_failed_status: Status surfaced when a save fails
        saved_status: Status surfaced after a successful save
        range_separator: Joins the two labels of a displayed range

    Example:
        >>> config = EngineConfig(autosave_delay_ms=250)
        >>> config.max_problem_count
        1000
    """

    # Autosave
    autosave_delay_ms: int = 700

    # Bounds
    max_problem_count: int = 1000

    # Display strings
    untitled_chapter_title: str = "(untitled chapter)"
    autosave_failed_status: str = "autosave failed - save manually"
    saved_status: str = "saved"
    range_separator: str = "~"

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.autosave_delay_ms < 0:
            raise ValueError(f"autosave_delay_ms must be non-negative: {self.autosave_delay_ms}")
        if self.max_problem_count <= 0:
            raise ValueError(f"max_problem_count must be positive: {self.max_problem_count}")
        if not self.range_separator:
            raise ValueError("range_separator must not be empty")


DEFAULT_CONFIG = EngineConfig()
