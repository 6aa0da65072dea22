"""
Module: engine.labels

Purpose:
    Resolve a user-typed token (a 1-based position or a custom problem
    label) to a 0-based index, and format indices and ranges back into
    labels for display.

Key Functions:
    - resolve(): Token -> index or None
    - resolve_range(): Two tokens -> IndexRange (raises ValidationError)
    - label_of(): Index -> display label
    - format_range(): IndexRange -> "lo~hi" label string

Resolution Order:
    1. A token of ASCII digits is a 1-based position; it is valid only
       inside [1, problem_count]. Numeric interpretation always wins, so a
       custom label made only of digits cannot be reached by label.
    2. Otherwise the first label equal to the token.
    3. Otherwise None.
"""

from __future__ import annotations

import re
from typing import Optional

from ..config import DEFAULT_CONFIG
from ..core.models.chapter import IndexRange
from ..core.models.workbook import Workbook
from .errors import ValidationError

_NUMERIC = re.compile(r"[0-9]+")


def resolve(workbook: Workbook, token: str) -> Optional[int]:
    """
    Resolve one token to a 0-based index.

    Args:
        workbook: Sheet whose positions/labels are searched
        token: User input; surrounding whitespace is ignored

    Returns:
        Index in [0, problem_count-1], or None when nothing matches

    Example:
        >>> wb = Workbook.blank("w", "s", "t", 3, labels=["1a", "1b", "2"])
        >>> resolve(wb, "1b"), resolve(wb, "2"), resolve(wb, "9")
        (1, 1, None)
    """
    text = (token or "").strip()
    if not text:
        return None

    if _NUMERIC.fullmatch(text):
        index = int(text) - 1
        if 0 <= index < workbook.problem_count:
            return index
        return None

    if workbook.labels is not None:
        for i, label in enumerate(workbook.labels):
            if label == text:
                return i
    return None


def resolve_range(workbook: Workbook, start_token: str, end_token: str) -> IndexRange:
    """
    Resolve both ends of a typed range.

    Ends are resolved independently and the result is normalized, so
    "7" ~ "3" gives the same range as "3" ~ "7".

    Raises:
        ValidationError: If either token does not resolve
    """
    start = resolve(workbook, start_token)
    if start is None:
        raise ValidationError(f"Unknown problem {start_token!r}", field="start")
    end = resolve(workbook, end_token)
    if end is None:
        raise ValidationError(f"Unknown problem {end_token!r}", field="end")
    return IndexRange.of(start, end)


def resolve_index(workbook: Workbook, token: str) -> int:
    """Resolve a single token, raising ValidationError when it does not match."""
    index = resolve(workbook, token)
    if index is None:
        raise ValidationError(f"Unknown problem {token!r}", field="index")
    return index


def label_of(workbook: Workbook, index: int) -> str:
    """Display label of one problem (custom label or 1-based position)."""
    return workbook.label_of(index)


def format_range(workbook: Workbook, rng: IndexRange, separator: str = DEFAULT_CONFIG.range_separator) -> str:
    """Render a range as "<lo label><separator><hi label>"."""
    return f"{workbook.label_of(rng.lo)}{separator}{workbook.label_of(rng.hi)}"
