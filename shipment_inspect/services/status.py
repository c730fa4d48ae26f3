from __future__ import annotations

import re
from typing import Any

from ..models.row import cell_text
from ..models.status import StatusCategory, StatusFilter

"""REMARKS status classification.

Two independent predicates live here and are intentionally not unified:

- classify_status(): four ordered rules -> StatusCategory (row display
  state and status filtering)
- is_completed(): "done" substring only (completion counting in rollups)

They can disagree; unifying them would change completion counts.
"""

__all__ = [
    "classify_status",
    "is_completed",
    "matches_status_filter",
]

_DONE = "done"
_IN_PROGRESS_RE = re.compile(r"in\s*progress", re.IGNORECASE)
_NOT_STARTED_TOKENS = frozenset({"n/a", "na", "not started"})


def classify_status(remarks: Any) -> StatusCategory:
    """Map free-text REMARKS to a StatusCategory; first matching rule wins."""
    text = cell_text(remarks).strip().lower()
    if _DONE in text:
        return StatusCategory.COMPLETED
    if _IN_PROGRESS_RE.search(text):
        return StatusCategory.IN_PROGRESS
    if text == "" or text in _NOT_STARTED_TOKENS:
        return StatusCategory.NOT_STARTED
    # 未知の文言もすべて未着手扱い
    return StatusCategory.NOT_STARTED


def is_completed(remarks: Any) -> bool:
    """Completion predicate used for counting: contains "done" (any case)."""
    if remarks is None:
        return False
    return _DONE in cell_text(remarks).lower()


def matches_status_filter(remarks: Any, status: StatusFilter) -> bool:
    """Whether a row with these REMARKS is visible under ``status``."""
    if status is StatusFilter.ALL:
        return True
    category = classify_status(remarks)
    if status is StatusFilter.FINISHED:
        return category is StatusCategory.COMPLETED
    if status is StatusFilter.IN_PROGRESS:
        return category is StatusCategory.IN_PROGRESS
    if status is StatusFilter.NOT_STARTED:
        return category is StatusCategory.NOT_STARTED
    if status is StatusFilter.REMAINING:
        return category is not StatusCategory.COMPLETED
    raise ValueError(f"unsupported status filter: {status}")  # pragma: no cover
