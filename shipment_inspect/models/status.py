from __future__ import annotations

from enum import Enum

"""Status enums for inspection rows.

StatusCategory is derived from the REMARKS text and never stored.
StatusFilter is the user-facing status selector used when filtering a
dataset view; it is not the same closed set (it adds "all" and "Remaining").
"""

__all__ = [
    "StatusCategory",
    "StatusFilter",
]


class StatusCategory(Enum):
    """Closed status taxonomy for a row's REMARKS field."""
    COMPLETED = "Completed"
    IN_PROGRESS = "In Progress"
    NOT_STARTED = "Not Started"


class StatusFilter(Enum):
    """Status selector for dataset views.

    - ALL: no status restriction
    - FINISHED: Completed rows only
    - IN_PROGRESS / NOT_STARTED: that category only
    - REMAINING: everything that is not Completed
    """
    ALL = "all"
    FINISHED = "Finished"
    IN_PROGRESS = "In Progress"
    NOT_STARTED = "Not Started"
    REMAINING = "Remaining"

    @classmethod
    def parse(cls, value: str | StatusFilter | None) -> StatusFilter:
        """Accept enum members, their values or names (case-insensitive)."""
        if value is None:
            return cls.ALL
        if isinstance(value, StatusFilter):
            return value
        wanted = value.strip().lower()
        for member in cls:
            if wanted in (member.value.lower(), member.name.lower(), member.name.lower().replace("_", " ")):
                return member
        raise ValueError(f"unknown status filter: {value!r}")
