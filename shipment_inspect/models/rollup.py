from __future__ import annotations

from dataclasses import dataclass

"""Rollup result models.

All of these are derived from a Dataset snapshot on demand and are never
persisted on their own.
"""

__all__ = [
    "ALL_KEY",
    "RollupRecord",
    "StatusCounts",
    "PackCounts",
    "completion_percent",
]

ALL_KEY = "ALL"


def completion_percent(finished: int, total: int) -> int:
    """Percentage of finished rows, rounded half up; 0 when total is 0."""
    if total <= 0:
        return 0
    # 整数演算で四捨五入 (round() は偶数丸めなので使わない)
    return (200 * finished + total) // (2 * total)


@dataclass(frozen=True)
class RollupRecord:
    """Aggregated completion figures for one group key (or "ALL")."""
    group_key: str
    total: int
    finished_count: int

    @property
    def remaining_count(self) -> int:
        return self.total - self.finished_count

    @property
    def completion_percent(self) -> int:
        return completion_percent(self.finished_count, self.total)

    @property
    def is_all(self) -> bool:
        return self.group_key == ALL_KEY


@dataclass(frozen=True)
class StatusCounts:
    """Four-state status breakdown over a set of rows."""
    total: int
    completed: int
    in_progress: int
    not_started: int

    @property
    def remaining(self) -> int:
        # Remaining = In Progress + Not Started
        return self.in_progress + self.not_started

    @property
    def completion_percent(self) -> int:
        return completion_percent(self.completed, self.total)


@dataclass(frozen=True)
class PackCounts:
    """Multipack (ItemCount > 1) vs normal row counts."""
    multipack: int
    normal: int
