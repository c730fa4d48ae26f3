from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from typing import Union

from ..models.config_models import COL_CONTAINER_NUM, COL_FACTORY
from ..models.rollup import ALL_KEY, PackCounts, RollupRecord, StatusCounts
from ..models.row import NormalizedRow
from ..models.status import StatusCategory
from .status import classify_status, is_completed

"""Rollup aggregation over normalized rows.

aggregate() is the single-pass engine; the call-site variants fix the group
column and the sentinel for blank group values:

- container_rollup():  ContainerNum, blank -> "NA"
- factory_rollup():    Factory, blank -> "UNKNOWN"
- summary_rollup():    only the configured priority factories, in priority
                       order, plus an "ALL" record over those factories

Completion is counted with is_completed() (the "done" rule), not with the
four-state classifier.
"""

__all__ = [
    "CONTAINER_MISSING_KEY",
    "FACTORY_MISSING_KEY",
    "aggregate",
    "container_rollup",
    "factory_rollup",
    "factory_analytics",
    "summary_rollup",
    "status_counts",
    "pack_counts",
]

CONTAINER_MISSING_KEY = "NA"
FACTORY_MISSING_KEY = "UNKNOWN"

GroupBy = Union[str, Callable[[NormalizedRow], str]]


def _group_key(row: NormalizedRow, group_by: GroupBy, missing_key: str) -> str:
    value = group_by(row) if callable(group_by) else row.text(group_by)
    if not value or not value.strip():
        return missing_key
    return value


def _all_record(records: Iterable[RollupRecord]) -> RollupRecord:
    total = 0
    finished = 0
    for rec in records:
        total += rec.total
        finished += rec.finished_count
    return RollupRecord(group_key=ALL_KEY, total=total, finished_count=finished)


def aggregate(
    rows: Iterable[NormalizedRow],
    group_by: GroupBy,
    *,
    missing_key: str = CONTAINER_MISSING_KEY,
) -> list[RollupRecord]:
    """Group rows, count total/finished per key, append the "ALL" record.

    Records are sorted lexicographically by key; "ALL" is always last, even
    when ``rows`` is empty.
    """
    totals: defaultdict[str, int] = defaultdict(int)
    finished: defaultdict[str, int] = defaultdict(int)
    for row in rows:
        key = _group_key(row, group_by, missing_key)
        totals[key] += 1
        if is_completed(row.remarks):
            finished[key] += 1

    records = [
        RollupRecord(group_key=key, total=totals[key], finished_count=finished[key])
        for key in sorted(totals)
    ]
    records.append(_all_record(records))
    return records


def container_rollup(rows: Iterable[NormalizedRow]) -> list[RollupRecord]:
    return aggregate(rows, COL_CONTAINER_NUM, missing_key=CONTAINER_MISSING_KEY)


def factory_rollup(rows: Iterable[NormalizedRow]) -> list[RollupRecord]:
    return aggregate(rows, COL_FACTORY, missing_key=FACTORY_MISSING_KEY)


def factory_analytics(rows: Sequence[NormalizedRow]) -> dict[str, list[RollupRecord]]:
    """Container rollup per factory, factories in first-appearance order."""
    grouped: dict[str, list[NormalizedRow]] = {}
    for row in rows:
        key = _group_key(row, COL_FACTORY, FACTORY_MISSING_KEY)
        grouped.setdefault(key, []).append(row)
    return {factory: container_rollup(members) for factory, members in grouped.items()}


def summary_rollup(rows: Sequence[NormalizedRow], factory_priority: Sequence[str]) -> list[RollupRecord]:
    """Fixed-order factory summary restricted to ``factory_priority``.

    Factories outside the priority list are left out of this view (and of
    its "ALL" record); priority factories with no rows are skipped.
    """
    records: list[RollupRecord] = []
    for factory in factory_priority:
        members = [row for row in rows if row.factory == factory]
        if not members:
            continue
        done = sum(1 for row in members if is_completed(row.remarks))
        records.append(RollupRecord(group_key=factory, total=len(members), finished_count=done))
    records.append(_all_record(records))
    return records


def status_counts(rows: Iterable[NormalizedRow]) -> StatusCounts:
    """Four-state breakdown using classify_status()."""
    total = completed = in_progress = not_started = 0
    for row in rows:
        total += 1
        category = classify_status(row.remarks)
        if category is StatusCategory.COMPLETED:
            completed += 1
        elif category is StatusCategory.IN_PROGRESS:
            in_progress += 1
        else:
            not_started += 1
    return StatusCounts(total=total, completed=completed, in_progress=in_progress, not_started=not_started)


def pack_counts(rows: Iterable[NormalizedRow]) -> PackCounts:
    multipack = normal = 0
    for row in rows:
        if row.item_count > 1:
            multipack += 1
        else:
            normal += 1
    return PackCounts(multipack=multipack, normal=normal)
