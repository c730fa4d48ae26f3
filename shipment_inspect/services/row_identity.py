from __future__ import annotations

from collections.abc import Sequence

from ..models.row import NormalizedRow

"""Row identity resolution for in-place edits.

Source sheets carry no unique identifier, so an edited row is located by a
composite surrogate key:

- primary:  (NO, BoxNum, ContainerNum)
- fallback: (BoxNum, ContainerNum), only when the primary lookup misses

Components are compared as coalesced strings; keys are compared as tuples so
no separator can collide with component values. The first match in dataset
order wins, which means duplicate keys always resolve to the earliest row.
"""

__all__ = [
    "NOT_FOUND",
    "primary_key",
    "fallback_key",
    "find_match",
]

NOT_FOUND = None

RowKey = tuple[str, ...]


def primary_key(row: NormalizedRow) -> RowKey:
    return (row.no, row.box_num, row.container_num)


def fallback_key(row: NormalizedRow) -> RowKey:
    return (row.box_num, row.container_num)


def find_match(edited: NormalizedRow, rows: Sequence[NormalizedRow]) -> int | None:
    """Index of the row ``edited`` identifies, or NOT_FOUND (None)."""
    wanted = primary_key(edited)
    for idx, row in enumerate(rows):
        if primary_key(row) == wanted:
            return idx
    wanted_fallback = fallback_key(edited)
    for idx, row in enumerate(rows):
        if fallback_key(row) == wanted_fallback:
            return idx
    return NOT_FOUND
