from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .config_models import (
    COL_BOX_NUM,
    COL_CONTAINER_NUM,
    COL_FACTORY,
    COL_ITEM_COUNT,
    COL_NO,
    COL_REMARKS,
)

"""NormalizedRow model.

A NormalizedRow is one source row after column reconciliation: every
canonical column is present in ``values`` (schema order, "" when unresolved)
and every unrecognized source column is kept verbatim in ``extras``.
"""

__all__ = [
    "RawRow",
    "NormalizedRow",
    "cell_text",
]

RawRow = Mapping[str, Any]


def cell_text(value: Any) -> str:
    """Coalesce a cell value to the string used for comparisons.

    None and NaN become "" so that every field read is null-safe.
    """
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value)


@dataclass
class NormalizedRow:
    """One row in canonical shape (mutable; edits replace values in place)."""
    values: dict[str, Any]  # canonical column -> value (全列必ず存在)
    extras: dict[str, Any] = field(default_factory=dict)  # 元ヘッダ -> 値

    def get(self, column: str, default: Any = "") -> Any:
        if column in self.values:
            return self.values[column]
        return self.extras.get(column, default)

    def text(self, column: str) -> str:
        return cell_text(self.get(column))

    def set(self, column: str, value: Any) -> None:
        if column in self.values:
            self.values[column] = value
        else:
            self.extras[column] = value

    @property
    def no(self) -> str:
        return self.text(COL_NO)

    @property
    def container_num(self) -> str:
        return self.text(COL_CONTAINER_NUM)

    @property
    def box_num(self) -> str:
        return self.text(COL_BOX_NUM)

    @property
    def factory(self) -> str:
        return self.text(COL_FACTORY)

    @property
    def remarks(self) -> str:
        return self.text(COL_REMARKS)

    @property
    def item_count(self) -> float:
        """ItemCount as a number; non-numeric or blank counts as 0."""
        raw = self.get(COL_ITEM_COUNT)
        if isinstance(raw, bool):
            return float(raw)
        if isinstance(raw, (int, float)):
            return 0.0 if isinstance(raw, float) and math.isnan(raw) else float(raw)
        try:
            return float(cell_text(raw).strip() or 0)
        except ValueError:
            return 0.0

    def field_texts(self) -> list[str]:
        """Every field value as text, canonical columns first."""
        return [cell_text(v) for v in self.values.values()] + [
            cell_text(v) for v in self.extras.values()
        ]

    def to_record(self) -> dict[str, Any]:
        """Flat mapping for export / persistence (canonical first, then extras)."""
        record = dict(self.values)
        for key, value in self.extras.items():
            record.setdefault(key, value)
        return record

    def copy(self) -> NormalizedRow:
        return NormalizedRow(values=dict(self.values), extras=dict(self.extras))

    @classmethod
    def from_record(cls, record: Mapping[str, Any], canonical_columns: tuple[str, ...]) -> NormalizedRow:
        """Rebuild a row from a flat record written by ``to_record``."""
        values = {col: record.get(col, "") for col in canonical_columns}
        extras = {k: v for k, v in record.items() if k not in values}
        return cls(values=values, extras=extras)
