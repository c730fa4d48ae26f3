from __future__ import annotations

from dataclasses import dataclass, field

from .row import NormalizedRow

"""Dataset model: the normalized rows of one ingested source."""

__all__ = [
    "Dataset",
]


@dataclass
class Dataset:
    """Ordered rows of one source, owned by exactly one registry entry.

    Rows are edited in place and never reordered or removed while the
    dataset is live.
    """
    source_id: str  # ingest 時に払い出す不透明 ID
    name: str  # 表示名 (元ファイル名)
    rows: list[NormalizedRow] = field(default_factory=list)
    sheet_name: str | None = None

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def columns(self) -> list[str]:
        """Column headers for display/export: canonical first, then extras."""
        seen: dict[str, None] = {}
        for row in self.rows:
            for key in row.values:
                seen.setdefault(key, None)
            for key in row.extras:
                seen.setdefault(key, None)
        return list(seen)
