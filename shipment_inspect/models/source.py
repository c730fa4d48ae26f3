from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

"""Source ingestion outcome model and LoadStatus enum.

A SourceLoad tracks one workbook through ingestion, from discovery to
loaded/failed, for the CLI summary and the error log.
"""


class LoadStatus(Enum):
    """Status enum for a source's ingestion lifecycle.

    State transitions: pending → (loaded | failed)
    """
    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceLoad:
    """Ingestion result for a single workbook."""
    path: Path
    name: str
    source_id: str | None = None  # registry ID (loaded のときのみ)
    status: LoadStatus = LoadStatus.PENDING
    row_count: int = 0
    sheet_name: str | None = None
    restored: bool = False  # autosave から行を復元したか
    error: str | None = None
