from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.utils import get_column_letter

from ..models.rollup import RollupRecord
from ..services.dataset import DatasetController

"""Export workbook writer.

One workbook per dataset, sheets in this order:

- Data                 full dataset, canonical columns first, then extras
- Analytics            container rollup over the full dataset (+ ALL)
- Analytics_<factory>  container rollup per factory
- Summary              priority factories only (+ ALL), titled, row 2 header
"""

__all__ = [
    "SUMMARY_TITLE",
    "export_filename",
    "analytics_frame",
    "summary_frame",
    "factory_sheet_name",
    "export_workbook",
]

logger = logging.getLogger(__name__)

SUMMARY_TITLE = "Shipment Inspection Summary"
SUMMARY_COLUMN_WIDTHS = (12, 12, 12, 12, 18)
_SHEET_NAME_DROP_RE = re.compile(r"[^A-Za-z0-9_]")
_MAX_SHEET_NAME = 31  # Excel の制限


def export_filename(name: str, now: datetime) -> str:
    """``<name, spaces as _>_<YYYY-MM-DD_HH-MM>.xlsx``."""
    stem = re.sub(r"\s+", "_", name)
    return f"{stem}_{now.strftime('%Y-%m-%d_%H-%M')}.xlsx"


def _percent(value: int) -> str:
    return f"{value}%"


def analytics_frame(records: Sequence[RollupRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Container": rec.group_key,
                "TotalBoxes": rec.total,
                "Finished": rec.finished_count,
                "Remaining": rec.remaining_count,
                "CompletionPercent": _percent(rec.completion_percent),
            }
            for rec in records
        ],
        columns=["Container", "TotalBoxes", "Finished", "Remaining", "CompletionPercent"],
    )


def summary_frame(records: Sequence[RollupRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Factory": rec.group_key,
                "TotalBoxes": rec.total,
                "Completed": rec.finished_count,
                "Remaining": rec.remaining_count,
                "CompletionPercent": _percent(rec.completion_percent),
            }
            for rec in records
        ],
        columns=["Factory", "TotalBoxes", "Completed", "Remaining", "CompletionPercent"],
    )


def factory_sheet_name(factory: str) -> str:
    return _SHEET_NAME_DROP_RE.sub("", f"Analytics_{factory}")[:_MAX_SHEET_NAME]


def _unique_sheet_name(name: str, used: set[str]) -> str:
    """Suffix ``_2``, ``_3``... until ``name`` is free (case-insensitive, like Excel)."""
    candidate = name
    n = 2
    while candidate.lower() in used:
        suffix = f"_{n}"
        candidate = name[: _MAX_SHEET_NAME - len(suffix)] + suffix
        n += 1
    used.add(candidate.lower())
    return candidate


def _data_frame(controller: DatasetController) -> pd.DataFrame:
    records: list[dict[str, Any]] = controller.to_records()
    columns = list(controller.config.canonical_columns)
    for rec in records:
        for key in rec:
            if key not in columns:
                columns.append(key)
    return pd.DataFrame(records, columns=columns)


def _write_summary_sheet(writer: pd.ExcelWriter, records: Sequence[RollupRecord]) -> None:
    frame = summary_frame(records)
    # タイトル行 (A1:E1 結合) の下、2行目からヘッダ
    frame.to_excel(writer, sheet_name="Summary", index=False, startrow=1)
    ws = writer.sheets["Summary"]
    ws["A1"] = SUMMARY_TITLE
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(frame.columns))
    for idx, width in enumerate(SUMMARY_COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width


def export_workbook(controller: DatasetController, directory: Path, now: datetime | None = None) -> Path:
    """Write the analytics workbook for one dataset and return its path."""
    now = now or datetime.now()
    directory.mkdir(parents=True, exist_ok=True)
    out_path = directory / export_filename(controller.dataset.name, now)

    used_names = {"data", "analytics", "summary"}
    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        _data_frame(controller).to_excel(writer, sheet_name="Data", index=False)
        analytics_frame(controller.analytics_rollup()).to_excel(writer, sheet_name="Analytics", index=False)
        for factory, records in controller.factory_analytics().items():
            base = factory_sheet_name(factory)
            sheet = _unique_sheet_name(base, used_names)
            if sheet != base:
                logger.debug("analytics sheet=%s taken, factory=%r -> %s", base, factory, sheet)
            analytics_frame(records).to_excel(writer, sheet_name=sheet, index=False)
        _write_summary_sheet(writer, controller.summary())

    logger.info("exported source=%s -> %s", controller.dataset.source_id, out_path)
    return out_path
