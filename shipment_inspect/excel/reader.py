from __future__ import annotations

import json
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook reading: one worksheet -> ordered raw rows.

- Sheet selection: the sheet whose name equals the preferred name
  (case-insensitive), else the first sheet.
- First row is the header row; blank header cells become "__EMPTY",
  "__EMPTY_1", ... and duplicate headers get a "_1", "_2" suffix.
- Literal "NA" / "N/A" text is kept as text; empty cells become "".
- Integral floats become int, so "3" and 3.0 compare the same downstream.
- Fully blank rows are skipped.
"""

__all__ = [
    "MalformedSourceError",
    "SourceSheet",
    "select_sheet",
    "read_source_rows",
    "scan_sources",
]

logger = logging.getLogger(__name__)


class MalformedSourceError(Exception):
    """Raised when a workbook cannot be decoded into rows."""


@dataclass
class SourceSheet:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # 元ヘッダ -> セル値 (列順保持)


def select_sheet(sheet_names: Sequence[str], preferred: str | None) -> str | None:
    """Preferred sheet (case-insensitive) if present, else the first sheet."""
    if not sheet_names:
        return None
    if preferred:
        wanted = preferred.lower()
        for name in sheet_names:
            if str(name).lower() == wanted:
                return str(name)
    return str(sheet_names[0])


def _coerce_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return int(value)
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if pd.isna(value):
        return ""
    if hasattr(value, "item"):  # numpy scalar
        return _coerce_cell(value.item())
    return value


def _header_names(raw_headers: list[Any]) -> list[str]:
    names: list[str] = []
    seen: dict[str, int] = {}
    empty_count = 0
    for raw in raw_headers:
        text = "" if raw is None or (isinstance(raw, float) and math.isnan(raw)) else str(raw)
        if isinstance(raw, float) and not math.isnan(raw) and raw.is_integer():
            text = str(int(raw))
        if text.strip() == "":
            text = "__EMPTY" if empty_count == 0 else f"__EMPTY_{empty_count}"
            empty_count += 1
        if text in seen:
            seen[text] += 1
            text = f"{text}_{seen[text]}"
        else:
            seen[text] = 0
        names.append(text)
    return names


def read_source_rows(path: Path, preferred_sheet: str | None = None) -> SourceSheet:
    """Read the selected worksheet of ``path`` into raw rows.

    Raises:
        MalformedSourceError: the file is missing, not a workbook, or has
            no worksheets.
    """
    try:
        xls = pd.ExcelFile(path)
    except Exception as e:
        raise MalformedSourceError(f"cannot open workbook {path.name}: {e}") from e

    with xls:
        sheet_name = select_sheet([str(s) for s in xls.sheet_names], preferred_sheet)
        if sheet_name is None:
            raise MalformedSourceError(f"workbook {path.name} has no sheets")
        try:
            # ヘッダなしで生読みし、1行目をヘッダとして自前で適用。
            # "NA" / "N/A" などの文字列は欠損扱いにせずそのまま残す
            df = xls.parse(sheet_name, header=None, dtype=object, keep_default_na=False, na_values=[])
        except Exception as e:
            raise MalformedSourceError(f"cannot parse sheet '{sheet_name}' of {path.name}: {e}") from e

    if df.shape[0] == 0:
        logger.debug("source=%s sheet=%s is empty", path.name, sheet_name)
        return SourceSheet(sheet_name=sheet_name, columns=[], rows=[])

    columns = _header_names(df.iloc[0].tolist())
    rows: list[dict[str, Any]] = []
    for _, raw in df.iloc[1:].iterrows():
        if raw.isna().all():
            continue
        values = [_coerce_cell(v) for v in raw.tolist()]
        if all(v == "" for v in values):
            continue
        rows.append(dict(zip(columns, values, strict=False)))

    logger.debug("source=%s sheet=%s columns=%s rows=%d", path.name, sheet_name, columns, len(rows))
    return SourceSheet(sheet_name=sheet_name, columns=columns, rows=rows)


def scan_sources(directory: Path, manifest: str | None = None) -> list[Path]:
    """List workbooks to ingest.

    A JSON manifest (list of file names) inside ``directory`` wins when it
    exists and is valid; otherwise every ``*.xlsx`` file, sorted by name.
    """
    if manifest:
        manifest_path = directory / manifest
        if manifest_path.exists():
            try:
                names = json.loads(manifest_path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                logger.warning("manifest %s is not valid JSON (%s) -> directory scan", manifest_path, e)
                names = None
            if isinstance(names, list):
                paths: list[Path] = []
                for name in names:
                    candidate = directory / str(name)
                    if candidate.is_file():
                        paths.append(candidate)
                    else:
                        logger.warning("manifest entry not found: %s", candidate)
                return paths
            if names is not None:
                logger.warning("manifest %s is not a list -> directory scan", manifest_path)
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and p.suffix == ".xlsx" and not p.name.startswith("~$")),
        key=lambda p: p.name,
    )
