from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd
from openpyxl import load_workbook

from shipment_inspect.excel.writer import (
    SUMMARY_TITLE,
    analytics_frame,
    export_filename,
    export_workbook,
    factory_sheet_name,
)
from shipment_inspect.models.rollup import RollupRecord
from shipment_inspect.services.dataset import DatasetRegistry

NOW = datetime(2024, 11, 5, 9, 7)

RAW_ROWS = [
    {"NO": 1, "ContainerNum": 1, "BoxNum": 7, "Factory": "F200", "REMARKS": "Done", "Note": "x"},
    {"NO": 2, "ContainerNum": 1, "BoxNum": 8, "Factory": "F200", "REMARKS": ""},
    {"NO": 3, "ContainerNum": 2, "BoxNum": 9, "Factory": "F-100 #2", "REMARKS": "done"},
    {"NO": 4, "ContainerNum": "", "BoxNum": 1, "Factory": "", "REMARKS": ""},
]


def test_export_filename():
    assert export_filename("Nov Boxes.xlsx", NOW) == "Nov_Boxes.xlsx_2024-11-05_09-07.xlsx"


def test_factory_sheet_name():
    assert factory_sheet_name("F-100 #2") == "Analytics_F1002"
    assert len(factory_sheet_name("X" * 50)) == 31


def test_analytics_frame_formats_percent():
    frame = analytics_frame([RollupRecord("1", 3, 2), RollupRecord("ALL", 3, 2)])
    assert list(frame.columns) == ["Container", "TotalBoxes", "Finished", "Remaining", "CompletionPercent"]
    assert frame["CompletionPercent"].tolist() == ["67%", "67%"]


def test_export_workbook_layout(tmp_path: Path, config):
    registry = DatasetRegistry(config)
    controller = registry.controller(registry.ingest("Nov Boxes.xlsx", RAW_ROWS))

    out = export_workbook(controller, tmp_path / "exports", now=NOW)

    assert out == tmp_path / "exports" / "Nov_Boxes.xlsx_2024-11-05_09-07.xlsx"
    wb = load_workbook(out)
    assert wb.sheetnames == ["Data", "Analytics", "Analytics_F200", "Analytics_F1002", "Analytics_UNKNOWN", "Summary"]

    summary = wb["Summary"]
    assert summary["A1"].value == SUMMARY_TITLE
    assert "A1:E1" in [str(r) for r in summary.merged_cells.ranges]
    assert [c.value for c in summary[2]] == ["Factory", "TotalBoxes", "Completed", "Remaining", "CompletionPercent"]
    assert [c.value for c in summary[3]] == ["F200", 2, 1, 1, "50%"]
    assert [c.value for c in summary[4]] == ["ALL", 2, 1, 1, "50%"]
    assert summary.column_dimensions["E"].width == 18

    data = pd.read_excel(out, sheet_name="Data")
    assert list(data.columns[: len(config.canonical_columns)]) == list(config.canonical_columns)
    assert "Note" in data.columns
    assert len(data) == 4

    analytics = pd.read_excel(out, sheet_name="Analytics", keep_default_na=False)
    assert analytics["Container"].astype(str).tolist() == ["1", "2", "NA", "ALL"]
    assert analytics["CompletionPercent"].tolist()[-1] == "50%"


def test_export_workbook_keeps_colliding_factory_sheets(tmp_path: Path, config):
    raw = [
        {"NO": 1, "ContainerNum": 1, "BoxNum": 1, "Factory": "F 200", "REMARKS": "Done"},
        {"NO": 2, "ContainerNum": 1, "BoxNum": 2, "Factory": "F200", "REMARKS": ""},
        {"NO": 3, "ContainerNum": 1, "BoxNum": 3, "Factory": "X" * 40, "REMARKS": ""},
        {"NO": 4, "ContainerNum": 1, "BoxNum": 4, "Factory": "X" * 41, "REMARKS": "done"},
    ]
    registry = DatasetRegistry(config)
    controller = registry.controller(registry.ingest("dup.xlsx", raw))

    out = export_workbook(controller, tmp_path, now=NOW)

    long_name = factory_sheet_name("X" * 40)
    wb = load_workbook(out)
    assert wb.sheetnames == [
        "Data",
        "Analytics",
        "Analytics_F200",
        "Analytics_F200_2",
        long_name,
        long_name[:29] + "_2",
        "Summary",
    ]
    assert all(len(name) <= 31 for name in wb.sheetnames)
    # 2 つ目の工場の集計も残る
    second = pd.read_excel(out, sheet_name="Analytics_F200_2", keep_default_na=False)
    assert second["Finished"].tolist() == [0, 0]
    first = pd.read_excel(out, sheet_name="Analytics_F200", keep_default_na=False)
    assert first["Finished"].tolist() == [1, 1]
