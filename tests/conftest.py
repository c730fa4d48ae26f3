# Shared pytest fixtures
from __future__ import annotations
import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from shipment_inspect.config.loader import default_config
from shipment_inspect.logging.init import reset_logging
from shipment_inspect.models.config_models import InspectionConfig
from shipment_inspect.models.row import NormalizedRow
from shipment_inspect.services.column_resolver import ColumnResolver


@pytest.fixture(autouse=True)
def _fresh_logging():
    # ハンドラが前のテストの stdout を握ったままにならないように
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("SHIPMENT_INSPECT_CONFIG", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
manifest: files.json
preferred_sheet: F200_Boxes
column_aliases:
  basebox: BoxNum
  box no: BoxNum
  remark: REMARKS
factory_priority: [F200, F100, AIO]
store_directory: ./store
export_directory: ./exports
logs_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "inspection.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def config() -> InspectionConfig:
    return default_config()


@pytest.fixture()
def resolver(config: InspectionConfig) -> ColumnResolver:
    return ColumnResolver(config)


@pytest.fixture()
def make_row(config: InspectionConfig) -> Callable[..., NormalizedRow]:
    """Build a NormalizedRow from keyword values; unspecified columns are ""."""
    def _make(**values) -> NormalizedRow:
        row = NormalizedRow(values={col: "" for col in config.canonical_columns})
        for key, value in values.items():
            row.set(key, value)
        return row
    return _make


def write_workbook(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    """Create a real .xlsx; the first row of each sheet is its header row."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture()
def make_workbook() -> Callable[[Path, dict[str, list[list[object]]]], Path]:
    return write_workbook
