from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from shipment_inspect.config.loader import build_config
from shipment_inspect.logging.error_log import ErrorLogBuffer
from shipment_inspect.models.source import LoadStatus
from shipment_inspect.services.dataset import DatasetRegistry
from shipment_inspect.services.ingest import IngestError, discover_sources, load_sources
from shipment_inspect.store.blob_store import JsonBlobStore

SHEET = [
    ["NO", "Box No", "ContainerNum", "Factory", "REMARKS"],
    [1, 7, 2, "F200", "Done"],
    [2, 8, 2, "F200", ""],
]


@pytest.fixture()
def sources(temp_workdir: Path, make_workbook):
    data = temp_workdir / "data"
    good = make_workbook(data / "good.xlsx", {"F200_Boxes": SHEET})
    bad = data / "bad.xlsx"
    bad.write_bytes(b"garbage")
    cfg = build_config({"source_directory": str(data)})
    return cfg, good, bad


def test_discover_sources(sources):
    cfg, good, bad = sources
    assert discover_sources(cfg) == [bad, good]


def test_discover_sources_missing_directory(temp_workdir: Path):
    cfg = build_config({"source_directory": str(temp_workdir / "nope")})
    with pytest.raises(IngestError) as e:
        discover_sources(cfg)
    assert "directory not found" in str(e.value)


def test_load_sources_records_malformed_and_continues(sources):
    cfg, good, bad = sources
    registry = DatasetRegistry(cfg)
    error_log = ErrorLogBuffer()

    with patch('shipment_inspect.services.progress.is_tty_enabled', return_value=False):
        result = load_sources([bad, good], cfg, registry, error_log)

    assert [s.status for s in result.sources] == [LoadStatus.FAILED, LoadStatus.LOADED]
    assert (result.loaded_count, result.failed_count, result.total_rows) == (1, 1, 2)
    assert result.elapsed_seconds >= 0
    loaded = result.loaded[0]
    assert loaded.source_id == "good.xlsx"
    assert loaded.sheet_name == "F200_Boxes"
    assert registry.get("good.xlsx").rows[0].box_num == "7"

    assert result.failed[0].error
    records = error_log.records
    assert len(records) == 1
    assert records[0].error_type == "MALFORMED_SOURCE"
    assert records[0].row == -1
    assert records[0].source == "bad.xlsx"


def test_load_sources_restores_autosave(sources, temp_workdir: Path):
    cfg, good, _ = sources
    store = JsonBlobStore(temp_workdir / "store")
    store.save("good.xlsx", [{"NO": 1, "BoxNum": 7, "ContainerNum": 2, "REMARKS": "Done"}])

    registry = DatasetRegistry(cfg)
    result = load_sources([good], cfg, registry, ErrorLogBuffer(), store=store, restore=True)
    assert result.sources[0].restored is True
    assert result.total_rows == 1

    fresh = DatasetRegistry(cfg)
    result = load_sources([good], cfg, fresh, ErrorLogBuffer(), store=store, restore=False)
    assert result.sources[0].restored is False
    assert result.total_rows == 2
