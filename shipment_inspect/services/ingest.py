from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import Path

from ..excel.reader import MalformedSourceError, read_source_rows, scan_sources
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import InspectionConfig
from ..models.error_record import ErrorRecord
from ..models.source import LoadStatus, SourceLoad
from ..store.blob_store import JsonBlobStore
from .dataset import DatasetRegistry
from .progress import ProgressTracker

"""Source ingestion orchestration.

Coordinates one run over the configured source directory:
1. discover workbooks (manifest, else directory scan)
2. read each workbook and register its rows in the DatasetRegistry
3. optionally replace the rows with the autosaved copy from the blob store
4. collect per-source outcomes into an IngestResult

A workbook that cannot be decoded is recorded in the ErrorLogBuffer as
MALFORMED_SOURCE and marked failed; the run continues with the next one.
Flushing the buffer is left to the caller so a run writes one log file.
"""

__all__ = [
    "SOURCE_LEVEL_SHEET",
    "IngestError",
    "IngestResult",
    "discover_sources",
    "load_source",
    "load_sources",
]

logger = logging.getLogger(__name__)

SOURCE_LEVEL_SHEET = "<SOURCE_LEVEL>"


class IngestError(Exception):
    """Fatal ingestion problem (e.g. the source directory is missing)."""


@dataclass(frozen=True)
class IngestResult:
    """Outcome of one ingestion run."""
    sources: list[SourceLoad]
    total_rows: int = 0
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def loaded(self) -> list[SourceLoad]:
        return [s for s in self.sources if s.status is LoadStatus.LOADED]

    @property
    def failed(self) -> list[SourceLoad]:
        return [s for s in self.sources if s.status is LoadStatus.FAILED]

    @property
    def loaded_count(self) -> int:
        return len(self.loaded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()


def discover_sources(config: InspectionConfig) -> list[Path]:
    """List the workbooks under ``config.source_directory``.

    Raises:
        IngestError: the directory does not exist or is not a directory.
    """
    directory = Path(config.source_directory)
    if not directory.exists():
        raise IngestError(f"directory not found: {directory}")
    if not directory.is_dir():
        raise IngestError(f"path is not a directory: {directory}")
    try:
        return scan_sources(directory, config.manifest)
    except OSError as e:
        raise IngestError(f"error reading directory {directory}: {e}") from e


def load_source(
    path: Path,
    config: InspectionConfig,
    registry: DatasetRegistry,
    error_log: ErrorLogBuffer,
    store: JsonBlobStore | None = None,
    restore: bool = False,
) -> SourceLoad:
    """Ingest one workbook; never raises for a malformed source."""
    load = SourceLoad(path=path, name=path.name)
    try:
        sheet = read_source_rows(path, config.preferred_sheet)
    except MalformedSourceError as e:
        logger.error("source=%s malformed: %s", path.name, e)
        error_log.append(
            ErrorRecord.create(
                source=path.name,
                sheet=SOURCE_LEVEL_SHEET,
                row=-1,
                error_type="MALFORMED_SOURCE",
                message=str(e),
            )
        )
        return replace(load, status=LoadStatus.FAILED, error=str(e))

    source_id = registry.ingest(path.name, sheet.rows, sheet_name=sheet.sheet_name)
    restored = False
    if restore and store is not None:
        records = store.load(source_id)
        if records is not None:
            registry.restore(source_id, records)
            restored = True
            logger.info("source=%s restored %d rows from autosave", source_id, len(records))

    row_count = len(registry.get(source_id))
    logger.info("source=%s sheet=%s rows=%d", source_id, sheet.sheet_name, row_count)
    return replace(
        load,
        source_id=source_id,
        status=LoadStatus.LOADED,
        row_count=row_count,
        sheet_name=sheet.sheet_name,
        restored=restored,
    )


def load_sources(
    paths: Sequence[Path],
    config: InspectionConfig,
    registry: DatasetRegistry,
    error_log: ErrorLogBuffer,
    store: JsonBlobStore | None = None,
    restore: bool = False,
) -> IngestResult:
    """Ingest ``paths`` sequentially with a TTY progress bar."""
    start = datetime.now(UTC)
    loads: list[SourceLoad] = []
    total_rows = 0

    with ProgressTracker(len(paths)) as progress:
        for path in paths:
            progress.start_source(path)
            load = load_source(path, config, registry, error_log, store=store, restore=restore)
            loads.append(load)
            total_rows += load.row_count
            progress.finish_source()
            progress.set_postfix(rows=total_rows)

    result = IngestResult(sources=loads, total_rows=total_rows, start_time=start, end_time=datetime.now(UTC))
    logger.debug(
        "ingest finished loaded=%d failed=%d rows=%d elapsed=%.2fs",
        result.loaded_count,
        result.failed_count,
        result.total_rows,
        result.elapsed_seconds,
    )
    return result
