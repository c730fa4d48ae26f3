from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..models.config_models import COL_REMARKS, InspectionConfig
from ..models.dataset import Dataset
from ..models.rollup import PackCounts, RollupRecord, StatusCounts
from ..models.row import NormalizedRow, RawRow
from ..models.status import StatusFilter
from . import aggregation
from .column_resolver import ColumnResolver
from .row_identity import NOT_FOUND, find_match
from .status import matches_status_filter

"""Dataset orchestration: filtering, edits and rollups on demand.

DatasetController wraps one Dataset and composes the resolver, identity,
classifier and aggregation services; no business rule originates here.
DatasetRegistry is the explicitly owned collection of datasets, addressed
by the opaque source ID returned from ingest().

Edits are single-writer: callers serialize them (apply one edit fully
before accepting the next). There is no internal locking.
"""

__all__ = [
    "PackFilter",
    "DatasetFilter",
    "DatasetController",
    "DatasetRegistry",
    "make_source_key",
]

logger = logging.getLogger(__name__)

_SLUG_WS_RE = re.compile(r"\s+")
_SLUG_DROP_RE = re.compile(r"[^a-zA-Z0-9_\-.]")


def make_source_key(name: str) -> str:
    """Slug used as a source ID: spaces -> '_', unsafe chars dropped, lower-case."""
    return _SLUG_DROP_RE.sub("", _SLUG_WS_RE.sub("_", str(name))).lower()


class PackFilter(Enum):
    """ItemCount view filter (multipack: ItemCount > 1, normal: ItemCount == 1)."""
    ALL = "all"
    MULTIPACK = "multipack"
    NORMAL = "normal"


@dataclass(frozen=True)
class DatasetFilter:
    """Conjunction of view filters; None / ALL means "no restriction"."""
    factory: str | None = None
    container: str | None = None
    status: StatusFilter = StatusFilter.ALL
    search: str | None = None
    pack: PackFilter = PackFilter.ALL

    def matches(self, row: NormalizedRow) -> bool:
        # options are listed stripped, so compare stripped on both sides
        if self.factory is not None and row.factory.strip() != self.factory.strip():
            return False
        if self.container is not None and row.container_num.strip() != self.container.strip():
            return False
        if not matches_status_filter(row.remarks, self.status):
            return False
        query = (self.search or "").strip().lower()
        if query and query not in " ".join(row.field_texts()).lower():
            return False
        if self.pack is PackFilter.MULTIPACK and not row.item_count > 1:
            return False
        if self.pack is PackFilter.NORMAL and row.item_count != 1:
            return False
        return True


_NO_FILTER = DatasetFilter()


def _container_sort_key(value: str) -> tuple[int, float, str]:
    # 数値として解釈できるものを先に数値順、残りは文字列順で末尾
    match = re.match(r"^\s*[+-]?\d+", value)
    if match is None:
        return (1, 0.0, value)
    return (0, float(int(match.group())), value)


class DatasetController:
    """Filtering, edit routing and rollups for one Dataset."""

    def __init__(self, dataset: Dataset, config: InspectionConfig) -> None:
        self.dataset = dataset
        self.config = config

    @property
    def rows(self) -> list[NormalizedRow]:
        return self.dataset.rows

    # ------------------------------------------------------------------
    # views
    # ------------------------------------------------------------------
    def filter_rows(self, view: DatasetFilter | None = None) -> list[NormalizedRow]:
        view = view or _NO_FILTER
        return [row for row in self.dataset.rows if view.matches(row)]

    def container_options(self) -> list[str]:
        values = {row.container_num.strip() for row in self.dataset.rows}
        values.discard("")
        return sorted(values, key=_container_sort_key)

    def factory_options(self) -> list[str]:
        values = {row.factory.strip() for row in self.dataset.rows}
        values.discard("")
        return sorted(values)

    # ------------------------------------------------------------------
    # edits
    # ------------------------------------------------------------------
    def apply_edit(self, snapshot: NormalizedRow, field: str, value: Any) -> bool:
        """Set ``field`` on the row ``snapshot`` identifies.

        Returns False (no-op) when no row matches the snapshot's identity.
        """
        idx = find_match(snapshot, self.dataset.rows)
        if idx is NOT_FOUND:
            logger.debug(
                "edit target not found source=%s NO=%r BoxNum=%r ContainerNum=%r",
                self.dataset.source_id,
                snapshot.no,
                snapshot.box_num,
                snapshot.container_num,
            )
            return False
        self.dataset.rows[idx].set(field, value)
        logger.debug("edit applied source=%s row=%d field=%s", self.dataset.source_id, idx, field)
        return True

    def apply_remarks(self, view: DatasetFilter | None, value: str) -> int:
        """Set REMARKS on every row visible under ``view``; returns the count."""
        targets = self.filter_rows(view)
        for row in targets:
            row.set(COL_REMARKS, value)
        logger.info("bulk REMARKS=%r applied source=%s rows=%d", value, self.dataset.source_id, len(targets))
        return len(targets)

    # ------------------------------------------------------------------
    # rollups
    # ------------------------------------------------------------------
    def live_rollup(self, view: DatasetFilter | None = None) -> list[RollupRecord]:
        """Container rollup over the filtered view (live display)."""
        return aggregation.container_rollup(self.filter_rows(view))

    def analytics_rollup(self) -> list[RollupRecord]:
        """Container rollup over the full dataset (export analytics)."""
        return aggregation.container_rollup(self.dataset.rows)

    def factory_rollup(self) -> list[RollupRecord]:
        return aggregation.factory_rollup(self.dataset.rows)

    def factory_analytics(self) -> dict[str, list[RollupRecord]]:
        return aggregation.factory_analytics(self.dataset.rows)

    def summary(self) -> list[RollupRecord]:
        return aggregation.summary_rollup(self.dataset.rows, self.config.factory_priority)

    def status_counts(self, view: DatasetFilter | None = None) -> StatusCounts:
        return aggregation.status_counts(self.filter_rows(view))

    def pack_counts(self, view: DatasetFilter | None = None) -> PackCounts:
        return aggregation.pack_counts(self.filter_rows(view))

    def to_records(self) -> list[dict[str, Any]]:
        return [row.to_record() for row in self.dataset.rows]


class DatasetRegistry:
    """Owned collection of datasets keyed by source ID."""

    def __init__(self, config: InspectionConfig) -> None:
        self.config = config
        self.resolver = ColumnResolver(config)
        self._datasets: dict[str, Dataset] = {}

    def _allocate_id(self, name: str) -> str:
        base = make_source_key(name) or "source"
        candidate = base
        n = 2
        while candidate in self._datasets:
            candidate = f"{base}-{n}"
            n += 1
        return candidate

    def ingest(self, name: str, raw_rows: Sequence[RawRow], *, sheet_name: str | None = None) -> str:
        """Resolve raw rows into a new dataset and return its source ID."""
        source_id = self._allocate_id(name)
        rows = self.resolver.resolve_all(list(raw_rows))
        self._datasets[source_id] = Dataset(source_id=source_id, name=name, rows=rows, sheet_name=sheet_name)
        logger.debug("ingested source=%s name=%s rows=%d", source_id, name, len(rows))
        return source_id

    def restore(self, source_id: str, records: Sequence[Mapping[str, Any]]) -> None:
        """Replace a dataset's rows with previously saved records."""
        dataset = self.get(source_id)
        dataset.rows = [
            NormalizedRow.from_record(rec, self.config.canonical_columns) for rec in records
        ]
        logger.debug("restored source=%s rows=%d", source_id, len(dataset.rows))

    def get(self, source_id: str) -> Dataset:
        try:
            return self._datasets[source_id]
        except KeyError:
            raise KeyError(f"unknown source: {source_id}") from None

    def controller(self, source_id: str) -> DatasetController:
        return DatasetController(self.get(source_id), self.config)

    def discard(self, source_id: str) -> None:
        self._datasets.pop(source_id, None)

    def ids(self) -> list[str]:
        return list(self._datasets)

    def __len__(self) -> int:
        return len(self._datasets)

    def __iter__(self) -> Iterator[Dataset]:
        return iter(list(self._datasets.values()))

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._datasets
