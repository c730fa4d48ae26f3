from __future__ import annotations

from collections.abc import Sequence

from ..models.rollup import PackCounts, RollupRecord, StatusCounts
from .ingest import IngestResult

"""Text rendering for CLI output.

render_summary_line() produces the final SUMMARY line; its format is a
contract other tools grep for:

SUMMARY sources={total}/{total} loaded={loaded} failed={failed} rows={rows}
completed={completed} completion_pct={pct}
"""

__all__ = [
    "render_summary_line",
    "render_status_line",
    "render_rollup_lines",
]


def render_summary_line(result: IngestResult, counts: StatusCounts) -> str:
    """Render the SUMMARY line from an ingestion result and overall counts.

    Examples:
        >>> from shipment_inspect.models.rollup import StatusCounts
        >>> res = IngestResult(sources=[], total_rows=0)
        >>> render_summary_line(res, StatusCounts(0, 0, 0, 0))
        'SUMMARY sources=0/0 loaded=0 failed=0 rows=0 completed=0 completion_pct=0'
    """
    total = len(result.sources)
    return (
        f"SUMMARY sources={total}/{total} "
        f"loaded={result.loaded_count} "
        f"failed={result.failed_count} "
        f"rows={result.total_rows} "
        f"completed={counts.completed} "
        f"completion_pct={counts.completion_percent}"
    )


def render_status_line(source_id: str, counts: StatusCounts, packs: PackCounts | None = None) -> str:
    line = (
        f"source={source_id} total={counts.total} completed={counts.completed} "
        f"in_progress={counts.in_progress} not_started={counts.not_started} "
        f"remaining={counts.remaining} completion_pct={counts.completion_percent}"
    )
    if packs is not None:
        line += f" multipack={packs.multipack} normal={packs.normal}"
    return line


def render_rollup_lines(label: str, records: Sequence[RollupRecord]) -> list[str]:
    """One ``label=key total=.. finished=.. remaining=.. pct=..`` line per record."""
    return [
        f"  {label}={rec.group_key} total={rec.total} finished={rec.finished_count} "
        f"remaining={rec.remaining_count} pct={rec.completion_percent}%"
        for rec in records
    ]
