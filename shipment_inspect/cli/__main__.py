from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from shipment_inspect.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from shipment_inspect.excel.reader import MalformedSourceError, read_source_rows
from shipment_inspect.excel.writer import export_workbook
from shipment_inspect.logging.error_log import ErrorLogBuffer
from shipment_inspect.logging.init import log_summary, setup_logging
from shipment_inspect.models.config_models import InspectionConfig
from shipment_inspect.models.error_record import ErrorRecord
from shipment_inspect.models.row import NormalizedRow
from shipment_inspect.models.status import StatusFilter
from shipment_inspect.services import aggregation
from shipment_inspect.services.column_resolver import ColumnResolver
from shipment_inspect.services.dataset import DatasetFilter, DatasetRegistry, PackFilter
from shipment_inspect.services.ingest import SOURCE_LEVEL_SHEET, IngestError, discover_sources, load_sources
from shipment_inspect.services.summary import render_rollup_lines, render_status_line, render_summary_line
from shipment_inspect.store.blob_store import JsonBlobStore, StoreError

"""CLI entrypoint.

Flow:
- Load .env, then the YAML config (--config > SHIPMENT_INSPECT_CONFIG > default)
- Discover and ingest workbooks (optionally restoring autosaved rows)
- Log per-source status counts and container rollups for the requested view
- Optionally set REMARKS on every row of the view (--set-remarks) and save
  the edited rows to the blob store; runs without an edit leave it untouched
- Optionally export analytics workbooks
- Flush the error log and print the SUMMARY line

Exit codes: 0 every source loaded, 2 at least one source (or export) failed,
1 fatal (config error, missing source directory, bad filter argument).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

CONFIG_ENV_VAR = "SHIPMENT_INSPECT_CONFIG"


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True: .env の値で既存の環境変数を上書きする。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="shipment-inspect", description="Shipment box inspection progress report")
    p.add_argument("--config", type=Path, default=None, help="Path to inspection YAML config")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print header resolution per source then exit")
    p.add_argument("--restore", action="store_true", help="Restore autosaved rows from the store")
    p.add_argument("--export", action="store_true", help="Write an analytics workbook per source")
    p.add_argument(
        "--set-remarks",
        default=None,
        metavar="VALUE",
        help="Set REMARKS on every row of the view and autosave (implies --restore)",
    )
    p.add_argument("--factory", default=None, help="Only rows of this factory")
    p.add_argument("--container", default=None, help="Only rows of this container")
    p.add_argument("--status", default=None, help="all | Finished | In Progress | Not Started | Remaining")
    p.add_argument("--search", default=None, help="Case-insensitive text search over every field")
    p.add_argument("--pack", default="all", choices=[m.value for m in PackFilter], help="ItemCount filter")
    return p.parse_args(argv)


def _resolve_config_path(arg: Path | None) -> Path:
    if arg is not None:
        return arg
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def _inspect_data(cfg: InspectionConfig, paths: list[Path]) -> int:
    if not paths:
        print("inspect: no .xlsx files")
        return EXIT_SUCCESS_ALL
    resolver = ColumnResolver(cfg)
    for path in paths:
        print(f"FILE: {path.name}")
        try:
            sheet = read_source_rows(path, cfg.preferred_sheet)
        except MalformedSourceError as e:
            print(f"  read_error: {e}")
            continue
        print(f"  SHEET: {sheet.sheet_name} headers={sheet.columns} rows={len(sheet.rows)}")
        if not sheet.rows:
            continue
        traced = resolver.resolve_with_trace(sheet.rows[0])
        for match in traced.matches:
            strategy = match.strategy.value if match.strategy is not None else "-"
            print(f"    {match.column:<14} <- {match.header!r} ({strategy})")
        if traced.row.extras:
            print(f"    extras={list(traced.row.extras)}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストの main([]) で pytest の引数が混入しないように)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        logger = setup_logging(logging.DEBUG)
        logger.debug("debug mode enabled")

    config_path = _resolve_config_path(args.config)
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        view = DatasetFilter(
            factory=args.factory,
            container=args.container,
            status=StatusFilter.parse(args.status),
            search=args.search,
            pack=PackFilter(args.pack),
        )
    except ValueError as e:
        logger.error(f"filter: {e}")
        return EXIT_FATAL

    try:
        paths = discover_sources(cfg)
    except IngestError as e:
        logger.error(str(e))
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(cfg, paths)

    logger.info(f"Processing sources from: {cfg.source_directory}")

    registry = DatasetRegistry(cfg)
    error_log = ErrorLogBuffer(Path(cfg.logs_directory))
    store = JsonBlobStore(Path(cfg.store_directory))
    # 編集は保存済みの行に重ねる
    restore = args.restore or args.set_remarks is not None
    result = load_sources(paths, cfg, registry, error_log, store=store, restore=restore)

    export_failed = 0
    visible: list[NormalizedRow] = []
    for load in result.loaded:
        if load.source_id is None:
            continue
        controller = registry.controller(load.source_id)
        if args.set_remarks is not None and controller.apply_remarks(view, args.set_remarks) > 0:
            try:
                store.save(load.source_id, controller.to_records())
            except StoreError as e:
                logger.warning(f"autosave: {e}")

        rows = controller.filter_rows(view)
        visible.extend(rows)
        logger.info(render_status_line(load.source_id, controller.status_counts(view), controller.pack_counts(view)))
        for line in render_rollup_lines("container", controller.live_rollup(view)):
            logger.info(line)
        for line in render_rollup_lines("factory", controller.summary()):
            logger.info(line)

        if args.export:
            try:
                out = export_workbook(controller, Path(cfg.export_directory))
            except (OSError, ValueError) as e:
                export_failed += 1
                logger.error(f"export source={load.source_id}: {e}")
                error_log.append(
                    ErrorRecord.create(
                        source=load.name,
                        sheet=load.sheet_name or SOURCE_LEVEL_SHEET,
                        row=-1,
                        error_type="EXPORT_ERROR",
                        message=str(e),
                    )
                )
            else:
                logger.info(f"exported {out}")

    log_path = error_log.flush()
    if log_path is not None:
        logger.warning(f"errors logged to {log_path}")

    summary_line = render_summary_line(result, aggregation.status_counts(visible))
    # log_summary が "SUMMARY " ラベルを付けるので接頭辞を除く
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_count > 0 or export_failed > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
