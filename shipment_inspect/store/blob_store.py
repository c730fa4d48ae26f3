from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

"""Key-value blob store for autosaved dataset rows.

Each source ID maps to one JSON file ``inspection_<source_id>.json`` holding
the flat row records (canonical columns first, then extras). A missing or
unreadable blob loads as None so the caller falls back to the source file.
"""

__all__ = [
    "KEY_PREFIX",
    "StoreError",
    "JsonBlobStore",
]

logger = logging.getLogger(__name__)

KEY_PREFIX = "inspection_"


class StoreError(Exception):
    pass


class JsonBlobStore:
    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, source_id: str) -> Path:
        return self.directory / f"{KEY_PREFIX}{source_id}.json"

    def save(self, source_id: str, records: Sequence[dict[str, Any]]) -> Path:
        path = self.path_for(source_id)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # 一時ファイル経由で置き換え
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(list(records), ensure_ascii=False, default=str), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            raise StoreError(f"failed to save {source_id}: {e}") from e
        logger.debug("saved source=%s rows=%d -> %s", source_id, len(records), path)
        return path

    def load(self, source_id: str) -> list[dict[str, Any]] | None:
        path = self.path_for(source_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("ignoring unreadable blob %s: %s", path, e)
            return None
        if not isinstance(data, list) or not all(isinstance(rec, dict) for rec in data):
            logger.warning("ignoring blob %s: expected a list of row objects", path)
            return None
        return data

    def delete(self, source_id: str) -> bool:
        path = self.path_for(source_id)
        if not path.exists():
            return False
        path.unlink()
        return True
