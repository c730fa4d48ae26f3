from __future__ import annotations

from dataclasses import dataclass

"""Config dataclasses for the shipment inspection engine.

The canonical column names the engine reads by name live here as module
constants; the rest of the canonical schema, the alias table and the factory
priority list come from configuration (see shipment_inspect.config.loader).
"""

__all__ = [
    "COL_NO",
    "COL_CONTAINER_NUM",
    "COL_BOX_NUM",
    "COL_ITEM_COUNT",
    "COL_FACTORY",
    "COL_REMARKS",
    "REQUIRED_COLUMNS",
    "DEFAULT_CANONICAL_COLUMNS",
    "DEFAULT_COLUMN_ALIASES",
    "DEFAULT_FACTORY_PRIORITY",
    "DEFAULT_PREFERRED_SHEET",
    "InspectionConfig",
]

COL_NO = "NO"
COL_CONTAINER_NUM = "ContainerNum"
COL_BOX_NUM = "BoxNum"
COL_ITEM_COUNT = "ItemCount"
COL_FACTORY = "Factory"
COL_REMARKS = "REMARKS"

# 行識別・集計で名前参照する列 (スキーマから欠けていたら起動時エラー)
REQUIRED_COLUMNS: tuple[str, ...] = (
    COL_NO,
    COL_CONTAINER_NUM,
    COL_BOX_NUM,
    COL_ITEM_COUNT,
    COL_FACTORY,
    COL_REMARKS,
)

DEFAULT_CANONICAL_COLUMNS: tuple[str, ...] = (
    "NO",
    "ContainerNum",
    "BoxNum",
    "Container",
    "BoxName",
    "ItemCount",
    "Kits",
    "Factory",
    "REMARKS",
)

# Natural spellings; keys are run through normalize_header() at load time.
DEFAULT_COLUMN_ALIASES: dict[str, str] = {
    "basebox": "BoxNum",
    "box no": "BoxNum",
    "boxno": "BoxNum",
    "box number": "BoxNum",
    "box_number": "BoxNum",
    "remark": "REMARKS",
    "remarks": "REMARKS",
    "status": "REMARKS",
    "inspection status": "REMARKS",
}

DEFAULT_FACTORY_PRIORITY: tuple[str, ...] = ("F200", "F100", "AIO")

DEFAULT_PREFERRED_SHEET = "F200_Boxes"


@dataclass(frozen=True)
class InspectionConfig:
    """Root configuration object, immutable for the process lifetime.

    column_aliases is keyed by *normalized* alias key and keeps the order the
    aliases were declared in; alias matching scans it in that order.
    """
    canonical_columns: tuple[str, ...]
    column_aliases: dict[str, str]  # normalized alias key -> canonical column
    factory_priority: tuple[str, ...]  # Summary に載せる工場 (表示順)
    preferred_sheet: str | None = DEFAULT_PREFERRED_SHEET
    source_directory: str = "./data"
    manifest: str | None = "files.json"
    store_directory: str = "./.inspection_store"
    export_directory: str = "./exports"
    logs_directory: str = "./logs"

    def aliases_for(self, column: str) -> list[str]:
        """Alias keys targeting ``column``, in declaration order."""
        return [alias for alias, target in self.column_aliases.items() if target == column]
