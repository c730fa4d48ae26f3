from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_CANONICAL_COLUMNS,
    DEFAULT_COLUMN_ALIASES,
    DEFAULT_FACTORY_PRIORITY,
    DEFAULT_PREFERRED_SHEET,
    REQUIRED_COLUMNS,
    InspectionConfig,
)
from ..services.normalizer import normalize_header

"""Config loader.

Responsibilities:
- Load YAML config (default: config/inspection.yml)
- Validate against the bundled JSON schema (config_schema.json)
- Apply defaults for canonical columns, aliases and factory priority
- Fail fast on programmer errors: empty canonical schema, missing columns
  the engine reads by name, aliases pointing outside the schema
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "DEFAULT_CONFIG_PATH",
    "build_config",
    "default_config",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/inspection.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate raw config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or data fails
            validation (missing required keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _normalize_aliases(raw: dict[str, str], canonical: tuple[str, ...]) -> dict[str, str]:
    aliases: dict[str, str] = {}
    for alias, target in raw.items():
        if target not in canonical:
            raise ConfigError(f"alias '{alias}' targets unknown column '{target}'")
        key = normalize_header(alias)
        if not key:
            raise ConfigError(f"alias '{alias}' normalizes to an empty key")
        # 正規化後に重複した別名は先勝ち (宣言順を維持)
        aliases.setdefault(key, target)
    return aliases


def build_config(data: dict[str, Any]) -> InspectionConfig:
    """Build an InspectionConfig from already-validated mapping data."""
    canonical = tuple(data.get("canonical_columns", DEFAULT_CANONICAL_COLUMNS) or ())
    if not canonical:
        raise ConfigError("canonical_columns must not be empty")
    missing = [col for col in REQUIRED_COLUMNS if col not in canonical]
    if missing:
        raise ConfigError(f"canonical_columns missing required columns: {missing}")

    raw_aliases = data.get("column_aliases")
    if raw_aliases is None:
        raw_aliases = DEFAULT_COLUMN_ALIASES
    aliases = _normalize_aliases(dict(raw_aliases), canonical)

    priority = data.get("factory_priority")
    if priority is None:
        priority = DEFAULT_FACTORY_PRIORITY

    return InspectionConfig(
        canonical_columns=canonical,
        column_aliases=aliases,
        factory_priority=tuple(priority),
        preferred_sheet=data.get("preferred_sheet", DEFAULT_PREFERRED_SHEET),
        source_directory=data.get("source_directory", "./data"),
        manifest=data.get("manifest", "files.json"),
        store_directory=data.get("store_directory", "./.inspection_store"),
        export_directory=data.get("export_directory", "./exports"),
        logs_directory=data.get("logs_directory", "./logs"),
    )


def default_config() -> InspectionConfig:
    """Configuration with every default applied (no file needed)."""
    return build_config({})


def load_config(path: Path) -> InspectionConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)
    return build_config(data)
