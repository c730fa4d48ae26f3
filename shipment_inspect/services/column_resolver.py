from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..models.config_models import InspectionConfig
from ..models.row import NormalizedRow, RawRow
from .normalizer import normalize_header

"""Column resolution: raw source headers -> canonical schema.

Each canonical column is resolved by trying the strategies in MATCH_ORDER
and keeping the first hit. The order reproduces the behaviour operators
already rely on and must not be rearranged:

1. EXACT            normalized header index has the column's key
2. ALIAS            normalized header index has an alias of the column
3. ANY_HEADER_EXACT raw headers scanned in row order for the column's key
4. SUBSTRING        first raw header whose key contains, or is contained
                    in, the column's key (last resort; may give false
                    positives on pathological header sets)
5. REVERSE_ALIAS    raw headers scanned in row order for an alias key

The header index maps normalized key -> raw header with the *last* header
winning on a collision; steps 3 and 5 scan the raw headers directly so a
header shadowed in the index can still be found.
"""

__all__ = [
    "MatchStrategy",
    "MATCH_ORDER",
    "ColumnMatch",
    "ResolvedRow",
    "ColumnResolver",
]

logger = logging.getLogger(__name__)


class MatchStrategy(Enum):
    EXACT = "exact"
    ALIAS = "alias"
    ANY_HEADER_EXACT = "any_header_exact"
    SUBSTRING = "substring"
    REVERSE_ALIAS = "reverse_alias"


MATCH_ORDER: tuple[MatchStrategy, ...] = (
    MatchStrategy.EXACT,
    MatchStrategy.ALIAS,
    MatchStrategy.ANY_HEADER_EXACT,
    MatchStrategy.SUBSTRING,
    MatchStrategy.REVERSE_ALIAS,
)


@dataclass(frozen=True)
class ColumnMatch:
    """How one canonical column was resolved (header/strategy None = unresolved)."""
    column: str
    header: str | None
    strategy: MatchStrategy | None


@dataclass(frozen=True)
class ResolvedRow:
    row: NormalizedRow
    matches: tuple[ColumnMatch, ...]

    def match_for(self, column: str) -> ColumnMatch:
        for match in self.matches:
            if match.column == column:
                return match
        raise KeyError(column)


class ColumnResolver:
    """Maps raw rows onto the configured canonical schema.

    Stateless apart from the configuration-derived lookup tables, so
    resolving the same raw row twice always yields equal results.
    """

    def __init__(self, config: InspectionConfig) -> None:
        self.config = config
        self.canonical_columns = config.canonical_columns
        self._canonical_keys = {col: normalize_header(col) for col in config.canonical_columns}
        self._key_to_canonical: dict[str, str] = {}
        for col, key in self._canonical_keys.items():
            self._key_to_canonical.setdefault(key, col)
        self._aliases = dict(config.column_aliases)
        self._aliases_by_column = {col: config.aliases_for(col) for col in config.canonical_columns}

    # ------------------------------------------------------------------
    # header classification
    # ------------------------------------------------------------------
    def canonical_column_for(self, header: Any) -> str | None:
        """Canonical column a single header stands for, or None.

        Direct canonical match, then alias, then the plural rule: a key
        ending in "s" whose singular is a registered alias.
        """
        key = normalize_header(header)
        if not key:
            return None
        if key in self._key_to_canonical:
            return self._key_to_canonical[key]
        if key in self._aliases:
            return self._aliases[key]
        if key.endswith("s"):
            singular = key[:-1]
            if singular in self._aliases:
                return self._aliases[singular]
        return None

    # ------------------------------------------------------------------
    # strategies
    # ------------------------------------------------------------------
    def _find_header(
        self,
        strategy: MatchStrategy,
        column: str,
        headers: list[str],
        keys: list[str],
        index: dict[str, str],
    ) -> str | None:
        desired = self._canonical_keys[column]
        if strategy is MatchStrategy.EXACT:
            return index.get(desired) if desired else None
        if strategy is MatchStrategy.ALIAS:
            for alias in self._aliases_by_column[column]:
                if alias in index:
                    return index[alias]
            return None
        if strategy is MatchStrategy.ANY_HEADER_EXACT:
            if not desired:
                return None
            for header, key in zip(headers, keys):
                if key == desired:
                    return header
            return None
        if strategy is MatchStrategy.SUBSTRING:
            if not desired:
                return None
            for header, key in zip(headers, keys):
                if key and (desired in key or key in desired):
                    return header
            return None
        if strategy is MatchStrategy.REVERSE_ALIAS:
            for header, key in zip(headers, keys):
                if key and self._aliases.get(key) == column:
                    return header
            return None
        raise ValueError(f"unsupported match strategy: {strategy}")  # pragma: no cover

    def _match_column(
        self, column: str, headers: list[str], keys: list[str], index: dict[str, str]
    ) -> ColumnMatch:
        for strategy in MATCH_ORDER:
            header = self._find_header(strategy, column, headers, keys, index)
            if header is not None:
                return ColumnMatch(column=column, header=header, strategy=strategy)
        return ColumnMatch(column=column, header=None, strategy=None)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def resolve_with_trace(self, raw_row: RawRow) -> ResolvedRow:
        """Resolve a raw row and report which header/strategy fed each column."""
        headers = [str(h) for h in raw_row.keys()]
        lookup = {str(h): v for h, v in raw_row.items()}
        keys = [normalize_header(h) for h in headers]
        index: dict[str, str] = {}
        for header, key in zip(headers, keys):
            index[key] = header  # 衝突時は後勝ち

        matches: list[ColumnMatch] = []
        values: dict[str, Any] = {}
        consumed: set[str] = set()
        for column in self.canonical_columns:
            match = self._match_column(column, headers, keys, index)
            matches.append(match)
            if match.header is None:
                values[column] = ""
            else:
                values[column] = lookup[match.header]
                consumed.add(match.header)

        extras: dict[str, Any] = {}
        for header in headers:
            if header in consumed or header in values:
                continue
            if self.canonical_column_for(header) is None:
                extras[header] = lookup[header]

        return ResolvedRow(row=NormalizedRow(values=values, extras=extras), matches=tuple(matches))

    def resolve(self, raw_row: RawRow) -> NormalizedRow:
        """Resolve one raw row into a NormalizedRow (pure)."""
        return self.resolve_with_trace(raw_row).row

    def resolve_all(self, raw_rows: list[RawRow]) -> list[NormalizedRow]:
        rows = [self.resolve(raw) for raw in raw_rows]
        logger.debug("resolved rows=%d columns=%d", len(rows), len(self.canonical_columns))
        return rows
