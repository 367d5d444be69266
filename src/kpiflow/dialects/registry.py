"""
Dialect registry: one DialectEntry per backend, looked up by id.

Adding a backend means adding one entry to ``_BUILTIN_ENTRIES``.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Union

from kpiflow.capabilities.schema_catalog import TableInfo

from .models import BackendId, DialectEntry, QuoteStyle, RowCapStyle
from .rules import DIALECT_RULES

logger = logging.getLogger(__name__)

DEFAULT_BACKEND = BackendId.POSTGRESQL

_ALIASES: Dict[str, BackendId] = {
    "postgres": BackendId.POSTGRESQL,
    "pg": BackendId.POSTGRESQL,
    "sqlserver": BackendId.MSSQL,
    "tsql": BackendId.MSSQL,
    "mongo": BackendId.MONGODB,
    "dynamo": BackendId.DYNAMODB,
    "sqlite3": BackendId.SQLITE,
    "spark": BackendId.DATABRICKS,
}


def _entry(
    backend_id: BackendId,
    quote: QuoteStyle,
    levels: tuple,
    case_op: str,
    *,
    row_cap_style: RowCapStyle = RowCapStyle.LIMIT,
    document: bool = False,
) -> DialectEntry:
    return DialectEntry(
        backend_id=backend_id,
        is_document_store=document,
        identifier_quote_style=quote,
        namespace_levels=levels,
        row_cap_style=row_cap_style,
        case_insensitive_operator=case_op,
        dialect_rules_text=DIALECT_RULES[backend_id].strip(),
    )


_SCHEMA_TABLE = ("schema", "table")
_THREE_LEVEL = ("catalog", "schema", "table")

_BUILTIN_ENTRIES: List[DialectEntry] = [
    _entry(BackendId.POSTGRESQL, QuoteStyle.DOUBLE_QUOTE, _SCHEMA_TABLE, "ILIKE or LOWER()"),
    _entry(BackendId.MYSQL, QuoteStyle.BACKTICK, _SCHEMA_TABLE, "LIKE (case-insensitive by default)"),
    _entry(BackendId.MARIADB, QuoteStyle.BACKTICK, _SCHEMA_TABLE, "LIKE (case-insensitive by default)"),
    _entry(BackendId.DATABRICKS, QuoteStyle.BACKTICK, _THREE_LEVEL, "LOWER() with LIKE"),
    _entry(BackendId.BIGQUERY, QuoteStyle.BACKTICK, _THREE_LEVEL, "LOWER() with LIKE"),
    _entry(BackendId.SNOWFLAKE, QuoteStyle.DOUBLE_QUOTE, _THREE_LEVEL, "ILIKE"),
    _entry(BackendId.REDSHIFT, QuoteStyle.DOUBLE_QUOTE, _SCHEMA_TABLE, "ILIKE or LOWER()"),
    _entry(
        BackendId.MSSQL,
        QuoteStyle.BRACKET,
        _SCHEMA_TABLE,
        "LIKE (case-insensitive under default collation)",
        row_cap_style=RowCapStyle.TOP,
    ),
    _entry(BackendId.SQLITE, QuoteStyle.DOUBLE_QUOTE, ("table",), "LIKE (ASCII case-insensitive)"),
    _entry(
        BackendId.MONGODB,
        QuoteStyle.NONE,
        ("table",),
        "$regex with $options 'i'",
        row_cap_style=RowCapStyle.PIPELINE_STAGE,
        document=True,
    ),
    _entry(
        BackendId.DYNAMODB,
        QuoteStyle.NONE,
        ("table",),
        "not supported (use begins_with/contains on normalised attributes)",
        row_cap_style=RowCapStyle.REQUEST_LIMIT,
        document=True,
    ),
]


class DialectRegistry:
    """Resolves backend ids to dialect entries and qualifies table names."""

    def __init__(
        self,
        entries: Optional[Iterable[DialectEntry]] = None,
        *,
        default: BackendId = DEFAULT_BACKEND,
    ) -> None:
        self._entries: Dict[BackendId, DialectEntry] = {}
        for entry in entries if entries is not None else _BUILTIN_ENTRIES:
            if entry.backend_id in self._entries:
                raise ValueError(f"Duplicate dialect entry for {entry.backend_id.value}")
            self._entries[entry.backend_id] = entry
        if default not in self._entries:
            raise ValueError(f"Default dialect {default.value} is not registered")
        self._default = default

    @property
    def backend_ids(self) -> List[BackendId]:
        return list(self._entries)

    @property
    def default_entry(self) -> DialectEntry:
        return self._entries[self._default]

    def resolve(self, backend_id: Union[BackendId, str, None]) -> DialectEntry:
        """Return the entry for ``backend_id``; unknown ids get the default."""
        key = self._normalize(backend_id)
        if key is None or key not in self._entries:
            logger.warning(
                "Unknown backend %r, falling back to %s", backend_id, self._default.value
            )
            return self.default_entry
        return self._entries[key]

    def qualify(self, table: TableInfo, entry: DialectEntry) -> str:
        """Join the namespace levels the dialect supports, quoting each segment."""
        levels = {
            "catalog": table.catalog,
            "schema": table.schema_name,
            "table": table.name,
        }
        segments = [
            levels[level]
            for level in entry.namespace_levels
            if levels.get(level)
        ]
        if not segments:
            segments = [table.name]
        return ".".join(entry.identifier_quote_style.quote(s) for s in segments)

    def _normalize(self, backend_id: Union[BackendId, str, None]) -> Optional[BackendId]:
        if backend_id is None:
            return None
        if isinstance(backend_id, BackendId):
            return backend_id
        raw = str(backend_id).strip().lower()
        if raw in _ALIASES:
            return _ALIASES[raw]
        try:
            return BackendId(raw)
        except ValueError:
            return None


default_registry = DialectRegistry()
