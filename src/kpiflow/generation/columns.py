"""
Column auto-selection for prompts that name no columns.

Classification is by declared type only: a column is numeric when its
normalised type is in ``NUMERIC_TYPES``. All numeric columns are selected;
with none, the first three columns in schema order are used instead.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Sequence

from kpiflow.capabilities.schema_catalog import ColumnInfo

logger = logging.getLogger(__name__)

NUMERIC_TYPES = frozenset(
    {
        "int",
        "integer",
        "smallint",
        "bigint",
        "int2",
        "int4",
        "int8",
        "int64",
        "numeric",
        "decimal",
        "number",
        "real",
        "float",
        "float4",
        "float8",
        "float64",
        "double",
        "double precision",
    }
)

FALLBACK_COLUMN_COUNT = 3

_TYPE_PARAMS_RE = re.compile(r"\(.*\)")


def normalize_type(declared_type: str) -> str:
    """``"NUMERIC(12, 2)"`` -> ``"numeric"``; ``"integer unsigned"`` -> ``"integer"``."""
    base = _TYPE_PARAMS_RE.sub("", declared_type or "").strip().lower()
    base = " ".join(base.split())
    for suffix in (" unsigned", " signed"):
        if base.endswith(suffix):
            base = base[: -len(suffix)]
    return base


def is_numeric(column: ColumnInfo) -> bool:
    return normalize_type(column.declared_type) in NUMERIC_TYPES


class ColumnSelector:
    """Narrows a table's columns to a bounded, sensible set."""

    def __init__(self, *, fallback_count: int = FALLBACK_COLUMN_COUNT) -> None:
        self._fallback_count = fallback_count

    def select_columns(
        self,
        table_name: str,
        table_columns: Sequence[ColumnInfo],
        intent: str = "",
        explicit_columns: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """Return ``table.column`` names for the generation request.

        Explicit columns from the caller are passed through unchanged. An
        empty table yields an empty list, which callers treat as
        ``can_answer=False``.
        """
        explicit = list(explicit_columns or [])
        if explicit:
            return explicit

        numeric = [c for c in table_columns if is_numeric(c)]
        chosen = numeric or list(table_columns)[: self._fallback_count]
        selected = [f"{table_name}.{c.name}" for c in chosen]
        logger.debug(
            "Selected %d column(s) for %s (numeric=%s) intent=%r",
            len(selected),
            table_name,
            bool(numeric),
            intent,
        )
        return selected
