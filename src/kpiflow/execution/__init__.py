"""Query execution policy."""

from .executor import (
    READ_ONLY_STATEMENT_TYPES,
    QueryExecutor,
    frame_to_records,
    has_row_cap,
    strip_terminator,
)

__all__ = [
    "QueryExecutor",
    "READ_ONLY_STATEMENT_TYPES",
    "frame_to_records",
    "has_row_cap",
    "strip_terminator",
]
