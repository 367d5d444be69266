"""Schema catalog capability exports."""

from .base import SchemaIntrospector
from .models import (
    MAX_SAMPLE_VALUES,
    ColumnInfo,
    SchemaSnapshot,
    TableInfo,
    parse_table_name,
)

__all__ = [
    "SchemaIntrospector",
    "ColumnInfo",
    "TableInfo",
    "SchemaSnapshot",
    "MAX_SAMPLE_VALUES",
    "parse_table_name",
]
