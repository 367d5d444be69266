"""Schema snapshot models handed to query generation."""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

MAX_SAMPLE_VALUES = 5


class ColumnInfo(BaseModel):
    name: str
    declared_type: str = ""
    description: str = ""
    sample_values: List[Any] = Field(default_factory=list)

    @field_validator("sample_values")
    @classmethod
    def _cap_samples(cls, values: List[Any]) -> List[Any]:
        return list(values[:MAX_SAMPLE_VALUES])


class TableInfo(BaseModel):
    """A table (or collection) with its columns.

    The namespace levels are kept apart; the qualified name is produced by
    ``DialectRegistry.qualify`` for a specific backend.
    """

    name: str
    schema_name: Optional[str] = None
    catalog: Optional[str] = None
    description: str = ""
    columns: List[ColumnInfo] = Field(default_factory=list)

    @classmethod
    def from_dotted(cls, dotted: str, **kwargs: Any) -> "TableInfo":
        catalog, schema_name, name = parse_table_name(dotted)
        return cls(name=name, schema_name=schema_name, catalog=catalog, **kwargs)

    @property
    def dotted_name(self) -> str:
        return ".".join(p for p in (self.catalog, self.schema_name, self.name) if p)


class SchemaSnapshot(BaseModel):
    tables: List[TableInfo] = Field(default_factory=list)

    @property
    def has_columns(self) -> bool:
        return any(t.columns for t in self.tables)


def parse_table_name(dotted: str) -> Tuple[Optional[str], Optional[str], str]:
    """Split ``catalog.schema.table`` / ``schema.table`` / ``table``."""
    parts = [p.strip() for p in dotted.strip().split(".") if p.strip()]
    if not parts:
        raise ValueError("Table name cannot be empty")
    if len(parts) == 1:
        return None, None, parts[0]
    if len(parts) == 2:
        return None, parts[0], parts[1]
    return parts[-3], parts[-2], parts[-1]
