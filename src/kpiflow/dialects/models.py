"""Dialect entry models."""

from __future__ import annotations

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class BackendId(str, Enum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MARIADB = "mariadb"
    DATABRICKS = "databricks"
    BIGQUERY = "bigquery"
    SNOWFLAKE = "snowflake"
    REDSHIFT = "redshift"
    MSSQL = "mssql"
    SQLITE = "sqlite"
    MONGODB = "mongodb"
    DYNAMODB = "dynamodb"


class QuoteStyle(str, Enum):
    NONE = "none"
    DOUBLE_QUOTE = "double_quote"
    BACKTICK = "backtick"
    BRACKET = "bracket"

    def quote(self, identifier: str) -> str:
        if self is QuoteStyle.DOUBLE_QUOTE:
            return '"' + identifier.replace('"', '""') + '"'
        if self is QuoteStyle.BACKTICK:
            return "`" + identifier.replace("`", "``") + "`"
        if self is QuoteStyle.BRACKET:
            return "[" + identifier.replace("]", "]]") + "]"
        return identifier

    @property
    def rule_text(self) -> str:
        return {
            QuoteStyle.DOUBLE_QUOTE: 'ALWAYS wrap identifiers with double-quotes ("field").',
            QuoteStyle.BACKTICK: "ALWAYS wrap identifiers with backticks (`field`).",
            QuoteStyle.BRACKET: "ALWAYS wrap identifiers with square brackets ([field]).",
            QuoteStyle.NONE: "Use field and collection names exactly as listed.",
        }[self]


class RowCapStyle(str, Enum):
    """How a backend expresses a row cap."""

    LIMIT = "limit"  # ... LIMIT n
    TOP = "top"  # SELECT TOP n ...
    PIPELINE_STAGE = "pipeline_stage"  # [..., {"$limit": n}]
    REQUEST_LIMIT = "request_limit"  # {..., "Limit": n}


NamespaceLevel = str  # "catalog" | "schema" | "table"


class DialectEntry(BaseModel):
    """Syntax rules for one backend."""

    model_config = ConfigDict(frozen=True)

    backend_id: BackendId
    is_document_store: bool = False
    identifier_quote_style: QuoteStyle = QuoteStyle.DOUBLE_QUOTE
    namespace_levels: Tuple[NamespaceLevel, ...] = ("schema", "table")
    row_cap_style: RowCapStyle = RowCapStyle.LIMIT
    default_row_cap: int = Field(default=10, ge=1)
    case_insensitive_operator: str = "LOWER() with LIKE"
    dialect_rules_text: str = ""

    def row_cap_clause(self, rows: int) -> str:
        if self.row_cap_style is RowCapStyle.TOP:
            return f"TOP {rows}"
        if self.row_cap_style is RowCapStyle.PIPELINE_STAGE:
            return '{"$limit": %d}' % rows
        if self.row_cap_style is RowCapStyle.REQUEST_LIMIT:
            return '"Limit": %d' % rows
        return f"LIMIT {rows}"

    @property
    def default_row_cap_clause(self) -> str:
        return self.row_cap_clause(self.default_row_cap)

    @property
    def display_name(self) -> str:
        return self.backend_id.value
