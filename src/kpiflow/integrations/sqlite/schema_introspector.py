"""SQLite implementation of the SchemaIntrospector interface."""

import sqlite3
from typing import Any, Dict, List

from kpiflow.capabilities.schema_catalog import SchemaIntrospector


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class SqliteSchemaIntrospector(SchemaIntrospector):
    """Reads tables and columns from ``sqlite_master`` and ``PRAGMA table_info``."""

    def __init__(self, database_path: str):
        self.database_path = database_path

    def _fetch(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        try:
            return conn.execute(sql, params).fetchall()
        finally:
            conn.close()

    async def list_tables(self) -> List[str]:
        rows = self._fetch(
            "SELECT name FROM sqlite_master "
            "WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite_%' "
            "ORDER BY name"
        )
        return [row["name"] for row in rows]

    async def list_columns(self, table: str) -> List[Dict[str, str]]:
        rows = self._fetch(f"PRAGMA table_info({_quote(table)})")
        return [{"name": row["name"], "type": row["type"] or ""} for row in rows]

    async def sample_values(self, table: str, column: str, limit: int) -> List[Any]:
        rows = self._fetch(
            f"SELECT DISTINCT {_quote(column)} AS value FROM {_quote(table)} "
            f"WHERE {_quote(column)} IS NOT NULL LIMIT ?",
            (limit,),
        )
        return [row["value"] for row in rows]
