"""SQLite implementation of the QueryDriver interface."""

import sqlite3

import pandas as pd

from kpiflow.capabilities.query_driver import QueryDriver


class SqliteQueryDriver(QueryDriver):
    """Runs prepared query text against a SQLite file.

    Statements that return no result set (only reachable with the read-only
    policy switched off) are committed and reported as ``rows_affected``.
    """

    def __init__(self, database_path: str):
        self.database_path = database_path

    async def run(self, query: str) -> pd.DataFrame:
        """Raises ``sqlite3.Error`` on failure; the executor wraps it."""
        conn = sqlite3.connect(self.database_path)
        try:
            cursor = conn.execute(query)
            if cursor.description is None:
                conn.commit()
                return pd.DataFrame({"rows_affected": [cursor.rowcount]})

            # Column names come from the cursor so empty results keep their shape.
            columns = [d[0] for d in cursor.description]
            return pd.DataFrame.from_records(cursor.fetchall(), columns=columns)
        finally:
            conn.close()
