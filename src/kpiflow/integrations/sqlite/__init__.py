"""SQLite integrations."""

from .query_driver import SqliteQueryDriver
from .schema_introspector import SqliteSchemaIntrospector

__all__ = ["SqliteQueryDriver", "SqliteSchemaIntrospector"]
