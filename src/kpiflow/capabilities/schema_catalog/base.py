"""Base interface for schema introspection providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class SchemaIntrospector(ABC):
    """Lists tables and columns of the target backend.

    Connection setup is the implementation's concern.
    """

    @abstractmethod
    async def list_tables(self) -> List[str]:
        """Return table names, dotted where the backend has namespaces."""
        pass

    @abstractmethod
    async def list_columns(self, table: str) -> List[Dict[str, str]]:
        """Return ``[{"name": ..., "type": ...}]`` in schema order."""
        pass

    async def sample_values(self, table: str, column: str, limit: int) -> List[Any]:
        """Distinct example values for a column. Optional for implementations."""
        return []
