"""Confirmed KPI and Insight definitions and their stores."""

from .models import KPI, Insight
from .stores import DefinitionStore, InMemoryDefinitionStore, SqliteDefinitionStore

__all__ = [
    "KPI",
    "Insight",
    "DefinitionStore",
    "InMemoryDefinitionStore",
    "SqliteDefinitionStore",
]
