"""
Storage interfaces and reference implementations for KPI/Insight definitions.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from .models import KPI, Insight

logger = logging.getLogger(__name__)


class DefinitionStore(ABC):
    """Persistent store for confirmed definitions."""

    @abstractmethod
    async def upsert_kpi(self, kpi: KPI) -> KPI:
        """Insert, or replace the KPI with the same name."""
        ...

    @abstractmethod
    async def insert_insight(self, insight: Insight) -> Insight:
        """Insert and return the insight with its assigned id."""
        ...

    @abstractmethod
    async def list_kpis(self) -> List[KPI]:
        ...

    @abstractmethod
    async def get_kpi(self, name: str) -> Optional[KPI]:
        ...

    @abstractmethod
    async def list_insights(self, kpi_name: Optional[str] = None) -> List[Insight]:
        ...


class InMemoryDefinitionStore(DefinitionStore):
    """Non-persistent, in-memory reference implementation."""

    def __init__(self) -> None:
        self._kpis: Dict[str, KPI] = {}
        self._insights: List[Insight] = []

    async def upsert_kpi(self, kpi: KPI) -> KPI:
        self._kpis[kpi.name] = kpi
        return kpi

    async def insert_insight(self, insight: Insight) -> Insight:
        stored = insight.model_copy(update={"id": len(self._insights) + 1})
        self._insights.append(stored)
        return stored

    async def list_kpis(self) -> List[KPI]:
        return list(self._kpis.values())

    async def get_kpi(self, name: str) -> Optional[KPI]:
        return self._kpis.get(name)

    async def list_insights(self, kpi_name: Optional[str] = None) -> List[Insight]:
        return [i for i in self._insights if kpi_name is None or i.kpi_name == kpi_name]


_SCHEMA = """
CREATE TABLE IF NOT EXISTS kpis (
    name TEXT PRIMARY KEY,
    description TEXT NOT NULL DEFAULT '',
    formula TEXT NOT NULL,
    table_name TEXT NOT NULL DEFAULT '',
    columns TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS insights (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    kpi_name TEXT,
    formula TEXT NOT NULL,
    schedule TEXT,
    exec_time TEXT,
    alert_high REAL,
    alert_low REAL,
    created_at TEXT NOT NULL
);
"""


class SqliteDefinitionStore(DefinitionStore):
    """SQLite-backed store; tables are created on first use."""

    def __init__(self, database_path: Union[str, Path]) -> None:
        self.database_path = str(database_path)
        self._initialized = False
        self._lock = asyncio.Lock()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        if not self._initialized:
            conn.executescript(_SCHEMA)
            self._initialized = True
        return conn

    async def upsert_kpi(self, kpi: KPI) -> KPI:
        async with self._lock:
            conn = self._connect()
            try:
                conn.execute(
                    """
                    INSERT INTO kpis (name, description, formula, table_name, columns, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(name) DO UPDATE SET
                        description = excluded.description,
                        formula = excluded.formula,
                        table_name = excluded.table_name,
                        columns = excluded.columns
                    """,
                    (
                        kpi.name,
                        kpi.description,
                        kpi.formula,
                        kpi.table_name,
                        json.dumps(kpi.columns),
                        kpi.created_at.isoformat(),
                    ),
                )
                conn.commit()
            finally:
                conn.close()
        logger.info("Saved KPI %s", kpi.name)
        return kpi

    async def insert_insight(self, insight: Insight) -> Insight:
        async with self._lock:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO insights (
                        name, description, kpi_name, formula, schedule,
                        exec_time, alert_high, alert_low, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        insight.name,
                        insight.description,
                        insight.kpi_name,
                        insight.formula,
                        insight.schedule,
                        insight.exec_time,
                        insight.alert_high,
                        insight.alert_low,
                        insight.created_at.isoformat(),
                    ),
                )
                conn.commit()
                insight_id = cursor.lastrowid
            finally:
                conn.close()
        logger.info("Saved insight %s (id=%s)", insight.name, insight_id)
        return insight.model_copy(update={"id": insight_id})

    async def list_kpis(self) -> List[KPI]:
        conn = self._connect()
        try:
            rows = conn.execute("SELECT * FROM kpis ORDER BY name").fetchall()
        finally:
            conn.close()
        return [self._row_to_kpi(row) for row in rows]

    async def get_kpi(self, name: str) -> Optional[KPI]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM kpis WHERE name = ?", (name,)).fetchone()
        finally:
            conn.close()
        return self._row_to_kpi(row) if row is not None else None

    async def list_insights(self, kpi_name: Optional[str] = None) -> List[Insight]:
        conn = self._connect()
        try:
            if kpi_name is None:
                rows = conn.execute("SELECT * FROM insights ORDER BY id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM insights WHERE kpi_name = ? ORDER BY id", (kpi_name,)
                ).fetchall()
        finally:
            conn.close()
        return [self._row_to_insight(row) for row in rows]

    @staticmethod
    def _row_to_kpi(row: sqlite3.Row) -> KPI:
        return KPI(
            name=row["name"],
            description=row["description"],
            formula=row["formula"],
            table_name=row["table_name"],
            columns=json.loads(row["columns"] or "[]"),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _row_to_insight(row: sqlite3.Row) -> Insight:
        return Insight(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            kpi_name=row["kpi_name"],
            formula=row["formula"],
            schedule=row["schedule"],
            exec_time=row["exec_time"],
            alert_high=row["alert_high"],
            alert_low=row["alert_low"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
