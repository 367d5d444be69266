"""KPI and Insight definitions produced by the workflows."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class KPI(BaseModel):
    """A named metric backed by a generated query."""

    name: str = Field(min_length=1, description="Unique key")
    description: str = ""
    formula: str = Field(description="Query text that computes the metric")
    table_name: str = ""
    columns: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("KPI name cannot be blank")
        return value


class Insight(BaseModel):
    """An analytical finding about a KPI.

    ``kpi_name`` is a weak reference: deleting the KPI elsewhere leaves the
    insight row intact.
    """

    id: Optional[int] = Field(default=None, description="Surrogate key assigned by the store")
    name: str = Field(min_length=1)
    description: str = ""
    kpi_name: Optional[str] = None
    formula: str = Field(description="Insight text or derived query")
    schedule: Optional[str] = None
    exec_time: Optional[str] = None
    alert_high: Optional[float] = None
    alert_low: Optional[float] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
