"""Runtime settings.

Environment variables:
  - KPIFLOW_BACKEND (dialect id, e.g. "postgresql", "mysql", "mongodb")
  - KPIFLOW_PREVIEW_ROWS (rows shown before KPI confirmation, default 5)
  - KPIFLOW_INSIGHT_SAMPLE_ROWS (rows fed to insight generation, default 10)
  - KPIFLOW_GENERATION_ROW_CAP (row cap requested from query generation, default 100)
  - KPIFLOW_RUN_STORE_DIR (directory for persisted workflow runs; unset = in memory)
  - KPIFLOW_READ_ONLY (enforce read-only SQL, default true)
"""

from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


class KpiFlowSettings(BaseModel):
    """Settings for wiring the KPI and insight workflows."""

    backend: str = Field(default="postgresql", description="Dialect id of the target backend")
    preview_rows: int = Field(default=5, ge=1)
    insight_sample_rows: int = Field(default=10, ge=1)
    generation_row_cap: int = Field(default=100, ge=1)
    run_store_dir: Optional[str] = Field(
        default=None, description="Persist runs as JSON files here (None = in memory)"
    )
    read_only: bool = Field(default=True, description="Reject non read-only SQL")

    @classmethod
    def from_env(cls, **overrides: Any) -> "KpiFlowSettings":
        """Build settings from KPIFLOW_* variables; explicit kwargs win."""
        values = {
            "backend": os.getenv("KPIFLOW_BACKEND") or "postgresql",
            "preview_rows": _env_int("KPIFLOW_PREVIEW_ROWS", 5),
            "insight_sample_rows": _env_int("KPIFLOW_INSIGHT_SAMPLE_ROWS", 10),
            "generation_row_cap": _env_int("KPIFLOW_GENERATION_ROW_CAP", 100),
            "run_store_dir": os.getenv("KPIFLOW_RUN_STORE_DIR") or None,
            "read_only": _env_bool("KPIFLOW_READ_ONLY", True),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
