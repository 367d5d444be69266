"""
Error taxonomy shared by the workflow engine and the query-generation subsystem.

Every error can carry the id of the workflow step that raised it so the
driving caller can report where a run failed.
"""

from __future__ import annotations

from typing import List, Optional


class KpiFlowError(Exception):
    """Base class for all kpiflow errors."""

    def __init__(self, message: str, *, step_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.step_id = step_id

    def __str__(self) -> str:
        if self.step_id:
            return f"[{self.step_id}] {self.message}"
        return self.message


class ValidationError(KpiFlowError):
    """Malformed step input or resume input. Never retried automatically."""


class UnknownRunError(KpiFlowError):
    """Resume requested for a run that is missing or not suspended."""

    def __init__(self, run_id: str, reason: str = "not found") -> None:
        super().__init__(f"Run {run_id} cannot be resumed: {reason}")
        self.run_id = run_id
        self.reason = reason


class MalformedGenerationResult(KpiFlowError):
    """The generation service returned a response that fails shape validation."""


class ExecutionError(KpiFlowError):
    """A step or a backend query failed.

    ``cause`` keeps the underlying exception (driver error, step bug, ...).
    """

    def __init__(
        self,
        message: str,
        *,
        step_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, step_id=step_id)
        self.cause = cause

    @classmethod
    def from_exception(
        cls, exc: BaseException, *, step_id: Optional[str] = None
    ) -> "ExecutionError":
        return cls(f"{type(exc).__name__}: {exc}", step_id=step_id, cause=exc)


class KpiNotFoundError(KpiFlowError):
    """Raised when an insight references a KPI name that is not stored."""

    def __init__(self, kpi_name: str, available: List[str]) -> None:
        listed = ", ".join(available) if available else "none"
        super().__init__(f"KPI '{kpi_name}' not found. Available KPIs: {listed}")
        self.kpi_name = kpi_name
        self.available = list(available)
