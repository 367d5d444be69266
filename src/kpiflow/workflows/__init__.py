"""Suspendable workflow engine and the KPI / insight workflows built on it."""

from .engine import (
    StepContext,
    Suspension,
    WorkflowDefinition,
    WorkflowEngine,
    WorkflowStep,
)
from .insight import INSIGHT_WORKFLOW_ID, build_insight_workflow
from .kpi import KPI_WORKFLOW_ID, build_kpi_workflow
from .models import RunHandle, RunStatus, WorkflowRun
from .prompts import auto_name, parse_prompt
from .stores import InMemoryRunStore, RunStore

__all__ = [
    "StepContext",
    "Suspension",
    "WorkflowDefinition",
    "WorkflowEngine",
    "WorkflowStep",
    "RunHandle",
    "RunStatus",
    "WorkflowRun",
    "RunStore",
    "InMemoryRunStore",
    "parse_prompt",
    "auto_name",
    "KPI_WORKFLOW_ID",
    "INSIGHT_WORKFLOW_ID",
    "build_kpi_workflow",
    "build_insight_workflow",
]
