"""
Run records for the workflow engine.

A ``WorkflowRun`` is everything needed to continue a run in another
process: the step index, the input that step received, and the suspend
payload handed back to the caller.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunStatus(str, Enum):
    """Lifecycle states for a run."""

    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAILED = "failed"


class WorkflowRun(BaseModel):
    """Persisted state of one workflow run."""

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    workflow_id: str
    step_index: int = Field(default=0, ge=0)
    step_id: Optional[str] = Field(
        default=None, description="Id of the step at step_index"
    )
    status: RunStatus = RunStatus.RUNNING
    accumulated_state: Dict[str, Any] = Field(
        default_factory=dict,
        description="Input of the current step (output of the previous one)",
    )
    suspend_payload: Optional[Dict[str, Any]] = None
    output: Optional[Dict[str, Any]] = Field(
        default=None, description="Final output once the run completes"
    )
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def touch(self) -> None:
        self.updated_at = _utcnow()


class RunHandle(BaseModel):
    """What the driving caller sees after ``start`` or ``resume``."""

    run_id: str
    workflow_id: str
    status: RunStatus
    step_id: Optional[str] = None
    output: Optional[Dict[str, Any]] = None
    suspend_payload: Optional[Dict[str, Any]] = None

    @classmethod
    def from_run(cls, run: WorkflowRun) -> "RunHandle":
        return cls(
            run_id=run.run_id,
            workflow_id=run.workflow_id,
            status=run.status,
            step_id=run.step_id,
            output=run.output if run.status is RunStatus.COMPLETED else None,
            suspend_payload=(
                run.suspend_payload if run.status is RunStatus.SUSPENDED else None
            ),
        )

    @property
    def is_suspended(self) -> bool:
        return self.status is RunStatus.SUSPENDED

    @property
    def is_completed(self) -> bool:
        return self.status is RunStatus.COMPLETED
