"""
Run stores: where suspended runs live between ``start`` and ``resume``.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from kpiflow.errors import UnknownRunError

from .models import RunStatus, WorkflowRun


class RunStore(ABC):
    """Durable storage for workflow run records."""

    @abstractmethod
    async def save(self, run: WorkflowRun) -> WorkflowRun:
        ...

    @abstractmethod
    async def get(self, run_id: str) -> Optional[WorkflowRun]:
        ...

    @abstractmethod
    async def claim_suspended(self, run_id: str) -> WorkflowRun:
        """Move a run from Suspended to Running and return it.

        Raises:
            UnknownRunError: If the run does not exist or is not suspended.
        """
        ...

    @abstractmethod
    async def list_runs(
        self, *, status: Optional[RunStatus] = None
    ) -> List[WorkflowRun]:
        ...


def check_claimable(run_id: str, run: Optional[WorkflowRun]) -> WorkflowRun:
    if run is None:
        raise UnknownRunError(run_id)
    if run.status is not RunStatus.SUSPENDED:
        raise UnknownRunError(run_id, f"status is {run.status.value}")
    return run


class InMemoryRunStore(RunStore):
    """Non-persistent, in-memory reference implementation."""

    def __init__(self) -> None:
        self._runs: Dict[str, WorkflowRun] = {}
        self._lock = asyncio.Lock()

    async def save(self, run: WorkflowRun) -> WorkflowRun:
        run.touch()
        self._runs[run.run_id] = run.model_copy(deep=True)
        return run

    async def get(self, run_id: str) -> Optional[WorkflowRun]:
        run = self._runs.get(run_id)
        return run.model_copy(deep=True) if run is not None else None

    async def claim_suspended(self, run_id: str) -> WorkflowRun:
        async with self._lock:
            run = check_claimable(run_id, self._runs.get(run_id))
            run.status = RunStatus.RUNNING
            run.touch()
            return run.model_copy(deep=True)

    async def list_runs(
        self, *, status: Optional[RunStatus] = None
    ) -> List[WorkflowRun]:
        return [
            run.model_copy(deep=True)
            for run in self._runs.values()
            if status is None or run.status is status
        ]
