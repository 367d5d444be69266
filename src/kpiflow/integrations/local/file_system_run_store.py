"""
File system run store.

Persists each workflow run as one JSON file so a run suspended by one
process can be resumed by another pointing at the same directory.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from kpiflow.errors import UnknownRunError
from kpiflow.workflows.models import RunStatus, WorkflowRun
from kpiflow.workflows.stores import RunStore, check_claimable

logger = logging.getLogger(__name__)


def _atomic_write_json(path: Path, payload: Dict) -> None:
    """Atomically write JSON to disk (tempfile + replace)."""

    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        delete=False,
        dir=str(path.parent),
        prefix=path.name,
        suffix=".tmp",
    ) as tmp:
        json.dump(payload, tmp, indent=2)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_path = Path(tmp.name)

    os.replace(tmp_path, path)


class FileSystemRunStore(RunStore):
    """One JSON file per run under ``base_dir``.

    Survives process restarts, so a run suspended by one process can be
    resumed by another pointing at the same directory. Claims are
    serialised within a process; concurrent claims across processes are
    not coordinated.
    """

    def __init__(self, base_dir: Union[str, Path] = "runs") -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    def _path(self, run_id: str) -> Path:
        if not run_id or "/" in run_id or "\\" in run_id or run_id.startswith("."):
            raise UnknownRunError(run_id, "invalid run id")
        return self.base_dir / f"{run_id}.json"

    def _read(self, run_id: str) -> Optional[WorkflowRun]:
        path = self._path(run_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return WorkflowRun.model_validate(json.load(f))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.error("Corrupt run record %s: %s", path, e)
            raise UnknownRunError(run_id, "run record is corrupt") from e

    def _write(self, run: WorkflowRun) -> None:
        _atomic_write_json(self._path(run.run_id), run.model_dump(mode="json"))

    async def save(self, run: WorkflowRun) -> WorkflowRun:
        run.touch()
        self._write(run)
        return run

    async def get(self, run_id: str) -> Optional[WorkflowRun]:
        return self._read(run_id)

    async def claim_suspended(self, run_id: str) -> WorkflowRun:
        async with self._lock:
            run = check_claimable(run_id, self._read(run_id))
            run.status = RunStatus.RUNNING
            run.touch()
            self._write(run)
            return run

    async def list_runs(
        self, *, status: Optional[RunStatus] = None
    ) -> List[WorkflowRun]:
        runs: List[WorkflowRun] = []
        for path in sorted(self.base_dir.glob("*.json")):
            run = self._read(path.stem)
            if run is not None and (status is None or run.status is status):
                runs.append(run)
        return runs
