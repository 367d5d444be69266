"""Transport-independent boundary for driving the KPI and insight workflows."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from kpiflow.capabilities.generation import GenerationService
from kpiflow.capabilities.query_driver import QueryDriver
from kpiflow.capabilities.schema_catalog import SchemaIntrospector
from kpiflow.config import KpiFlowSettings
from kpiflow.definitions import DefinitionStore, InMemoryDefinitionStore
from kpiflow.dialects import DialectRegistry, default_registry
from kpiflow.errors import ValidationError
from kpiflow.execution import QueryExecutor
from kpiflow.generation import QueryGenerator
from kpiflow.integrations.local import FileSystemRunStore
from kpiflow.workflows import (
    InMemoryRunStore,
    RunHandle,
    RunStore,
    WorkflowDefinition,
    WorkflowEngine,
    WorkflowRun,
    build_insight_workflow,
    build_kpi_workflow,
)

logger = logging.getLogger(__name__)


class WorkflowService:
    """Starts and resumes runs by workflow id.

    This is all a CLI, HTTP handler or chat agent needs: every call returns
    a ``RunHandle`` carrying either the final output or the suspend payload.
    """

    def __init__(
        self, engine: WorkflowEngine, workflows: Iterable[WorkflowDefinition]
    ) -> None:
        self.engine = engine
        self._workflows: Dict[str, WorkflowDefinition] = {}
        for workflow in workflows:
            self._workflows[workflow.workflow_id] = workflow
            engine.register(workflow)

    @property
    def workflow_ids(self) -> List[str]:
        return sorted(self._workflows)

    async def start_run(self, workflow_id: str, initial_input: Dict[str, Any]) -> RunHandle:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            raise ValidationError(
                f"Unknown workflow '{workflow_id}'. Available workflows: "
                f"{', '.join(self.workflow_ids)}"
            )
        return await self.engine.start(workflow, initial_input)

    async def resume_run(self, run_id: str, resume_input: Dict[str, Any]) -> RunHandle:
        return await self.engine.resume(run_id, resume_input)

    async def get_run(self, run_id: str) -> Optional[WorkflowRun]:
        return await self.engine.get_run(run_id)


def build_workflow_service(
    *,
    introspector: SchemaIntrospector,
    driver: QueryDriver,
    generation_service: GenerationService,
    definition_store: Optional[DefinitionStore] = None,
    run_store: Optional[RunStore] = None,
    settings: Optional[KpiFlowSettings] = None,
    registry: Optional[DialectRegistry] = None,
) -> WorkflowService:
    """Wire both workflows against one backend."""
    settings = settings or KpiFlowSettings.from_env()
    registry = registry or default_registry
    dialect = registry.resolve(settings.backend)

    if run_store is None:
        if settings.run_store_dir:
            run_store = FileSystemRunStore(settings.run_store_dir)
        else:
            run_store = InMemoryRunStore()
    store = definition_store or InMemoryDefinitionStore()

    executor = QueryExecutor(driver, dialect, read_only=settings.read_only)
    generator = QueryGenerator(generation_service, registry=registry)

    workflows = [
        build_kpi_workflow(
            introspector=introspector,
            generator=generator,
            executor=executor,
            store=store,
            preview_rows=settings.preview_rows,
            generation_row_cap=settings.generation_row_cap,
        ),
        build_insight_workflow(
            service=generation_service,
            executor=executor,
            store=store,
            sample_rows=settings.insight_sample_rows,
        ),
    ]
    logger.info(
        "Workflow service ready for %s (%s)",
        dialect.display_name,
        ", ".join(w.workflow_id for w in workflows),
    )
    return WorkflowService(WorkflowEngine(run_store), workflows)
