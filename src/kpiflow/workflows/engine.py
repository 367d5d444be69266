"""
Suspendable step engine.

A workflow is a fixed list of ``WorkflowStep`` objects. Each step sees only
its own declared input (the previous step's output). A step may pause the
run by returning ``context.suspend(payload)``; the run record is persisted
through a ``RunStore`` and later resumed, possibly by another process, by
re-entering the same step with the caller's resume input.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from kpiflow.errors import (
    ExecutionError,
    KpiFlowError,
    UnknownRunError,
    ValidationError,
)

from .models import RunHandle, RunStatus, WorkflowRun
from .stores import InMemoryRunStore, RunStore

logger = logging.getLogger(__name__)


def format_validation_errors(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{location}: {err.get('msg')}")
    return "; ".join(parts)


def coerce_model(schema: Type[BaseModel], data: Any, what: str) -> BaseModel:
    """Validate ``data`` against ``schema``.

    Raises:
        ValidationError: If the data does not satisfy the schema.
    """
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {what}: {format_validation_errors(e)}") from e


class Suspension:
    """Marker returned by a step that wants to pause the run."""

    __slots__ = ("payload",)

    def __init__(self, payload: Dict[str, Any]) -> None:
        self.payload = payload


class StepContext:
    """What a step receives on each invocation."""

    def __init__(
        self,
        step: "WorkflowStep",
        input: BaseModel,
        resume_data: Optional[BaseModel] = None,
        *,
        run_id: Optional[str] = None,
        suspended_payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.step = step
        self.input = input
        self.resume_data = resume_data
        self.run_id = run_id
        # Payload the run was parked with; set only while re-entering with resume data.
        self.suspended_payload = suspended_payload
        self._suspension: Optional[Suspension] = None

    @property
    def is_resume(self) -> bool:
        return self.resume_data is not None

    @property
    def suspension(self) -> Optional[Suspension]:
        return self._suspension

    def suspend(self, payload: Union[BaseModel, Dict[str, Any]]) -> Suspension:
        """Request a pause; the step must return the result."""
        step_id = self.step.step_id
        if self.step.resume_schema is None:
            raise ExecutionError(
                "Step declares no resume schema and cannot suspend", step_id=step_id
            )
        if self._suspension is not None:
            raise ExecutionError(
                "suspend() may be called at most once per invocation", step_id=step_id
            )
        if self.step.suspend_schema is not None:
            try:
                payload = coerce_model(self.step.suspend_schema, payload, "suspend payload")
            except ValidationError as e:
                raise ExecutionError(e.message, step_id=step_id) from e
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(mode="json")
        self._suspension = Suspension(dict(payload))
        return self._suspension


class WorkflowStep(ABC):
    """One named step with declared input/output and optional resume contracts."""

    step_id: ClassVar[str]
    description: ClassVar[str] = ""
    input_schema: ClassVar[Type[BaseModel]]
    output_schema: ClassVar[Type[BaseModel]]
    resume_schema: ClassVar[Optional[Type[BaseModel]]] = None
    suspend_schema: ClassVar[Optional[Type[BaseModel]]] = None

    @abstractmethod
    async def execute(
        self, context: StepContext
    ) -> Union[BaseModel, Dict[str, Any], Suspension]:
        """Return the step output, or ``context.suspend(...)``."""
        ...


class WorkflowDefinition:
    """An ordered, validated list of steps."""

    def __init__(
        self,
        workflow_id: str,
        steps: Sequence[WorkflowStep],
        *,
        description: str = "",
    ) -> None:
        if not steps:
            raise ValueError(f"Workflow {workflow_id} has no steps")

        seen = set()
        for step in steps:
            if step.step_id in seen:
                raise ValueError(f"Duplicate step id {step.step_id!r} in {workflow_id}")
            seen.add(step.step_id)

        for prev, nxt in zip(steps, steps[1:]):
            if not issubclass(prev.output_schema, nxt.input_schema):
                raise ValueError(
                    f"Step {prev.step_id!r} outputs {prev.output_schema.__name__} "
                    f"but {nxt.step_id!r} expects {nxt.input_schema.__name__}"
                )

        self.workflow_id = workflow_id
        self.description = description
        self.steps: List[WorkflowStep] = list(steps)

    @property
    def input_schema(self) -> Type[BaseModel]:
        return self.steps[0].input_schema

    @property
    def output_schema(self) -> Type[BaseModel]:
        return self.steps[-1].output_schema

    @property
    def step_ids(self) -> List[str]:
        return [step.step_id for step in self.steps]


class WorkflowEngine:
    """Runs workflow definitions against a run store."""

    def __init__(
        self,
        store: Optional[RunStore] = None,
        definitions: Optional[Sequence[WorkflowDefinition]] = None,
    ) -> None:
        self.store = store or InMemoryRunStore()
        self._definitions: Dict[str, WorkflowDefinition] = {}
        for definition in definitions or []:
            self.register(definition)

    def register(self, definition: WorkflowDefinition) -> None:
        self._definitions[definition.workflow_id] = definition

    def get_definition(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        return self._definitions.get(workflow_id)

    async def get_run(self, run_id: str) -> Optional[WorkflowRun]:
        return await self.store.get(run_id)

    async def start(
        self, definition: WorkflowDefinition, initial_input: Any
    ) -> RunHandle:
        """Validate the input and run until the first suspension or completion.

        Raises:
            ValidationError: If ``initial_input`` fails the first step's input schema.
        """
        self.register(definition)
        first = definition.steps[0]
        try:
            step_input = coerce_model(first.input_schema, initial_input, "workflow input")
        except ValidationError as e:
            e.step_id = first.step_id
            raise

        run = WorkflowRun(
            workflow_id=definition.workflow_id,
            step_id=first.step_id,
            accumulated_state=step_input.model_dump(mode="json"),
        )
        await self.store.save(run)
        logger.info("Started run %s of %s", run.run_id, definition.workflow_id)
        return await self._advance(definition, run, step_input)

    async def resume(self, run_id: str, resume_input: Any) -> RunHandle:
        """Re-enter the suspended step with ``resume_input``.

        Raises:
            UnknownRunError: If the run is missing or not suspended.
            ValidationError: If the resume input fails the step's resume schema.
                The run stays suspended.
        """
        run = await self.store.get(run_id)
        if run is None:
            raise UnknownRunError(run_id)
        if run.status is not RunStatus.SUSPENDED:
            raise UnknownRunError(run_id, f"status is {run.status.value}")

        definition = self._definitions.get(run.workflow_id)
        if definition is None:
            raise UnknownRunError(run_id, f"workflow {run.workflow_id!r} is not registered")
        if run.step_index >= len(definition.steps):
            raise UnknownRunError(run_id, f"step index {run.step_index} out of range")

        step = definition.steps[run.step_index]
        if step.resume_schema is None:
            raise UnknownRunError(run_id, f"step {step.step_id!r} does not accept resume input")
        try:
            resume_data = coerce_model(step.resume_schema, resume_input, "resume input")
        except ValidationError as e:
            e.step_id = step.step_id
            raise

        run = await self.store.claim_suspended(run_id)
        previous_payload = run.suspend_payload
        logger.info("Resuming run %s at step %s", run_id, step.step_id)

        try:
            step_input = coerce_model(step.input_schema, run.accumulated_state, "stored step input")
        except ValidationError as e:
            e.step_id = step.step_id
            await self._fail(run, e)
            raise

        return await self._advance(
            definition,
            run,
            step_input,
            resume_data=resume_data,
            previous_payload=previous_payload,
        )

    async def _advance(
        self,
        definition: WorkflowDefinition,
        run: WorkflowRun,
        step_input: BaseModel,
        *,
        resume_data: Optional[BaseModel] = None,
        previous_payload: Optional[Dict[str, Any]] = None,
    ) -> RunHandle:
        index = run.step_index
        while index < len(definition.steps):
            step = definition.steps[index]
            run.step_index = index
            run.step_id = step.step_id
            run.status = RunStatus.RUNNING
            run.accumulated_state = step_input.model_dump(mode="json")

            context = StepContext(
                step,
                step_input,
                resume_data,
                run_id=run.run_id,
                suspended_payload=previous_payload if resume_data is not None else None,
            )
            logger.debug("Run %s executing step %s", run.run_id, step.step_id)
            try:
                result = await step.execute(context)
            except ValidationError as e:
                if e.step_id is None:
                    e.step_id = step.step_id
                if resume_data is not None and previous_payload is not None:
                    logger.warning(
                        "Run %s rejected resume input at %s: %s",
                        run.run_id,
                        step.step_id,
                        e.message,
                    )
                    run.status = RunStatus.SUSPENDED
                    run.suspend_payload = previous_payload
                    await self.store.save(run)
                    raise
                await self._fail(run, e)
                raise
            except KpiFlowError as e:
                if e.step_id is None:
                    e.step_id = step.step_id
                await self._fail(run, e)
                raise
            except Exception as e:
                logger.error(
                    "Run %s step %s raised", run.run_id, step.step_id, exc_info=True
                )
                wrapped = ExecutionError.from_exception(e, step_id=step.step_id)
                await self._fail(run, wrapped)
                raise wrapped from e

            if isinstance(result, Suspension) or context.suspension is not None:
                suspension = context.suspension or result
                run.status = RunStatus.SUSPENDED
                run.suspend_payload = suspension.payload
                await self.store.save(run)
                logger.info("Run %s suspended at step %s", run.run_id, step.step_id)
                return RunHandle.from_run(run)

            try:
                step_input = coerce_model(step.output_schema, result, "step output")
            except ValidationError as e:
                wrapped = ExecutionError(e.message, step_id=step.step_id, cause=e)
                await self._fail(run, wrapped)
                raise wrapped from e

            resume_data = None
            previous_payload = None
            index += 1

        run.status = RunStatus.COMPLETED
        run.output = step_input.model_dump(mode="json")
        run.suspend_payload = None
        await self.store.save(run)
        logger.info("Run %s of %s completed", run.run_id, run.workflow_id)
        return RunHandle.from_run(run)

    async def _fail(self, run: WorkflowRun, error: KpiFlowError) -> None:
        run.status = RunStatus.FAILED
        run.error = str(error)
        run.suspend_payload = None
        await self.store.save(run)
        logger.error("Run %s failed: %s", run.run_id, error)
