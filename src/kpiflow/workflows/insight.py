"""
Insight generation workflow (``insight-generation-workflow``).

    parse-prompt -> lookup-kpi -> execute-kpi-query -> generate-insight
    -> confirm-save-insight

The prompt is a single line ``"kpi_name: what insight to generate"``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from kpiflow.capabilities.generation import GenerationService
from kpiflow.definitions import DefinitionStore, Insight
from kpiflow.errors import KpiNotFoundError, MalformedGenerationResult
from kpiflow.execution import QueryExecutor, frame_to_records
from kpiflow.generation import PromptAssembler
from kpiflow.generation.prompts import INSIGHT_SAMPLE_ROWS

from .engine import StepContext, WorkflowDefinition, WorkflowStep
from .prompts import auto_name, parse_prompt

logger = logging.getLogger(__name__)

INSIGHT_WORKFLOW_ID = "insight-generation-workflow"
DEFAULT_SAMPLE_ROWS = 10


class InsightWorkflowInput(BaseModel):
    prompt: str = Field(description='Single line: "kpi_name: what insight to generate"')
    insight_name: Optional[str] = Field(default=None, description="Auto-generated if omitted")


class ParsedInsightPrompt(BaseModel):
    kpi_name: str
    description: str
    insight_name: str


class KpiTarget(ParsedInsightPrompt):
    kpi_formula: str


class KpiSample(ParsedInsightPrompt):
    sample_data: List[Dict[str, Any]] = Field(default_factory=list)


class GeneratedInsight(KpiSample):
    insight_text: str


class InsightConfirmation(BaseModel):
    confirmed: bool = Field(description="True to save the insight; false asks for another review")
    cancel: bool = Field(default=False, description="True to end the run without saving")
    edited_insight: Optional[str] = None
    edited_name: Optional[str] = None
    schedule: Optional[str] = None
    exec_time: Optional[str] = None
    alert_high: Optional[float] = None
    alert_low: Optional[float] = None


class InsightDetails(BaseModel):
    name: str
    description: str
    kpi_name: str
    generated_insight: str
    sample_data: List[Dict[str, Any]]


class InsightConfirmationRequest(BaseModel):
    insight_details: InsightDetails
    message: str


class InsightWorkflowResult(BaseModel):
    insight_name: str
    saved: bool
    message: str
    insight: Optional[Insight] = None


class ParseInsightPromptStep(WorkflowStep):
    step_id = "parse-prompt"
    input_schema = InsightWorkflowInput
    output_schema = ParsedInsightPrompt

    async def execute(self, context: StepContext) -> ParsedInsightPrompt:
        data: InsightWorkflowInput = context.input
        kpi_name, description = parse_prompt(data.prompt, subject="kpi_name")
        return ParsedInsightPrompt(
            kpi_name=kpi_name,
            description=description,
            insight_name=(data.insight_name or "").strip() or auto_name("insight", kpi_name),
        )


class LookupKpiStep(WorkflowStep):
    step_id = "lookup-kpi"
    input_schema = ParsedInsightPrompt
    output_schema = KpiTarget

    def __init__(self, store: DefinitionStore) -> None:
        self.store = store

    async def execute(self, context: StepContext) -> KpiTarget:
        data: ParsedInsightPrompt = context.input
        kpi = await self.store.get_kpi(data.kpi_name)
        if kpi is None:
            available = [k.name for k in await self.store.list_kpis()]
            raise KpiNotFoundError(data.kpi_name, available)
        return KpiTarget(**data.model_dump(), kpi_formula=kpi.formula)


class ExecuteKpiQueryStep(WorkflowStep):
    step_id = "execute-kpi-query"
    input_schema = KpiTarget
    output_schema = KpiSample

    def __init__(self, executor: QueryExecutor, *, sample_size: int = DEFAULT_SAMPLE_ROWS) -> None:
        self.executor = executor
        self.sample_size = sample_size

    async def execute(self, context: StepContext) -> KpiSample:
        data: KpiTarget = context.input
        frame = await self.executor.execute(data.kpi_formula, self.sample_size)
        rows = frame_to_records(frame)[: self.sample_size]
        logger.info("Fetched %d sample row(s) for KPI %s", len(rows), data.kpi_name)
        return KpiSample(
            kpi_name=data.kpi_name,
            description=data.description,
            insight_name=data.insight_name,
            sample_data=rows,
        )


class GenerateInsightStep(WorkflowStep):
    step_id = "generate-insight"
    input_schema = KpiSample
    output_schema = GeneratedInsight

    def __init__(
        self, service: GenerationService, assembler: Optional[PromptAssembler] = None
    ) -> None:
        self.service = service
        self.assembler = assembler or PromptAssembler()

    async def execute(self, context: StepContext) -> GeneratedInsight:
        data: KpiSample = context.input
        prompt = self.assembler.build_insight_prompt(
            data.kpi_name, data.description, data.sample_data
        )
        text = await self.service.generate_text(prompt)
        if not isinstance(text, str) or not text.strip():
            raise MalformedGenerationResult("Insight generation returned empty text")
        return GeneratedInsight(**data.model_dump(), insight_text=text.strip())


class ConfirmSaveInsightStep(WorkflowStep):
    step_id = "confirm-save-insight"
    input_schema = GeneratedInsight
    output_schema = InsightWorkflowResult
    resume_schema = InsightConfirmation
    suspend_schema = InsightConfirmationRequest

    REVIEW_MESSAGE = (
        "Review the insight details. Set confirmed=true to save, provide "
        "edited_insight/edited_name to modify, or set cancel=true to discard."
    )

    def __init__(self, store: DefinitionStore) -> None:
        self.store = store

    def _request(
        self, data: GeneratedInsight, name: str, text: str
    ) -> InsightConfirmationRequest:
        return InsightConfirmationRequest(
            insight_details=InsightDetails(
                name=name,
                description=data.description,
                kpi_name=data.kpi_name,
                generated_insight=text,
                sample_data=data.sample_data[:INSIGHT_SAMPLE_ROWS],
            ),
            message=self.REVIEW_MESSAGE,
        )

    async def execute(self, context: StepContext):
        data: GeneratedInsight = context.input
        if not context.is_resume:
            return context.suspend(self._request(data, data.insight_name, data.insight_text))

        # Edits from earlier reviews live in the payload the run was parked with.
        shown = (context.suspended_payload or {}).get("insight_details") or {}
        answer: InsightConfirmation = context.resume_data
        final_name = (
            (answer.edited_name or "").strip() or shown.get("name") or data.insight_name
        )
        final_text = (
            (answer.edited_insight or "").strip()
            or shown.get("generated_insight")
            or data.insight_text
        )
        if answer.cancel:
            return InsightWorkflowResult(
                insight_name=final_name,
                saved=False,
                message=f"Insight '{final_name}' was discarded.",
            )
        if not answer.confirmed:
            return context.suspend(self._request(data, final_name, final_text))

        insight = await self.store.insert_insight(
            Insight(
                name=final_name,
                description=data.description,
                kpi_name=data.kpi_name,
                formula=final_text,
                schedule=answer.schedule,
                exec_time=answer.exec_time,
                alert_high=answer.alert_high,
                alert_low=answer.alert_low,
            )
        )
        return InsightWorkflowResult(
            insight_name=insight.name,
            saved=True,
            message=f"Insight '{insight.name}' saved successfully! Based on KPI: {data.kpi_name}",
            insight=insight,
        )


def build_insight_workflow(
    *,
    service: GenerationService,
    executor: QueryExecutor,
    store: DefinitionStore,
    assembler: Optional[PromptAssembler] = None,
    sample_rows: int = DEFAULT_SAMPLE_ROWS,
) -> WorkflowDefinition:
    return WorkflowDefinition(
        INSIGHT_WORKFLOW_ID,
        [
            ParseInsightPromptStep(),
            LookupKpiStep(store),
            ExecuteKpiQueryStep(executor, sample_size=sample_rows),
            GenerateInsightStep(service, assembler),
            ConfirmSaveInsightStep(store),
        ],
        description="Insight generation from a stored KPI",
    )
