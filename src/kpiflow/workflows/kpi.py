"""
KPI creation workflow (``kpi-creation-workflow``).

    parse-prompt -> fetch-select-columns -> generate-query -> preview -> confirm-save

The prompt is a single line ``"table_name: what to calculate"``. The run
suspends at ``confirm-save`` with the generated query and a small preview;
the resume input may edit the query and/or name before the KPI is saved.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from kpiflow.capabilities.schema_catalog import (
    MAX_SAMPLE_VALUES,
    ColumnInfo,
    SchemaIntrospector,
    SchemaSnapshot,
    TableInfo,
)
from kpiflow.definitions import KPI, DefinitionStore
from kpiflow.dialects import DialectEntry
from kpiflow.errors import ValidationError
from kpiflow.execution import QueryExecutor, frame_to_records
from kpiflow.generation import ColumnSelector, QueryGenerator

from .engine import StepContext, WorkflowDefinition, WorkflowStep
from .prompts import auto_name, parse_prompt

logger = logging.getLogger(__name__)

KPI_WORKFLOW_ID = "kpi-creation-workflow"
DEFAULT_PREVIEW_ROWS = 5
DEFAULT_GENERATION_ROW_CAP = 100


# ---------------------------------------------------------------------------
# Step contracts
# ---------------------------------------------------------------------------


class KpiWorkflowInput(BaseModel):
    prompt: str = Field(description='Single line: "table_name: what to calculate"')
    kpi_name: Optional[str] = Field(default=None, description="Auto-generated if omitted")
    columns: Optional[List[str]] = Field(
        default=None, description="Explicit columns; skips auto-selection"
    )


class ParsedKpiPrompt(BaseModel):
    table_name: str
    intent: str
    kpi_name: str
    explicit_columns: List[str] = Field(default_factory=list)


class KpiColumnSelection(BaseModel):
    table_name: str
    intent: str
    kpi_name: str
    columns: List[str]
    schema_snapshot: SchemaSnapshot


class GeneratedKpiQuery(BaseModel):
    kpi_name: str
    description: str
    table_name: str
    columns: List[str]
    query: str = ""
    can_answer: bool = True
    reason: str = ""
    explanation: str = ""
    confidence: float = 0.0
    assumptions: List[str] = Field(default_factory=list)


class KpiPreview(GeneratedKpiQuery):
    preview_rows: List[Dict[str, Any]] = Field(default_factory=list)


class KpiConfirmation(BaseModel):
    confirmed: bool = Field(description="True to save the KPI; false asks for another review")
    cancel: bool = Field(default=False, description="True to end the run without saving")
    edited_query: Optional[str] = Field(default=None, description="Replaces the generated query")
    edited_name: Optional[str] = Field(default=None, description="Replaces the KPI name")


class KpiDetails(BaseModel):
    name: str
    description: str
    table: str
    columns: List[str]
    query: str
    preview_rows: List[Dict[str, Any]]
    explanation: str = ""
    confidence: float = 0.0
    assumptions: List[str] = Field(default_factory=list)
    can_answer: bool = True
    reason: str = ""


class KpiConfirmationRequest(BaseModel):
    kpi_details: KpiDetails
    message: str


class KpiWorkflowResult(BaseModel):
    kpi_name: str
    saved: bool
    message: str
    kpi: Optional[KPI] = None


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


class ParseKpiPromptStep(WorkflowStep):
    step_id = "parse-prompt"
    description = 'Split "table_name: intent" and settle the KPI name'
    input_schema = KpiWorkflowInput
    output_schema = ParsedKpiPrompt

    async def execute(self, context: StepContext) -> ParsedKpiPrompt:
        data: KpiWorkflowInput = context.input
        table_name, intent = parse_prompt(data.prompt, subject="table_name")
        kpi_name = (data.kpi_name or "").strip() or auto_name("kpi", table_name)
        return ParsedKpiPrompt(
            table_name=table_name,
            intent=intent,
            kpi_name=kpi_name,
            explicit_columns=list(data.columns or []),
        )


class FetchSelectColumnsStep(WorkflowStep):
    step_id = "fetch-select-columns"
    description = "Fetch the table's columns and pick the relevant ones"
    input_schema = ParsedKpiPrompt
    output_schema = KpiColumnSelection

    def __init__(
        self,
        introspector: SchemaIntrospector,
        selector: Optional[ColumnSelector] = None,
    ) -> None:
        self.introspector = introspector
        self.selector = selector or ColumnSelector()

    async def _resolve_table(self, table_name: str) -> str:
        tables = await self.introspector.list_tables()
        wanted = table_name.lower()
        for candidate in tables:
            if candidate.lower() == wanted:
                return candidate
        for candidate in tables:
            if candidate.split(".")[-1].lower() == wanted:
                return candidate
        listed = ", ".join(tables) if tables else "none"
        raise ValidationError(f"Table '{table_name}' not found. Available tables: {listed}")

    async def execute(self, context: StepContext) -> KpiColumnSelection:
        data: ParsedKpiPrompt = context.input
        resolved = await self._resolve_table(data.table_name)
        raw_columns = await self.introspector.list_columns(resolved)
        all_columns = [
            ColumnInfo(name=c["name"], declared_type=c.get("type", "") or "")
            for c in raw_columns
        ]

        selected = self.selector.select_columns(
            data.table_name,
            all_columns,
            data.intent,
            explicit_columns=data.explicit_columns,
        )
        wanted = {name.split(".")[-1].lower() for name in selected}

        chosen: List[ColumnInfo] = []
        for column in all_columns:
            if column.name.lower() not in wanted:
                continue
            samples = await self.introspector.sample_values(
                resolved, column.name, MAX_SAMPLE_VALUES
            )
            chosen.append(
                column.model_copy(update={"sample_values": list(samples)[:MAX_SAMPLE_VALUES]})
            )

        snapshot = SchemaSnapshot(tables=[TableInfo.from_dotted(resolved, columns=chosen)])
        logger.info(
            "Selected %d of %d column(s) from %s", len(chosen), len(all_columns), resolved
        )
        return KpiColumnSelection(
            table_name=data.table_name,
            intent=data.intent,
            kpi_name=data.kpi_name,
            columns=selected,
            schema_snapshot=snapshot,
        )


class GenerateKpiQueryStep(WorkflowStep):
    step_id = "generate-query"
    description = "Generate a dialect-specific query for the intent"
    input_schema = KpiColumnSelection
    output_schema = GeneratedKpiQuery

    def __init__(
        self,
        generator: QueryGenerator,
        dialect: DialectEntry,
        *,
        row_cap: int = DEFAULT_GENERATION_ROW_CAP,
    ) -> None:
        self.generator = generator
        self.dialect = dialect
        self.row_cap = row_cap

    async def execute(self, context: StepContext) -> GeneratedKpiQuery:
        data: KpiColumnSelection = context.input
        result = await self.generator.generate(
            data.intent, data.schema_snapshot, self.dialect, row_cap=self.row_cap
        )
        return GeneratedKpiQuery(
            kpi_name=data.kpi_name,
            description=data.intent,
            table_name=data.table_name,
            columns=data.columns,
            query=result.query,
            can_answer=result.can_answer,
            reason=result.reason,
            explanation=result.explanation,
            confidence=result.confidence,
            assumptions=result.assumptions,
        )


class PreviewKpiStep(WorkflowStep):
    step_id = "preview"
    description = "Run the generated query on a small sample"
    input_schema = GeneratedKpiQuery
    output_schema = KpiPreview

    def __init__(self, executor: QueryExecutor, *, sample_size: int = DEFAULT_PREVIEW_ROWS) -> None:
        self.executor = executor
        self.sample_size = sample_size

    async def execute(self, context: StepContext) -> KpiPreview:
        data: GeneratedKpiQuery = context.input
        rows: List[Dict[str, Any]] = []
        if data.can_answer and data.query:
            frame = await self.executor.execute(data.query, self.sample_size)
            rows = frame_to_records(frame)[: self.sample_size]
        else:
            logger.info("Skipping preview for %s: %s", data.kpi_name, data.reason)
        return KpiPreview(**data.model_dump(), preview_rows=rows)


class ConfirmSaveKpiStep(WorkflowStep):
    """Suspends for review until the caller confirms or cancels.

    Each resume may edit the name and/or query. Edits are carried into the
    next review payload, so ``confirmed=false`` with an edit asks for another
    look at the edited KPI. ``cancel=true`` ends the run without saving.
    """

    step_id = "confirm-save"
    description = "Ask for confirmation, then persist the KPI"
    input_schema = KpiPreview
    output_schema = KpiWorkflowResult
    resume_schema = KpiConfirmation
    suspend_schema = KpiConfirmationRequest

    REVIEW_MESSAGE = (
        "Review the KPI details. Set confirmed=true to save, provide "
        "edited_query/edited_name to modify, or set cancel=true to discard."
    )
    MISSING_QUERY_MESSAGE = (
        "No query could be generated for this KPI. Provide edited_query to save it."
    )

    def __init__(self, store: DefinitionStore, executor: QueryExecutor) -> None:
        self.store = store
        self.executor = executor

    def _request(self, data: KpiPreview, name: str, query: str) -> KpiConfirmationRequest:
        return KpiConfirmationRequest(
            kpi_details=KpiDetails(
                name=name,
                description=data.description,
                table=data.table_name,
                columns=data.columns,
                query=query,
                preview_rows=data.preview_rows,
                explanation=data.explanation,
                confidence=data.confidence,
                assumptions=data.assumptions,
                can_answer=data.can_answer,
                reason=data.reason,
            ),
            message=self.REVIEW_MESSAGE if query else self.MISSING_QUERY_MESSAGE,
        )

    @staticmethod
    def _pending(context: StepContext, data: KpiPreview) -> Tuple[str, str]:
        """Name and query as last shown to the caller."""
        details = (context.suspended_payload or {}).get("kpi_details") or {}
        return details.get("name") or data.kpi_name, details.get("query", data.query)

    async def execute(self, context: StepContext):
        data: KpiPreview = context.input
        if not context.is_resume:
            return context.suspend(self._request(data, data.kpi_name, data.query))

        answer: KpiConfirmation = context.resume_data
        pending_name, pending_query = self._pending(context, data)
        final_name = (answer.edited_name or "").strip() or pending_name
        if answer.cancel:
            return KpiWorkflowResult(
                kpi_name=final_name,
                saved=False,
                message=f"KPI '{final_name}' was discarded.",
            )

        edited = (answer.edited_query or "").strip()
        if edited:
            self.executor.check_policy(edited)
        final_query = edited or pending_query
        if not answer.confirmed or not final_query:
            return context.suspend(self._request(data, final_name, final_query))

        kpi = await self.store.upsert_kpi(
            KPI(
                name=final_name,
                description=data.description,
                formula=final_query,
                table_name=data.table_name,
                columns=data.columns,
            )
        )
        return KpiWorkflowResult(
            kpi_name=kpi.name,
            saved=True,
            message=(
                f"KPI '{kpi.name}' saved successfully! Table: {data.table_name}, "
                f"Columns: {', '.join(data.columns)}"
            ),
            kpi=kpi,
        )


def build_kpi_workflow(
    *,
    introspector: SchemaIntrospector,
    generator: QueryGenerator,
    executor: QueryExecutor,
    store: DefinitionStore,
    selector: Optional[ColumnSelector] = None,
    preview_rows: int = DEFAULT_PREVIEW_ROWS,
    generation_row_cap: int = DEFAULT_GENERATION_ROW_CAP,
) -> WorkflowDefinition:
    """Wire the KPI creation steps for the executor's dialect."""
    return WorkflowDefinition(
        KPI_WORKFLOW_ID,
        [
            ParseKpiPromptStep(),
            FetchSelectColumnsStep(introspector, selector),
            GenerateKpiQueryStep(generator, executor.dialect, row_cap=generation_row_cap),
            PreviewKpiStep(executor, sample_size=preview_rows),
            ConfirmSaveKpiStep(store, executor),
        ],
        description="Automated KPI creation from a single-line prompt",
    )
