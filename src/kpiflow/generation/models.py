"""Generation request/result models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field, model_validator

from kpiflow.capabilities.schema_catalog import SchemaSnapshot
from kpiflow.dialects import DialectEntry


class GenerationRequest(BaseModel):
    """Everything the generation service needs to write one query."""

    intent: str
    schema_snapshot: SchemaSnapshot
    dialect: DialectEntry
    now: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    row_cap: int = Field(default=10, ge=1, description="Default cap the query must apply")
    prompt: str = Field(default="", description="Rendered prompt text")


class GenerationResult(BaseModel):
    """Validated answer from the generation service.

    ``tables_used`` is filled for relational backends, ``collections_used``
    for document stores.
    """

    can_answer: bool
    reason: str = ""
    query: str = ""
    explanation: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    assumptions: List[str] = Field(default_factory=list)
    tables_used: List[str] = Field(default_factory=list)
    collections_used: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _drop_query_when_unanswerable(self) -> "GenerationResult":
        if not self.can_answer and self.query:
            self.query = ""
        return self

    @property
    def referenced_objects(self) -> List[str]:
        return list(self.tables_used) + list(self.collections_used)

    @classmethod
    def cannot_answer(cls, reason: str) -> "GenerationResult":
        return cls(can_answer=False, reason=reason)
