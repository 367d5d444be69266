"""Query generator: prompt assembly, the generation service, and validation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from kpiflow.capabilities.generation import GenerationService
from kpiflow.capabilities.schema_catalog import SchemaSnapshot
from kpiflow.dialects import DialectEntry, DialectRegistry, default_registry

from .models import GenerationResult
from .prompts import PromptAssembler
from .validation import validate_result

logger = logging.getLogger(__name__)


class QueryGenerator:
    """Turns an intent plus schema snapshot into a validated query."""

    def __init__(
        self,
        service: GenerationService,
        *,
        assembler: Optional[PromptAssembler] = None,
        registry: Optional[DialectRegistry] = None,
    ) -> None:
        self._service = service
        self._registry = registry or default_registry
        self._assembler = assembler or PromptAssembler(self._registry)

    async def generate(
        self,
        intent: str,
        schema: SchemaSnapshot,
        dialect: DialectEntry,
        *,
        now: Optional[datetime] = None,
        row_cap: Optional[int] = None,
    ) -> GenerationResult:
        if not schema.has_columns:
            logger.info("No columns available for intent %r; skipping generation", intent)
            return GenerationResult.cannot_answer("No columns available to answer the request")

        request = self._assembler.build_request(
            intent, schema, dialect, now, row_cap=row_cap
        )
        raw = await self._service.generate_query(request)
        result = validate_result(raw, dialect, schema, registry=self._registry)
        logger.info(
            "Generated %s query can_answer=%s confidence=%.2f",
            dialect.display_name,
            result.can_answer,
            result.confidence,
        )
        return result
