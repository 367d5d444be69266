"""
Validation of raw generation-service responses.

Shape errors (unparseable text, missing keys, confidence outside [0, 1])
raise MalformedGenerationResult. References to tables that are not in the
supplied schema only downgrade the result to ``can_answer=False``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Set, Union

from jsonschema import validate
from jsonschema.exceptions import ValidationError as JsonSchemaValidationError

from kpiflow.capabilities.schema_catalog import SchemaSnapshot
from kpiflow.dialects import DialectEntry, DialectRegistry, default_registry
from kpiflow.errors import MalformedGenerationResult

from .models import GenerationResult

logger = logging.getLogger(__name__)

_COMMON_PROPERTIES: Dict[str, Any] = {
    "can_answer": {"type": "boolean"},
    "reason": {"type": "string"},
    "query": {"type": "string"},
    "sql": {"type": "string"},
    "explanation": {"type": "string"},
    "confidence": {"type": "number", "minimum": 0, "maximum": 1},
    "assumptions": {"type": "array", "items": {"type": "string"}},
}

RELATIONAL_RESULT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["can_answer", "reason", "confidence", "tables_used"],
    "anyOf": [{"required": ["sql"]}, {"required": ["query"]}],
    "properties": {
        **_COMMON_PROPERTIES,
        "tables_used": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": True,
}

DOCUMENT_RESULT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["can_answer", "reason", "query", "confidence", "collections_used"],
    "properties": {
        **_COMMON_PROPERTIES,
        "query": {"type": ["string", "array", "object"]},
        "collections_used": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": True,
}

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_QUOTE_CHARS = "\"`[]'"


def parse_raw_response(raw: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Decode a service response into a JSON object."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        raise MalformedGenerationResult(
            f"Generation response must be a JSON object, got {type(raw).__name__}"
        )

    text = raw.strip()
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1).strip()

    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise MalformedGenerationResult("No JSON object found in generation response")
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise MalformedGenerationResult(f"Generation response is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise MalformedGenerationResult("Generation response must be a JSON object")
    return data


def _normalize_reference(name: str) -> str:
    return "".join(ch for ch in name if ch not in _QUOTE_CHARS).strip().lower()


def known_references(
    schema: SchemaSnapshot,
    dialect: DialectEntry,
    registry: Optional[DialectRegistry] = None,
) -> Set[str]:
    """Every spelling of a schema table a grounded answer may use."""
    registry = registry or default_registry
    names: Set[str] = set()
    for table in schema.tables:
        names.add(_normalize_reference(table.name))
        names.add(_normalize_reference(table.dotted_name))
        names.add(_normalize_reference(registry.qualify(table, dialect)))
    return names


def validate_result(
    raw: Union[str, Dict[str, Any]],
    dialect: DialectEntry,
    schema: SchemaSnapshot,
    *,
    registry: Optional[DialectRegistry] = None,
) -> GenerationResult:
    """Validate a raw response against the dialect's output contract.

    Raises:
        MalformedGenerationResult: If the response cannot be parsed, lacks
            required fields, or has a confidence outside [0, 1].
    """
    data = parse_raw_response(raw)
    contract = DOCUMENT_RESULT_SCHEMA if dialect.is_document_store else RELATIONAL_RESULT_SCHEMA
    try:
        validate(instance=data, schema=contract)
    except JsonSchemaValidationError as e:
        raise MalformedGenerationResult(f"Generation result failed validation: {e.message}")

    query = data.get("query")
    if query is None:
        query = data.get("sql", "")
    if not isinstance(query, str):
        query = json.dumps(query)

    references_key = "collections_used" if dialect.is_document_store else "tables_used"
    references: List[str] = list(data.get(references_key, []))

    result = GenerationResult(
        can_answer=data["can_answer"],
        reason=data["reason"],
        query=query,
        explanation=data.get("explanation", ""),
        confidence=data["confidence"],
        assumptions=list(data.get("assumptions", [])),
        **{references_key: references},
    )

    if result.can_answer:
        known = known_references(schema, dialect, registry)
        ungrounded = [r for r in references if _normalize_reference(r) not in known]
        if ungrounded:
            logger.warning(
                "Generated query references tables outside the schema: %s", ungrounded
            )
            return result.model_copy(
                update={
                    "can_answer": False,
                    "query": "",
                    "reason": (
                        "Generated query references tables not present in the schema: "
                        + ", ".join(ungrounded)
                    ),
                }
            )
    return result
