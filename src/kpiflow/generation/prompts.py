"""
Prompt assembly for schema-grounded query generation.

The grounding rules rendered here are a contract with the generation
service: literal values must come from sample data, columns are matched by
meaning, the dialect row cap is always applied unless the intent overrides
it, and only dialect-valid syntax may be used.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from kpiflow.capabilities.schema_catalog import SchemaSnapshot, TableInfo
from kpiflow.dialects import DialectEntry, DialectRegistry, default_registry

from .models import GenerationRequest

INSIGHT_SAMPLE_ROWS = 5

_RELATIONAL_OUTPUT = """{
  "can_answer": boolean,
  "reason": string,
  "sql": string,
  "explanation": string,
  "confidence": number between 0 and 1,
  "assumptions": [string],
  "tables_used": [string]
}"""

_RELATIONAL_EXAMPLE = """{
  "can_answer": true,
  "reason": "Found category and amount fields in invoices table",
  "sql": "SELECT category, SUM(amount) AS total FROM invoices WHERE status = 'paid' GROUP BY category ORDER BY total DESC LIMIT 10",
  "explanation": "Aggregates paid invoice amounts by category",
  "confidence": 0.9,
  "assumptions": ["Using 'paid' from sample data"],
  "tables_used": ["invoices"]
}"""

_DOCUMENT_OUTPUT = """{
  "can_answer": boolean,
  "reason": string,
  "query": string (JSON encoded pipeline or request),
  "explanation": string,
  "confidence": number between 0 and 1,
  "assumptions": [string],
  "collections_used": [string]
}"""


def _format_sample(values: List[Any]) -> str:
    if not values:
        return "No sample data available"
    return ", ".join(json.dumps(v, default=str) for v in values)


class PromptAssembler:
    """Builds generation requests and renders them to prompt text."""

    def __init__(self, registry: Optional[DialectRegistry] = None) -> None:
        self._registry = registry or default_registry

    def build_request(
        self,
        intent: str,
        schema: SchemaSnapshot,
        dialect: DialectEntry,
        now: Optional[datetime] = None,
        *,
        row_cap: Optional[int] = None,
    ) -> GenerationRequest:
        now = now or datetime.now(timezone.utc)
        cap = row_cap or dialect.default_row_cap
        prompt = self.render_prompt(intent, schema, dialect, now, row_cap=cap)
        return GenerationRequest(
            intent=intent,
            schema_snapshot=schema,
            dialect=dialect,
            now=now,
            row_cap=cap,
            prompt=prompt,
        )

    def render_prompt(
        self,
        intent: str,
        schema: SchemaSnapshot,
        dialect: DialectEntry,
        now: datetime,
        *,
        row_cap: int,
    ) -> str:
        name = dialect.display_name
        schema_text = self.describe_schema(schema, dialect)
        cap_clause = dialect.row_cap_clause(row_cap)

        if dialect.is_document_store:
            return f"""# ROLE
You are a business-aware {name} query generator. Generate queries compatible with {name}'s query language.

# AVAILABLE COLLECTIONS
{schema_text}

# DATE: {now.isoformat()}

# {name.upper()}-SPECIFIC RULES
{dialect.dialect_rules_text}

# CRITICAL RULES
1. **Sample Data Adherence**: ONLY compare against values present in the sample data. Never invent values.
2. **Flexible Field Matching**: Match fields by semantic meaning (e.g. "revenue" matches "sales_amount").
3. **Default Limit**: Include {cap_clause} unless the request explicitly asks for a different size.
4. **Compatibility**: Use only {name}-compatible syntax.

# OUTPUT FORMAT
Respond with a single JSON object:
{_DOCUMENT_OUTPUT}

# REQUEST
{intent}
"""

        return f"""# ROLE
You are a {name} SQL generator. Generate accurate SQL queries using the provided schema.

# AVAILABLE TABLES AND FIELDS
{schema_text}

# DATE: {now.isoformat()}

# DATABASE-SPECIFIC RULES FOR {name.upper()}
{dialect.dialect_rules_text}

# CRITICAL RULES
1. **Sample Data Adherence**: ONLY use literal values that appear in the provided sample data. Do not assume other values exist (if the sample shows "CANCEL", do not use "Y", "CANCELLED" or "1").
2. **Field Names**: Use exact field names from the schema. {dialect.identifier_quote_style.rule_text}
3. **Flexible Field Matching**: Match fields by semantic meaning (e.g. "revenue" matches "sales_amount").
4. **Default Limit**: Add {cap_clause} unless the request explicitly specifies otherwise.
5. **SQL Compatibility**: Use only {name}-compatible syntax and functions. Case-insensitive comparison: {dialect.case_insensitive_operator}.

# WHEN TO ANSWER
- Set can_answer to true if relevant fields/tables exist
- Set can_answer to false only if no relevant fields are available

# OUTPUT FORMAT
Respond with a single JSON object:
{_RELATIONAL_OUTPUT}

# EXAMPLE
{_RELATIONAL_EXAMPLE}

# REQUEST
{intent}
"""

    def describe_schema(self, schema: SchemaSnapshot, dialect: DialectEntry) -> str:
        blocks = [self._describe_table(t, dialect) for t in schema.tables]
        return "\n\n".join(blocks) if blocks else "(no tables available)"

    def _describe_table(self, table: TableInfo, dialect: DialectEntry) -> str:
        lines = [
            f"Table Name: {self._registry.qualify(table, dialect)}",
            f"Table Description: {table.description or 'n/a'}",
            "Table Fields:",
        ]
        for column in table.columns:
            lines.append(f"  - Field Name: {column.name}")
            lines.append(f"    Field Type: {column.declared_type or 'unknown'}")
            if column.description:
                lines.append(f"    Field Description: {column.description}")
            lines.append(f"    Sample Data: {_format_sample(column.sample_values)}")
        return "\n".join(lines)

    def build_insight_prompt(
        self, kpi_name: str, description: str, rows: List[Dict[str, Any]]
    ) -> str:
        data = json.dumps(rows[:INSIGHT_SAMPLE_ROWS], indent=2, default=str)
        return f"""Analyze the following KPI data and generate an insight:

KPI: {kpi_name}
Description: {description}

Data:
{data}

Provide a clear, data-driven insight that is actionable and based on the actual numbers.
"""
