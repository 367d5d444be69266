"""
Query execution policy in front of a backend driver.

Before delegating to the driver the executor:
  1. strips a trailing statement terminator
  2. enforces the read-only policy (relational backends)
  3. appends the dialect row cap unless the query already has one

Author-specified caps are authoritative: a capped query is passed through
unchanged apart from terminator stripping.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, FrozenSet, List, Optional, Set

import pandas as pd
import sqlparse
from sqlparse import tokens as T

from kpiflow.capabilities.query_driver import QueryDriver
from kpiflow.dialects import DialectEntry, RowCapStyle
from kpiflow.errors import ExecutionError, KpiFlowError, ValidationError

logger = logging.getLogger(__name__)

READ_ONLY_STATEMENT_TYPES: FrozenSet[str] = frozenset(
    {"SELECT", "WITH", "SHOW", "DESCRIBE", "DESC", "EXPLAIN", "PRAGMA", "VALUES"}
)


def strip_terminator(query_text: str) -> str:
    """Drop trailing terminators and trailing whitespace; the rest is untouched."""
    text = query_text.rstrip()
    while text.endswith(";"):
        text = text[:-1].rstrip()
    return text


def _significant_leaves(sql: str) -> List[Any]:
    return [
        token
        for statement in sqlparse.parse(sql)
        for token in statement.flatten()
        if not token.is_whitespace and token.ttype not in T.Comment
    ]


def _opens_row_count(token: Any) -> bool:
    return token.ttype in T.Number or token.ttype in T.Name.Placeholder or token.value == "("


def has_row_cap(sql: str) -> bool:
    """True if the SQL applies LIMIT n, TOP n or FETCH FIRST/NEXT.

    The keyword must be followed by a row count (or FIRST/NEXT for FETCH),
    so columns named ``top`` or ``limit`` do not count as caps.
    """
    leaves = _significant_leaves(sql)
    for token, follower in zip(leaves, leaves[1:]):
        # TOP is not a sqlparse keyword; it lexes as a name.
        if token.ttype not in T.Keyword and token.ttype not in T.Name:
            continue
        keyword = token.value.upper()
        if keyword in ("LIMIT", "TOP") and _opens_row_count(follower):
            return True
        if keyword == "LIMIT" and follower.normalized.upper() == "ALL":
            return True
        if keyword == "FETCH" and follower.normalized.upper() in ("FIRST", "NEXT"):
            return True
    return False


def _ends_with_line_comment(sql: str) -> bool:
    leaves = [t for s in sqlparse.parse(sql) for t in s.flatten() if not t.is_whitespace]
    return bool(leaves) and leaves[-1].ttype in T.Comment.Single


def _insert_top(sql: str, rows: int) -> Optional[str]:
    """Place ``TOP n`` after the top-level SELECT (and DISTINCT)."""
    parsed = sqlparse.parse(sql)
    if not parsed:
        return None
    tokens = list(parsed[0].tokens)
    offset = 0
    for index, token in enumerate(tokens):
        offset += len(str(token))
        if token.ttype is not T.Keyword.DML or token.normalized != "SELECT":
            continue
        insert_at = offset
        scanned = offset
        for follower in tokens[index + 1:]:
            scanned += len(str(follower))
            if follower.is_whitespace:
                continue
            if follower.ttype in T.Keyword and follower.normalized == "DISTINCT":
                insert_at = scanned
            break
        return sql[:insert_at] + f" TOP {rows}" + sql[insert_at:]
    return None


class QueryExecutor:
    """Applies row-cap and read-only policy, then runs the query."""

    def __init__(
        self,
        driver: QueryDriver,
        dialect: DialectEntry,
        *,
        read_only: bool = True,
        allowed_statement_types: Optional[Set[str]] = None,
    ) -> None:
        self.driver = driver
        self.dialect = dialect
        self.read_only = read_only
        self.allowed_statement_types = frozenset(
            allowed_statement_types or READ_ONLY_STATEMENT_TYPES
        )

    def check_policy(self, query_text: str) -> None:
        """Raise ValidationError if the query violates the read-only policy."""
        if not strip_terminator(query_text):
            raise ValidationError("Query cannot be empty.")
        if self.dialect.is_document_store or not self.read_only:
            return

        statements = [s.strip() for s in sqlparse.split(query_text) if s.strip()]
        statements = [s for s in statements if s.rstrip(";").strip()]
        if not statements:
            raise ValidationError("Query cannot be empty.")
        if len(statements) > 1:
            raise ValidationError("Multiple SQL statements are blocked by default.")

        first_token = sqlparse.parse(statements[0])[0].token_first(skip_cm=True)
        first_keyword = ""
        if first_token is not None:
            first_keyword = str(first_token).split(None, 1)[0].split("(", 1)[0].upper()
        if first_keyword not in self.allowed_statement_types:
            allowed_list = ", ".join(sorted(self.allowed_statement_types))
            raise ValidationError(
                f"Blocked by read-only SQL policy. Allowed statement types: {allowed_list}."
            )

    def prepare(self, query_text: str, sample_size: int) -> str:
        """Return the query text that will actually be sent to the driver."""
        self.check_policy(query_text)
        text = strip_terminator(query_text)
        style = self.dialect.row_cap_style

        if style is RowCapStyle.PIPELINE_STAGE:
            return self._cap_pipeline(text, sample_size)
        if style is RowCapStyle.REQUEST_LIMIT:
            return self._cap_request(text, sample_size)

        if has_row_cap(text):
            logger.debug("Query already carries a row cap; leaving it unchanged")
            return text
        if style is RowCapStyle.TOP:
            capped = _insert_top(text, sample_size)
            if capped is None:
                logger.warning("No top-level SELECT found; cannot apply TOP %d", sample_size)
                return text
            return capped
        separator = "\n" if _ends_with_line_comment(text) else " "
        return f"{text}{separator}{self.dialect.row_cap_clause(sample_size)}"

    async def execute(self, query_text: str, sample_size: int) -> pd.DataFrame:
        """Run the query with policy applied.

        Raises:
            ValidationError: If the query is empty or violates the read-only policy.
            ExecutionError: If the driver fails; carries the driver message.
        """
        prepared = self.prepare(query_text, sample_size)
        logger.info("Executing %s query (sample_size=%d)", self.dialect.display_name, sample_size)
        try:
            return await self.driver.run(prepared)
        except KpiFlowError:
            raise
        except Exception as e:
            logger.error("Query execution failed: %s", e)
            raise ExecutionError(f"Query execution failed: {e}", cause=e) from e

    def _load_json(self, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(
                f"{self.dialect.display_name} queries must be JSON: {e}"
            )

    def _cap_pipeline(self, text: str, sample_size: int) -> str:
        document = self._load_json(text)
        pipeline = document.get("pipeline") if isinstance(document, dict) else document
        if not isinstance(pipeline, list):
            raise ValidationError("Expected an aggregation pipeline (JSON array of stages).")
        if any(isinstance(stage, dict) and "$limit" in stage for stage in pipeline):
            return text
        pipeline.append({"$limit": sample_size})
        return json.dumps(document)

    def _cap_request(self, text: str, sample_size: int) -> str:
        request = self._load_json(text)
        if not isinstance(request, dict):
            raise ValidationError("Expected request parameters as a JSON object.")
        if "Limit" in request:
            return text
        request["Limit"] = sample_size
        return json.dumps(request)


def frame_to_records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame rows as plain JSON-safe dicts (numpy scalars and NaN converted)."""
    if frame is None or frame.empty:
        return []
    return json.loads(frame.to_json(orient="records", date_format="iso"))
