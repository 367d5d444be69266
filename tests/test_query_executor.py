"""Tests for row-cap and read-only execution policy."""

import json
import sqlite3

import pandas as pd
import pytest

from kpiflow.dialects import default_registry
from kpiflow.errors import ExecutionError, ValidationError
from kpiflow.execution import QueryExecutor, frame_to_records, has_row_cap, strip_terminator

from fakes import RecordingDriver


def _executor(backend="postgresql", **kwargs):
    driver = RecordingDriver()
    return QueryExecutor(driver, default_registry.resolve(backend), **kwargs), driver


class TestLimitNonDuplication:
    @pytest.mark.parametrize(
        "query",
        [
            "SELECT * FROM orders LIMIT 3",
            "select * from orders limit 3;",
            "SELECT * FROM orders\nLimit 50 ;  ",
            "SELECT * FROM orders ORDER BY id OFFSET 0 ROWS FETCH NEXT 3 ROWS ONLY",
        ],
    )
    def test_existing_cap_is_left_alone(self, query):
        executor, _ = _executor()
        assert executor.prepare(query, 5) == strip_terminator(query)

    @pytest.mark.parametrize(
        "query",
        [
            "SELECT * FROM orders",
            "SELECT * FROM orders;",
            "SELECT * FROM orders WHERE note = 'no limit here'",
            "SELECT id AS limited FROM orders",
        ],
    )
    def test_cap_appended_exactly_once(self, query):
        executor, _ = _executor()
        prepared = executor.prepare(query, 5)
        assert prepared == strip_terminator(query) + " LIMIT 5"
        assert prepared.upper().count("LIMIT 5") == 1

    def test_cap_after_trailing_line_comment_starts_new_line(self):
        executor, _ = _executor()
        prepared = executor.prepare("SELECT id FROM orders -- limit later", 5)
        assert prepared == "SELECT id FROM orders -- limit later\nLIMIT 5"

    def test_strip_terminator(self):
        assert strip_terminator("  SELECT 1 ;  ") == "  SELECT 1"
        assert strip_terminator("SELECT 1;;\n") == "SELECT 1"
        assert strip_terminator("SELECT ';'") == "SELECT ';'"

    def test_capped_query_keeps_leading_whitespace(self):
        executor, _ = _executor()
        assert executor.prepare("  SELECT a FROM t LIMIT 5;", 10) == "  SELECT a FROM t LIMIT 5"

    def test_has_row_cap_ignores_literals(self):
        assert has_row_cap("SELECT 1 LIMIT 1")
        assert not has_row_cap("SELECT 'LIMIT 1'")

    @pytest.mark.parametrize(
        "query",
        [
            "SELECT top FROM scores",
            "SELECT fetch FROM t",
            "SELECT limit FROM t WHERE top = 1",
            "SELECT id FROM t -- LIMIT 3",
        ],
    )
    def test_columns_named_like_cap_keywords_are_not_caps(self, query):
        assert not has_row_cap(query)
        executor, _ = _executor()
        assert executor.prepare(query, 5).endswith("LIMIT 5")

    @pytest.mark.parametrize(
        "query",
        [
            "SELECT * FROM t LIMIT ?",
            "SELECT * FROM t LIMIT ALL",
            "SELECT TOP (3) * FROM t",
            "SELECT * FROM t FETCH FIRST 3 ROWS ONLY",
        ],
    )
    def test_cap_forms_are_detected(self, query):
        assert has_row_cap(query)

    @pytest.mark.asyncio
    async def test_execute_sends_prepared_query(self):
        executor, driver = _executor()
        await executor.execute("SELECT * FROM orders;", 5)
        assert driver.queries == ["SELECT * FROM orders LIMIT 5"]


class TestTopStyle:
    def test_top_inserted_after_select(self):
        executor, _ = _executor("mssql")
        assert executor.prepare("SELECT name FROM users", 5) == "SELECT TOP 5 name FROM users"

    def test_top_inserted_after_distinct(self):
        executor, _ = _executor("mssql")
        assert (
            executor.prepare("SELECT DISTINCT name FROM users;", 5)
            == "SELECT DISTINCT TOP 5 name FROM users"
        )

    def test_existing_top_is_left_alone(self):
        executor, _ = _executor("mssql")
        assert executor.prepare("SELECT TOP 3 * FROM users", 5) == "SELECT TOP 3 * FROM users"


class TestDocumentStores:
    def test_pipeline_gets_limit_stage(self):
        executor, _ = _executor("mongodb")
        prepared = executor.prepare('[{"$match": {"status": "paid"}}]', 5)
        assert json.loads(prepared) == [{"$match": {"status": "paid"}}, {"$limit": 5}]

    def test_pipeline_with_limit_is_unchanged(self):
        executor, _ = _executor("mongodb")
        query = '[{"$match": {}}, {"$limit": 2}]'
        assert executor.prepare(query, 5) == query

    def test_pipeline_inside_object(self):
        executor, _ = _executor("mongodb")
        prepared = json.loads(executor.prepare('{"collection": "orders", "pipeline": []}', 5))
        assert prepared["pipeline"] == [{"$limit": 5}]

    def test_request_gets_limit_key(self):
        executor, _ = _executor("dynamodb")
        prepared = json.loads(executor.prepare('{"TableName": "orders"}', 5))
        assert prepared == {"TableName": "orders", "Limit": 5}

    def test_request_with_limit_is_unchanged(self):
        executor, _ = _executor("dynamodb")
        query = '{"TableName": "orders", "Limit": 1}'
        assert executor.prepare(query, 5) == query

    def test_non_json_rejected(self):
        executor, _ = _executor("mongodb")
        with pytest.raises(ValidationError):
            executor.prepare("db.orders.find()", 5)


class TestReadOnlyPolicy:
    def test_write_statement_blocked(self):
        executor, _ = _executor()
        with pytest.raises(ValidationError, match="read-only SQL policy"):
            executor.prepare("DELETE FROM users", 5)

    def test_multiple_statements_blocked(self):
        executor, _ = _executor()
        with pytest.raises(ValidationError, match="Multiple SQL statements"):
            executor.prepare("SELECT 1; SELECT 2;", 5)

    def test_empty_query_blocked(self):
        executor, _ = _executor()
        with pytest.raises(ValidationError):
            executor.prepare("  ;  ", 5)

    @pytest.mark.parametrize("query", [";;", "; ;", "  ;\n;  "])
    def test_terminator_only_query_blocked(self, query):
        executor, _ = _executor()
        with pytest.raises(ValidationError, match="cannot be empty"):
            executor.check_policy(query)
        with pytest.raises(ValidationError, match="cannot be empty"):
            executor.prepare(query, 5)

    def test_cte_and_leading_comment_allowed(self):
        executor, _ = _executor()
        executor.check_policy("WITH t AS (SELECT 1 AS x) SELECT x FROM t")
        executor.check_policy("-- monthly revenue\nSELECT 1")

    def test_policy_can_be_disabled(self):
        executor, _ = _executor(read_only=False)
        assert executor.prepare("DELETE FROM users", 5) == "DELETE FROM users LIMIT 5"


class TestDriverErrors:
    @pytest.mark.asyncio
    async def test_driver_error_becomes_execution_error(self):
        driver = RecordingDriver(error=sqlite3.OperationalError("no such table: nope"))
        executor = QueryExecutor(driver, default_registry.resolve("sqlite"))
        with pytest.raises(ExecutionError, match="no such table: nope") as info:
            await executor.execute("SELECT * FROM nope", 5)
        assert isinstance(info.value.cause, sqlite3.OperationalError)

    @pytest.mark.asyncio
    async def test_policy_error_is_not_wrapped(self):
        executor, driver = _executor()
        with pytest.raises(ValidationError):
            await executor.execute("DROP TABLE users", 5)
        assert driver.queries == []


def test_frame_to_records_converts_numpy_scalars():
    frame = pd.DataFrame({"n": [1, 2], "x": [1.5, None]})
    records = frame_to_records(frame)
    assert records == [{"n": 1, "x": 1.5}, {"n": 2, "x": None}]
    assert type(records[0]["n"]) is int
    assert frame_to_records(pd.DataFrame()) == []
