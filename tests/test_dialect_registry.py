"""Tests for the dialect registry."""

import pytest

from kpiflow.capabilities.schema_catalog import TableInfo
from kpiflow.dialects import (
    BackendId,
    DialectRegistry,
    QuoteStyle,
    RowCapStyle,
    default_registry,
)


QUALIFIED_TABLE = TableInfo(name="orders", schema_name="sales", catalog="main")


class TestResolve:
    def test_every_backend_has_exactly_one_entry(self):
        assert sorted(b.value for b in default_registry.backend_ids) == sorted(
            b.value for b in BackendId
        )

    def test_resolve_accepts_strings_and_aliases(self):
        assert default_registry.resolve("MySQL").backend_id is BackendId.MYSQL
        assert default_registry.resolve("postgres").backend_id is BackendId.POSTGRESQL
        assert default_registry.resolve("sqlserver").backend_id is BackendId.MSSQL
        assert default_registry.resolve(BackendId.MONGODB).is_document_store is True

    def test_unknown_backend_falls_back_to_default(self, caplog):
        entry = default_registry.resolve("oracle")
        assert entry.backend_id is BackendId.POSTGRESQL
        assert entry.identifier_quote_style is QuoteStyle.DOUBLE_QUOTE
        assert entry.is_document_store is False
        assert "falling back" in caplog.text

    def test_none_resolves_to_default(self):
        assert default_registry.resolve(None) is default_registry.default_entry

    def test_duplicate_entries_rejected(self):
        entry = default_registry.resolve("sqlite")
        with pytest.raises(ValueError):
            DialectRegistry([entry, entry], default=BackendId.SQLITE)

    def test_missing_default_rejected(self):
        with pytest.raises(ValueError):
            DialectRegistry([default_registry.resolve("sqlite")])


class TestQualify:
    @pytest.mark.parametrize(
        "backend, expected",
        [
            ("postgresql", '"sales"."orders"'),
            ("redshift", '"sales"."orders"'),
            ("snowflake", '"main"."sales"."orders"'),
            ("mysql", "`sales`.`orders`"),
            ("mariadb", "`sales`.`orders`"),
            ("databricks", "`main`.`sales`.`orders`"),
            ("bigquery", "`main`.`sales`.`orders`"),
            ("mssql", "[sales].[orders]"),
            ("sqlite", '"orders"'),
            ("mongodb", "orders"),
            ("dynamodb", "orders"),
        ],
    )
    def test_quoting_matches_dialect(self, backend, expected):
        entry = default_registry.resolve(backend)
        assert default_registry.qualify(QUALIFIED_TABLE, entry) == expected

    def test_absent_levels_are_omitted(self):
        entry = default_registry.resolve("databricks")
        bare = TableInfo(name="orders")
        assert default_registry.qualify(bare, entry) == "`orders`"

    def test_embedded_quotes_are_doubled(self):
        table = TableInfo(name='odd"name')
        entry = default_registry.resolve("postgresql")
        assert default_registry.qualify(table, entry) == '"odd""name"'
        assert QuoteStyle.BRACKET.quote("a]b") == "[a]]b]"


class TestRowCapClause:
    def test_clause_per_style(self):
        assert default_registry.resolve("postgresql").row_cap_clause(5) == "LIMIT 5"
        assert default_registry.resolve("mssql").row_cap_clause(5) == "TOP 5"
        assert default_registry.resolve("mongodb").row_cap_clause(5) == '{"$limit": 5}'
        assert default_registry.resolve("dynamodb").row_cap_clause(5) == '"Limit": 5'

    def test_default_cap_is_ten(self):
        entry = default_registry.resolve("mysql")
        assert entry.default_row_cap == 10
        assert entry.default_row_cap_clause == "LIMIT 10"
        assert entry.row_cap_style is RowCapStyle.LIMIT

    def test_every_entry_has_rules_text(self):
        for backend in default_registry.backend_ids:
            assert default_registry.resolve(backend).dialect_rules_text
