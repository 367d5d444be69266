"""Tests for column auto-selection."""

from kpiflow.capabilities.schema_catalog import ColumnInfo
from kpiflow.generation import ColumnSelector, is_numeric, normalize_type


def _cols(*pairs):
    return [ColumnInfo(name=n, declared_type=t) for n, t in pairs]


class TestColumnSelector:
    def test_sole_numeric_column_is_selected(self):
        columns = _cols(("id", "int"), ("label", "text"), ("created_at", "timestamp"))
        assert ColumnSelector().select_columns("events", columns) == ["events.id"]

    def test_all_numeric_columns_selected(self):
        columns = _cols(("id", "INTEGER"), ("note", "TEXT"), ("amount", "NUMERIC(12, 2)"), ("qty", "bigint"))
        assert ColumnSelector().select_columns("orders", columns, "revenue") == [
            "orders.id",
            "orders.amount",
            "orders.qty",
        ]

    def test_fallback_to_first_three(self):
        columns = _cols(("a", "text"), ("b", "varchar(20)"), ("c", "date"), ("d", "text"))
        assert ColumnSelector().select_columns("t", columns) == ["t.a", "t.b", "t.c"]

    def test_explicit_columns_pass_through(self):
        columns = _cols(("amount", "numeric"))
        explicit = ["orders.status", "custom"]
        assert ColumnSelector().select_columns("orders", columns, explicit_columns=explicit) == explicit

    def test_empty_table_yields_empty_selection(self):
        assert ColumnSelector().select_columns("empty", []) == []


class TestTypeClassification:
    def test_normalize_type(self):
        assert normalize_type("NUMERIC(12, 2)") == "numeric"
        assert normalize_type("int unsigned") == "int"
        assert normalize_type("Double   Precision") == "double precision"

    def test_is_numeric(self):
        assert is_numeric(ColumnInfo(name="x", declared_type="REAL"))
        assert is_numeric(ColumnInfo(name="x", declared_type="decimal(10,2)"))
        assert not is_numeric(ColumnInfo(name="x", declared_type="text"))
        assert not is_numeric(ColumnInfo(name="x", declared_type=""))
