"""
Unit tests for incremental schema management.
"""

import logging
import pytest

from jsonlite.ingest.schema_manager import DDLKind, SchemaManager, quote_identifier


def _apply_all(manager, fields):
    operations = manager.plan(fields)
    for operation in operations:
        manager.apply(operation)
    return operations


class TestQuoteIdentifier:
    """Tests for identifier quoting."""

    def test_plain_name(self):
        assert quote_identifier("user_id") == '"user_id"'

    def test_name_used_verbatim(self):
        assert quote_identifier("my field.x") == '"my field.x"'

    def test_embedded_quotes_doubled(self):
        assert quote_identifier('a"b') == '"a""b"'


class TestSchemaManager:
    """Tests for DDL planning."""

    def test_first_record_creates_table(self):
        manager = SchemaManager("records")

        operations = manager.plan(["time", "message"])

        assert len(operations) == 1
        assert operations[0].kind == DDLKind.CREATE_TABLE
        assert operations[0].columns == ("time", "message")
        assert operations[0].sql == 'CREATE TABLE "records"("time","message")'

    def test_new_fields_add_one_column_each(self):
        manager = SchemaManager("records")
        _apply_all(manager, ["a"])

        operations = manager.plan(["a", "c", "b"])

        assert [op.kind for op in operations] == [DDLKind.ADD_COLUMN, DDLKind.ADD_COLUMN]
        assert [op.columns for op in operations] == [("c",), ("b",)]
        assert operations[0].sql == 'ALTER TABLE "records" ADD COLUMN "c"'

    def test_no_new_fields(self):
        manager = SchemaManager()
        _apply_all(manager, ["a", "b"])

        assert manager.plan(["b", "a"]) == []

    def test_plan_does_not_mutate(self):
        manager = SchemaManager()

        manager.plan(["a"])

        assert manager.columns == ()
        assert manager.has_table is False

    def test_columns_in_first_seen_order(self):
        manager = SchemaManager()
        _apply_all(manager, ["b", "a"])
        _apply_all(manager, ["a", "d", "c"])
        _apply_all(manager, ["e", "b"])

        assert manager.columns == ("b", "a", "d", "c", "e")
        assert manager.column_list_sql() == '"b","a","d","c","e"'

    def test_empty_record_creates_nothing(self):
        manager = SchemaManager()

        assert manager.plan([]) == []
        assert manager.has_table is False

    def test_duplicate_names_collapsed(self):
        manager = SchemaManager()

        assert manager.new_fields(["a", "a", "b"]) == ["a", "b"]

    def test_snapshot_and_restore(self):
        manager = SchemaManager()
        _apply_all(manager, ["a"])
        state = manager.snapshot()

        _apply_all(manager, ["b", "c"])
        manager.restore(state)

        assert manager.columns == ("a",)
        assert manager.has_table is True
        assert [op.columns for op in manager.plan(["b"])] == [("b",)]

    def test_restore_to_empty(self):
        manager = SchemaManager()
        state = manager.snapshot()
        _apply_all(manager, ["a"])

        manager.restore(state)

        assert manager.has_table is False
        assert manager.plan(["a"])[0].kind == DDLKind.CREATE_TABLE

    def test_suspicious_name_logs_warning(self, caplog):
        caplog.set_level(logging.WARNING)
        manager = SchemaManager()

        operations = manager.plan(['we"ird'])

        assert operations[0].sql == 'CREATE TABLE "records"("we""ird")'
        assert any("verbatim" in record.getMessage() for record in caplog.records)
