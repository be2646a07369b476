"""
Unit tests for DatabaseRowSink transaction handling.

The pyodbc connection is replaced by a mock factory so that commit,
rollback and cleanup can be verified without a database.
"""

import pytest

from unittest.mock import MagicMock

from xml_row_extractor.exceptions import DatabaseConnectionError, SinkError

pyodbc = pytest.importorskip("pyodbc")

from xml_row_extractor.api import extract  # noqa: E402
from xml_row_extractor.sinks.database_sink import DatabaseRowSink  # noqa: E402


@pytest.fixture
def connection():
    """Mock pyodbc connection with a mock cursor."""
    connection = MagicMock()
    connection.cursor.return_value = MagicMock()
    return connection


@pytest.fixture
def connect(connection):
    """Connection factory standing in for pyodbc.connect."""
    return MagicMock(return_value=connection)


class TestDatabaseRowSink:

    def test_commit_on_success(self, connect, connection):
        sink = DatabaseRowSink('items', connection_string='DSN=test', connect=connect)

        written = sink.write_rows(['name', 'age'], [("A", None), ("B", "5")])

        assert written == 2
        connect.assert_called_once_with('DSN=test', autocommit=False, timeout=30)
        connection.commit.assert_called_once()
        connection.rollback.assert_not_called()
        connection.cursor.return_value.close.assert_called_once()
        connection.close.assert_called_once()

    def test_rollback_on_failure(self, connect, connection):
        cursor = connection.cursor.return_value
        cursor.executemany.side_effect = pyodbc.Error("Violation of PRIMARY KEY constraint")
        sink = DatabaseRowSink('items', connection_string='DSN=test', connect=connect)

        with pytest.raises(SinkError, match="Primary key violation"):
            sink.write_rows(['name', 'age'], [("A", None), ("B", "5")])

        connection.rollback.assert_called_once()
        connection.commit.assert_not_called()
        connection.close.assert_called_once()

    def test_connection_failure(self, connect):
        connect.side_effect = pyodbc.Error("Login failed")
        sink = DatabaseRowSink('items', connection_string='DSN=test', connect=connect)

        with pytest.raises(DatabaseConnectionError) as exc_info:
            sink.write_rows(['name'], [("A",)])
        assert exc_info.value.sink_name == 'items'

    def test_table_name_uses_configured_schema(self, monkeypatch, connect, connection):
        monkeypatch.setenv('XML_ROW_EXTRACTOR_DB_SCHEMA', 'staging')
        sink = DatabaseRowSink('items', connection_string='DSN=test', connect=connect)

        sink.write_rows(['name'], [("A",), ("B",)])

        assert sink.qualified_table_name == '[staging].[items]'
        sql = connection.cursor.return_value.executemany.call_args[0][0]
        assert sql.startswith("INSERT INTO [staging].[items] ([name])")

    def test_batch_size_from_environment(self, monkeypatch, connect):
        monkeypatch.setenv('XML_ROW_EXTRACTOR_BATCH_SIZE', '50')
        sink = DatabaseRowSink('items', connection_string='DSN=test', connect=connect)
        assert sink.strategy.batch_size == 50

    def test_connection_string_from_environment(self, monkeypatch, connect):
        monkeypatch.setenv('XML_ROW_EXTRACTOR_CONNECTION_STRING', 'DSN=from_env')
        sink = DatabaseRowSink('items', connect=connect)
        assert sink.connection_string == 'DSN=from_env'

    def test_consumes_extraction_lazily(self, connect, connection, items_xml):
        sink = DatabaseRowSink('items', connection_string='DSN=test', connect=connect)

        with extract(items_xml, "//item", ["name", "age"]) as extraction:
            written = sink.write_rows(extraction.output_column_names, extraction)

        assert written == 2
        inserted = connection.cursor.return_value.executemany.call_args[0][1]
        assert inserted == [("A", None), ("B", "5")]
