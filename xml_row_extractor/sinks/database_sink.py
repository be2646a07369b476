"""
Database sink - writes extracted rows into a SQL Server table via pyodbc.

All rows of one extraction are inserted in a single transaction: either every
row is committed or, on any failure, the transaction is rolled back.
"""

import logging
import pyodbc

from contextlib import contextmanager
from typing import Iterable, List, Optional

from ..config.config_manager import get_config_manager
from ..exceptions import DatabaseConnectionError, SinkError
from ..interfaces import RowSinkInterface
from ..models import Row
from .bulk_insert_strategy import BulkInsertStrategy


class DatabaseRowSink(RowSinkInterface):
    """
    Inserts rows into a database table; absent cells become SQL NULL.

    The target table must already exist with the output column names.
    """

    def __init__(self, table_name: str, connection_string: Optional[str] = None,
                 batch_size: Optional[int] = None, connect=None):
        """
        Initialize the database sink.

        Args:
            table_name: Target table, unqualified ("items") or qualified ("[stage].[items]")
            connection_string: Optional ODBC connection string. If None, uses centralized config.
            batch_size: Rows per executemany batch. If None, uses centralized config.
            connect: Connection factory, defaults to pyodbc.connect
        """
        self.logger = logging.getLogger(__name__)
        config_manager = get_config_manager()

        self.table_name = table_name
        self.qualified_table_name = config_manager.get_qualified_table_name(table_name)
        self.connection_string = connection_string or config_manager.get_database_connection_string()
        self.connection_timeout = config_manager.database_config.connection_timeout
        self.batch_size = batch_size or config_manager.extraction_params.batch_size
        self._connect = connect or pyodbc.connect
        self.strategy = BulkInsertStrategy(self.batch_size, self.logger)

        if not self.connection_string:
            raise SinkError("No database connection string configured", sink_name=table_name)

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections with automatic cleanup.

        Yields:
            pyodbc.Connection: Active database connection

        Raises:
            DatabaseConnectionError: If connection cannot be established
        """
        try:
            connection = self._connect(self.connection_string, autocommit=False,
                                       timeout=self.connection_timeout)
        except pyodbc.Error as e:
            self.logger.error(f"Database connection failed: {e}")
            raise DatabaseConnectionError(f"Failed to connect to database: {e}",
                                          sink_name=self.table_name) from e
        try:
            connection.setencoding(encoding='utf-8')
            yield connection
        finally:
            try:
                connection.close()
            except pyodbc.Error as e:
                self.logger.debug(f"Ignoring error while closing connection: {e}")

    @contextmanager
    def transaction(self, connection):
        """
        Context manager committing on success and rolling back on any error.

        Yields:
            Cursor bound to the transaction
        """
        cursor = connection.cursor()
        try:
            yield cursor
            connection.commit()
            self.logger.debug("Transaction committed")
        except Exception as e:
            try:
                connection.rollback()
                self.logger.error(f"Transaction rolled back due to error: {str(e)[:200]}")
            except pyodbc.Error as rollback_error:
                self.logger.critical(f"ROLLBACK FAILED - Database may be in inconsistent state: {rollback_error}")
            raise
        finally:
            cursor.close()

    def write_rows(self, column_names: List[str], rows: Iterable[Row]) -> int:
        with self.get_connection() as connection:
            with self.transaction(connection) as cursor:
                return self.strategy.insert(cursor, column_names, rows,
                                            self.table_name, self.qualified_table_name)
