"""
Bulk Insert Strategy - Optimized Row Loading

Encapsulates the strategy for inserting extracted rows with automatic fallback
from fast_executemany to individual inserts. Rows are consumed lazily in
batches, so an extraction is never materialized in full.
"""

import logging
import pyodbc

from itertools import islice
from typing import Iterable, Iterator, List, Tuple

from ..exceptions import SinkError
from ..models import Row


class BulkInsertStrategy:
    """
    Strategy for bulk inserting rows into a database table.

    Implements two-tier insertion strategy:
    1. Fast path: executemany for optimal performance
    2. Fallback path: individual executes for robustness

    Automatically switches between strategies based on error type.
    """

    def __init__(self, batch_size: int = 1000, logger: logging.Logger = None):
        """
        Initialize bulk insert strategy.

        Args:
            batch_size: Rows per batch for memory-efficient processing
            logger: Optional logger instance
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.batch_size = batch_size
        self.logger = logger or logging.getLogger(__name__)

    def insert(self, cursor, column_names: List[str], rows: Iterable[Row],
               table_name: str, qualified_table_name: str) -> int:
        """
        Insert rows using optimized strategy with automatic fallback.

        Args:
            cursor: Active database cursor
            column_names: Target column names, aligned with each row
            rows: Rows to insert; absent cells become NULL
            table_name: Unqualified table name (for error messages)
            qualified_table_name: Schema-qualified table name ([schema].[table])

        Returns:
            Number of rows successfully inserted

        Raises:
            SinkError: On database or data errors
        """
        if not column_names:
            raise SinkError("At least one column name is required for a database insert", sink_name=table_name)

        sql = self.build_insert_sql(column_names, qualified_table_name)
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"SQL: {sql}")

        inserted_count = 0
        try:
            # Enable fast_executemany for performance
            cursor.fast_executemany = True

            for batch_number, batch in enumerate(self._batches(rows, len(column_names))):
                if self.logger.isEnabledFor(logging.DEBUG):
                    self.logger.debug(f"Processing batch {batch_number} ({len(batch)} rows) into {table_name}")

                # Try fast path first, fallback to individual if needed
                batch_inserted, used_fast_path = self._try_fast_insert(cursor, sql, batch)
                if not used_fast_path:
                    batch_inserted = self._fallback_individual_insert(cursor, sql, batch)

                inserted_count += batch_inserted

        except pyodbc.Error as e:
            self._handle_database_error(e, table_name, inserted_count)

        self.logger.info(f"Successfully inserted {inserted_count} rows into {table_name}")
        return inserted_count

    @staticmethod
    def build_insert_sql(column_names: List[str], qualified_table_name: str) -> str:
        column_list = ', '.join(f"[{name.replace(']', ']]')}]" for name in column_names)
        placeholders = ', '.join('?' * len(column_names))
        return f"INSERT INTO {qualified_table_name} ({column_list}) VALUES ({placeholders})"

    def _batches(self, rows: Iterable[Row], width: int) -> Iterator[List[Tuple]]:
        iterator = iter(rows)
        while True:
            batch = [tuple(row) for row in islice(iterator, self.batch_size)]
            if not batch:
                return
            for row in batch:
                if len(row) != width:
                    raise SinkError(f"Row has {len(row)} cells but {width} columns were given")
            yield batch

    def _try_fast_insert(self, cursor, sql: str, batch: List[Tuple]) -> Tuple[int, bool]:
        """
        Attempt bulk insert using executemany for optimal performance.

        Returns:
            (batch_inserted, success) where success=True if fast path worked
        """
        if len(batch) <= 1:
            return 0, False  # Use fallback path

        try:
            cursor.executemany(sql, batch)
            return len(batch), True
        except pyodbc.Error as e:
            error_str = str(e).lower()
            if "cast specification" in error_str or "converting" in error_str:
                self.logger.debug(f"executemany failed with type error, using individual inserts: {e}")
                return 0, False  # Signal fallback needed
            raise

    def _fallback_individual_insert(self, cursor, sql: str, batch: List[Tuple]) -> int:
        """
        Insert rows individually.

        Returns:
            Count of successfully inserted rows
        """
        batch_inserted = 0
        for row in batch:
            cursor.execute(sql, row)
            batch_inserted += 1
        return batch_inserted

    def _handle_database_error(self, e: Exception, table_name: str, inserted_count: int) -> None:
        """
        Categorize and re-raise database errors as SinkError.

        Raises:
            SinkError: Always
        """
        error_str = str(e).lower()

        if 'primary key constraint' in error_str or 'duplicate key' in error_str:
            error_msg = f"Primary key violation in {table_name}: {e}"
        elif 'foreign key constraint' in error_str:
            error_msg = f"Foreign key violation in {table_name}: {e}"
        elif 'check constraint' in error_str:
            error_msg = f"Check constraint violation in {table_name}: {e}"
        elif 'cannot insert null' in error_str or 'not null constraint' in error_str:
            error_msg = f"NULL constraint violation in {table_name}: {e}"
        else:
            error_msg = f"Database error during bulk insert into {table_name}: {e}"

        self.logger.error(error_msg)
        raise SinkError(error_msg, sink_name=table_name, rows_written=inserted_count) from e
