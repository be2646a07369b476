"""
Row sinks.

The database sink lives in ``sinks.database_sink`` and is imported on demand,
since it needs the ODBC driver manager that pyodbc links against.
"""

from .csv_sink import CsvRowSink, ListRowSink

__all__ = ['CsvRowSink', 'ListRowSink']
