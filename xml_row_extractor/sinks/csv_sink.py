"""
Text and in-memory row sinks.
"""

import csv
import logging
import sys

from pathlib import Path
from typing import IO, Iterable, List, Optional, Union

from ..config.extraction_defaults import ExtractionDefaults
from ..exceptions import SinkError
from ..interfaces import RowSinkInterface
from ..models import Row


class CsvRowSink(RowSinkInterface):
    """
    Writes rows as CSV with a header line of column names.

    Absent cells are written as the null marker (an empty field by default),
    present cells are written verbatim.
    """

    def __init__(self, destination: Union[str, Path, IO[str]] = '-',
                 null_marker: str = ExtractionDefaults.NULL_MARKER,
                 delimiter: str = ExtractionDefaults.CSV_DELIMITER):
        """
        Args:
            destination: File path, "-" for stdout, or an open text stream
            null_marker: Text written for absent cells
            delimiter: CSV field delimiter
        """
        self.destination = destination
        self.null_marker = null_marker
        self.delimiter = delimiter
        self.logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        if hasattr(self.destination, 'write'):
            return getattr(self.destination, 'name', '<stream>')
        return 'stdout' if str(self.destination) == '-' else str(self.destination)

    def write_rows(self, column_names: List[str], rows: Iterable[Row]) -> int:
        if hasattr(self.destination, 'write'):
            return self._write(self.destination, column_names, rows)
        if str(self.destination) == '-':
            return self._write(sys.stdout, column_names, rows)

        try:
            with open(self.destination, 'w', encoding='utf-8', newline='') as stream:
                return self._write(stream, column_names, rows)
        except OSError as e:
            raise SinkError(f"Could not write CSV output {self.destination}: {e}", sink_name=self.name) from e

    def _write(self, stream: IO[str], column_names: List[str], rows: Iterable[Row]) -> int:
        writer = csv.writer(stream, delimiter=self.delimiter, lineterminator='\n')
        writer.writerow(column_names)
        count = 0
        for row in rows:
            writer.writerow([self.null_marker if cell is None else cell for cell in row])
            count += 1
        self.logger.info(f"Wrote {count} row(s) to {self.name}")
        return count


class ListRowSink(RowSinkInterface):
    """Keeps rows in memory; used by tests and interactive callers."""

    def __init__(self):
        self.column_names: Optional[List[str]] = None
        self.rows: List[Row] = []

    def write_rows(self, column_names: List[str], rows: Iterable[Row]) -> int:
        self.column_names = list(column_names)
        before = len(self.rows)
        self.rows.extend(rows)
        return len(self.rows) - before
