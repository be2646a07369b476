"""
Extraction session: one pull-based, single-pass extraction call.

An Extraction owns the parsed document for its whole lifetime and releases it
exactly once, whichever comes first:
- the last row has been emitted,
- the caller closes it (directly, through ``with`` or by abandoning a
  partially consumed iteration),
- parsing or the row selector fails while opening.

State machine::

    INIT -> PARSED -> ROWS_SELECTED -> EMITTING -> DONE
    INIT/PARSED -> FAILED
"""

import logging
import time

from typing import Iterator, List, Optional, Sequence, Union

from lxml import etree

from ..exceptions import ExtractionStateError, ValidationError
from ..models import ExtractionConfig, ExtractionState, Notice, ParsedDocument, Row
from ..notices import NoticeCollector, NoticeHandler
from ..parsing.document_builder import DocumentContextBuilder, validate_row_selector
from .row_extractor import RowExtractor, validate_column_selectors


class Extraction:
    """
    Lazy sequence of rows extracted from one XML document.

    Usage::

        with Extraction(xml, "//item", ["name", "age"]).open() as rows:
            for row in rows:
                ...

    The object is its own iterator and cannot be restarted once iteration
    has begun.
    """

    def __init__(self, xml_source: Union[bytes, str], row_selector: str, column_selectors: Sequence[str],
                 config: Optional[ExtractionConfig] = None, notice_handler: Optional[NoticeHandler] = None,
                 column_names: Optional[Sequence[str]] = None, source_name: Optional[str] = None):
        """
        Prepare an extraction; nothing is parsed until open() is called.

        Args:
            xml_source: Raw XML content as bytes or text
            row_selector: XPath expression selecting the row nodes
            column_selectors: XPath expressions evaluated relative to each row node
            config: Extraction configuration
            notice_handler: Optional callback receiving every notice as it is emitted
            column_names: Optional output column names, one per column selector
            source_name: Optional name of the source (file path), used in errors and logs

        Raises:
            ValidationError: If the selectors or column names are malformed
        """
        validate_row_selector(row_selector, source_name)
        self.column_selectors: List[str] = validate_column_selectors(column_selectors)
        if column_names is not None:
            column_names = [str(name) for name in column_names]
            if len(column_names) != len(self.column_selectors):
                raise ValidationError(
                    f"Expected {len(self.column_selectors)} column names, got {len(column_names)}", source_name)
        self.column_names: Optional[List[str]] = column_names
        self.row_selector = row_selector
        self.source_name = source_name
        self.config = config or ExtractionConfig()
        self.logger = logging.getLogger(__name__)

        self._notices = NoticeCollector(self.config.cell_notice_mode, self.config.max_notices, notice_handler)
        self._xml_source = xml_source
        self._document: Optional[ParsedDocument] = None
        self._extractor: Optional[RowExtractor] = None
        self._rows: Optional[Iterator[Row]] = None
        self._released = False
        self._started_at: Optional[float] = None

        self.state = ExtractionState.INIT
        self.rows_emitted = 0
        self.row_count = 0
        self.processing_time_seconds = 0.0

    def open(self) -> 'Extraction':
        """
        Parse the document and select the row nodes.

        Returns:
            self, ready to be iterated

        Raises:
            XMLParsingError: If the XML is malformed; the extraction is FAILED
            SelectorError: If the row selector cannot be evaluated; the extraction is FAILED
            ExtractionStateError: If the extraction was already opened
        """
        if self.state is not ExtractionState.INIT:
            raise ExtractionStateError(f"Extraction cannot be opened in state {self.state.value}", self.source_name)

        self._started_at = time.perf_counter()
        builder = DocumentContextBuilder(self.config, self._notices)
        try:
            self._document = builder.build(self._xml_source, self.row_selector, self.source_name,
                                           on_parsed=self._on_parsed)
            self.row_count = self._document.row_count
            self.state = ExtractionState.ROWS_SELECTED

            self._extractor = RowExtractor(self.column_selectors, self.config, self._notices)
        except Exception:
            self.state = ExtractionState.FAILED
            self._release()
            raise

        self._rows = self._emit()
        self.logger.info(f"Selected {self.row_count} row(s) with '{self.row_selector}' "
                         f"from {self.source_name or 'inline XML'}")
        return self

    @property
    def notices(self) -> List[Notice]:
        return self._notices.notices

    @property
    def output_column_names(self) -> List[str]:
        return list(self.column_names) if self.column_names else list(self.column_selectors)

    @property
    def absent_cell_count(self) -> int:
        return self._extractor.cells_absent if self._extractor else 0

    def __iter__(self) -> 'Extraction':
        if self.state is ExtractionState.INIT:
            raise ExtractionStateError("Extraction must be opened before iterating", self.source_name)
        if self.state.is_terminal and self.rows_emitted:
            raise ExtractionStateError("Extraction has already been consumed and cannot be restarted",
                                       self.source_name)
        if self.state is ExtractionState.FAILED:
            raise ExtractionStateError("Extraction failed and has no rows", self.source_name)
        return self

    def __next__(self) -> Row:
        if self._rows is None:
            raise ExtractionStateError("Extraction must be opened before iterating", self.source_name)
        return next(self._rows)

    def close(self) -> None:
        """Stop the extraction early and release the document."""
        if self._rows is not None:
            self._rows.close()
        if not self.state.is_terminal:
            self.state = ExtractionState.DONE
        self._release()

    def __enter__(self) -> 'Extraction':
        if self.state is ExtractionState.INIT:
            self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _emit(self) -> Iterator[Row]:
        try:
            self.state = ExtractionState.EMITTING
            for row in self._extractor.extract_all(self._document):
                self.rows_emitted += 1
                yield row
            self.state = ExtractionState.DONE
            self.logger.debug(f"Extraction complete: {self.rows_emitted} row(s), "
                              f"{self.absent_cell_count} absent cell(s)")
        finally:
            if not self.state.is_terminal:
                # Caller stopped early
                self.state = ExtractionState.DONE
            self._release()

    def _on_parsed(self, root) -> None:
        self._xml_source = None
        self.state = ExtractionState.PARSED

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        # Suppressed cell notices are reported even when the caller stopped early
        self._notices.flush_summary()
        self._xml_source = None
        self._document = None
        # Error messages from this call's parser and selectors live in a per-thread log
        etree.clear_error_log()
        if self._started_at is not None:
            self.processing_time_seconds = time.perf_counter() - self._started_at
        self.logger.debug(f"Released document for {self.source_name or 'inline XML'}")
