"""
Public entry points for extracting rows from XML.

    >>> rows = extract(b"<root><item><name>A</name></item></root>", "//item", ["name"])
    >>> list(rows)
    [('A',)]

Fatal errors (XMLParsingError, SelectorError) are raised by the call itself,
before any row is produced. Everything else is reported through notices.
"""

from pathlib import Path
from typing import Optional, Sequence, Union

from .extraction.session import Extraction
from .models import ExtractionConfig, ExtractionResult
from .notices import NoticeHandler
from .sources.xml_file import load_xml_file


def extract(xml_source: Union[bytes, str], row_selector: str, column_selectors: Sequence[str],
            config: Optional[ExtractionConfig] = None, notice_handler: Optional[NoticeHandler] = None,
            column_names: Optional[Sequence[str]] = None, source_name: Optional[str] = None) -> Extraction:
    """
    Extract rows of optional text values from an XML document.

    Args:
        xml_source: Fully materialized XML content (bytes or text)
        row_selector: XPath selecting the nodes that become rows
        column_selectors: XPath expressions evaluated relative to each row node
        config: Optional extraction configuration
        notice_handler: Optional callback receiving notices as they are emitted
        column_names: Optional output column names
        source_name: Optional source name used in logs and errors

    Returns:
        An opened Extraction yielding one tuple per row node

    Raises:
        XMLParsingError: If the XML is empty or not well-formed
        SelectorError: If the row selector cannot be evaluated
        ValidationError: If the arguments are malformed
    """
    return Extraction(xml_source, row_selector, column_selectors, config=config,
                      notice_handler=notice_handler, column_names=column_names,
                      source_name=source_name).open()


def extract_file(path: Union[str, Path], row_selector: str, column_selectors: Sequence[str],
                 config: Optional[ExtractionConfig] = None, notice_handler: Optional[NoticeHandler] = None,
                 column_names: Optional[Sequence[str]] = None) -> Extraction:
    """Read an XML file (or "-" for stdin) and extract rows from it."""
    content = load_xml_file(path)
    return extract(content, row_selector, column_selectors, config=config, notice_handler=notice_handler,
                   column_names=column_names, source_name=str(path))


def extract_table(xml_source: Union[bytes, str], row_selector: str, column_selectors: Sequence[str],
                  config: Optional[ExtractionConfig] = None, notice_handler: Optional[NoticeHandler] = None,
                  column_names: Optional[Sequence[str]] = None,
                  source_name: Optional[str] = None) -> ExtractionResult:
    """
    Extract and materialize all rows at once.

    Returns:
        ExtractionResult with rows, notices and timing
    """
    with extract(xml_source, row_selector, column_selectors, config=config, notice_handler=notice_handler,
                 column_names=column_names, source_name=source_name) as extraction:
        rows = list(extraction)

    return ExtractionResult(
        column_selectors=list(extraction.column_selectors),
        rows=rows,
        notices=list(extraction.notices),
        column_names=extraction.column_names,
        processing_time_seconds=extraction.processing_time_seconds,
    )
