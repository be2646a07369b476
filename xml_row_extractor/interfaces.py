"""
Abstract interfaces for the XML Row Extractor.

This module defines the contracts that the builder, extractor and sink
components implement, so callers can swap implementations (for example an
in-memory sink in tests and a database sink in production).
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, List, Union

from .models import ParsedDocument, Row


class DocumentBuilderInterface(ABC):
    """Abstract interface for document context building components."""

    @abstractmethod
    def build(self, xml_source: Union[bytes, str], row_selector: str) -> ParsedDocument:
        """
        Parse XML content and select the row nodes.

        Args:
            xml_source: Raw XML content as bytes or text
            row_selector: XPath expression selecting the row nodes

        Returns:
            ParsedDocument holding the tree and the row node-set

        Raises:
            XMLParsingError: If XML is malformed or cannot be parsed
            SelectorError: If the row selector cannot be evaluated
        """
        pass


class RowExtractorInterface(ABC):
    """Abstract interface for row/column extraction components."""

    @abstractmethod
    def extract_row(self, row_node: Any, row_index: int = 0) -> Row:
        """
        Evaluate every column selector relative to one row node.

        Args:
            row_node: Node the column selectors are evaluated against
            row_index: Position of the row, used in notices

        Returns:
            Tuple of optional text values, one per column selector
        """
        pass

    @abstractmethod
    def extract_all(self, document: ParsedDocument) -> Iterator[Row]:
        """
        Lazily extract one row per row node of a parsed document.

        Args:
            document: Parsed document with its row node-set

        Returns:
            Iterator yielding rows in node-set order
        """
        pass


class RowSinkInterface(ABC):
    """Abstract interface for components that persist or display rows."""

    @abstractmethod
    def write_rows(self, column_names: List[str], rows: Iterable[Row]) -> int:
        """
        Write rows to the sink.

        Args:
            column_names: Output column names, aligned with each row
            rows: Rows to write; consumed exactly once

        Returns:
            Number of rows written
        """
        pass
