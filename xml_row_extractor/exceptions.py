"""
Custom exceptions for the XML Row Extractor.

This module defines specific exception types for the fatal error conditions
that can occur while turning an XML document into rows. Recoverable problems
(a column selector that fails for one cell, a row selector that matches
nothing) are never raised; they are reported as notices instead.
"""

from typing import Optional


class XMLExtractionError(Exception):
    """Base exception for all XML row extraction related errors."""

    def __init__(self, message: str, source_name: Optional[str] = None):
        """
        Initialize XML extraction error.

        Args:
            message: Error description
            source_name: Optional name of the XML source (file path, record id)
        """
        super().__init__(message)
        self.source_name = source_name


class XMLParsingError(XMLExtractionError):
    """Exception raised when the XML source is unreadable or not well-formed."""

    def __init__(self, message: str, xml_content=None, source_name: Optional[str] = None):
        """
        Initialize XML parsing error.

        Args:
            message: Error description
            xml_content: Optional XML content that failed to parse (truncated for logging)
            source_name: Optional name of the XML source
        """
        super().__init__(message, source_name)
        if isinstance(xml_content, bytes):
            xml_content = xml_content.decode('utf-8', errors='replace')
        # Store truncated XML content for debugging (first 500 chars)
        self.xml_content = xml_content[:500] + "..." if xml_content and len(xml_content) > 500 else xml_content


class SelectorError(XMLExtractionError):
    """Exception raised when an XPath selector cannot be compiled or evaluated."""

    def __init__(self, message: str, selector: Optional[str] = None,
                 column_index: Optional[int] = None, source_name: Optional[str] = None):
        """
        Initialize selector error.

        Args:
            message: Error description
            selector: The XPath expression that failed
            column_index: Position of the column selector, None for the row selector
            source_name: Optional name of the XML source
        """
        super().__init__(message, source_name)
        self.selector = selector
        self.column_index = column_index

    @property
    def is_row_selector(self) -> bool:
        return self.column_index is None


class ValidationError(XMLExtractionError):
    """Exception raised when extraction arguments are invalid."""
    pass


class ConfigurationError(XMLExtractionError):
    """Exception raised when configuration is invalid or missing."""
    pass


class ExtractionStateError(XMLExtractionError):
    """Exception raised when a finished extraction is used again."""
    pass


class SinkError(XMLExtractionError):
    """Exception raised when extracted rows cannot be written to a sink."""

    def __init__(self, message: str, sink_name: Optional[str] = None, rows_written: int = 0):
        """
        Initialize sink error.

        Args:
            message: Error description
            sink_name: Name of the sink (file path or table name)
            rows_written: Rows successfully written before the failure
        """
        super().__init__(message)
        self.sink_name = sink_name
        self.rows_written = rows_written


class DatabaseConnectionError(SinkError):
    """Exception raised when the database sink cannot connect."""
    pass
