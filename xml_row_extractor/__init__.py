"""
XML Row Extractor

Turns an XML document, a row selector and a list of column selectors into a
lazy table of optional text values, with missing matches represented as
absent cells rather than errors.
"""

__version__ = "1.0.0"

# Import core models and entry points for easy access
from .api import extract, extract_file, extract_table

from .models import (
    Cell,
    Row,
    CellNoticeMode,
    ExtractionConfig,
    ExtractionJob,
    ExtractionResult,
    ExtractionState,
    Notice,
    NoticeKind,
    ParsedDocument,
)

from .extraction import Extraction, RowExtractor
from .parsing import DocumentContextBuilder

from .exceptions import (
    XMLExtractionError,
    XMLParsingError,
    SelectorError,
    ValidationError,
    ConfigurationError,
    ExtractionStateError,
    SinkError,
    DatabaseConnectionError,
)

__all__ = [
    # Entry points
    "extract",
    "extract_file",
    "extract_table",

    # Core models
    "Cell",
    "Row",
    "CellNoticeMode",
    "ExtractionConfig",
    "ExtractionJob",
    "ExtractionResult",
    "ExtractionState",
    "Notice",
    "NoticeKind",
    "ParsedDocument",

    # Components
    "Extraction",
    "RowExtractor",
    "DocumentContextBuilder",

    # Exceptions
    "XMLExtractionError",
    "XMLParsingError",
    "SelectorError",
    "ValidationError",
    "ConfigurationError",
    "ExtractionStateError",
    "SinkError",
    "DatabaseConnectionError",
]
