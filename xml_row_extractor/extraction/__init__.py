"""Row/column extraction components."""

from .row_extractor import RowExtractor, node_text, validate_column_selectors
from .session import Extraction

__all__ = ['Extraction', 'RowExtractor', 'node_text', 'validate_column_selectors']
