"""XML parsing and row selection components."""

from .document_builder import DocumentContextBuilder, compile_selector, validate_row_selector

__all__ = ['DocumentContextBuilder', 'compile_selector', 'validate_row_selector']
