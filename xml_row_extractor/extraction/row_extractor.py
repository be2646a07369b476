"""
Row/column extraction engine.

Evaluates an ordered list of column selectors relative to each row node of a
parsed document and yields one tuple of optional text values per row node.

Cell rules:
- The first node matched by a column selector wins; later matches are ignored.
- A selector that fails to compile, fails to evaluate, matches nothing, or
  whose first node has no content produces an absent cell (None).
- A cell failure never affects other cells, other rows or the row count.
"""

import logging

from typing import Any, Iterator, List, Optional, Sequence

from lxml import etree

from ..interfaces import RowExtractorInterface
from ..exceptions import SelectorError, ValidationError
from ..models import Cell, ExtractionConfig, NoticeKind, ParsedDocument, Row
from ..notices import NoticeCollector
from ..parsing.document_builder import compile_selector
from ..utils import StringUtils


# XPath string-value of a node: descendant text only, no comments or PIs
_STRING_VALUE = etree.XPath("string()")

# Column selectors answered from a non-element row node's own content (whitespace ignored)
SELF_SELECTORS = ('.', 'string(.)', 'self::node()')

# lxml models these as _Element subclasses but rejects them as XPath context nodes
_NON_CONTEXT_NODES = (etree._Comment, etree._ProcessingInstruction, etree._Entity)


class RowExtractor(RowExtractorInterface):
    """
    Extracts rows of optional text values from row nodes.

    Column selectors are compiled once, when the extractor is created. A
    selector that does not compile blanks its whole column; the extraction
    carries on with the remaining columns.
    """

    def __init__(self, column_selectors: Sequence[str], config: Optional[ExtractionConfig] = None,
                 notices: Optional[NoticeCollector] = None):
        """
        Initialize the extractor and compile the column selectors.

        Args:
            column_selectors: XPath expressions evaluated relative to each row node
            config: Extraction configuration
            notices: Collector receiving per-cell notices

        Raises:
            ValidationError: If column_selectors is not a sequence of strings
        """
        self.column_selectors: List[str] = validate_column_selectors(column_selectors)

        self.config = config or ExtractionConfig()
        self.notices = notices or NoticeCollector(self.config.cell_notice_mode, self.config.max_notices)
        self.logger = logging.getLogger(__name__)

        self._compiled = [self._compile_column(index, selector)
                          for index, selector in enumerate(self.column_selectors)]

        # Performance tracking
        self.rows_extracted = 0
        self.cells_absent = 0

    @property
    def column_count(self) -> int:
        return len(self.column_selectors)

    def extract_all(self, document: ParsedDocument) -> Iterator[Row]:
        """
        Lazily extract one row per row node, in node-set order.

        Args:
            document: Parsed document with its row node-set

        Yields:
            One row per row node
        """
        for row_index, row_node in enumerate(document.row_nodes):
            yield self.extract_row(row_node, row_index)

    def extract_row(self, row_node: Any, row_index: int = 0) -> Row:
        """
        Evaluate every column selector relative to one row node.

        Args:
            row_node: Node used as the context node for the column selectors
            row_index: Position of the row, used in notices

        Returns:
            Tuple with exactly one cell per column selector
        """
        self.rows_extracted += 1

        if not is_context_element(row_node):
            # Attribute values, text nodes, comments and processing instructions
            # cannot serve as an XPath context node.
            self.notices.notice(
                NoticeKind.ROW_NODE_NOT_ELEMENT,
                f"Row node is a {type(row_node).__name__}, not an element; "
                f"only self selectors ({', '.join(SELF_SELECTORS)}) yield values",
                row_index=row_index,
            )
            return tuple(self._self_cell(row_node, column_index)
                         for column_index in range(self.column_count))

        row = tuple(self._extract_cell(row_node, row_index, column_index)
                    for column_index in range(self.column_count))
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Row {row_index}: {row}")
        return row

    def _self_cell(self, row_node, column_index: int) -> Cell:
        """Content of a non-element row node for '.' and 'string(.)', absent otherwise."""
        value = None
        if self._compiled[column_index] is not None and \
                ''.join(self.column_selectors[column_index].split()) in SELF_SELECTORS:
            value = self._finish_value(node_text(row_node))
        if value is None:
            self.cells_absent += 1
        return value

    def _extract_cell(self, row_node, row_index: int, column_index: int) -> Cell:
        xpath = self._compiled[column_index]
        if xpath is None:
            self.cells_absent += 1
            return None

        selector = self.column_selectors[column_index]
        try:
            result = xpath(row_node)
        except (etree.XPathError, ValueError) as e:
            # ValueError: lxml rejected the context node
            self.notices.notice(
                NoticeKind.CELL_EVALUATION_FAILED,
                f"Failed to evaluate '{selector}': {e}",
                row_index=row_index, column_index=column_index, selector=selector,
            )
            self.cells_absent += 1
            return None

        value = self._result_text(result, row_index, column_index, selector)
        value = self._finish_value(value)
        if value is None:
            self.cells_absent += 1
        return value

    def _result_text(self, result, row_index: int, column_index: int, selector: str) -> Cell:
        """Turn an XPath result into the text of its first node."""
        if isinstance(result, list):
            if not result:
                return None
            return node_text(result[0])

        if self.config.allow_scalar_results:
            return scalar_text(result)

        self.notices.notice(
            NoticeKind.CELL_NOT_NODESET,
            f"'{selector}' returned a {type(result).__name__}, not a node-set",
            row_index=row_index, column_index=column_index, selector=selector,
        )
        return None

    def _finish_value(self, value: Cell) -> Cell:
        if value is None:
            return None
        if self.config.strip_whitespace:
            value = value.strip()
        if self.config.empty_as_absent and not StringUtils.safe_string_check(value):
            return None
        return value

    def _compile_column(self, index: int, selector: str) -> Optional[etree.XPath]:
        try:
            return compile_selector(selector, self.config.namespaces, column_index=index)
        except SelectorError as e:
            self.notices.notice(
                NoticeKind.COLUMN_SELECTOR_INVALID,
                f"{e}; column will be absent in every row",
                column_index=index, selector=selector,
            )
            return None


def node_text(node) -> Cell:
    """
    Return the text content of an XPath result node.

    Elements yield the concatenation of all descendant text, attribute and
    text results yield their value, comments and processing instructions
    yield their text. Returns None for nodes without content.
    """
    if isinstance(node, str):
        # Smart strings from text() and @attr selectors
        return str(node)
    if isinstance(node, (etree._Comment, etree._ProcessingInstruction)):
        return node.text
    if isinstance(node, etree._Entity):
        return node.text
    if isinstance(node, etree._Element):
        return str(_STRING_VALUE(node))
    return None


def is_context_element(node) -> bool:
    """Check that node can be used as the context node of a column selector."""
    return isinstance(node, etree._Element) and not isinstance(node, _NON_CONTEXT_NODES)


def scalar_text(value) -> Cell:
    """Render a string, number or boolean XPath result as text."""
    if value is None:
        return None
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float):
        if value != value:
            return 'NaN'
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def validate_column_selectors(column_selectors) -> List[str]:
    """
    Check that column_selectors is a sequence of strings and return it as a list.

    An empty sequence is allowed and produces empty rows.

    Raises:
        ValidationError: If column_selectors is a plain string or holds non-strings
    """
    if column_selectors is None or isinstance(column_selectors, (str, bytes)):
        raise ValidationError("column selectors must be a sequence of strings")
    selectors = list(column_selectors)
    for index, selector in enumerate(selectors):
        if not isinstance(selector, str):
            raise ValidationError(f"column selector {index} must be a string, got {type(selector).__name__}")
    return selectors
