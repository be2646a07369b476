"""
Document context builder for row extraction.

This module parses raw XML into an lxml tree and evaluates the row selector
against it, producing the node-set that drives row extraction. Parsing
failures and broken row selectors are the only fatal conditions of an
extraction; both are raised from here before any row exists.
"""

import logging

from typing import Any, Callable, Dict, List, Optional, Union

from lxml import etree

from ..interfaces import DocumentBuilderInterface
from ..exceptions import SelectorError, ValidationError, XMLParsingError
from ..models import ExtractionConfig, NoticeKind, ParsedDocument
from ..notices import NoticeCollector


# Row selectors addressing the document node itself
DOCUMENT_NODE_SELECTORS = ('/', '/.', '/self::node()')


class DocumentContextBuilder(DocumentBuilderInterface):
    """
    Builds a ParsedDocument from raw XML and a row selector.

    The parser is strict: there is no recovery mode, so a document that is not
    well-formed never yields a partial tree. Entity resolution and network
    access are disabled.

    Evaluation contexts:
    - The row selector is evaluated with the root element as context node, so
      both absolute ("//item") and relative ("item") row selectors work.
    - Column selectors are later evaluated with each row node as context node
      (see RowExtractor).
    """

    def __init__(self, config: Optional[ExtractionConfig] = None,
                 notices: Optional[NoticeCollector] = None):
        """
        Initialize the builder.

        Args:
            config: Extraction configuration (namespaces, huge_tree)
            notices: Collector receiving advisory notices (zero rows etc.)
        """
        self.config = config or ExtractionConfig()
        self.notices = notices or NoticeCollector(self.config.cell_notice_mode, self.config.max_notices)
        self.logger = logging.getLogger(__name__)

        # Performance tracking
        self.parse_count = 0
        self.rows_selected = 0

    def build(self, xml_source: Union[bytes, str], row_selector: str, source_name: Optional[str] = None,
              on_parsed: Optional[Callable[[Any], None]] = None) -> ParsedDocument:
        """
        Parse XML content and select the row nodes.

        Args:
            xml_source: Raw XML content as bytes or text
            row_selector: XPath expression selecting the row nodes
            source_name: Optional name of the source, used in errors
            on_parsed: Optional callback receiving the root element once parsing
                succeeded and before the row selector is evaluated

        Returns:
            ParsedDocument holding the tree and the row node-set

        Raises:
            ValidationError: If the row selector is empty
            XMLParsingError: If XML is malformed or cannot be parsed
            SelectorError: If the row selector cannot be compiled or evaluated
        """
        validate_row_selector(row_selector, source_name)

        root = self.parse(xml_source, source_name)
        if on_parsed is not None:
            on_parsed(root)
        row_nodes = self.select_rows(root, row_selector, source_name)

        return ParsedDocument(
            tree=root.getroottree(),
            root=root,
            row_selector=row_selector,
            row_nodes=row_nodes,
            source_name=source_name,
        )

    def parse(self, xml_source: Union[bytes, str], source_name: Optional[str] = None):
        """
        Parse XML content into an lxml element tree.

        Args:
            xml_source: Raw XML content as bytes or text
            source_name: Optional name of the source, used in errors

        Returns:
            Root element of the parsed document

        Raises:
            XMLParsingError: If the content is empty or not well-formed XML
        """
        if xml_source is None:
            raise XMLParsingError("XML content is empty or None", source_name=source_name)
        if not isinstance(xml_source, (bytes, str)):
            raise XMLParsingError(f"Unsupported XML source type: {type(xml_source).__name__}",
                                  source_name=source_name)
        if not xml_source.strip():
            raise XMLParsingError("XML content is empty or None", source_name=source_name)

        self.parse_count += 1

        if isinstance(xml_source, str):
            # Text was already decoded; any encoding declaration inside it is stale.
            data = self._clean_xml_content(xml_source).encode('utf-8')
            parser = self._new_parser(encoding='utf-8')
        else:
            data = xml_source
            parser = self._new_parser()

        try:
            root = etree.fromstring(data, parser)
        except etree.XMLSyntaxError as e:
            error_msg = f"XML syntax error: {e}"
            self.logger.error(f"{error_msg} (source: {source_name or 'inline'})")
            raise XMLParsingError(error_msg, xml_source, source_name) from e
        except ValueError as e:
            error_msg = f"Failed to parse XML: {e}"
            self.logger.error(f"{error_msg} (source: {source_name or 'inline'})")
            raise XMLParsingError(error_msg, xml_source, source_name) from e

        if root is None:
            raise XMLParsingError("XML document has no root element", xml_source, source_name)

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Parsed XML document with root <{etree.QName(root).localname}>")
        return root

    def select_rows(self, root, row_selector: str, source_name: Optional[str] = None) -> List[Any]:
        """
        Evaluate the row selector with the root element as context node.

        Args:
            root: Root element of the parsed document
            row_selector: XPath expression selecting the row nodes
            source_name: Optional name of the source, used in errors

        Returns:
            Matched nodes in document order; empty when nothing matched

        Raises:
            SelectorError: If the row selector cannot be compiled or evaluated
        """
        xpath = compile_selector(row_selector, self.config.namespaces, source_name=source_name)

        try:
            result = xpath(root)
        except etree.XPathError as e:
            error_msg = f"Failed to evaluate row selector '{row_selector}': {e}"
            self.logger.error(error_msg)
            raise SelectorError(error_msg, selector=row_selector, source_name=source_name) from e

        if not isinstance(result, list):
            self.notices.notice(
                NoticeKind.ROW_SELECTOR_NOT_NODESET,
                f"Row selector '{row_selector}' returned a {type(result).__name__}, not a node-set; no rows selected",
                selector=row_selector,
            )
            return []

        if not result:
            message = f"Failed to find nodes using '{row_selector}'"
            if row_selector.strip() in DOCUMENT_NODE_SELECTORS:
                # lxml never returns the document node from an XPath evaluation
                message += "; the document node cannot be a row, use '/*' to select the root element"
            self.notices.notice(NoticeKind.NO_ROWS, message, selector=row_selector)
            return []

        self.rows_selected += len(result)
        self.logger.debug(f"Row selector '{row_selector}' matched {len(result)} node(s)")
        return result

    def _new_parser(self, encoding: Optional[str] = None) -> etree.XMLParser:
        """Create a fresh strict parser; parsers are never shared between calls."""
        return etree.XMLParser(
            recover=False,
            strip_cdata=False,  # Preserve CDATA sections
            resolve_entities=False,  # Security: don't resolve external entities
            no_network=True,  # Security: disable network access
            huge_tree=self.config.huge_tree,
            encoding=encoding,
        )

    def _clean_xml_content(self, xml_content: str) -> str:
        """
        Remove byte order marks and hidden leading characters from decoded text.

        Args:
            xml_content: Raw XML content

        Returns:
            Cleaned XML content
        """
        if xml_content.startswith('\ufeff'):
            xml_content = xml_content[1:]
            self.logger.debug("Removed BOM from XML content")

        # BOM decoded with the wrong codec shows up as visible characters
        if xml_content.startswith('ï»¿'):
            xml_content = xml_content[3:]
            self.logger.debug("Removed visible UTF-8 BOM characters from XML content")

        while xml_content and ord(xml_content[0]) < 32 and xml_content[0] not in '\t\n\r':
            xml_content = xml_content[1:]
            self.logger.debug("Removed hidden leading character")

        return xml_content.strip()

    def get_performance_stats(self) -> Dict[str, Any]:
        """
        Get builder statistics.

        Returns:
            Dictionary containing parse and selection counters
        """
        return {
            'parse_count': self.parse_count,
            'rows_selected': self.rows_selected,
            'namespaces': sorted((self.config.namespaces or {}).keys()),
        }


def validate_row_selector(row_selector: str, source_name: Optional[str] = None) -> None:
    """
    Check that the row selector is a non-empty string.

    Raises:
        ValidationError: If it is not
    """
    if not isinstance(row_selector, str) or not row_selector.strip():
        raise ValidationError("row selector must be a non-empty string", source_name)


def compile_selector(selector: str, namespaces: Optional[Dict[str, str]] = None,
                     column_index: Optional[int] = None, source_name: Optional[str] = None) -> etree.XPath:
    """
    Compile an XPath 1.0 selector.

    Args:
        selector: XPath expression
        namespaces: Optional prefix to URI mapping
        column_index: Column position, None for the row selector
        source_name: Optional name of the source, used in errors

    Returns:
        Compiled lxml XPath callable

    Raises:
        SelectorError: If the expression is not valid XPath
    """
    if not isinstance(selector, str) or not selector.strip():
        raise SelectorError("selector must be a non-empty string", selector=selector,
                            column_index=column_index, source_name=source_name)
    try:
        return etree.XPath(selector, namespaces=namespaces or None, smart_strings=True)
    except etree.XPathError as e:
        kind = "row selector" if column_index is None else f"column selector {column_index}"
        raise SelectorError(f"Invalid {kind} '{selector}': {e}", selector=selector,
                            column_index=column_index, source_name=source_name) from e
