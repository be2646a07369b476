"""
Core data models for the XML Row Extractor.

This module defines the primary data structures used throughout the system:
extraction configuration, parsed documents, notices, results and saved
extraction jobs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# One cell per column selector; None marks an absent cell.
Cell = Optional[str]
Row = Tuple[Cell, ...]


class NoticeKind(Enum):
    """Advisory conditions reported during an extraction."""
    NO_ROWS = "no_rows"
    ROW_SELECTOR_NOT_NODESET = "row_selector_not_nodeset"
    ROW_NODE_NOT_ELEMENT = "row_node_not_element"
    COLUMN_SELECTOR_INVALID = "column_selector_invalid"
    CELL_EVALUATION_FAILED = "cell_evaluation_failed"
    CELL_NOT_NODESET = "cell_not_nodeset"
    CELLS_ABSENT_SUMMARY = "cells_absent_summary"


class CellNoticeMode(Enum):
    """How per-cell evaluation problems are reported."""
    PER_CELL = "per_cell"
    SUMMARY = "summary"


class ExtractionState(Enum):
    """Lifecycle of a single extraction call."""
    INIT = "init"
    PARSED = "parsed"
    ROWS_SELECTED = "rows_selected"
    EMITTING = "emitting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExtractionState.DONE, ExtractionState.FAILED)


@dataclass(frozen=True)
class Notice:
    """
    Non-fatal, informational record about an extraction.

    Attributes:
        kind: Category of the notice
        message: Human readable description
        row_index: Index of the affected row, if the notice is about one row
        column_index: Index of the affected column selector, if any
        selector: XPath expression involved, if any
    """
    kind: NoticeKind
    message: str
    row_index: Optional[int] = None
    column_index: Optional[int] = None
    selector: Optional[str] = None

    def __str__(self) -> str:
        location = []
        if self.row_index is not None:
            location.append(f"row={self.row_index}")
        if self.column_index is not None:
            location.append(f"column={self.column_index}")
        suffix = f" ({', '.join(location)})" if location else ""
        return f"{self.kind.value}: {self.message}{suffix}"


@dataclass
class ExtractionConfig:
    """
    Configuration parameters for one extraction.

    Attributes:
        namespaces: Prefix to URI mapping made available to all selectors
        huge_tree: Allow lxml to parse very deep or very large documents
        strip_whitespace: Strip leading/trailing whitespace from cell text
        empty_as_absent: Treat an empty text content as an absent cell
        allow_scalar_results: Render string/number/boolean column results as text
            instead of treating them as absent
        cell_notice_mode: Report cell problems one by one or as a single summary
        max_notices: Upper bound on collected notices (0 = unlimited)
    """
    namespaces: Optional[Dict[str, str]] = None
    huge_tree: bool = False
    strip_whitespace: bool = False
    empty_as_absent: bool = False
    allow_scalar_results: bool = False
    cell_notice_mode: CellNoticeMode = CellNoticeMode.PER_CELL
    max_notices: int = 1000

    def __post_init__(self):
        """Validate extraction configuration and normalize the notice mode."""
        if isinstance(self.cell_notice_mode, str):
            try:
                self.cell_notice_mode = CellNoticeMode(self.cell_notice_mode.strip().lower())
            except ValueError:
                raise ValueError(f"Unknown cell_notice_mode: {self.cell_notice_mode}")
        if self.max_notices < 0:
            raise ValueError("max_notices cannot be negative")
        if self.namespaces is not None:
            for prefix, uri in self.namespaces.items():
                if not prefix or not uri:
                    raise ValueError("namespace prefixes and URIs cannot be empty")


@dataclass
class ParsedDocument:
    """
    A parsed XML document together with the row node-set selected from it.

    Attributes:
        tree: The lxml element tree; never mutated after parsing
        root: Root element, used as the context node for the row selector
        row_selector: The XPath expression that produced row_nodes
        row_nodes: Matched row nodes in document order
        source_name: Optional name of the XML source
    """
    tree: Any
    root: Any
    row_selector: str
    row_nodes: List[Any] = field(default_factory=list)
    source_name: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.row_nodes)


@dataclass
class ExtractionResult:
    """
    Materialized results of an extraction.

    Attributes:
        column_selectors: Column selectors in the order cells appear in each row
        rows: Extracted rows, one per matched row node
        notices: Advisory notices collected during the extraction
        column_names: Optional names for the columns (same length as column_selectors)
        processing_time_seconds: Time spent from parse to last row
    """
    column_selectors: List[str]
    rows: List[Row] = None
    notices: List[Notice] = None
    column_names: Optional[List[str]] = None
    processing_time_seconds: float = 0.0

    def __post_init__(self):
        """Initialize default values for mutable fields."""
        if self.rows is None:
            self.rows = []
        if self.notices is None:
            self.notices = []

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def absent_cell_count(self) -> int:
        return sum(1 for row in self.rows for cell in row if cell is None)

    def as_dicts(self) -> List[Dict[str, Cell]]:
        """
        Return rows as dictionaries keyed by column name.

        Column selectors are used as keys when no column names were given.
        """
        keys = self.column_names or self.column_selectors
        return [dict(zip(keys, row)) for row in self.rows]


@dataclass
class ExtractionJob:
    """
    A saved extraction request loaded from a JSON or YAML job file.

    Attributes:
        row_selector: XPath selecting the row nodes
        column_selectors: XPath expressions evaluated relative to each row node
        column_names: Optional output column names (defaults to the selectors)
        source_path: Optional path of the XML file to read
        namespaces: Optional prefix to URI mapping
        output_path: Optional CSV output path
        target_table: Optional database table receiving the rows
        null_marker: Text written for absent cells by text sinks
    """
    row_selector: str
    column_selectors: List[str]
    column_names: Optional[List[str]] = None
    source_path: Optional[str] = None
    namespaces: Optional[Dict[str, str]] = None
    output_path: Optional[str] = None
    target_table: Optional[str] = None
    null_marker: str = ""

    def __post_init__(self):
        """Validate job configuration."""
        if not self.row_selector or not self.row_selector.strip():
            raise ValueError("row_selector cannot be empty")
        if not self.column_selectors:
            raise ValueError("At least one column selector must be specified")
        if self.column_names is not None and len(self.column_names) != len(self.column_selectors):
            raise ValueError("column_names must have one entry per column selector")
        if self.output_path and self.target_table:
            raise ValueError("Specify either output_path or target_table, not both")

    @property
    def output_column_names(self) -> List[str]:
        return list(self.column_names) if self.column_names else list(self.column_selectors)
