"""
Notice collection for extractions.

Notices are the advisory channel of an extraction: they are logged, kept on
the extraction for the caller, and optionally forwarded to a callback. They
never change the shape of the result.
"""

import logging

from typing import Callable, List, Optional

from .models import CellNoticeMode, Notice, NoticeKind


NoticeHandler = Callable[[Notice], None]

# Row level conditions are worth a warning; cell level misses are routine.
_WARNING_KINDS = {
    NoticeKind.NO_ROWS,
    NoticeKind.ROW_SELECTOR_NOT_NODESET,
    NoticeKind.COLUMN_SELECTOR_INVALID,
    NoticeKind.CELLS_ABSENT_SUMMARY,
}


class NoticeCollector:
    """
    Collects notices for one extraction call.

    In summary mode, cell level notices are counted instead of recorded and a
    single CELLS_ABSENT_SUMMARY notice is emitted by flush_summary().
    """

    def __init__(self, cell_notice_mode: CellNoticeMode = CellNoticeMode.PER_CELL,
                 max_notices: int = 1000, handler: Optional[NoticeHandler] = None,
                 logger: logging.Logger = None):
        self.cell_notice_mode = cell_notice_mode
        self.max_notices = max_notices
        self.handler = handler
        self.logger = logger or logging.getLogger(__name__)
        self.notices: List[Notice] = []
        self.dropped = 0
        self._suppressed_cells = 0
        self._summary_columns = set()

    def add(self, notice: Notice) -> None:
        """Record a notice, log it and forward it to the handler."""
        if self._is_cell_notice(notice) and self.cell_notice_mode is CellNoticeMode.SUMMARY:
            self._suppressed_cells += 1
            if notice.column_index is not None:
                self._summary_columns.add(notice.column_index)
            return
        self._emit(notice)

    def notice(self, kind: NoticeKind, message: str, row_index: Optional[int] = None,
               column_index: Optional[int] = None, selector: Optional[str] = None) -> None:
        self.add(Notice(kind, message, row_index=row_index, column_index=column_index, selector=selector))

    def flush_summary(self) -> None:
        """Emit the aggregate notice for suppressed cell notices, if any."""
        if not self._suppressed_cells:
            return
        columns = ', '.join(str(index) for index in sorted(self._summary_columns))
        self._emit(Notice(
            NoticeKind.CELLS_ABSENT_SUMMARY,
            f"{self._suppressed_cells} cell(s) could not be evaluated; affected columns: {columns}"
        ))
        self._suppressed_cells = 0
        self._summary_columns.clear()

    def _emit(self, notice: Notice) -> None:
        level = logging.WARNING if notice.kind in _WARNING_KINDS else logging.INFO
        self.logger.log(level, str(notice))

        if self.max_notices and len(self.notices) >= self.max_notices:
            self.dropped += 1
        else:
            self.notices.append(notice)

        if self.handler is not None:
            self.handler(notice)

    @staticmethod
    def _is_cell_notice(notice: Notice) -> bool:
        return notice.kind in (NoticeKind.CELL_EVALUATION_FAILED, NoticeKind.CELL_NOT_NODESET,
                               NoticeKind.ROW_NODE_NOT_ELEMENT)
