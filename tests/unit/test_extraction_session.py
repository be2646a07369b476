"""
Unit tests for the Extraction session lifecycle.

These tests verify that:
1. The session moves through INIT -> PARSED -> ROWS_SELECTED -> EMITTING -> DONE
2. Fatal errors leave the session FAILED with the document released
3. Early termination releases the document exactly once
4. A consumed session cannot be restarted
"""

import logging

import pytest

from xml_row_extractor.exceptions import (
    ExtractionStateError,
    SelectorError,
    ValidationError,
    XMLParsingError,
)
from xml_row_extractor.extraction.session import Extraction
from xml_row_extractor.models import CellNoticeMode, ExtractionConfig, ExtractionState, NoticeKind
from xml_row_extractor.parsing.document_builder import DocumentContextBuilder


class TestExtractionLifecycle:
    """Test suite for the session state machine."""

    def test_new_session_is_idle(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name"])
        assert extraction.state is ExtractionState.INIT
        assert extraction.rows_emitted == 0

    def test_open_selects_rows_without_emitting(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name", "age"]).open()
        assert extraction.state is ExtractionState.ROWS_SELECTED
        assert extraction.row_count == 2
        assert extraction.rows_emitted == 0
        extraction.close()

    def test_full_consumption(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name", "age"]).open()

        first = next(iter(extraction))
        assert first == ("A", None)
        assert extraction.state is ExtractionState.EMITTING

        assert list(extraction) == [("B", "5")]
        assert extraction.state is ExtractionState.DONE
        assert extraction.rows_emitted == 2
        assert extraction._document is None, "Document must be released after the last row"
        assert extraction.processing_time_seconds >= 0

    def test_iterating_before_open_is_rejected(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name"])
        with pytest.raises(ExtractionStateError):
            iter(extraction)

    def test_consumed_extraction_cannot_restart(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name"]).open()
        list(extraction)
        with pytest.raises(ExtractionStateError, match="cannot be restarted"):
            list(extraction)

    def test_open_twice_is_rejected(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name"]).open()
        with pytest.raises(ExtractionStateError):
            extraction.open()
        extraction.close()

    def test_zero_rows_completes_immediately(self, items_xml):
        extraction = Extraction(items_xml, "//missing", ["name"]).open()
        assert list(extraction) == []
        assert extraction.state is ExtractionState.DONE
        assert extraction._document is None


class TestEarlyTermination:
    """Test suite for callers that stop before the last row."""

    def test_close_after_partial_consumption(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name"]).open()
        next(extraction)
        extraction.close()

        assert extraction.state is ExtractionState.DONE
        assert extraction._document is None
        with pytest.raises(ExtractionStateError):
            next(iter(extraction))

    def test_close_before_iteration(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name"]).open()
        extraction.close()
        assert extraction.state is ExtractionState.DONE
        assert extraction._document is None
        assert list(extraction) == []

    def test_close_is_idempotent(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name"]).open()
        extraction.close()
        extraction.close()
        assert extraction.state is ExtractionState.DONE

    def test_context_manager_releases_on_break(self, items_xml):
        with Extraction(items_xml, "//item", ["name"]) as extraction:
            for row in extraction:
                assert row == ("A",)
                break
        assert extraction.state is ExtractionState.DONE
        assert extraction._document is None

    def test_context_manager_releases_on_error(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name"])
        with pytest.raises(RuntimeError):
            with extraction:
                next(extraction)
                raise RuntimeError("consumer failed")
        assert extraction._document is None


class TestFatalErrors:
    """Test suite for errors that prevent any row from being produced."""

    def test_malformed_xml_fails_the_session(self):
        extraction = Extraction(b"<root><item></root>", "//item", ["name"], source_name="broken.xml")
        with pytest.raises(XMLParsingError) as exc_info:
            extraction.open()
        assert exc_info.value.source_name == "broken.xml"
        assert extraction.state is ExtractionState.FAILED
        assert extraction._document is None
        with pytest.raises(ExtractionStateError):
            iter(extraction)

    def test_invalid_row_selector_fails_after_parsing(self, items_xml):
        extraction = Extraction(items_xml, "//item[", ["name"])
        with pytest.raises(SelectorError):
            extraction.open()
        assert extraction.state is ExtractionState.FAILED

    def test_with_statement_propagates_open_failure(self):
        with pytest.raises(XMLParsingError):
            with Extraction(b"", "//item", ["name"]):
                pass

    @pytest.mark.parametrize("row_selector", ["", "  ", None])
    def test_row_selector_is_validated_up_front(self, items_xml, row_selector):
        with pytest.raises(ValidationError):
            Extraction(items_xml, row_selector, ["name"])

    def test_column_names_must_match_selectors(self, items_xml):
        with pytest.raises(ValidationError, match="Expected 2 column names"):
            Extraction(items_xml, "//item", ["name", "age"], column_names=["only_one"])


class TestSessionNotices:
    """Test suite for notices surfaced through the session."""

    def test_notice_handler_receives_notices(self, items_xml):
        received = []
        extraction = Extraction(items_xml, "//missing", ["name"], notice_handler=received.append).open()
        list(extraction)
        assert [notice.kind for notice in received] == [NoticeKind.NO_ROWS]
        assert extraction.notices == received

    def test_notices_do_not_change_rows(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name", "count(age)"]).open()
        assert list(extraction) == [("A", None), ("B", None)]
        assert [notice.row_index for notice in extraction.notices] == [0, 1]

    def test_summary_mode_reports_once(self, items_xml):
        config = ExtractionConfig(cell_notice_mode=CellNoticeMode.SUMMARY)
        extraction = Extraction(items_xml, "//item", ["name", "count(age)"], config=config).open()
        rows = list(extraction)

        assert rows == [("A", None), ("B", None)]
        assert [notice.kind for notice in extraction.notices] == [NoticeKind.CELLS_ABSENT_SUMMARY]
        assert "2 cell(s)" in extraction.notices[0].message

    def test_no_rows_is_logged_as_warning(self, items_xml, caplog):
        with caplog.at_level(logging.WARNING, logger="xml_row_extractor"):
            list(Extraction(items_xml, "//missing", ["name"]).open())
        assert "Failed to find nodes using '//missing'" in caplog.text

    def test_absent_cell_count(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name", "age"]).open()
        list(extraction)
        assert extraction.absent_cell_count == 1

    def test_output_column_names_default_to_selectors(self, items_xml):
        extraction = Extraction(items_xml, "//item", ["name", "age"])
        assert extraction.output_column_names == ["name", "age"]
        named = Extraction(items_xml, "//item", ["name", "age"], column_names=["n", "a"])
        assert named.output_column_names == ["n", "a"]


class TestDocumentBuilding:
    """Test suite for the hand-off between the session and the document builder."""

    def test_open_builds_through_the_document_builder(self, monkeypatch, items_xml):
        calls = []
        original_build = DocumentContextBuilder.build

        def recording_build(builder, *args, **kwargs):
            calls.append(args)
            return original_build(builder, *args, **kwargs)

        monkeypatch.setattr(DocumentContextBuilder, "build", recording_build)
        extraction = Extraction(items_xml, "//item", ["name"], source_name="items.xml").open()

        assert calls == [(items_xml, "//item", "items.xml")]
        assert list(extraction) == [("A",), ("B",)]

    def test_parsed_state_precedes_row_selection(self, monkeypatch, items_xml):
        extraction = Extraction(items_xml, "//item", ["name"])
        states = []
        original_select_rows = DocumentContextBuilder.select_rows

        def recording_select_rows(builder, *args, **kwargs):
            states.append((extraction.state, extraction._xml_source))
            return original_select_rows(builder, *args, **kwargs)

        monkeypatch.setattr(DocumentContextBuilder, "select_rows", recording_select_rows)
        extraction.open()

        assert states == [(ExtractionState.PARSED, None)]
        assert extraction.state is ExtractionState.ROWS_SELECTED
        extraction.close()

    def test_summary_is_flushed_on_early_close(self, items_xml):
        config = ExtractionConfig(cell_notice_mode=CellNoticeMode.SUMMARY)
        extraction = Extraction(items_xml, "//item", ["name", "count(age)"], config=config).open()

        assert next(extraction) == ("A", None)
        extraction.close()

        assert [notice.kind for notice in extraction.notices] == [NoticeKind.CELLS_ABSENT_SUMMARY]
        assert "1 cell(s)" in extraction.notices[0].message

    def test_summary_is_flushed_once(self, items_xml):
        config = ExtractionConfig(cell_notice_mode=CellNoticeMode.SUMMARY)
        extraction = Extraction(items_xml, "//item", ["count(age)"], config=config).open()
        list(extraction)
        extraction.close()
        assert len(extraction.notices) == 1
