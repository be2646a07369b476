"""
Integration tests for the command-line interface.

Runs main() in-process and checks exit codes, CSV output and the summary
line written to stderr.
"""

import csv
import io
import json

import pytest

from xml_row_extractor.cli import EXIT_EXTRACTION_FAILED, EXIT_OK, EXIT_USAGE, build_parser, main


@pytest.fixture
def items_file(tmp_path, items_xml):
    path = tmp_path / "items.xml"
    path.write_bytes(items_xml)
    return path


class TestCliExtraction:
    """Test suite for successful command-line extractions."""

    def test_csv_to_stdout(self, items_file, capsys):
        exit_code = main([str(items_file), "--rows", "//item", "--column", "name", "--column", "age"])

        captured = capsys.readouterr()
        assert exit_code == EXIT_OK
        assert captured.out == "name,age\nA,\nB,5\n"
        assert "Extracted 2 row(s)" in captured.err
        assert "1 absent cell(s)" in captured.err

    def test_column_names_and_null_marker(self, items_file, tmp_path):
        output = tmp_path / "items.csv"
        exit_code = main([str(items_file), "--rows", "//item",
                          "--column", "name", "--name", "item_name",
                          "--column", "age", "--name", "item_age",
                          "--null-marker", "NULL", "--output", str(output)])

        assert exit_code == EXIT_OK
        assert output.read_text(encoding="utf-8") == "item_name,item_age\nA,NULL\nB,5\n"

    def test_zero_rows_is_success(self, items_file, capsys):
        exit_code = main([str(items_file), "--rows", "//missing", "--column", "name"])

        captured = capsys.readouterr()
        assert exit_code == EXIT_OK
        assert captured.out == "name\n"
        assert "1 notice(s)" in captured.err

    def test_namespaces_on_command_line(self, samples_dir, capsys):
        exit_code = main([str(samples_dir / "feed.xml"), "--rows", "//a:entry",
                          "--namespace", "a=http://www.w3.org/2005/Atom", "--column", "a:title"])

        assert exit_code == EXIT_OK
        assert capsys.readouterr().out == "a:title\nFirst\nSecond\n"

    def test_strip_and_empty_flags(self, tmp_path, capsys):
        source = tmp_path / "spaces.xml"
        source.write_text("<r><i><v>  x  </v></i><i><v>   </v></i></r>", encoding="utf-8")

        exit_code = main([str(source), "--rows", "//i", "--column", "v",
                          "--strip-whitespace", "--empty-as-absent", "--null-marker", "-"])

        assert exit_code == EXIT_OK
        assert capsys.readouterr().out == "v\nx\n-\n"

    def test_scalar_results_flag(self, items_file, capsys):
        exit_code = main([str(items_file), "--rows", "//item", "--column", "count(*)",
                          "--allow-scalar-results"])

        assert exit_code == EXIT_OK
        assert capsys.readouterr().out == "count(*)\n1\n2\n"

    def test_stdin_source(self, monkeypatch, capsys, items_xml):
        monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(items_xml)))

        exit_code = main(["-", "--rows", "//item", "--column", "name"])

        assert exit_code == EXIT_OK
        assert capsys.readouterr().out == "name\nA\nB\n"


class TestCliJobs:
    """Test suite for job files combined with command-line arguments."""

    def test_json_job_with_output_override(self, samples_dir, tmp_path):
        output = tmp_path / "catalog.csv"

        exit_code = main(["--job", str(samples_dir / "catalog_job.json"), "--output", str(output)])

        assert exit_code == EXIT_OK
        with open(output, newline="", encoding="utf-8") as stream:
            rows = list(csv.reader(stream))
        assert rows == [
            ["book_id", "author", "title", "price"],
            ["bk101", "Gambardella, Matthew", "XML Developer's Guide", "44.95"],
            ["bk102", "Ralls, Kim", "Midnight Rain", ""],
            ["bk103", "Corets, Eva", "Maeve Ascendant", "5.95"],
        ]

    def test_yaml_job_to_stdout(self, samples_dir, capsys):
        exit_code = main(["--job", str(samples_dir / "feed_job.yaml")])

        captured = capsys.readouterr()
        assert exit_code == EXIT_OK
        rows = list(csv.reader(io.StringIO(captured.out)))
        assert rows == [["title", "thumbnail"], ["First", "http://example.com/1.png"], ["Second", ""]]

    def test_command_line_columns_replace_job_columns(self, tmp_path, items_file, capsys):
        job = tmp_path / "job.json"
        job.write_text(json.dumps({
            "source": "items.xml",
            "row_selector": "//item",
            "columns": {"item_name": "name", "item_age": "age"},
        }), encoding="utf-8")

        exit_code = main(["--job", str(job), "--column", "age", "--column", "name"])

        assert exit_code == EXIT_OK
        assert capsys.readouterr().out == "age,name\n,A\n5,B\n"

    def test_summary_notice_mode(self, items_file, capsys):
        exit_code = main([str(items_file), "--rows", "//item", "--column", "count(*)",
                          "--notice-mode", "summary"])

        assert exit_code == EXIT_OK
        assert "1 notice(s)" in capsys.readouterr().err


class TestCliErrors:
    """Test suite for exit codes on failure."""

    def test_malformed_xml(self, tmp_path, capsys):
        source = tmp_path / "broken.xml"
        source.write_bytes(b"<root><item></root>")

        exit_code = main([str(source), "--rows", "//item", "--column", "name"])

        captured = capsys.readouterr()
        assert exit_code == EXIT_EXTRACTION_FAILED
        assert captured.out == ""
        assert "ERROR" in captured.err

    def test_invalid_row_selector(self, items_file):
        assert main([str(items_file), "--rows", "//item[", "--column", "name"]) == EXIT_EXTRACTION_FAILED

    def test_missing_file(self, tmp_path):
        assert main([str(tmp_path / "nope.xml"), "--rows", "//item", "--column", "name"]) == EXIT_EXTRACTION_FAILED

    def test_missing_row_selector(self, items_file):
        assert main([str(items_file), "--column", "name"]) == EXIT_USAGE

    def test_missing_columns(self, items_file):
        assert main([str(items_file), "--rows", "//item"]) == EXIT_USAGE

    def test_missing_source(self):
        assert main(["--rows", "//item", "--column", "name"]) == EXIT_USAGE

    def test_bad_namespace(self, items_file):
        assert main([str(items_file), "--rows", "//item", "--column", "name",
                     "--namespace", "no_uri"]) == EXIT_USAGE

    def test_name_count_mismatch(self, items_file):
        assert main([str(items_file), "--rows", "//item", "--column", "name", "--column", "age",
                     "--name", "only_one"]) == EXIT_USAGE

    def test_output_and_table_are_exclusive(self, items_file):
        assert main([str(items_file), "--rows", "//item", "--column", "name",
                     "--output", "a.csv", "--table", "items"]) == EXIT_USAGE

    def test_unknown_option(self):
        assert main(["--bogus"]) == EXIT_USAGE

    def test_missing_job_file(self, tmp_path):
        assert main(["--job", str(tmp_path / "missing.yaml")]) == EXIT_USAGE

    def test_invalid_batch_size(self, items_file):
        assert main([str(items_file), "--rows", "//item", "--column", "name",
                     "--table", "items", "--batch-size", "0"]) == EXIT_USAGE

    def test_help(self, capsys):
        assert main(["--help"]) == EXIT_OK
        assert "--rows" in capsys.readouterr().out

    def test_parser_defaults(self):
        options = build_parser().parse_args(["data.xml"])
        assert options.columns == []
        assert options.strip_whitespace is None
        assert options.output is None and options.table is None
