"""Tests for the record linter and its command line."""

import json

import pytest

from atprose_lexicon.linter import LintResult, RecordLinter, lint_files
from atprose_lexicon.linter.run_lint import find_record_files, main

VALID_RECORD = {
    "$type": "dev.atprose.test.post",
    "id": "1",
    "body": {"text": "hello", "languages": ["en"]},
}

INVALID_RECORD = """\
{
  "$type": "dev.atprose.test.post",
  "id": "2",
  "body": {
    "text": "hello",
    "languages": ["english"]
  }
}
"""


@pytest.fixture
def records_dir(tmp_path):
    base = tmp_path / "records"
    base.mkdir()
    (base / "good.json").write_text(json.dumps(VALID_RECORD), encoding="utf-8")
    return base


@pytest.fixture
def bad_record(records_dir):
    path = records_dir / "bad.json"
    path.write_text(INVALID_RECORD, encoding="utf-8")
    return path


def run_main(argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


class TestRecordLinter:
    def test_valid_record(self, post_graph, records_dir):
        result = LintResult(records_dir / "good.json")
        RecordLinter(post_graph).lint(records_dir / "good.json", result)
        assert result.ok
        assert result.warnings == []

    def test_violation_has_source_position(self, post_graph, bad_record):
        result = LintResult(bad_record)
        RecordLinter(post_graph).lint(bad_record, result)
        [error] = result.errors
        assert error["line"] == 6
        assert error["column"] == 19
        assert error["path"] == "/body/languages/0"
        assert error["kind"] == "FormatMismatch"
        assert error["message"].startswith("FormatMismatch: ")
        assert f"source={bad_record}:6:19" in error["message"]

    def test_missing_field_points_at_parent(self, post_graph, tmp_path):
        path = tmp_path / "missing.yaml"
        path.write_text("$type: dev.atprose.test.post\nid: '3'\n", encoding="utf-8")
        result = LintResult(path)
        RecordLinter(post_graph).lint(path, result)
        [error] = result.errors
        assert error["path"] == "/body"
        assert error["line"] == 1

    def test_collection_without_type(self, post_graph, tmp_path):
        path = tmp_path / "untyped.json"
        path.write_text(json.dumps({"id": "1", "body": {"text": "x"}}), encoding="utf-8")
        result = LintResult(path)
        RecordLinter(post_graph, collection="dev.atprose.test.post").lint(path, result)
        assert result.ok
        assert len(result.warnings) == 1

    def test_no_type_and_no_collection(self, post_graph, tmp_path):
        path = tmp_path / "untyped.json"
        path.write_text(json.dumps({"id": "1"}), encoding="utf-8")
        result = LintResult(path)
        RecordLinter(post_graph).lint(path, result)
        assert "no '$type'" in result.errors[0]["message"]

    def test_unknown_collection(self, post_graph, tmp_path):
        path = tmp_path / "other.json"
        path.write_text(json.dumps({"$type": "dev.atprose.test.other"}), encoding="utf-8")
        result = LintResult(path)
        RecordLinter(post_graph).lint(path, result)
        assert result.errors[0]["path"] == "/$type"

    def test_bad_key(self, post_graph, records_dir):
        result = LintResult(records_dir / "good.json")
        RecordLinter(post_graph, key="not a tid").lint(records_dir / "good.json", result)
        assert [e["kind"] for e in result.errors] == ["InvalidKey"]

    def test_unreadable_file(self, post_graph, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")
        [result] = lint_files(post_graph, [path])
        assert result.errors[0]["message"].startswith("Failed to load record file")


class TestFindRecordFiles:
    def test_files_and_directories(self, records_dir, bad_record, tmp_path):
        (records_dir / "notes.txt").write_text("x", encoding="utf-8")
        found = find_record_files([str(records_dir), str(bad_record), str(tmp_path / "missing")])
        assert [p.name for p in found] == ["bad.json", "good.json"]


class TestMain:
    def test_success(self, fixtures_dir, records_dir, capsys):
        assert run_main(["--lexicons", str(fixtures_dir), str(records_dir)]) == 0
        assert "Lint succeeded with no errors." in capsys.readouterr().out

    def test_errors_exit_nonzero(self, fixtures_dir, records_dir, bad_record, capsys):
        assert run_main(["--lexicons", str(fixtures_dir), str(records_dir)]) == 1
        out = capsys.readouterr().out
        assert "bad.json" in out
        assert "ERROR:6:19: FormatMismatch" in out

    def test_json_format(self, fixtures_dir, records_dir, bad_record, capsys):
        assert run_main(["--lexicons", str(fixtures_dir), "--format", "json", str(records_dir)]) == 1
        report = json.loads(capsys.readouterr().out)
        assert report["files"] == 2
        assert report["errors"] == 1
        [bad] = [r for r in report["results"] if r["errors"]]
        assert bad["errors"][0]["path"] == "/body/languages/0"

    def test_github_actions_format(self, fixtures_dir, records_dir, bad_record, capsys):
        assert run_main(["--lexicons", str(fixtures_dir), "--format", "github-actions", str(bad_record)]) == 1
        assert f"::error file={bad_record},line=6,col=19::" in capsys.readouterr().out

    def test_broken_lexicons(self, tmp_path, records_dir):
        lexicons = tmp_path / "lexicons"
        lexicons.mkdir()
        (lexicons / "bad.json").write_text('{"lexicon": 2, "id": "dev.atprose.test.x", "defs": {}}', encoding="utf-8")
        assert run_main(["--lexicons", str(lexicons), str(records_dir)]) == 1

    def test_no_record_files(self, fixtures_dir, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        assert run_main(["--lexicons", str(fixtures_dir), str(empty)]) == 1
