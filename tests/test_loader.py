"""Tests for lexicon and data file loading."""

import json

import pytest

from conftest import lexicon, record_def

from atprose_lexicon.exceptions import (
    BuildError,
    DocumentStructureError,
    DuplicateDefinitionError,
    LoaderError,
    UnresolvedReferenceError,
)
from atprose_lexicon.file_io import (
    DataFileParser,
    DocumentRegistry,
    SourceLocation,
    find_lexicon_files,
    format_source,
    load_document,
    load_registry,
    lookup_source,
)
from atprose_lexicon.schema import LexiconDocument, build_graph
from atprose_lexicon.validation import validate_record, validate_value

TAG_YAML = """\
lexicon: 1
id: dev.atprose.test.common
defs:
  tag:
    type: string
    maxLength: 8
"""


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def lexicon_dir(tmp_path, post_document):
    write_json(tmp_path / "dev" / "atprose" / "test" / "post.json", post_document)
    (tmp_path / "common.yaml").write_text(TAG_YAML, encoding="utf-8")
    (tmp_path / "README.md").write_text("not a lexicon", encoding="utf-8")
    return tmp_path


class TestDataFileParser:
    def test_load_json_with_source_map(self, tmp_path):
        path = tmp_path / "record.json"
        path.write_text('{\n  "id": "1",\n  "body": {\n    "text": "hi"\n  }\n}\n', encoding="utf-8")
        data, source_map = DataFileParser(cache_enabled=False).load_with_source(path)
        assert data == {"id": "1", "body": {"text": "hi"}}
        assert source_map["/id"] == {"line": 2, "column": 9}
        assert source_map["/body/text"] == {"line": 4, "column": 13}

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "common.yaml"
        path.write_text(TAG_YAML, encoding="utf-8")
        data, source_map = DataFileParser(cache_enabled=False).load_with_source(path)
        assert data["defs"]["tag"]["maxLength"] == 8
        assert source_map["/defs/tag/type"]["line"] == 5

    def test_sequence_pointers(self):
        source_map = DataFileParser.build_source_map('{"a": [1, 2]}')
        assert set(source_map) == {"", "/a", "/a/0", "/a/1"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoaderError, match="not found"):
            DataFileParser().load(tmp_path / "nope.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"a": ', encoding="utf-8")
        with pytest.raises(LoaderError, match="Failed to parse JSON"):
            DataFileParser().load(path)

    def test_duplicate_json_keys(self, tmp_path):
        path = tmp_path / "dup.json"
        path.write_text('{"a": 1, "a": 2}', encoding="utf-8")
        with pytest.raises(DuplicateDefinitionError, match="dup.json"):
            DataFileParser(cache_enabled=False).load(path)

    def test_duplicate_yaml_keys(self, tmp_path):
        path = tmp_path / "dup.yaml"
        path.write_text("a: 1\nb:\n  c: 2\n  c: 3\n", encoding="utf-8")
        with pytest.raises(DuplicateDefinitionError, match=r"'c' \(line 4, column 3\)"):
            DataFileParser(cache_enabled=False).load(path)

    def test_yaml_merge_keys_still_allowed(self, tmp_path):
        path = tmp_path / "merge.yaml"
        path.write_text("base: &b {x: 1}\nother:\n  <<: *b\n  y: 2\n", encoding="utf-8")
        data = DataFileParser(cache_enabled=False).load(path)
        assert data["other"] == {"x": 1, "y": 2}

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("a: [1, 2\n", encoding="utf-8")
        with pytest.raises(LoaderError, match="Failed to parse YAML"):
            DataFileParser().load(path)

    def test_cache(self, tmp_path):
        path = write_json(tmp_path / "data.json", {"v": 1})
        parser = DataFileParser(cache_enabled=True)
        assert parser.load(path) == {"v": 1}
        write_json(path, {"v": 2})
        assert parser.load(path) == {"v": 1}
        parser.clear_cache()
        assert parser.load(path) == {"v": 2}


class TestSourceLocation:
    source_map = {"": {"line": 1, "column": 1}, "/body": {"line": 3, "column": 11}}

    def test_exact_pointer(self):
        loc = lookup_source(self.source_map, "/body", "r.json")
        assert (loc.line, loc.column) == (3, 11)

    def test_falls_back_to_ancestor(self):
        loc = lookup_source(self.source_map, "/body/text", "r.json")
        assert (loc.line, loc.column, loc.pointer) == (3, 11, "/body/text")

    def test_root_fallback(self):
        assert lookup_source(self.source_map, "/other").line == 1

    def test_no_map(self):
        assert lookup_source(None, "/body").line is None

    def test_format_source(self):
        assert format_source(SourceLocation("r.json", "/body", 3, 11)) == " (source=r.json:3:11 path=/body)"
        assert format_source(SourceLocation(pointer="/body")) == " (path=/body)"
        assert format_source(None) == ""


class TestLoading:
    def test_find_lexicon_files(self, lexicon_dir):
        files = find_lexicon_files(lexicon_dir)
        assert [f.name for f in files] == ["common.yaml", "post.json"]

    def test_find_in_missing_directory(self, tmp_path):
        with pytest.raises(LoaderError):
            find_lexicon_files(tmp_path / "missing")

    def test_load_document(self, lexicon_dir):
        document = load_document(lexicon_dir / "common.yaml")
        assert document.id == "dev.atprose.test.common"
        assert set(document.defs) == {"tag"}

    def test_structure_errors_surface(self, tmp_path):
        path = write_json(tmp_path / "bad.json", {"lexicon": 1, "id": "dev.atprose.test.bad"})
        with pytest.raises(DocumentStructureError):
            load_document(path, DataFileParser(cache_enabled=False))

    def test_duplicate_yaml_definition(self, tmp_path):
        path = tmp_path / "dup.yaml"
        path.write_text(
            "lexicon: 1\n"
            "id: dev.atprose.test.dup\n"
            "defs:\n"
            "  thing:\n"
            "    type: string\n"
            "  thing:\n"
            "    type: integer\n",
            encoding="utf-8",
        )
        with pytest.raises(DuplicateDefinitionError, match="'thing'") as excinfo:
            load_document(path, DataFileParser(cache_enabled=False))
        assert isinstance(excinfo.value, BuildError)


class TestDocumentRegistry:
    def test_load_directory(self, lexicon_dir):
        registry = load_registry(lexicon_dir)
        assert len(registry) == 2
        assert registry.document_ids == ["dev.atprose.test.common", "dev.atprose.test.post"]
        assert "dev.atprose.test.post" in registry
        assert registry.source_of("dev.atprose.test.common") == lexicon_dir / "common.yaml"

    def test_build_is_cached_until_documents_change(self, lexicon_dir):
        registry = DocumentRegistry()
        registry.load_file(lexicon_dir / "common.yaml")
        first = registry.build()
        assert registry.build() is first
        registry.add_all([load_document(lexicon_dir / "dev" / "atprose" / "test" / "post.json")])
        second = registry.build()
        assert second is not first
        assert "dev.atprose.test.post" in second.document_ids

    def test_duplicate_document_names_both_sources(self, lexicon_dir):
        (lexicon_dir / "copy.yml").write_text(TAG_YAML, encoding="utf-8")
        with pytest.raises(DuplicateDefinitionError) as excinfo:
            load_registry(lexicon_dir)
        assert "common.yaml" in str(excinfo.value)
        assert "copy.yml" in str(excinfo.value)

    def test_registry_as_resolver(self, lexicon_dir):
        registry = load_registry(lexicon_dir)
        graph = build_graph(
            [lexicon("dev.atprose.test.tagged", {
                "main": record_def({"tag": {"type": "ref", "ref": "dev.atprose.test.common#tag"}}, required=["tag"]),
            })],
            resolver=registry.resolve,
        )
        handle = graph.get("dev.atprose.test.tagged")
        assert validate_value(handle, {"tag": "short"}).ok
        assert not validate_value(handle, {"tag": "far too long"}).ok

    def test_built_graph_survives_registry_changes(self, lexicon_dir):
        registry = load_registry(lexicon_dir)
        graph = build_graph(
            [lexicon("dev.atprose.test.post2", {
                "main": record_def({"t": {"type": "ref", "ref": "dev.atprose.test.common#tag"}}, required=["t"]),
            })],
            resolver=registry.resolve,
        )
        registry.add(LexiconDocument.from_dict(lexicon("dev.atprose.test.broken", {
            "main": record_def({"x": {"type": "ref", "ref": "#nope"}}),
        })))
        with pytest.raises(UnresolvedReferenceError):
            registry.build()

        assert validate_record(graph, "dev.atprose.test.post2", {"t": "x"}).ok
        outcome = validate_record(graph, "dev.atprose.test.post2", {"t": "far too long"})
        assert not outcome.ok
        assert outcome.violations[0].pointer == "/t"

    def test_resolve_unknown_document(self, lexicon_dir):
        registry = load_registry(lexicon_dir)
        assert registry.resolve("dev.atprose.test.nope", "main") is None
        assert registry.resolve("dev.atprose.test.common", "tag") is not None
