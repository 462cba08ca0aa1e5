"""Tests for the value validator."""

import base64

import pytest

from conftest import lexicon

from atprose_lexicon.identifiers.cid import DAG_CBOR, RAW, SHA2_256, Cid
from atprose_lexicon.schema import build_graph
from atprose_lexicon.validation import (
    Invalid,
    Valid,
    Violation,
    ViolationKind,
    format_path,
    grapheme_count,
    utf8_length,
    validate_value,
)

CID = Cid(1, RAW, SHA2_256, bytes(range(32))).encode()
CBOR_CID = Cid(1, DAG_CBOR, SHA2_256, bytes(32)).encode()


def kinds_of(outcome):
    return [(v.path, v.kind) for v in outcome.violations]


@pytest.fixture
def post(post_graph):
    return post_graph.get("dev.atprose.test.post")


@pytest.fixture
def kinds_graph():
    return build_graph([lexicon("dev.atprose.test.kinds", {
        "count": {"type": "integer", "minimum": 1, "maximum": 10},
        "level": {"type": "integer", "enum": [1, 2, 3]},
        "answer": {"type": "integer", "const": 42},
        "flag": {"type": "boolean"},
        "alwaysTrue": {"type": "boolean", "const": True},
        "color": {"type": "string", "enum": ["red", "green"]},
        "fixed": {"type": "string", "const": "v1"},
        "short": {"type": "string", "minLength": 2, "maxLength": 4},
        "word": {"type": "string", "minGraphemes": 2, "maxGraphemes": 3},
        "handle": {"type": "string", "format": "handle"},
        "data": {"type": "bytes", "minLength": 1, "maxLength": 4},
        "link": {"type": "cid-link"},
        "nothing": {"type": "null"},
        "anything": {"type": "unknown"},
        "image": {"type": "blob", "accept": ["image/*"], "maxSize": 1000},
        "anyBlob": {"type": "blob"},
        "reaction": {"type": "token"},
        "reactionRef": {"type": "ref", "ref": "#reaction"},
        "tags": {"type": "array", "minLength": 1, "maxLength": 2, "items": {"type": "string", "maxLength": 3}},
        "strict": {
            "type": "object",
            "closed": True,
            "required": ["a"],
            "nullable": ["b"],
            "properties": {"a": {"type": "string"}, "b": {"type": "integer"}, "c": {"type": "integer"}},
        },
        "image2": {"type": "object", "properties": {"alt": {"type": "string"}}, "required": ["alt"]},
        "video": {"type": "object", "properties": {"len": {"type": "integer"}}},
        "embed": {"type": "union", "refs": ["#image2", "#video"]},
        "closedEmbed": {"type": "union", "refs": ["#image2", "#video"], "closed": True},
    })])


@pytest.fixture
def check(kinds_graph):
    def _check(name, value):
        return validate_value(kinds_graph.get(f"dev.atprose.test.kinds#{name}"), value)
    return _check


class TestFixtureScenarios:
    def test_valid_record(self, post):
        outcome = validate_value(post, {"id": "1", "body": {"text": "hello", "languages": ["en"]}})
        assert outcome.ok
        assert outcome == Valid({"id": "1", "body": {"text": "hello", "languages": ["en"]}})

    def test_missing_body(self, post):
        outcome = validate_value(post, {"id": "1"})
        assert kinds_of(outcome) == [(("body",), ViolationKind.MISSING_REQUIRED_FIELD)]

    def test_too_many_languages(self, post):
        outcome = validate_value(post, {"id": "1", "body": {"text": "hi", "languages": ["en", "fr", "de", "es"]}})
        assert kinds_of(outcome) == [(("body", "languages"), ViolationKind.ARRAY_LENGTH_OUT_OF_BOUNDS)]
        assert outcome.violations[0].pointer == "/body/languages"

    def test_bad_language_tag(self, post):
        outcome = validate_value(post, {"id": "1", "body": {"text": "hi", "languages": ["english"]}})
        assert kinds_of(outcome) == [(("body", "languages", 0), ViolationKind.FORMAT_MISMATCH)]
        assert outcome.violations[0].detail == "BadPrimaryLanguage"

    def test_optional_field_is_format_checked_when_present(self, post):
        outcome = validate_value(post, {"id": "1", "body": {"text": "hi"}, "createdAt": "2024-02-06T14:00:00"})
        assert kinds_of(outcome) == [(("createdAt",), ViolationKind.FORMAT_MISMATCH)]
        assert outcome.violations[0].detail == "MissingTimezone"

    def test_normalized_value(self, post):
        outcome = validate_value(post, {"id": "1", "body": {"text": "hi", "languages": ["EN-us"]},
                                        "createdAt": "2024-02-06t14:00:00z", "extra": True})
        assert outcome.ok
        assert outcome.value == {"id": "1", "body": {"text": "hi", "languages": ["en-US"]},
                                 "createdAt": "2024-02-06T14:00:00Z", "extra": True}

    def test_input_is_not_mutated(self, post):
        instance = {"id": "1", "body": {"text": "hi", "languages": ["EN"]}}
        validate_value(post, instance)
        assert instance["body"]["languages"] == ["EN"]

    def test_siblings_are_checked_exhaustively(self, post):
        outcome = validate_value(post, {"id": 7, "body": {"text": 3, "languages": ["en", "english"]},
                                        "createdAt": "soon"})
        assert kinds_of(outcome) == [
            (("id",), ViolationKind.UNEXPECTED_TYPE),
            (("body", "text"), ViolationKind.UNEXPECTED_TYPE),
            (("body", "languages", 1), ViolationKind.FORMAT_MISMATCH),
            (("createdAt",), ViolationKind.FORMAT_MISMATCH),
        ]

    def test_removing_a_bad_value_never_adds_violations(self, post):
        bad = {"id": 7, "body": {"text": "hi", "languages": ["english"]}}
        fixed = {"id": "7", "body": {"text": "hi", "languages": ["english"]}}
        before = set(kinds_of(validate_value(post, bad)))
        after = set(kinds_of(validate_value(post, fixed)))
        assert after < before

    def test_not_an_object(self, post):
        assert kinds_of(validate_value(post, ["id"])) == [((), ViolationKind.UNEXPECTED_TYPE)]


class TestLengthUnits:
    two_byte = "é" * 150

    def test_units(self):
        assert utf8_length(self.two_byte) == 300
        assert grapheme_count(self.two_byte) == 150

    def test_passes_fixture_limits(self, post):
        assert validate_value(post, {"id": "1", "body": {"text": self.two_byte}}).ok

    def test_fails_a_lower_grapheme_limit(self):
        graph = build_graph([lexicon("dev.atprose.test.short", {
            "text": {"type": "string", "maxLength": 3000, "maxGraphemes": 100},
        })])
        outcome = validate_value(graph.get("dev.atprose.test.short#text"), self.two_byte)
        assert kinds_of(outcome) == [((), ViolationKind.STRING_TOO_MANY_GRAPHEMES)]

    def test_byte_limit_counts_bytes(self):
        graph = build_graph([lexicon("dev.atprose.test.short", {
            "text": {"type": "string", "maxLength": 299},
        })])
        outcome = validate_value(graph.get("dev.atprose.test.short#text"), self.two_byte)
        assert kinds_of(outcome) == [((), ViolationKind.STRING_TOO_LONG)]

    def test_combining_sequences_are_one_grapheme(self):
        assert grapheme_count("é") == 1
        assert grapheme_count("\U0001F469‍\U0001F4BB") == 1


class TestScalars:
    def test_integer(self, check):
        assert check("count", 5).ok
        assert check("count", 5.0) == Valid(5)
        assert kinds_of(check("count", 0)) == [((), ViolationKind.OUT_OF_RANGE)]
        assert kinds_of(check("count", 11)) == [((), ViolationKind.OUT_OF_RANGE)]
        assert kinds_of(check("count", 1.5)) == [((), ViolationKind.UNEXPECTED_TYPE)]
        assert kinds_of(check("count", "5")) == [((), ViolationKind.UNEXPECTED_TYPE)]
        assert kinds_of(check("count", True)) == [((), ViolationKind.UNEXPECTED_TYPE)]

    def test_integer_enum_and_const(self, check):
        assert check("level", 2).ok
        assert kinds_of(check("level", 4)) == [((), ViolationKind.ENUM_MISMATCH)]
        assert check("answer", 42).ok
        assert kinds_of(check("answer", 41)) == [((), ViolationKind.CONST_MISMATCH)]

    def test_boolean(self, check):
        assert check("flag", False).ok
        assert kinds_of(check("flag", 0)) == [((), ViolationKind.UNEXPECTED_TYPE)]
        assert kinds_of(check("flag", "true")) == [((), ViolationKind.UNEXPECTED_TYPE)]
        assert kinds_of(check("alwaysTrue", False)) == [((), ViolationKind.CONST_MISMATCH)]

    def test_string_enum_and_const(self, check):
        assert check("color", "red").ok
        assert kinds_of(check("color", "Red")) == [((), ViolationKind.ENUM_MISMATCH)]
        assert kinds_of(check("fixed", "v2")) == [((), ViolationKind.CONST_MISMATCH)]

    def test_string_bounds(self, check):
        assert kinds_of(check("short", "a")) == [((), ViolationKind.STRING_TOO_SHORT)]
        assert kinds_of(check("short", "abcde")) == [((), ViolationKind.STRING_TOO_LONG)]
        assert kinds_of(check("word", "a")) == [((), ViolationKind.STRING_TOO_FEW_GRAPHEMES)]
        assert kinds_of(check("word", "abcd")) == [((), ViolationKind.STRING_TOO_MANY_GRAPHEMES)]

    def test_format_violation_carries_the_rule(self, check):
        outcome = check("handle", "alice")
        assert kinds_of(outcome) == [((), ViolationKind.FORMAT_MISMATCH)]
        assert outcome.violations[0].detail == "MissingDomain"
        assert check("handle", "Alice.Test") == Valid("alice.test")

    def test_bytes(self, check):
        assert check("data", b"\x01\x02") == Valid(b"\x01\x02")
        encoded = base64.b64encode(b"\x01\x02\x03").decode().rstrip("=")
        assert check("data", {"$bytes": encoded}) == Valid(b"\x01\x02\x03")
        assert kinds_of(check("data", b"")) == [((), ViolationKind.BYTES_LENGTH_OUT_OF_BOUNDS)]
        assert kinds_of(check("data", b"12345")) == [((), ViolationKind.BYTES_LENGTH_OUT_OF_BOUNDS)]
        assert kinds_of(check("data", {"$bytes": "!!"})) == [((), ViolationKind.FORMAT_MISMATCH)]
        assert kinds_of(check("data", "AQI")) == [((), ViolationKind.UNEXPECTED_TYPE)]

    def test_cid_link(self, check):
        upper = "B" + CID[1:].upper()
        assert check("link", {"$link": upper}) == Valid({"$link": CID})
        assert kinds_of(check("link", {"$link": "nope"})) == [(("$link",), ViolationKind.FORMAT_MISMATCH)]
        assert kinds_of(check("link", CID)) == [((), ViolationKind.UNEXPECTED_TYPE)]

    def test_null(self, check):
        assert check("nothing", None).ok
        assert kinds_of(check("nothing", 0)) == [((), ViolationKind.UNEXPECTED_TYPE)]

    def test_unknown_accepts_any_data(self, check):
        for value in ({"a": [1, "two", None, {"b": True}]}, "text", 3, None):
            assert check("anything", value) == Valid(value)
        assert kinds_of(check("anything", float("nan"))) == [((), ViolationKind.UNEXPECTED_TYPE)]
        assert kinds_of(check("anything", {1: "x"})) == [((), ViolationKind.UNEXPECTED_TYPE)]
        assert kinds_of(check("anything", object())) == [((), ViolationKind.UNEXPECTED_TYPE)]


class TestBlob:
    def blob(self, mime="image/png", size=500, cid=CID):
        return {"$type": "blob", "ref": {"$link": cid}, "mimeType": mime, "size": size}

    def test_valid_blob(self, check):
        assert check("image", self.blob()).ok

    def test_mime_type_pattern(self, check):
        assert check("image", self.blob(mime="IMAGE/JPEG")).ok
        assert kinds_of(check("image", self.blob(mime="video/mp4"))) == [
            (("mimeType",), ViolationKind.MIME_TYPE_NOT_ACCEPTED)
        ]

    def test_max_size(self, check):
        assert kinds_of(check("image", self.blob(size=1001))) == [(("size",), ViolationKind.BLOB_TOO_LARGE)]

    def test_missing_fields(self, check):
        outcome = check("image", {"$type": "blob", "mimeType": "image/png"})
        assert kinds_of(outcome) == [
            (("ref",), ViolationKind.MISSING_REQUIRED_FIELD),
            (("size",), ViolationKind.MISSING_REQUIRED_FIELD),
        ]

    def test_bad_reference(self, check):
        assert kinds_of(check("image", self.blob(cid="bogus"))) == [(("ref", "$link"), ViolationKind.FORMAT_MISMATCH)]

    def test_legacy_blob(self, check):
        assert check("anyBlob", {"cid": CBOR_CID, "mimeType": "text/plain"}).ok

    def test_not_a_blob(self, check):
        assert kinds_of(check("anyBlob", {"mimeType": "text/plain"})) == [((), ViolationKind.UNEXPECTED_TYPE)]


class TestContainers:
    def test_array(self, check):
        assert check("tags", ["a", "bb"]).ok
        assert kinds_of(check("tags", [])) == [((), ViolationKind.ARRAY_LENGTH_OUT_OF_BOUNDS)]
        assert kinds_of(check("tags", "a")) == [((), ViolationKind.UNEXPECTED_TYPE)]

    def test_array_elements_are_still_checked_when_too_long(self, check):
        outcome = check("tags", ["a", "b", "long"])
        assert kinds_of(outcome) == [
            ((), ViolationKind.ARRAY_LENGTH_OUT_OF_BOUNDS),
            ((2,), ViolationKind.STRING_TOO_LONG),
        ]

    def test_closed_object(self, check):
        assert check("strict", {"a": "x", "$type": "dev.atprose.test.kinds#strict"}).ok
        outcome = check("strict", {"a": "x", "zzz": 1})
        assert kinds_of(outcome) == [(("zzz",), ViolationKind.UNEXPECTED_FIELD)]

    def test_nullable_and_null(self, check):
        assert check("strict", {"a": "x", "b": None}) == Valid({"a": "x", "b": None})
        assert kinds_of(check("strict", {"a": "x", "c": None})) == [(("c",), ViolationKind.UNEXPECTED_TYPE)]
        assert kinds_of(check("strict", {"a": None})) == [(("a",), ViolationKind.MISSING_REQUIRED_FIELD)]


class TestTokensAndUnions:
    def test_token(self, check):
        assert check("reactionRef", "dev.atprose.test.kinds#reaction").ok
        assert kinds_of(check("reactionRef", "dev.atprose.test.kinds#other")) == [((), ViolationKind.CONST_MISMATCH)]

    def test_union_dispatches_on_type(self, check):
        assert check("embed", {"$type": "dev.atprose.test.kinds#image2", "alt": "a cat"}).ok
        outcome = check("embed", {"$type": "dev.atprose.test.kinds#image2"})
        assert kinds_of(outcome) == [(("alt",), ViolationKind.MISSING_REQUIRED_FIELD)]

    def test_union_member_errors_keep_the_value_path(self, check):
        outcome = check("embed", {"$type": "dev.atprose.test.kinds#video", "len": "long"})
        assert kinds_of(outcome) == [(("len",), ViolationKind.UNEXPECTED_TYPE)]

    def test_missing_type_tag(self, check):
        assert kinds_of(check("embed", {"alt": "x"})) == [(("$type",), ViolationKind.MISSING_REQUIRED_FIELD)]

    def test_open_union_passes_unknown_tags(self, check):
        value = {"$type": "com.example.other", "x": 1}
        assert check("embed", value) == Valid(value)

    def test_closed_union_rejects_unknown_tags(self, check):
        outcome = check("closedEmbed", {"$type": "com.example.other"})
        assert kinds_of(outcome) == [(("$type",), ViolationKind.UNKNOWN_UNION_TAG)]
        assert outcome.violations[0].detail == "com.example.other"

    def test_explicit_main_tag(self):
        graph = build_graph([
            lexicon("dev.atprose.test.image", {"main": {"type": "object", "properties": {}}}),
            lexicon("dev.atprose.test.holder", {"embed": {"type": "union", "refs": ["dev.atprose.test.image"], "closed": True}}),
        ])
        handle = graph.get("dev.atprose.test.holder#embed")
        assert validate_value(handle, {"$type": "dev.atprose.test.image"}).ok
        assert validate_value(handle, {"$type": "dev.atprose.test.image#main"}).ok


class TestOutcome:
    def test_format_path(self):
        assert format_path(()) == ""
        assert format_path(("body", "languages", 0)) == "/body/languages/0"
        assert format_path(("a/b", "c~d")) == "/a~1b/c~0d"

    def test_violation_str(self):
        violation = Violation(("body",), ViolationKind.MISSING_REQUIRED_FIELD, "required field 'body' is missing")
        assert str(violation) == "/body: MissingRequiredField: required field 'body' is missing"

    def test_invalid_is_not_ok(self):
        assert not Invalid(()).ok
        assert Valid(1).violations == ()
