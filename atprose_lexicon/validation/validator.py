# Copyright 2026 TIER IV, inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Validate JSON-like values against compiled schema nodes.

Validation stops at the first failed constraint of a single value but keeps
going across siblings, so one pass reports every independent problem.
String lengths are measured in UTF-8 bytes, grapheme limits in extended
grapheme clusters.
"""

from __future__ import annotations

import base64
import binascii
import fnmatch
import logging
import math
from typing import Any, List, Mapping, Optional, Union

import regex

from ..exceptions import FormatError, UnknownDefinitionError
from ..identifiers.cid import Cid
from ..schema.builder import DefinitionHandle, SchemaGraph
from ..schema.nodes import (
    ArrayNode,
    BlobNode,
    BooleanNode,
    BytesNode,
    CidLinkNode,
    ExternalRefNode,
    IntegerNode,
    NodeIndex,
    NullNode,
    ObjectNode,
    ParamsNode,
    ProcedureNode,
    QueryNode,
    RecordNode,
    RefNode,
    StringNode,
    TokenNode,
    UnionNode,
    UnknownNode,
)
from .outcome import Path, ValidationOutcome, Violation, ViolationKind, outcome

logger = logging.getLogger(__name__)

_GRAPHEME_RE = regex.compile(r"\X")


def grapheme_count(text: str) -> int:
    return len(_GRAPHEME_RE.findall(text))


def utf8_length(text: str) -> int:
    return len(text.encode("utf-8"))


def is_data_value(value: Any) -> bool:
    """Return True when *value* belongs to the JSON-like data model."""
    if value is None or isinstance(value, (bool, int, str, bytes)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, (list, tuple)):
        return all(is_data_value(item) for item in value)
    if isinstance(value, Mapping):
        return all(isinstance(k, str) and is_data_value(v) for k, v in value.items())
    return False


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


class ValueValidator:
    """Walks one value against one graph, collecting violations."""

    def __init__(self):
        self.violations: List[Violation] = []

    def report(self, path: Path, kind: ViolationKind, message: str, detail: Optional[str] = None) -> None:
        self.violations.append(Violation(path=tuple(path), kind=kind, message=message, detail=detail))

    def unexpected_type(self, path: Path, expected: str, value: Any) -> None:
        self.report(path, ViolationKind.UNEXPECTED_TYPE, f"expected {expected}, got {_type_name(value)}")

    def check(self, graph: SchemaGraph, index: NodeIndex, value: Any, path: Path) -> Any:
        """Validate *value* against node *index* and return the normalized value."""
        node = graph.node(index)
        handler = getattr(self, _HANDLERS[type(node)])
        return handler(graph, node, value, path)

    # ------------------------------------------------------------------
    # Containers

    def _record(self, graph, node: RecordNode, value, path):
        return self.check(graph, node.payload, value, path)

    def _object(self, graph, node: Union[ObjectNode, ParamsNode], value, path):
        if not isinstance(value, Mapping):
            self.unexpected_type(path, "object", value)
            return value

        nullable = getattr(node, "nullable", frozenset())
        checked = {}
        for name, child in node.properties.items():
            child_path = path + (name,)
            if name not in value:
                if name in node.required:
                    self.report(child_path, ViolationKind.MISSING_REQUIRED_FIELD, f"required field '{name}' is missing")
                continue
            item = value[name]
            if item is None:
                if name in nullable:
                    continue
                if name in node.required:
                    self.report(child_path, ViolationKind.MISSING_REQUIRED_FIELD, f"required field '{name}' is null")
                else:
                    self.report(child_path, ViolationKind.UNEXPECTED_TYPE, f"field '{name}' is not nullable")
                continue
            checked[name] = self.check(graph, child, item, child_path)

        if getattr(node, "closed", False):
            for name in value:
                if name not in node.properties and name != "$type":
                    self.report(path + (name,), ViolationKind.UNEXPECTED_FIELD, f"unexpected field '{name}'")

        return {name: checked.get(name, item) for name, item in value.items()}

    def _array(self, graph, node: ArrayNode, value, path):
        if not isinstance(value, (list, tuple)):
            self.unexpected_type(path, "array", value)
            return value
        if node.max_length is not None and len(value) > node.max_length:
            self.report(
                path, ViolationKind.ARRAY_LENGTH_OUT_OF_BOUNDS,
                f"array has {len(value)} items, at most {node.max_length} allowed", "maxLength",
            )
        elif node.min_length is not None and len(value) < node.min_length:
            self.report(
                path, ViolationKind.ARRAY_LENGTH_OUT_OF_BOUNDS,
                f"array has {len(value)} items, at least {node.min_length} required", "minLength",
            )
        return [self.check(graph, node.items, item, path + (i,)) for i, item in enumerate(value)]

    # ------------------------------------------------------------------
    # Scalars

    def _string(self, graph, node: StringNode, value, path):
        if not isinstance(value, str):
            self.unexpected_type(path, "string", value)
            return value

        if node.const is not None and value != node.const:
            self.report(path, ViolationKind.CONST_MISMATCH, f"expected '{node.const}'")
            return value
        if node.enum is not None and value not in node.enum:
            self.report(path, ViolationKind.ENUM_MISMATCH, f"'{value}' is not one of {list(node.enum)}")
            return value

        if node.max_length is not None or node.min_length is not None:
            size = utf8_length(value)
            if node.max_length is not None and size > node.max_length:
                self.report(
                    path, ViolationKind.STRING_TOO_LONG,
                    f"string is {size} bytes, at most {node.max_length} allowed", "maxLength",
                )
                return value
            if node.min_length is not None and size < node.min_length:
                self.report(
                    path, ViolationKind.STRING_TOO_SHORT,
                    f"string is {size} bytes, at least {node.min_length} required", "minLength",
                )
                return value

        if node.max_graphemes is not None or node.min_graphemes is not None:
            count = grapheme_count(value)
            if node.max_graphemes is not None and count > node.max_graphemes:
                self.report(
                    path, ViolationKind.STRING_TOO_MANY_GRAPHEMES,
                    f"string has {count} graphemes, at most {node.max_graphemes} allowed", "maxGraphemes",
                )
                return value
            if node.min_graphemes is not None and count < node.min_graphemes:
                self.report(
                    path, ViolationKind.STRING_TOO_FEW_GRAPHEMES,
                    f"string has {count} graphemes, at least {node.min_graphemes} required", "minGraphemes",
                )
                return value

        if node.format_validator is not None:
            try:
                return node.format_validator(value)
            except FormatError as exc:
                self.report(path, ViolationKind.FORMAT_MISMATCH, f"invalid {node.format}: {exc}", exc.rule)
        return value

    def _integer(self, graph, node: IntegerNode, value, path):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            self.unexpected_type(path, "integer", value)
            return value
        if isinstance(value, float):
            if not value.is_integer():
                self.unexpected_type(path, "integer", value)
                return value
            value = int(value)

        if node.const is not None and value != node.const:
            self.report(path, ViolationKind.CONST_MISMATCH, f"expected {node.const}")
        elif node.enum is not None and value not in node.enum:
            self.report(path, ViolationKind.ENUM_MISMATCH, f"{value} is not one of {list(node.enum)}")
        elif node.minimum is not None and value < node.minimum:
            self.report(path, ViolationKind.OUT_OF_RANGE, f"{value} is below the minimum {node.minimum}", "minimum")
        elif node.maximum is not None and value > node.maximum:
            self.report(path, ViolationKind.OUT_OF_RANGE, f"{value} is above the maximum {node.maximum}", "maximum")
        return value

    def _boolean(self, graph, node: BooleanNode, value, path):
        if not isinstance(value, bool):
            self.unexpected_type(path, "boolean", value)
        elif node.const is not None and value is not node.const:
            self.report(path, ViolationKind.CONST_MISMATCH, f"expected {str(node.const).lower()}")
        return value

    def _bytes(self, graph, node: BytesNode, value, path):
        if isinstance(value, (bytes, bytearray, memoryview)):
            data = bytes(value)
        elif isinstance(value, Mapping) and set(value) == {"$bytes"} and isinstance(value["$bytes"], str):
            encoded = value["$bytes"]
            try:
                data = base64.b64decode(encoded + "=" * (-len(encoded) % 4), validate=True)
            except (binascii.Error, ValueError):
                self.report(path, ViolationKind.FORMAT_MISMATCH, "'$bytes' is not valid base64", "BadBase64")
                return value
        else:
            self.unexpected_type(path, "bytes", value)
            return value

        if node.max_length is not None and len(data) > node.max_length:
            self.report(
                path, ViolationKind.BYTES_LENGTH_OUT_OF_BOUNDS,
                f"{len(data)} bytes, at most {node.max_length} allowed", "maxLength",
            )
        elif node.min_length is not None and len(data) < node.min_length:
            self.report(
                path, ViolationKind.BYTES_LENGTH_OUT_OF_BOUNDS,
                f"{len(data)} bytes, at least {node.min_length} required", "minLength",
            )
        return data

    def _link(self, value: Any, path: Path) -> Optional[str]:
        if isinstance(value, Cid):
            return value.encode()
        if not isinstance(value, Mapping) or set(value) != {"$link"}:
            self.unexpected_type(path, "cid link", value)
            return None
        try:
            return Cid.parse(value["$link"]).encode()
        except FormatError as exc:
            self.report(path + ("$link",), ViolationKind.FORMAT_MISMATCH, f"invalid cid: {exc}", exc.rule)
            return None

    def _cid_link(self, graph, node: CidLinkNode, value, path):
        cid = self._link(value, path)
        return value if cid is None else {"$link": cid}

    def _blob(self, graph, node: BlobNode, value, path):
        if not isinstance(value, Mapping):
            self.unexpected_type(path, "blob", value)
            return value

        if value.get("$type") == "blob":
            missing = [f for f in ("ref", "mimeType", "size") if f not in value]
            for name in missing:
                self.report(path + (name,), ViolationKind.MISSING_REQUIRED_FIELD, f"blob field '{name}' is missing")
            if missing:
                return value
            cid = self._link(value["ref"], path + ("ref",))
            size = value["size"]
            if isinstance(size, bool) or not isinstance(size, int) or size < 0:
                self.unexpected_type(path + ("size",), "non-negative integer", size)
                cid = None
            normalized = dict(value, ref={"$link": cid})
        elif "cid" in value and "mimeType" in value:
            # Legacy blob references carry neither size nor $type
            try:
                cid = Cid.parse(value["cid"]).encode()
            except FormatError as exc:
                self.report(path + ("cid",), ViolationKind.FORMAT_MISMATCH, f"invalid cid: {exc}", exc.rule)
                cid = None
            size = None
            normalized = dict(value, cid=cid)
        else:
            self.unexpected_type(path, "blob", value)
            return value

        mime_type = value["mimeType"]
        if not isinstance(mime_type, str) or "/" not in mime_type:
            self.unexpected_type(path + ("mimeType",), "mime type", mime_type)
            return value
        if cid is None:
            return value

        if node.accept is not None and not any(
            fnmatch.fnmatchcase(mime_type.lower(), pattern) for pattern in node.accept
        ):
            self.report(
                path + ("mimeType",), ViolationKind.MIME_TYPE_NOT_ACCEPTED,
                f"'{mime_type}' is not one of {list(node.accept)}",
            )
        elif node.max_size is not None and size is not None and size > node.max_size:
            self.report(
                path + ("size",), ViolationKind.BLOB_TOO_LARGE,
                f"blob is {size} bytes, at most {node.max_size} allowed", "maxSize",
            )
        return normalized

    def _null(self, graph, node: NullNode, value, path):
        if value is not None:
            self.unexpected_type(path, "null", value)
        return value

    def _unknown(self, graph, node: UnknownNode, value, path):
        if not is_data_value(value):
            self.unexpected_type(path, "JSON data", value)
        return value

    def _token(self, graph, node: TokenNode, value, path):
        if not isinstance(value, str):
            self.unexpected_type(path, "string", value)
        elif value != node.type_id:
            self.report(path, ViolationKind.CONST_MISMATCH, f"expected token '{node.type_id}'")
        return value

    # ------------------------------------------------------------------
    # References

    def _ref(self, graph, node: RefNode, value, path):
        return self.check(graph, node.target, value, path)

    def _external_ref(self, graph, node: ExternalRefNode, value, path):
        return self.check(node.target.graph, node.target.index, value, path)

    def _union(self, graph, node: UnionNode, value, path):
        if not isinstance(value, Mapping):
            self.unexpected_type(path, "object", value)
            return value
        if "$type" not in value:
            self.report(path + ("$type",), ViolationKind.MISSING_REQUIRED_FIELD, "union member needs '$type'")
            return value
        tag = value["$type"]
        if not isinstance(tag, str):
            self.unexpected_type(path + ("$type",), "string", tag)
            return value

        member = node.member_for(tag)
        if member is not None:
            return self.check(graph, member.target, value, path)
        if node.closed:
            self.report(
                path + ("$type",), ViolationKind.UNKNOWN_UNION_TAG,
                f"'{tag}' is not one of {[m.tag for m in node.members]}", tag,
            )
        elif not is_data_value(value):
            self.unexpected_type(path, "JSON data", value)
        return value

    def _method(self, graph, node, value, path):
        raise UnknownDefinitionError(
            "XRPC methods are validated through validate_parameters, validate_input or validate_output"
        )


_HANDLERS = {
    RecordNode: "_record",
    ObjectNode: "_object",
    ParamsNode: "_object",
    ArrayNode: "_array",
    StringNode: "_string",
    IntegerNode: "_integer",
    BooleanNode: "_boolean",
    BytesNode: "_bytes",
    BlobNode: "_blob",
    CidLinkNode: "_cid_link",
    NullNode: "_null",
    UnknownNode: "_unknown",
    TokenNode: "_token",
    RefNode: "_ref",
    ExternalRefNode: "_external_ref",
    UnionNode: "_union",
    QueryNode: "_method",
    ProcedureNode: "_method",
}


def validate_node(graph: SchemaGraph, index: NodeIndex, value: Any, path: Path = ()) -> ValidationOutcome:
    validator = ValueValidator()
    normalized = validator.check(graph, index, value, tuple(path))
    if validator.violations:
        logger.debug(f"{graph.label(index)}: {len(validator.violations)} violation(s)")
    return outcome(normalized, validator.violations)


def validate_value(handle: DefinitionHandle, value: Any, path: Path = ()) -> ValidationOutcome:
    """Validate *value* against the definition behind *handle*.

    Returns:
        ``Valid`` with the normalized value, or ``Invalid`` with every
        violation found.
    """
    return validate_node(handle.graph, handle.index, value, path)
