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

"""Compiled schema nodes.

Nodes live in the arena of a :class:`~atprose_lexicon.schema.builder.SchemaGraph`
and point at each other by arena index, never by object reference.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Mapping, Optional, Tuple, Union

from ..exceptions import DocumentStructureError

NodeIndex = int


@dataclass(frozen=True)
class KeyStrategy:
    """How the key of a record is chosen: ``tid``, ``literal:<value>``, ``any`` or ``nsid``."""

    kind: str
    literal: Optional[str] = None

    @classmethod
    def parse(cls, raw: str, path: Optional[str] = None) -> "KeyStrategy":
        if raw in ("tid", "any", "nsid"):
            return cls(raw)
        if raw.startswith("literal:") and len(raw) > len("literal:"):
            return cls("literal", raw[len("literal:"):])
        raise DocumentStructureError(f"Unknown record key strategy '{raw}'", path)

    def __str__(self) -> str:
        if self.kind == "literal":
            return f"literal:{self.literal}"
        return self.kind


@dataclass(frozen=True)
class RecordNode:
    key: KeyStrategy
    payload: NodeIndex


@dataclass(frozen=True)
class ObjectNode:
    # Ordered: violations are reported in declaration order
    properties: Mapping[str, NodeIndex]
    required: FrozenSet[str] = frozenset()
    nullable: FrozenSet[str] = frozenset()
    closed: bool = False


@dataclass(frozen=True)
class ParamsNode:
    properties: Mapping[str, NodeIndex]
    required: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class ArrayNode:
    items: NodeIndex
    min_length: Optional[int] = None
    max_length: Optional[int] = None


@dataclass(frozen=True)
class StringNode:
    format: Optional[str] = None
    format_validator: Optional[Callable[[str], str]] = field(default=None, compare=False, repr=False)
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_graphemes: Optional[int] = None
    max_graphemes: Optional[int] = None
    enum: Optional[Tuple[str, ...]] = None
    known_values: Tuple[str, ...] = ()
    const: Optional[str] = None
    default: Optional[str] = None


@dataclass(frozen=True)
class IntegerNode:
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    enum: Optional[Tuple[int, ...]] = None
    const: Optional[int] = None
    default: Optional[int] = None


@dataclass(frozen=True)
class BooleanNode:
    const: Optional[bool] = None
    default: Optional[bool] = None


@dataclass(frozen=True)
class BytesNode:
    min_length: Optional[int] = None
    max_length: Optional[int] = None


@dataclass(frozen=True)
class BlobNode:
    accept: Optional[Tuple[str, ...]] = None
    max_size: Optional[int] = None


@dataclass(frozen=True)
class CidLinkNode:
    pass


@dataclass(frozen=True)
class NullNode:
    pass


@dataclass(frozen=True)
class UnknownNode:
    pass


@dataclass(frozen=True)
class TokenNode:
    type_id: str


@dataclass(frozen=True)
class RefNode:
    target: NodeIndex
    type_id: str


@dataclass(frozen=True)
class UnionMember:
    tag: str
    target: NodeIndex


@dataclass(frozen=True)
class UnionNode:
    members: Tuple[UnionMember, ...]
    closed: bool = False

    def member_for(self, tag: str) -> Optional[UnionMember]:
        if tag.endswith("#main"):
            tag = tag[: -len("#main")]
        for member in self.members:
            if member.tag == tag:
                return member
        return None


@dataclass(frozen=True)
class ExternalRefNode:
    """A definition owned by a graph outside the current build.

    *target* is the handle the resolver returned at build time. Values are
    checked against that handle, so later changes to whatever backs the
    resolver do not affect a graph that is already built.
    """

    document_id: str
    name: str
    target: Any = field(compare=False, repr=False)

    @property
    def type_id(self) -> str:
        return self.document_id if self.name == "main" else f"{self.document_id}#{self.name}"


@dataclass(frozen=True)
class BodyNode:
    encoding: str
    schema: Optional[NodeIndex] = None


@dataclass(frozen=True)
class QueryNode:
    parameters: Optional[NodeIndex] = None
    output: Optional[BodyNode] = None
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProcedureNode:
    parameters: Optional[NodeIndex] = None
    input: Optional[BodyNode] = None
    output: Optional[BodyNode] = None
    errors: Tuple[str, ...] = ()


SchemaNode = Union[
    RecordNode,
    ObjectNode,
    ParamsNode,
    ArrayNode,
    StringNode,
    IntegerNode,
    BooleanNode,
    BytesNode,
    BlobNode,
    CidLinkNode,
    NullNode,
    UnknownNode,
    TokenNode,
    RefNode,
    UnionNode,
    ExternalRefNode,
    QueryNode,
    ProcedureNode,
]
