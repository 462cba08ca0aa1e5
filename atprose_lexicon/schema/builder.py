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

"""Compile lexicon documents into an immutable schema graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from ..exceptions import (
    DocumentStructureError,
    DuplicateDefinitionError,
    FormatError,
    LexiconError,
    ReferenceCycleError,
    UnknownDefinitionError,
    UnresolvedReferenceError,
)
from ..formats import FormatRegistry, default_registry
from ..identifiers.nsid import MAIN, TypeId
from .document import LexiconDocument
from .nodes import (
    ArrayNode,
    BlobNode,
    BodyNode,
    BooleanNode,
    BytesNode,
    CidLinkNode,
    ExternalRefNode,
    IntegerNode,
    KeyStrategy,
    NodeIndex,
    NullNode,
    ObjectNode,
    ParamsNode,
    ProcedureNode,
    QueryNode,
    RecordNode,
    RefNode,
    SchemaNode,
    StringNode,
    TokenNode,
    UnionMember,
    UnionNode,
    UnknownNode,
)

logger = logging.getLogger(__name__)

# Kinds that may appear inside another definition
NESTED_KINDS = frozenset(
    {
        "object", "array", "string", "integer", "boolean", "bytes", "blob",
        "cid-link", "null", "ref", "union", "unknown",
    }
)
PARAM_KINDS = frozenset({"boolean", "integer", "string", "unknown", "array"})
BODY_SCHEMA_KINDS = frozenset({"object", "ref", "union"})


@dataclass(frozen=True)
class DefinitionHandle:
    """Points at one named definition inside a graph."""

    graph: "SchemaGraph"
    index: NodeIndex

    @property
    def node(self) -> SchemaNode:
        return self.graph.node(self.index)

    @property
    def type_id(self) -> str:
        return self.graph.label(self.index)

    def __repr__(self) -> str:
        return f"DefinitionHandle({self.type_id!r})"


Resolver = Callable[[str, str], Optional[DefinitionHandle]]


class SchemaGraph:
    """Immutable arena of compiled schema nodes.

    A graph is never modified after :func:`build_graph` returns it, so it may
    be shared across threads without locking.
    """

    def __init__(
        self,
        nodes: Iterable[SchemaNode],
        labels: Iterable[str],
        definitions: Mapping[Tuple[str, str], NodeIndex],
        documents: Mapping[str, LexiconDocument],
    ):
        self._nodes: Tuple[SchemaNode, ...] = tuple(nodes)
        self._labels: Tuple[str, ...] = tuple(labels)
        self._definitions = MappingProxyType(dict(definitions))
        self._documents = MappingProxyType(dict(documents))

    def node(self, index: NodeIndex) -> SchemaNode:
        return self._nodes[index]

    def label(self, index: NodeIndex) -> str:
        return self._labels[index]

    @property
    def document_ids(self) -> Tuple[str, ...]:
        return tuple(sorted(self._documents))

    def document(self, document_id: str) -> LexiconDocument:
        try:
            return self._documents[document_id]
        except KeyError:
            raise UnknownDefinitionError(f"Unknown lexicon document '{document_id}'") from None

    def lookup(self, document_id: str, name: str = MAIN) -> Optional[DefinitionHandle]:
        index = self._definitions.get((document_id, name))
        if index is None:
            return None
        return DefinitionHandle(self, index)

    # A graph's lookup doubles as the resolver of a dependent graph
    resolve = lookup

    def get(self, type_id: Union[str, TypeId]) -> DefinitionHandle:
        """Return the handle of ``nsid`` or ``nsid#name``.

        Raises:
            UnknownDefinitionError: If the graph has no such definition.
        """
        try:
            parsed = type_id if isinstance(type_id, TypeId) else TypeId.parse(type_id)
        except FormatError as exc:
            raise UnknownDefinitionError(f"Invalid definition id '{type_id}': {exc}") from exc
        handle = self.lookup(parsed.nsid, parsed.name)
        if handle is None:
            raise UnknownDefinitionError(f"Unknown definition '{parsed}'")
        return handle

    def definitions(self) -> Iterator[str]:
        for index in sorted(self._definitions.values()):
            yield self._labels[index]

    def __contains__(self, type_id: str) -> bool:
        try:
            self.get(type_id)
        except UnknownDefinitionError:
            return False
        return True

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"SchemaGraph(documents={len(self._documents)}, nodes={len(self._nodes)})"


class GraphBuilder:
    """Single-use compiler from lexicon documents to a :class:`SchemaGraph`."""

    def __init__(self, resolver: Optional[Resolver] = None, formats: Optional[FormatRegistry] = None):
        self.resolver = resolver
        self.formats = formats if formats is not None else default_registry

        self._nodes: List[Optional[SchemaNode]] = []
        self._labels: List[str] = []
        self._definitions: Dict[Tuple[str, str], NodeIndex] = {}
        self._documents: Dict[str, LexiconDocument] = {}
        self._external: Dict[Tuple[str, str], NodeIndex] = {}
        self._reference_sites: List[Tuple[NodeIndex, str]] = []

    def build(self, documents: Iterable[Union[LexiconDocument, Mapping[str, Any]]]) -> SchemaGraph:
        for document in documents:
            if not isinstance(document, LexiconDocument):
                document = LexiconDocument.from_dict(document)
            if document.id in self._documents:
                raise DuplicateDefinitionError(f"Lexicon document '{document.id}' is declared twice")
            self._documents[document.id] = document

        # Reserve every named definition first so refs can point forward
        ordered = [
            (doc_id, name) for doc_id in sorted(self._documents) for name in sorted(self._documents[doc_id].defs)
        ]
        for doc_id, name in ordered:
            self._definitions[(doc_id, name)] = self._reserve(str(TypeId(doc_id, name)))

        for doc_id, name in ordered:
            index = self._definitions[(doc_id, name)]
            raw = self._documents[doc_id].defs[name]
            logger.debug(f"Compiling definition {self._labels[index]} ({raw['type']})")
            self._nodes[index] = self._compile(doc_id, raw, self._labels[index], top_level=True)

        self._check_reference_targets()
        self._check_cycles()

        logger.debug(
            f"Built schema graph: {len(self._documents)} documents, "
            f"{len(self._definitions)} definitions, {len(self._nodes)} nodes"
        )
        return SchemaGraph(self._nodes, self._labels, self._definitions, self._documents)

    # ------------------------------------------------------------------
    # Arena helpers

    def _reserve(self, label: str) -> NodeIndex:
        self._nodes.append(None)
        self._labels.append(label)
        return len(self._nodes) - 1

    def _add(self, doc_id: str, raw: Mapping[str, Any], label: str, allowed=NESTED_KINDS) -> NodeIndex:
        if raw["type"] not in allowed:
            raise DocumentStructureError(
                f"'{raw['type']}' is not allowed here, expected one of {sorted(allowed)}", label
            )
        index = self._reserve(label)
        self._nodes[index] = self._compile(doc_id, raw, label)
        return index

    def _reference(self, doc_id: str, target: str, label: str) -> Tuple[NodeIndex, str]:
        try:
            type_id = TypeId.resolve(target, doc_id)
        except FormatError as exc:
            raise DocumentStructureError(f"Invalid reference '{target}': {exc}", label) from exc
        key = (type_id.nsid, type_id.name)

        if key in self._definitions:
            index = self._definitions[key]
            self._reference_sites.append((index, label))
            return index, str(type_id)
        if type_id.nsid in self._documents:
            raise UnresolvedReferenceError(f"Definition '{type_id}' does not exist", label)
        if key in self._external:
            return self._external[key], str(type_id)

        handle = None
        if self.resolver is not None:
            try:
                handle = self.resolver(*key)
            except LexiconError:
                raise
            except Exception as exc:
                logger.debug(f"Resolver failed for {type_id}: {exc}")
                raise UnresolvedReferenceError(f"Resolving '{target}' failed: {exc}", label) from exc
        if handle is None:
            raise UnresolvedReferenceError(f"Reference '{target}' does not resolve to a known definition", label)
        if isinstance(handle.node, (QueryNode, ProcedureNode)):
            raise DocumentStructureError(f"'{type_id}' is an XRPC method and cannot be referenced", label)

        index = self._reserve(str(type_id))
        self._nodes[index] = ExternalRefNode(type_id.nsid, type_id.name, handle)
        self._external[key] = index
        logger.debug(f"Linked external definition {type_id} from {label}")
        return index, str(type_id)

    # ------------------------------------------------------------------
    # Per-kind compilation

    def _compile(self, doc_id: str, raw: Mapping[str, Any], label: str, top_level: bool = False) -> SchemaNode:
        kind = raw["type"]

        if kind == "record":
            if raw["record"]["type"] != "object":
                raise DocumentStructureError("Record payload must be an object", f"{label}/record")
            return RecordNode(
                key=KeyStrategy.parse(raw["key"], f"{label}/key"),
                payload=self._add(doc_id, raw["record"], f"{label}/record"),
            )

        if kind in ("query", "procedure"):
            return self._compile_method(doc_id, raw, label)

        if kind == "params":
            if top_level:
                raise DocumentStructureError("'params' may only appear as method parameters", label)
            properties, required = self._compile_properties(doc_id, raw, label, PARAM_KINDS)
            return ParamsNode(properties=properties, required=required)

        if kind == "object":
            properties, required = self._compile_properties(doc_id, raw, label, NESTED_KINDS)
            nullable = frozenset(raw.get("nullable", ()))
            undeclared = sorted(nullable - set(properties))
            if undeclared:
                raise DocumentStructureError(f"Nullable fields {undeclared} are not declared properties", label)
            return ObjectNode(
                properties=properties,
                required=required,
                nullable=nullable,
                closed=raw.get("closed", False),
            )

        if kind == "array":
            self._check_bounds(raw, "minLength", "maxLength", label)
            return ArrayNode(
                items=self._add(doc_id, raw["items"], f"{label}/items"),
                min_length=raw.get("minLength"),
                max_length=raw.get("maxLength"),
            )

        if kind == "string":
            return self._compile_string(raw, label)

        if kind == "integer":
            self._check_bounds(raw, "minimum", "maximum", label)
            return IntegerNode(
                minimum=raw.get("minimum"),
                maximum=raw.get("maximum"),
                enum=tuple(raw["enum"]) if "enum" in raw else None,
                const=raw.get("const"),
                default=raw.get("default"),
            )

        if kind == "boolean":
            return BooleanNode(const=raw.get("const"), default=raw.get("default"))

        if kind == "bytes":
            self._check_bounds(raw, "minLength", "maxLength", label)
            return BytesNode(min_length=raw.get("minLength"), max_length=raw.get("maxLength"))

        if kind == "blob":
            accept = raw.get("accept")
            return BlobNode(accept=tuple(a.lower() for a in accept) if accept is not None else None,
                            max_size=raw.get("maxSize"))

        if kind == "cid-link":
            return CidLinkNode()
        if kind == "null":
            return NullNode()
        if kind == "unknown":
            return UnknownNode()

        if kind == "token":
            if not top_level:
                raise DocumentStructureError("Tokens may only be declared as named definitions", label)
            return TokenNode(type_id=label)

        if kind == "ref":
            target, type_id = self._reference(doc_id, raw["ref"], f"{label}/ref")
            return RefNode(target=target, type_id=type_id)

        if kind == "union":
            members = []
            seen = set()
            for i, ref in enumerate(raw["refs"]):
                target, type_id = self._reference(doc_id, ref, f"{label}/refs/{i}")
                if type_id in seen:
                    raise DuplicateDefinitionError(f"Union lists '{type_id}' twice", f"{label}/refs/{i}")
                seen.add(type_id)
                members.append(UnionMember(tag=type_id, target=target))
            return UnionNode(members=tuple(members), closed=raw.get("closed", False))

        raise DocumentStructureError(f"Unsupported definition type '{kind}'", label)

    def _compile_properties(self, doc_id, raw, label, allowed):
        properties = {}
        for name, sub in raw.get("properties", {}).items():
            properties[name] = self._add(doc_id, sub, f"{label}/properties/{name}", allowed)
        required = frozenset(raw.get("required", ()))
        undeclared = sorted(required - set(properties))
        if undeclared:
            raise DocumentStructureError(f"Required fields {undeclared} are not declared properties", label)
        return MappingProxyType(properties), required

    def _compile_string(self, raw: Mapping[str, Any], label: str) -> StringNode:
        self._check_bounds(raw, "minLength", "maxLength", label)
        self._check_bounds(raw, "minGraphemes", "maxGraphemes", label)
        format_name = raw.get("format")
        validator = self.formats.lookup(format_name, f"{label}/format") if format_name is not None else None
        return StringNode(
            format=format_name,
            format_validator=validator,
            min_length=raw.get("minLength"),
            max_length=raw.get("maxLength"),
            min_graphemes=raw.get("minGraphemes"),
            max_graphemes=raw.get("maxGraphemes"),
            enum=tuple(raw["enum"]) if "enum" in raw else None,
            known_values=tuple(raw.get("knownValues", ())),
            const=raw.get("const"),
            default=raw.get("default"),
        )

    def _compile_method(self, doc_id: str, raw: Mapping[str, Any], label: str) -> SchemaNode:
        parameters = None
        if "parameters" in raw:
            parameters = self._add(doc_id, raw["parameters"], f"{label}/parameters", frozenset({"params"}))

        bodies = {}
        for direction in ("input", "output"):
            body = raw.get(direction)
            if body is None:
                continue
            if direction == "input" and raw["type"] == "query":
                raise DocumentStructureError("Queries do not take an input body", f"{label}/input")
            schema = None
            if "schema" in body:
                schema = self._add(doc_id, body["schema"], f"{label}/{direction}/schema", BODY_SCHEMA_KINDS)
            bodies[direction] = BodyNode(encoding=body["encoding"], schema=schema)

        errors = tuple(error["name"] for error in raw.get("errors", ()))
        if raw["type"] == "query":
            return QueryNode(parameters=parameters, output=bodies.get("output"), errors=errors)
        return ProcedureNode(
            parameters=parameters,
            input=bodies.get("input"),
            output=bodies.get("output"),
            errors=errors,
        )

    @staticmethod
    def _check_bounds(raw: Mapping[str, Any], low: str, high: str, label: str) -> None:
        if low in raw and high in raw and raw[low] > raw[high]:
            raise DocumentStructureError(f"'{low}' ({raw[low]}) is greater than '{high}' ({raw[high]})", label)

    # ------------------------------------------------------------------
    # Graph-wide checks

    def _check_reference_targets(self) -> None:
        for index, label in self._reference_sites:
            if isinstance(self._nodes[index], (QueryNode, ProcedureNode)):
                raise DocumentStructureError(
                    f"'{self._labels[index]}' is an XRPC method and cannot be referenced", label
                )

    def _mandatory_targets(self, node: SchemaNode) -> Tuple[Tuple[NodeIndex, ...], bool]:
        """Return the targets a finite value must pass through and whether all or any are needed."""
        if isinstance(node, RecordNode):
            return (node.payload,), True
        if isinstance(node, ObjectNode):
            names = [n for n in node.properties if n in node.required and n not in node.nullable]
            return tuple(node.properties[n] for n in names), True
        if isinstance(node, ParamsNode):
            return tuple(node.properties[n] for n in node.properties if n in node.required), True
        if isinstance(node, ArrayNode):
            return ((node.items,) if node.min_length else ()), True
        if isinstance(node, RefNode):
            return (node.target,), True
        if isinstance(node, UnionNode) and node.closed and node.members:
            return tuple(m.target for m in node.members), False
        return (), True

    def _check_cycles(self) -> None:
        """Reject reference cycles that no finite value can satisfy.

        A node is inhabited when some finite value validates against it.
        Inhabitation is computed as a least fixpoint; whatever remains
        uninhabited sits on or leads into a cycle of mandatory edges.
        """
        inhabited = [False] * len(self._nodes)
        changed = True
        while changed:
            changed = False
            for index, node in enumerate(self._nodes):
                if inhabited[index]:
                    continue
                targets, need_all = self._mandatory_targets(node)
                check = all if need_all else any
                if not targets or check(inhabited[t] for t in targets):
                    inhabited[index] = True
                    changed = True

        if all(inhabited):
            return

        start = inhabited.index(False)
        trail = [start]
        position = {start: 0}
        while True:
            targets, _ = self._mandatory_targets(self._nodes[trail[-1]])
            following = next(t for t in targets if not inhabited[t])
            if following in position:
                cycle = trail[position[following]:] + [following]
                break
            position[following] = len(trail)
            trail.append(following)

        description = " -> ".join(self._labels[i] for i in cycle)
        raise ReferenceCycleError(
            f"Reference cycle without an optional field or array in between: {description}",
            self._labels[cycle[0]],
        )


def build_graph(
    documents: Iterable[Union[LexiconDocument, Mapping[str, Any]]],
    resolver: Optional[Resolver] = None,
    formats: Optional[FormatRegistry] = None,
) -> SchemaGraph:
    """Compile *documents* into an immutable :class:`SchemaGraph`.

    Args:
        documents: Parsed lexicon documents or their decoded JSON objects.
        resolver: Looks up definitions owned by other graphs, called as
            ``resolver(document_id, name)``. Return ``None`` when unknown.
        formats: Format registry; the default registry is used when omitted.

    Raises:
        BuildError: Any schema-authoring mistake. No partial graph is returned.
    """
    return GraphBuilder(resolver=resolver, formats=formats).build(documents)
