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

"""Entry points for validating records and XRPC method payloads."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from ..exceptions import FormatError, UnknownDefinitionError
from ..identifiers.nsid import validate_nsid
from ..identifiers.record_key import validate_record_key
from ..identifiers.tid import TidGenerator, validate_tid
from ..schema.builder import SchemaGraph
from ..schema.nodes import BodyNode, KeyStrategy, ProcedureNode, QueryNode, RecordNode
from .outcome import Invalid, Valid, ValidationOutcome, Violation, ViolationKind, outcome
from .validator import validate_node

logger = logging.getLogger(__name__)

_default_generator = TidGenerator()


@dataclass(frozen=True)
class RecordOutcome:
    """Outcome of a record validation: the payload and the key are judged separately."""

    payload: ValidationOutcome
    key: ValidationOutcome

    @property
    def ok(self) -> bool:
        return self.payload.ok and self.key.ok

    @property
    def violations(self) -> Tuple[Violation, ...]:
        return self.payload.violations + self.key.violations


def _key_violation(message: str, detail: Optional[str] = None) -> Invalid:
    return Invalid((Violation(path=(), kind=ViolationKind.INVALID_KEY, message=message, detail=detail),))


def validate_key(strategy: KeyStrategy, key: Optional[str], generator: Optional[TidGenerator] = None) -> ValidationOutcome:
    """Check *key* against a record key strategy, deriving one when it is omitted.

    ``tid`` records get a freshly generated TID and ``literal:<value>``
    records get their literal; other strategies need an explicit key.
    """
    if key is None:
        if strategy.kind == "tid":
            return Valid((generator or _default_generator).next_str())
        if strategy.kind == "literal":
            return Valid(strategy.literal)
        return _key_violation(f"missing key for '{strategy}' record")

    try:
        validate_record_key(key)
        if strategy.kind == "tid":
            validate_tid(key)
        elif strategy.kind == "nsid":
            validate_nsid(key)
    except FormatError as exc:
        return _key_violation(f"invalid key for '{strategy}' record: {exc}", exc.rule)

    if strategy.kind == "literal" and key != strategy.literal:
        return _key_violation(f"key must be '{strategy.literal}'", "LiteralMismatch")
    return Valid(key)


def validate_record(
    graph: SchemaGraph,
    record_name: str,
    instance: Any,
    key: Optional[str] = None,
    generator: Optional[TidGenerator] = None,
) -> RecordOutcome:
    """Validate a record instance and its key.

    Args:
        graph: Compiled schema graph.
        record_name: Type id of the record definition (``nsid`` or ``nsid#main``).
        instance: The record payload.
        key: The record key, or None to derive one from the key strategy.
        generator: TID source for derived keys.

    Raises:
        UnknownDefinitionError: If *record_name* is not a record definition.
    """
    handle = graph.get(record_name)
    node = handle.node
    if not isinstance(node, RecordNode):
        raise UnknownDefinitionError(f"'{handle.type_id}' is not a record definition")

    payload = validate_node(graph, handle.index, instance, ())
    if isinstance(instance, Mapping) and instance.get("$type", handle.type_id) not in (handle.type_id, f"{handle.type_id}#main"):
        mismatch = Violation(
            path=("$type",),
            kind=ViolationKind.CONST_MISMATCH,
            message=f"record '$type' must be '{handle.type_id}', got {instance['$type']!r}",
        )
        payload = Invalid(payload.violations + (mismatch,))

    result = RecordOutcome(payload=payload, key=validate_key(node.key, key, generator))
    logger.debug(f"Validated {handle.type_id} record: {len(result.violations)} violation(s)")
    return result


def _method(graph: SchemaGraph, method: str, kinds) -> Tuple[Any, Any]:
    handle = graph.get(method)
    if not isinstance(handle.node, kinds):
        raise UnknownDefinitionError(f"'{handle.type_id}' is not a {' or '.join(k.__name__ for k in kinds)}")
    return handle, handle.node


def _validate_body(graph: SchemaGraph, body: Optional[BodyNode], value: Any, encoding: Optional[str], label: str) -> ValidationOutcome:
    if body is None:
        if value is None:
            return Valid(None)
        return Invalid((Violation((), ViolationKind.UNEXPECTED_FIELD, f"method declares no {label} body"),))

    if encoding is not None and not fnmatch.fnmatchcase(encoding.lower(), body.encoding.lower()):
        return Invalid((
            Violation((), ViolationKind.MIME_TYPE_NOT_ACCEPTED, f"{label} encoding must be '{body.encoding}', got '{encoding}'"),
        ))
    if body.schema is None:
        return Valid(value)
    return validate_node(graph, body.schema, value, ())


def validate_parameters(graph: SchemaGraph, method: str, params: Mapping[str, Any]) -> ValidationOutcome:
    """Validate the query parameters of a query or procedure."""
    _, node = _method(graph, method, (QueryNode, ProcedureNode))
    if node.parameters is None:
        violations = [
            Violation((name,), ViolationKind.UNEXPECTED_FIELD, f"unexpected parameter '{name}'") for name in params
        ]
        return outcome(dict(params), violations)
    return validate_node(graph, node.parameters, params, ())


def validate_input(graph: SchemaGraph, method: str, body: Any, encoding: Optional[str] = None) -> ValidationOutcome:
    """Validate the input body of a procedure."""
    _, node = _method(graph, method, (ProcedureNode,))
    return _validate_body(graph, node.input, body, encoding, "input")


def validate_output(graph: SchemaGraph, method: str, body: Any, encoding: Optional[str] = None) -> ValidationOutcome:
    """Validate the output body of a query or procedure."""
    _, node = _method(graph, method, (QueryNode, ProcedureNode))
    return _validate_body(graph, node.output, body, encoding, "output")
