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

"""Lexicon document parsing and structural validation."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import jsonschema

from .. import LEXICON_VERSION
from ..exceptions import (
    DocumentStructureError,
    DuplicateDefinitionError,
    FormatError,
    LexiconVersionError,
    MisplacedPrimaryDefinitionError,
)
from ..identifiers.nsid import MAIN, validate_nsid

logger = logging.getLogger(__name__)

# Kinds that may only be declared as the document's main definition
PRIMARY_KINDS = frozenset({"record", "query", "procedure"})

_SCHEMA_PATH = Path(__file__).parent / "lexicon.schema.json"
_SCHEMA_CACHE: Dict[str, dict] = {}


def load_document_schema() -> dict:
    """Load the JSON Schema that describes the shape of a lexicon document."""
    cache_key = str(_SCHEMA_PATH)
    if cache_key in _SCHEMA_CACHE:
        return _SCHEMA_CACHE[cache_key]

    with open(_SCHEMA_PATH, "r", encoding="utf-8") as f:
        schema = json.load(f)

    _SCHEMA_CACHE[cache_key] = schema
    return schema


def _pointer(parts) -> str:
    return "/" + "/".join(str(p).replace("~", "~0").replace("/", "~1") for p in parts) if parts else ""


def structure_issues(raw: Any) -> List[Tuple[str, str]]:
    """Return ``(json_pointer, message)`` for every structural problem in *raw*."""
    validator = jsonschema.Draft7Validator(load_document_schema())
    issues = []
    for error in sorted(validator.iter_errors(raw), key=lambda e: list(map(str, e.absolute_path))):
        issues.append((_pointer(list(error.absolute_path)), error.message))
    return issues


def _reject_duplicate_keys(pairs):
    result = {}
    for key, value in pairs:
        if key in result:
            raise DuplicateDefinitionError(f"Duplicate definition or property name '{key}'")
        result[key] = value
    return result


def parse_lexicon_json(text: str) -> Any:
    """Decode lexicon JSON text, refusing duplicate object keys."""
    try:
        return json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as exc:
        raise DocumentStructureError(f"Invalid lexicon JSON: {exc.msg} (line {exc.lineno})") from exc


@dataclass(frozen=True)
class LexiconDocument:
    """A parsed, structurally checked lexicon document."""

    id: str
    defs: Mapping[str, Mapping[str, Any]]
    version: int = LEXICON_VERSION
    revision: Optional[int] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "LexiconDocument":
        """Check and wrap a decoded lexicon document.

        Raises:
            LexiconVersionError: If ``lexicon`` is not 1.
            DocumentStructureError: If the document shape is wrong.
            MisplacedPrimaryDefinitionError: If a record, query or procedure
                is declared under a name other than ``main``.
        """
        if not isinstance(raw, Mapping):
            raise DocumentStructureError(
                f"Lexicon document must be an object, got {type(raw).__name__}"
            )

        doc_id = raw.get("id") if isinstance(raw.get("id"), str) else None
        version = raw.get("lexicon")
        if version is not None and (isinstance(version, bool) or not isinstance(version, int) or version != LEXICON_VERSION):
            raise LexiconVersionError(
                f"Unsupported lexicon version {version!r}, expected {LEXICON_VERSION}",
                doc_id,
            )

        issues = structure_issues(raw)
        if issues:
            details = "\n".join(f"  - {message} (path={path or '/'})" for path, message in issues)
            raise DocumentStructureError(
                f"Lexicon document does not match the expected shape:\n{details}",
                doc_id,
            )

        try:
            doc_id = validate_nsid(raw["id"])
        except FormatError as exc:
            raise DocumentStructureError(f"Invalid lexicon id '{raw['id']}': {exc}", "/id") from exc

        for name, definition in raw["defs"].items():
            if definition["type"] in PRIMARY_KINDS and name != MAIN:
                raise MisplacedPrimaryDefinitionError(
                    f"'{definition['type']}' definitions must be named '{MAIN}', found '{name}'",
                    f"{doc_id}#{name}",
                )

        logger.debug(f"Parsed lexicon document {doc_id} with {len(raw['defs'])} definitions")
        return cls(
            id=doc_id,
            defs=dict(raw["defs"]),
            version=LEXICON_VERSION,
            revision=raw.get("revision"),
            description=raw.get("description"),
        )

    @classmethod
    def from_json(cls, text: str) -> "LexiconDocument":
        return cls.from_dict(parse_lexicon_json(text))
