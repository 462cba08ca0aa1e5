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

"""Namespaced identifiers (NSIDs) and lexicon type ids.

An NSID is a reversed domain authority followed by a name, e.g.
``app.bsky.feed.post`` has authority ``app.bsky.feed`` and name ``post``.
A type id addresses one definition of a lexicon document: ``<nsid>#<def>``,
where ``main`` is implied when the fragment is missing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..exceptions import FormatError

MAX_NSID_LENGTH = 317
MAX_AUTHORITY_LENGTH = 253
MAX_SEGMENT_LENGTH = 63
MAIN = "main"

_DOMAIN_SEGMENT_RE = re.compile(r"^[A-Za-z0-9]([A-Za-z0-9-]*[A-Za-z0-9])?\Z")
_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*\Z")
_DEF_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*\Z")


def validate_nsid(raw: str) -> str:
    """Validate an NSID and return its canonical form (lowercase authority).

    Raises:
        FormatError: If the NSID is invalid.
    """
    if not isinstance(raw, str) or not raw:
        raise FormatError("EmptyNsid", "NSID is empty", raw)
    if len(raw) > MAX_NSID_LENGTH:
        raise FormatError("NsidTooLong", f"NSID exceeds {MAX_NSID_LENGTH} characters", raw)

    segments = raw.split(".")
    if len(segments) < 3:
        raise FormatError("TooFewSegments", "NSID needs at least three segments", raw)

    *domain, name = segments
    authority = ".".join(domain)
    if len(authority) > MAX_AUTHORITY_LENGTH:
        raise FormatError("DomainTooLong", f"authority exceeds {MAX_AUTHORITY_LENGTH} characters", raw)

    for index, segment in enumerate(domain):
        if not segment:
            raise FormatError("EmptySegment", "NSID contains an empty segment", raw)
        if len(segment) > MAX_SEGMENT_LENGTH:
            raise FormatError("SegmentTooLong", f"segment '{segment}' exceeds {MAX_SEGMENT_LENGTH} characters", raw)
        if not segment.isascii() or not _DOMAIN_SEGMENT_RE.match(segment):
            raise FormatError("InvalidDomainSegment", f"invalid domain segment '{segment}'", raw)
        if index == 0 and segment[0].isdigit():
            raise FormatError("InvalidDomainSegment", "NSID may not start with a digit", raw)

    if not name:
        raise FormatError("EmptySegment", "NSID name is empty", raw)
    if len(name) > MAX_SEGMENT_LENGTH:
        raise FormatError("SegmentTooLong", f"name '{name}' exceeds {MAX_SEGMENT_LENGTH} characters", raw)
    if not name.isascii() or not _NAME_RE.match(name):
        raise FormatError("InvalidName", f"invalid NSID name '{name}'", raw)

    return f"{authority.lower()}.{name}"


@dataclass(frozen=True)
class Nsid:
    authority: str
    name: str

    @classmethod
    def parse(cls, raw: str) -> "Nsid":
        authority, _, name = validate_nsid(raw).rpartition(".")
        return cls(authority, name)

    def __str__(self) -> str:
        return f"{self.authority}.{self.name}"


@dataclass(frozen=True)
class TypeId:
    """A reference to one definition inside a lexicon document."""

    nsid: str
    name: str = MAIN

    @classmethod
    def parse(cls, raw: str) -> "TypeId":
        """Parse ``nsid`` or ``nsid#name``."""
        if not isinstance(raw, str):
            raise FormatError("InvalidTypeId", "type id must be a string", raw)
        nsid, sep, name = raw.partition("#")
        if sep and not _DEF_NAME_RE.match(name):
            raise FormatError("InvalidTypeId", f"invalid definition name '{name}'", raw)
        return cls(validate_nsid(nsid), name if sep else MAIN)

    @classmethod
    def resolve(cls, target: str, base: str) -> "TypeId":
        """Resolve a ref target relative to the document *base*.

        ``#name`` addresses a definition of the same document.
        """
        if isinstance(target, str) and target.startswith("#"):
            return cls.parse(f"{base}{target}")
        return cls.parse(target)

    @property
    def is_main(self) -> bool:
        return self.name == MAIN

    def __str__(self) -> str:
        if self.is_main:
            return self.nsid
        return f"{self.nsid}#{self.name}"
