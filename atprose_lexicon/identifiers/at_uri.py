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

"""AT identifiers, ``at://`` URIs and generic URIs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..exceptions import FormatError
from .did import validate_did
from .handle import validate_handle
from .nsid import validate_nsid
from .record_key import validate_record_key

MAX_URI_LENGTH = 8192

_URI_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:\S+\Z")


def validate_at_identifier(raw: str) -> str:
    """Validate a DID or a handle."""
    if isinstance(raw, str) and raw.startswith("did:"):
        return validate_did(raw)
    return validate_handle(raw)


@dataclass(frozen=True)
class AtUri:
    authority: str
    collection: Optional[str] = None
    record_key: Optional[str] = None

    @classmethod
    def parse(cls, raw: str) -> "AtUri":
        """Parse ``at://<authority>[/<collection>[/<rkey>]]``.

        Raises:
            FormatError: If the URI is invalid.
        """
        if not isinstance(raw, str) or not raw.startswith("at://"):
            raise FormatError("BadUriScheme", "AT URI must start with 'at://'", raw)
        if len(raw) > MAX_URI_LENGTH:
            raise FormatError("UriTooLong", f"URI exceeds {MAX_URI_LENGTH} characters", raw)

        rest = raw[len("at://"):]
        if "?" in rest:
            raise FormatError("UriQuery", "unexpected ?query in AT URI", raw)
        if "#" in rest:
            raise FormatError("UriFragment", "unexpected #fragment in AT URI", raw)
        if "@" in rest:
            raise FormatError("UriCredentials", "unexpected credentials@ in AT URI", raw)

        if rest.endswith("/"):
            rest = rest[:-1]
        parts = rest.split("/")
        if len(parts) > 3 or any(not p for p in parts):
            raise FormatError("BadUriPath", "unrecognized AT URI path", raw)

        authority = validate_at_identifier(parts[0])
        collection = validate_nsid(parts[1]) if len(parts) > 1 else None
        record_key = validate_record_key(parts[2]) if len(parts) > 2 else None
        return cls(authority, collection, record_key)

    def __str__(self) -> str:
        uri = f"at://{self.authority}"
        if self.collection is not None:
            uri += f"/{self.collection}"
            if self.record_key is not None:
                uri += f"/{self.record_key}"
        return uri


def validate_at_uri(raw: str) -> str:
    return str(AtUri.parse(raw))


def validate_uri(raw: str) -> str:
    """Validate a generic RFC 3986 URI (scheme plus non-empty remainder)."""
    if not isinstance(raw, str) or not raw:
        raise FormatError("BadUriScheme", "URI is empty", raw)
    if len(raw) > MAX_URI_LENGTH:
        raise FormatError("UriTooLong", f"URI exceeds {MAX_URI_LENGTH} characters", raw)
    if not _URI_RE.match(raw):
        raise FormatError("BadUriScheme", "URI needs a scheme and no whitespace", raw)
    return raw
