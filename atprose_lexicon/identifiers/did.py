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

"""Decentralized identifier (DID) validation.

Syntax: ``did:<method>:<method-specific-id>``. The method is lowercase ASCII
letters and digits. The method-specific id may contain letters, digits,
``._:-`` and RFC 3986 percent escapes, and may not end with ``:``.

``did:plc`` and ``did:web`` get method-specific checks; other methods are
accepted on syntax alone.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote

from ..config import lexicon_config
from ..exceptions import FormatError
from .encoding import decode_base32, encode_base32
from .handle import validate_handle

PLC_ID_LENGTH = 24
PLC_ID_SIZE = 15

_METHOD_RE = re.compile(r"^[a-z0-9]+\Z")
_MSID_CHARS_RE = re.compile(r"^[A-Za-z0-9._:%-]+\Z")
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class Did:
    method: str
    identifier: str

    @classmethod
    def parse(cls, raw: str) -> "Did":
        canonical = validate_did(raw)
        _, method, identifier = canonical.split(":", 2)
        return cls(method, identifier)

    def __str__(self) -> str:
        return f"did:{self.method}:{self.identifier}"


def decode_plc_id(identifier: str) -> bytes:
    """Decode a did:plc method-specific id into its 15 raw bytes."""
    if len(identifier) != PLC_ID_LENGTH:
        raise FormatError(
            "BadPlcIdentifier",
            f"did:plc identifier must be {PLC_ID_LENGTH} characters, got {len(identifier)}",
            identifier,
        )
    try:
        data = decode_base32(identifier)
    except ValueError as exc:
        raise FormatError("BadPlcIdentifier", str(exc), identifier) from exc
    return data


def encode_plc_id(data: bytes) -> str:
    if len(data) != PLC_ID_SIZE:
        raise ValueError(f"did:plc identifiers are {PLC_ID_SIZE} bytes, got {len(data)}")
    return encode_base32(data)


def validate_did(raw: str, max_length: Optional[int] = None) -> str:
    """Validate a DID and return it unchanged (DIDs are case-sensitive).

    Raises:
        FormatError: If the DID is invalid.
    """
    if max_length is None:
        max_length = lexicon_config.max_did_length

    if not isinstance(raw, str) or not raw.startswith("did:"):
        raise FormatError("MissingDidPrefix", "DID must start with 'did:'", raw)
    if len(raw) > max_length:
        raise FormatError("DidTooLong", f"DID exceeds {max_length} characters", raw)

    method, sep, identifier = raw[4:].partition(":")
    if not sep or not _METHOD_RE.match(method):
        raise FormatError("BadDidMethod", f"invalid DID method '{method}'", raw)
    if not identifier:
        raise FormatError("EmptyMethodSpecificId", "DID has no method-specific identifier", raw)
    if identifier.endswith(":"):
        raise FormatError("TrailingColon", "DID may not end with ':'", raw)
    if not _MSID_CHARS_RE.match(identifier):
        bad = next(c for c in identifier if not _MSID_CHARS_RE.match(c))
        raise FormatError("InvalidDidCharacter", f"invalid character {bad!r}", raw)
    if _BAD_ESCAPE_RE.search(identifier):
        raise FormatError("BadPercentEncoding", "'%' must be followed by two hex digits", raw)

    if method == "plc":
        decode_plc_id(identifier)
    elif method == "web":
        host = unquote(identifier)
        try:
            validate_handle(host, strict=True)
        except FormatError as exc:
            raise FormatError("BadWebHost", f"did:web host is not a valid hostname ({exc})", raw) from exc

    return raw
