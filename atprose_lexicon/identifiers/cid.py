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

"""Content identifiers (CIDs).

A CIDv1 is ``<multibase prefix><encoded: version | codec | multihash>``;
a multihash is ``<hash code varint><digest length varint><digest>``. CIDv0
is a bare base58btc sha2-256 multihash starting with ``Qm``.

Equality is structural: two strings in different multibases that decode to
the same bytes are the same CID.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from ..exceptions import FormatError
from .encoding import (
    decode_base58,
    decode_varint,
    encode_base32,
    encode_base58,
    encode_varint,
)

SHA2_256 = 0x12
DAG_PB = 0x70
DAG_CBOR = 0x71
RAW = 0x55

# multihash code -> digest size in bytes (None: any size)
HASH_DIGEST_SIZES = {
    0x00: None,    # identity
    0x11: 20,      # sha1
    0x12: 32,      # sha2-256
    0x13: 64,      # sha2-512
    0x14: 64,      # sha3-512
    0x16: 32,      # sha3-256
    0x1B: 32,      # keccak-256
    0x1E: 32,      # blake3
    0xB220: 32,    # blake2b-256
}

CIDV0_LENGTH = 46


def _b64decode(data: str, altchars: bytes = None) -> bytes:
    padded = data + "=" * (-len(data) % 4)
    return base64.b64decode(padded, altchars=altchars, validate=True)


def _decode_multibase(text: str) -> bytes:
    prefix, body = text[0], text[1:]
    try:
        if prefix == "b":
            if body != body.lower():
                raise ValueError("base32 lower contains uppercase characters")
            return base64.b32decode(body.upper() + "=" * (-len(body) % 8))
        if prefix == "B":
            if body != body.upper():
                raise ValueError("base32 upper contains lowercase characters")
            return base64.b32decode(body + "=" * (-len(body) % 8))
        if prefix == "z":
            return decode_base58(body)
        if prefix in ("f", "F"):
            return bytes.fromhex(body)
        if prefix == "m":
            return _b64decode(body)
        if prefix == "u":
            return _b64decode(body, altchars=b"-_")
    except (binascii.Error, ValueError) as exc:
        raise FormatError("BadMultibaseEncoding", f"cannot decode multibase '{prefix}': {exc}", text) from exc
    raise FormatError("BadMultibasePrefix", f"unsupported multibase prefix {prefix!r}", text)


@dataclass(frozen=True)
class Cid:
    version: int
    codec: int
    hash_code: int
    digest: bytes

    @classmethod
    def parse(cls, text: str) -> "Cid":
        """Parse the string form of a CID.

        Raises:
            FormatError: If the CID is invalid.
        """
        if not isinstance(text, str) or not text:
            raise FormatError("EmptyCid", "CID is empty", text)
        if any(c.isspace() or not c.isprintable() for c in text):
            raise FormatError("BadMultibaseEncoding", "CID contains whitespace or control characters", text)
        if len(text) == CIDV0_LENGTH and text.startswith("Qm"):
            try:
                data = decode_base58(text)
            except ValueError as exc:
                raise FormatError("BadMultibaseEncoding", str(exc), text) from exc
            return cls.from_bytes(data, source=text)
        return cls.from_bytes(_decode_multibase(text), source=text)

    @classmethod
    def from_bytes(cls, data: bytes, source: str = None) -> "Cid":
        """Decode the binary form of a CID."""
        if source is None:
            source = data.hex()
        if len(data) == 34 and data[0] == SHA2_256 and data[1] == 32:
            return cls(0, DAG_PB, SHA2_256, bytes(data[2:]))

        try:
            version, offset = decode_varint(data)
            if version != 1:
                raise FormatError("UnsupportedCidVersion", f"CID version {version} is not supported", source)
            codec, offset = decode_varint(data, offset)
            hash_code, offset = decode_varint(data, offset)
            length, offset = decode_varint(data, offset)
        except ValueError as exc:
            raise FormatError("TruncatedCid", f"malformed CID header: {exc}", source) from exc

        digest = bytes(data[offset:])
        if len(digest) != length:
            raise FormatError(
                "DigestLengthMismatch",
                f"multihash declares {length} digest bytes but carries {len(digest)}",
                source,
            )
        expected = HASH_DIGEST_SIZES.get(hash_code)
        if expected is not None and length != expected:
            raise FormatError(
                "DigestLengthMismatch",
                f"hash 0x{hash_code:x} produces {expected} byte digests, got {length}",
                source,
            )
        return cls(version, codec, hash_code, digest)

    def to_bytes(self) -> bytes:
        multihash = encode_varint(self.hash_code) + encode_varint(len(self.digest)) + self.digest
        if self.version == 0:
            return multihash
        return encode_varint(self.version) + encode_varint(self.codec) + multihash

    def encode(self) -> str:
        """Canonical string form: base58btc for v0, base32 lower for v1."""
        if self.version == 0:
            return encode_base58(self.to_bytes())
        return "b" + encode_base32(self.to_bytes())

    def __str__(self) -> str:
        return self.encode()


def validate_cid(raw: str) -> str:
    return Cid.parse(raw).encode()
