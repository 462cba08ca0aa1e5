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

"""Base32 and base58 codecs shared by the identifier validators."""

from __future__ import annotations

import base64
import binascii
from typing import Tuple

# did:plc identifiers use the RFC 4648 alphabet, lowercased and unpadded.
BASE32_ALPHABET = "abcdefghijklmnopqrstuvwxyz234567"

# TIDs use a reordered alphabet so that string order matches numeric order.
BASE32_SORTABLE_ALPHABET = "234567abcdefghijklmnopqrstuvwxyz"
_SORTABLE_INDEX = {c: i for i, c in enumerate(BASE32_SORTABLE_ALPHABET)}

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {c: i for i, c in enumerate(BASE58_ALPHABET)}


def decode_base32(data: str) -> bytes:
    """Decode unpadded lowercase RFC 4648 base32.

    Raises:
        ValueError: If the input is not valid lowercase base32.
    """
    if any(c not in BASE32_ALPHABET for c in data):
        raise ValueError(f"invalid base32 character in {data!r}")
    padded = data.upper() + "=" * (-len(data) % 8)
    try:
        return base64.b32decode(padded)
    except binascii.Error as exc:
        raise ValueError(f"invalid base32 length in {data!r}") from exc


def encode_base32(data: bytes) -> str:
    return base64.b32encode(data).decode("ascii").rstrip("=").lower()


def encode_sortable_u64(value: int, width: int = 13) -> str:
    chars = []
    while value:
        value, rem = divmod(value, 32)
        chars.append(BASE32_SORTABLE_ALPHABET[rem])
    return "".join(reversed(chars)).rjust(width, BASE32_SORTABLE_ALPHABET[0])


def decode_sortable_u64(data: str) -> int:
    value = 0
    for c in data:
        index = _SORTABLE_INDEX.get(c)
        if index is None:
            raise ValueError(f"invalid base32-sortable character {c!r}")
        value = value * 32 + index
    if value >= 1 << 64:
        raise ValueError(f"value of {data!r} does not fit in 64 bits")
    return value


def decode_base58(data: str) -> bytes:
    """Decode base58btc (bitcoin alphabet)."""
    value = 0
    for c in data:
        index = _BASE58_INDEX.get(c)
        if index is None:
            raise ValueError(f"invalid base58 character {c!r}")
        value = value * 58 + index
    leading_zeros = len(data) - len(data.lstrip(BASE58_ALPHABET[0]))
    body = value.to_bytes((value.bit_length() + 7) // 8, "big") if value else b""
    return b"\x00" * leading_zeros + body


def encode_base58(data: bytes) -> str:
    value = int.from_bytes(data, "big")
    chars = []
    while value:
        value, rem = divmod(value, 58)
        chars.append(BASE58_ALPHABET[rem])
    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    return BASE58_ALPHABET[0] * leading_zeros + "".join(reversed(chars))


def decode_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode an unsigned LEB128 varint starting at *offset*.

    Returns:
        ``(value, next_offset)``

    Raises:
        ValueError: If the varint is truncated or longer than 9 bytes.
    """
    value = 0
    shift = 0
    for i in range(9):
        pos = offset + i
        if pos >= len(data):
            raise ValueError("truncated varint")
        byte = data[pos]
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            if byte == 0 and i > 0:
                raise ValueError("varint is not minimally encoded")
            return value, pos + 1
        shift += 7
    raise ValueError("varint longer than 9 bytes")


def encode_varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)
