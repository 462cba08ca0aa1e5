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

from __future__ import annotations

from ..exceptions import FormatError
from .tid import validate_tid

MAX_RECORD_KEY_BYTES = 512


def validate_record_key(raw: str) -> str:
    """Validate a record key: a TID or any 1-512 byte string without '/'.

    The path segments ``.`` and ``..`` are refused, as are whitespace and
    control characters.

    Raises:
        FormatError: If the key is invalid.
    """
    if not isinstance(raw, str) or not raw:
        raise FormatError("RecordKeyLength", "record key is empty", raw)
    if len(raw.encode("utf-8")) > MAX_RECORD_KEY_BYTES:
        raise FormatError("RecordKeyLength", f"record key exceeds {MAX_RECORD_KEY_BYTES} bytes", raw)
    if raw in (".", ".."):
        raise FormatError("RecordKeyDotSegment", f"'{raw}' is not a valid record key", raw)
    if "/" in raw:
        raise FormatError("RecordKeySlash", "record key may not contain '/'", raw)
    bad = next((c for c in raw if c.isspace() or not c.isprintable()), None)
    if bad is not None:
        raise FormatError("RecordKeyCharacter", f"record key may not contain {bad!r}", raw)
    return raw


def is_tid(raw: str) -> bool:
    try:
        validate_tid(raw)
    except FormatError:
        return False
    return True
