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

"""Handle validation.

A handle is a DNS hostname: dot-separated ASCII labels of 1-63 characters,
253 characters overall. Comparison is case-insensitive and the canonical
form is lowercase.
"""

from __future__ import annotations

import re
from typing import Optional

from ..config import lexicon_config
from ..exceptions import FormatError

MAX_HANDLE_LENGTH = 253
MAX_LABEL_LENGTH = 63

DISALLOWED_TLDS = frozenset(
    {"alt", "arpa", "example", "internal", "invalid", "local", "localhost", "onion"}
)

_LABEL_CHARS_RE = re.compile(r"^[A-Za-z0-9-]+\Z")


def validate_handle(raw: str, strict: Optional[bool] = None) -> str:
    """Validate a handle and return its canonical (lowercase) form.

    In strict mode (the default, see ``LexiconConfig.strict_handles``) a bare
    top-level label is rejected and reserved top-level domains are refused.

    Raises:
        FormatError: If the handle is invalid.
    """
    if strict is None:
        strict = lexicon_config.strict_handles

    if not isinstance(raw, str) or not raw:
        raise FormatError("EmptyHandle", "handle is empty", raw)
    if len(raw) > MAX_HANDLE_LENGTH:
        raise FormatError(
            "HandleTooLong", f"handle is {len(raw)} characters, limit is {MAX_HANDLE_LENGTH}", raw
        )

    labels = raw.split(".")
    if strict and len(labels) < 2:
        raise FormatError("MissingDomain", "handle must contain at least one dot", raw)

    last = len(labels) - 1
    for index, label in enumerate(labels):
        if not label:
            raise FormatError("EmptyLabel", "handle contains an empty label", raw)
        if len(label) > MAX_LABEL_LENGTH:
            raise FormatError(
                "LabelTooLong", f"label '{label}' exceeds {MAX_LABEL_LENGTH} characters", raw
            )
        if not _LABEL_CHARS_RE.match(label):
            bad = next(c for c in label if not (c.isascii() and (c.isalnum() or c == "-")))
            raise FormatError("InvalidHandleCharacter", f"invalid character {bad!r}", raw)
        if label.startswith("-") or label.endswith("-"):
            raise FormatError("LabelHyphen", f"label '{label}' starts or ends with a hyphen", raw)
        if index == last and last > 0 and label[0].isdigit():
            raise FormatError("NumericTld", f"top-level label '{label}' starts with a digit", raw)

    if strict and labels[-1].lower() in DISALLOWED_TLDS:
        raise FormatError("DisallowedTld", f"top-level domain '{labels[-1]}' is reserved", raw)

    return raw.lower()


def handles_equal(a: str, b: str) -> bool:
    return a.lower() == b.lower()
