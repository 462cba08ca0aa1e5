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

"""BCP-47 (RFC 5646) language tags.

The primary language subtag must be a 2-3 letter ISO 639 code. RFC 5646
also reserves 4 letter and 5-8 letter primary subtags, but the IANA
registry holds none, so words such as ``english`` are rejected.
"""

from __future__ import annotations

import re
from typing import List

from ..exceptions import FormatError

_LANGTAG_RE = re.compile(
    r"""^
    (?P<language>[a-z]{2,3}(?:-[a-z]{3}){0,3})
    (?:-(?P<script>[a-z]{4}))?
    (?:-(?P<region>[a-z]{2}|[0-9]{3}))?
    (?P<variants>(?:-(?:[a-z0-9]{5,8}|[0-9][a-z0-9]{3}))*)
    (?P<extensions>(?:-[0-9a-wy-z](?:-[a-z0-9]{2,8})+)*)
    (?:-(?P<privateuse>x(?:-[a-z0-9]{1,8})+))?
    \Z""",
    re.VERBOSE,
)
_PRIVATEUSE_RE = re.compile(r"^x(?:-[a-z0-9]{1,8})+\Z")

GRANDFATHERED = frozenset(
    {
        # irregular
        "en-gb-oed", "i-ami", "i-bnn", "i-default", "i-enochian", "i-hak",
        "i-klingon", "i-lux", "i-mingo", "i-navajo", "i-pwn", "i-tao", "i-tay",
        "i-tsu", "sgn-be-fr", "sgn-be-nl", "sgn-ch-de",
        # regular
        "art-lojban", "cel-gaulish", "no-bok", "no-nyn", "zh-guoyu", "zh-hakka",
        "zh-min", "zh-min-nan", "zh-xiang",
    }
)


def canonical_case(tag: str) -> str:
    """Apply the RFC 5646 casing conventions.

    Language subtags are lowercase, 4 letter script subtags titlecase and
    2 letter region subtags uppercase. Everything after a singleton stays
    lowercase.
    """
    subtags = tag.lower().split("-")
    out: List[str] = [subtags[0]]
    after_singleton = len(subtags[0]) == 1
    for subtag in subtags[1:]:
        if after_singleton:
            out.append(subtag)
        elif len(subtag) == 1:
            after_singleton = True
            out.append(subtag)
        elif len(subtag) == 2:
            out.append(subtag.upper())
        elif len(subtag) == 4 and subtag.isalpha():
            out.append(subtag.title())
        else:
            out.append(subtag)
    return "-".join(out)


def _check_duplicates(variants: str, extensions: str, raw: str) -> None:
    seen = set()
    for variant in filter(None, variants.split("-")):
        if variant in seen:
            raise FormatError("DuplicateVariant", f"variant '{variant}' repeated", raw)
        seen.add(variant)
    singletons = [s for s in extensions.split("-") if len(s) == 1]
    if len(singletons) != len(set(singletons)):
        raise FormatError("DuplicateSingleton", "extension singleton repeated", raw)


def validate_language(raw: str) -> str:
    """Validate a language tag and return it in canonical case.

    Raises:
        FormatError: If the tag is not a valid BCP-47 language tag.
    """
    if not isinstance(raw, str) or not raw:
        raise FormatError("EmptyLanguageTag", "language tag is empty", raw)
    if not raw.isascii():
        raise FormatError("MalformedLanguageTag", "language tags are ASCII only", raw)

    tag = raw.lower()
    if tag in GRANDFATHERED or _PRIVATEUSE_RE.match(tag):
        return canonical_case(tag)

    subtags = tag.split("-")
    if any(len(s) > 8 or not s for s in subtags):
        raise FormatError("MalformedLanguageTag", "subtags must be 1-8 characters", raw)
    primary = subtags[0]
    if not primary.isalpha() or not 2 <= len(primary) <= 3:
        raise FormatError(
            "BadPrimaryLanguage", f"'{primary}' is not a 2-3 letter primary language subtag", raw
        )

    match = _LANGTAG_RE.match(tag)
    if match is None:
        raise FormatError("MalformedLanguageTag", "tag does not follow the BCP-47 grammar", raw)
    _check_duplicates(match.group("variants"), match.group("extensions"), raw)
    return canonical_case(tag)
