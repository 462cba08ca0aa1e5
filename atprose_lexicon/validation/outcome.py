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

"""Validation outcomes and violation records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Tuple, Union

PathSegment = Union[str, int]
Path = Tuple[PathSegment, ...]


class ViolationKind(str, Enum):
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    UNEXPECTED_TYPE = "UnexpectedType"
    UNEXPECTED_FIELD = "UnexpectedField"
    STRING_TOO_LONG = "StringTooLong"
    STRING_TOO_SHORT = "StringTooShort"
    STRING_TOO_MANY_GRAPHEMES = "StringTooManyGraphemes"
    STRING_TOO_FEW_GRAPHEMES = "StringTooFewGraphemes"
    OUT_OF_RANGE = "OutOfRange"
    FORMAT_MISMATCH = "FormatMismatch"
    ENUM_MISMATCH = "EnumMismatch"
    CONST_MISMATCH = "ConstMismatch"
    UNKNOWN_UNION_TAG = "UnknownUnionTag"
    ARRAY_LENGTH_OUT_OF_BOUNDS = "ArrayLengthOutOfBounds"
    BYTES_LENGTH_OUT_OF_BOUNDS = "BytesLengthOutOfBounds"
    BLOB_TOO_LARGE = "BlobTooLarge"
    MIME_TYPE_NOT_ACCEPTED = "MimeTypeNotAccepted"
    INVALID_KEY = "InvalidKey"

    def __str__(self) -> str:
        return self.value


def _jp_escape(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def format_path(path: Path) -> str:
    """Render *path* as a JSON pointer (``""`` for the root)."""
    return "".join(f"/{_jp_escape(str(segment))}" for segment in path)


@dataclass(frozen=True)
class Violation:
    """One failed constraint at one location of the validated value.

    ``detail`` carries the specific rule for format violations (the
    :class:`~atprose_lexicon.exceptions.FormatError` rule) and the violated
    bound for range violations.
    """

    path: Path
    kind: ViolationKind
    message: str
    detail: Optional[str] = None

    @property
    def pointer(self) -> str:
        return format_path(self.path)

    def __str__(self) -> str:
        return f"{self.pointer or '/'}: {self.kind}: {self.message}"


@dataclass(frozen=True)
class Valid:
    """A successful outcome carrying the normalized value."""

    value: Any

    @property
    def ok(self) -> bool:
        return True

    @property
    def violations(self) -> Tuple[Violation, ...]:
        return ()


@dataclass(frozen=True)
class Invalid:
    """A failed outcome carrying every violation, in discovery order."""

    violations: Tuple[Violation, ...]

    @property
    def ok(self) -> bool:
        return False


ValidationOutcome = Union[Valid, Invalid]


def outcome(value: Any, violations: Iterable[Violation]) -> ValidationOutcome:
    violations = tuple(violations)
    if violations:
        return Invalid(violations)
    return Valid(value)
