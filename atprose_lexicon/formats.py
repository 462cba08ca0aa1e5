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

"""Registry of string formats usable in a schema's ``format`` property."""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from .exceptions import UnknownFormatError
from .identifiers import (
    validate_at_identifier,
    validate_at_uri,
    validate_cid,
    validate_datetime,
    validate_did,
    validate_handle,
    validate_language,
    validate_nsid,
    validate_record_key,
    validate_tid,
    validate_uri,
)

FormatValidator = Callable[[str], str]


class FormatRegistry:
    """Maps format names to identifier validators.

    Lookups of unknown names raise :class:`UnknownFormatError`, so a schema
    with a misspelled format fails at build time. A frozen registry refuses
    :meth:`register`; :meth:`copy` always returns an unfrozen one.
    """

    def __init__(self, validators: Optional[Mapping[str, FormatValidator]] = None, frozen: bool = False):
        self._validators: Dict[str, FormatValidator] = dict(validators or {})
        self._frozen = frozen

    def register(self, name: str, validator: FormatValidator) -> None:
        if self._frozen:
            raise TypeError(f"Cannot register format '{name}' on a frozen registry; use create_registry()")
        self._validators[name] = validator

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, name: str, path: Optional[str] = None) -> FormatValidator:
        validator = self._validators.get(name)
        if validator is None:
            raise UnknownFormatError(
                f"Unknown string format '{name}'. Known formats: {sorted(self._validators)}",
                path,
            )
        return validator

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._validators))

    def __contains__(self, name: str) -> bool:
        return name in self._validators

    def copy(self) -> "FormatRegistry":
        return FormatRegistry(self._validators)


DEFAULT_FORMATS: Mapping[str, FormatValidator] = MappingProxyType({
    "at-identifier": validate_at_identifier,
    "at-uri": validate_at_uri,
    "cid": validate_cid,
    "datetime": validate_datetime,
    "did": validate_did,
    "handle": validate_handle,
    "language": validate_language,
    "nsid": validate_nsid,
    "record-key": validate_record_key,
    "tid": validate_tid,
    "uri": validate_uri,
})

# shared by every graph built without an explicit registry
default_registry = FormatRegistry(DEFAULT_FORMATS, frozen=True)


def create_registry(extra: Optional[Iterable[Tuple[str, FormatValidator]]] = None) -> FormatRegistry:
    """Return a copy of the default registry, optionally extended."""
    registry = default_registry.copy()
    for name, validator in extra or ():
        registry.register(name, validator)
    return registry
