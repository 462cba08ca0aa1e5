"""Identifier validators for protocol primitive strings.

Each validator is a pure function ``validate_x(raw) -> canonical`` that raises
:class:`~atprose_lexicon.exceptions.FormatError` tagged with the violated rule.
"""

from .at_uri import AtUri, validate_at_identifier, validate_at_uri, validate_uri
from .cid import Cid, validate_cid
from .did import Did, validate_did
from .handle import validate_handle
from .language import validate_language
from .nsid import Nsid, TypeId, validate_nsid
from .record_key import validate_record_key
from .tid import Tid, TidGenerator, validate_tid
from .timestamp import parse_datetime, validate_datetime

__all__ = [
    "AtUri",
    "Cid",
    "Did",
    "Nsid",
    "Tid",
    "TidGenerator",
    "TypeId",
    "parse_datetime",
    "validate_at_identifier",
    "validate_at_uri",
    "validate_cid",
    "validate_datetime",
    "validate_did",
    "validate_handle",
    "validate_language",
    "validate_nsid",
    "validate_record_key",
    "validate_tid",
    "validate_uri",
]
