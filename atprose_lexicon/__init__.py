"""Schema-driven validation of lexicon records and identifiers."""

# Only lexicon documents declaring this version are accepted
LEXICON_VERSION = 1

from .exceptions import BuildError, FormatError, LexiconError  # noqa: E402
from .formats import FormatRegistry, create_registry, default_registry  # noqa: E402
from .schema import DefinitionHandle, LexiconDocument, SchemaGraph, build_graph  # noqa: E402
from .validation import (  # noqa: E402
    Invalid,
    RecordOutcome,
    Valid,
    Violation,
    ViolationKind,
    validate_input,
    validate_output,
    validate_parameters,
    validate_record,
    validate_value,
)

__all__ = [
    "LEXICON_VERSION",
    "BuildError",
    "DefinitionHandle",
    "FormatError",
    "FormatRegistry",
    "Invalid",
    "LexiconDocument",
    "LexiconError",
    "RecordOutcome",
    "SchemaGraph",
    "Valid",
    "Violation",
    "ViolationKind",
    "build_graph",
    "create_registry",
    "default_registry",
    "validate_input",
    "validate_output",
    "validate_parameters",
    "validate_record",
    "validate_value",
]
