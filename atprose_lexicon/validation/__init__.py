"""Value validation against a compiled schema graph."""

from .outcome import Invalid, Valid, ValidationOutcome, Violation, ViolationKind, format_path
from .record import (
    RecordOutcome,
    validate_input,
    validate_key,
    validate_output,
    validate_parameters,
    validate_record,
)
from .validator import ValueValidator, grapheme_count, utf8_length, validate_node, validate_value
