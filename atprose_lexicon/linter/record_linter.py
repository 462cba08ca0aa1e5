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

"""Validate record files against a compiled schema graph.

Violations are reported with the line and column of the offending value
when the record file's source map knows them.
"""

import logging
from pathlib import Path
from typing import Optional

from ..exceptions import LexiconError
from ..file_io.source_location import SourceLocation, format_source, lookup_source
from ..file_io.yaml_parser import DataFileParser, data_parser
from ..schema.builder import SchemaGraph
from ..validation.record import validate_record
from .report import LintResult

logger = logging.getLogger(__name__)


class RecordLinter:
    """Linter for record instance files."""

    def __init__(
        self,
        graph: SchemaGraph,
        collection: Optional[str] = None,
        key: Optional[str] = None,
        parser: Optional[DataFileParser] = None,
    ):
        self.graph = graph
        self.collection = collection
        self.key = key
        self.parser = parser or data_parser

    def lint(self, file_path: Path, result: LintResult):
        """Validate one record file and add its violations to *result*."""
        try:
            record, source_map = self.parser.load_with_source(file_path)
        except LexiconError as e:
            result.add_error(f"Failed to load record file: {e}")
            return

        declared = record.get("$type") if isinstance(record, dict) else None
        collection = self.collection or declared
        if not isinstance(collection, str):
            result.add_error("Record has no '$type' and no collection was given", pointer="/$type")
            return
        if self.collection and declared is None:
            result.add_warning(f"Record has no '$type'; validating as '{self.collection}'")

        try:
            outcome = validate_record(self.graph, collection, record, key=self.key)
        except LexiconError as e:
            loc = lookup_source(source_map, "/$type")
            result.add_error(str(e), line=loc.line, column=loc.column, pointer="/$type")
            return

        for violation in outcome.violations:
            loc = lookup_source(source_map, violation.pointer)
            src = SourceLocation(file_path=file_path, pointer=violation.pointer or "/", line=loc.line, column=loc.column)
            result.add_error(
                f"{violation.kind}: {violation.message}{format_source(src)}",
                line=loc.line,
                column=loc.column,
                pointer=violation.pointer,
                kind=str(violation.kind),
            )
        logger.debug(f"Linted {file_path}: {len(result.errors)} error(s)")
