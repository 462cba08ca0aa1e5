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

"""Linter package for lexicon record files."""

from pathlib import Path
from typing import List, Optional

from ..exceptions import LexiconError
from ..schema.builder import SchemaGraph
from .record_linter import RecordLinter
from .report import LintResult

__all__ = ['lint_files', 'LintResult', 'RecordLinter']


def lint_files(
    graph: SchemaGraph,
    file_paths: List[Path],
    collection: Optional[str] = None,
    key: Optional[str] = None,
) -> List[LintResult]:
    """Lint a list of record files.

    Args:
        graph: Schema graph holding the record definitions
        file_paths: List of file paths to lint
        collection: Record type to validate against instead of each file's '$type'
        key: Record key to validate; derived from the key strategy when omitted

    Returns:
        List of LintResult objects, one per file
    """
    results = []
    record_linter = RecordLinter(graph, collection=collection, key=key)

    for file_path in file_paths:
        result = LintResult(file_path)
        try:
            record_linter.lint(file_path, result)
        except LexiconError as e:
            result.add_error(f"Unexpected error during linting: {e}")
        results.append(result)

    return results
