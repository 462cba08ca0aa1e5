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

"""Custom exceptions for the atprose lexicon engine."""

from typing import Optional


class LexiconError(Exception):
    """Base exception for lexicon related errors."""
    pass


class BuildError(LexiconError):
    """Exception raised when a lexicon document set cannot be compiled into a graph.

    Build errors are schema-authoring mistakes. They are always fatal: a graph
    is never returned partially built.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{message} (at {path})"
        super().__init__(message)


class DocumentStructureError(BuildError):
    """Exception raised when a lexicon document does not have the expected shape."""
    pass


class LexiconVersionError(BuildError):
    """Exception raised when a document declares an unsupported lexicon version."""
    pass


class DuplicateDefinitionError(BuildError):
    """Exception raised for duplicate definition names or duplicate document ids."""
    pass


class MisplacedPrimaryDefinitionError(BuildError):
    """Exception raised when a record, query or procedure is not named 'main'."""
    pass


class UnknownFormatError(BuildError):
    """Exception raised when a string definition declares an unregistered format."""
    pass


class UnresolvedReferenceError(BuildError):
    """Exception raised for ref or union targets that do not exist."""
    pass


class ReferenceCycleError(BuildError):
    """Exception raised for reference cycles that no finite instance can satisfy."""
    pass


class UnknownDefinitionError(LexiconError):
    """Exception raised when a caller asks for a definition the graph does not hold."""
    pass


class LoaderError(LexiconError):
    """Exception raised when a lexicon or record file cannot be read or parsed."""
    pass


class FormatError(LexiconError):
    """Exception raised by identifier validators.

    ``rule`` names the specific rule that was violated (``LabelTooLong``,
    ``BadMultibasePrefix``, ``MissingTimezone``, ...).
    """

    def __init__(self, rule: str, message: str, value: Optional[str] = None):
        self.rule = rule
        self.value = value
        super().__init__(f"{rule}: {message}")
