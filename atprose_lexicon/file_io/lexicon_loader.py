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

"""Load lexicon documents from disk and serve them as a resolver."""

import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..exceptions import DuplicateDefinitionError, LoaderError
from ..formats import FormatRegistry
from ..schema.builder import DefinitionHandle, Resolver, SchemaGraph, build_graph
from ..schema.document import LexiconDocument
from .yaml_parser import DataFileParser, data_parser

logger = logging.getLogger(__name__)

LEXICON_SUFFIXES = (".json", ".yaml", ".yml")


def find_lexicon_files(base: Union[str, Path]) -> List[Path]:
    """Return every lexicon file below *base*, sorted by path."""
    base = Path(base)
    if not base.is_dir():
        raise LoaderError(f"Lexicon directory not found: {base}")
    return sorted(p for p in base.rglob("*") if p.is_file() and p.suffix.lower() in LEXICON_SUFFIXES)


def load_document(path: Union[str, Path], parser: Optional[DataFileParser] = None) -> LexiconDocument:
    """Read and structurally check one lexicon file.

    Raises:
        LoaderError: If the file cannot be read or parsed.
        BuildError: If the content is not a valid lexicon document.
    """
    parser = parser or data_parser
    document = LexiconDocument.from_dict(parser.load(path))
    logger.debug(f"Loaded lexicon {document.id} from {path}")
    return document


class DocumentRegistry:
    """A set of lexicon documents compiled on demand into one graph.

    The registry doubles as a resolver for graphs built elsewhere: pass
    ``registry.resolve`` as their ``resolver``. Adding documents discards the
    compiled graph, and the next :meth:`build` or :meth:`resolve` compiles a
    fresh one.
    """

    def __init__(
        self,
        resolver: Optional[Resolver] = None,
        formats: Optional[FormatRegistry] = None,
        parser: Optional[DataFileParser] = None,
    ):
        self.resolver = resolver
        self.formats = formats
        self.parser = parser or data_parser
        self._documents: Dict[str, LexiconDocument] = {}
        self._sources: Dict[str, Path] = {}
        self._graph: Optional[SchemaGraph] = None
        self._lock = threading.RLock()

    def add(self, document: LexiconDocument, source: Optional[Path] = None) -> None:
        with self._lock:
            if document.id in self._documents:
                previous = self._sources.get(document.id)
                where = f" (already loaded from {previous})" if previous else ""
                raise DuplicateDefinitionError(
                    f"Lexicon document '{document.id}' is declared twice{where}",
                    str(source) if source else None,
                )
            self._documents[document.id] = document
            if source is not None:
                self._sources[document.id] = Path(source)
            self._graph = None

    def add_all(self, documents: Iterable[LexiconDocument]) -> None:
        for document in documents:
            self.add(document)

    def load_file(self, path: Union[str, Path]) -> LexiconDocument:
        document = load_document(path, self.parser)
        self.add(document, Path(path))
        return document

    def load_directory(self, base: Union[str, Path]) -> int:
        """Load every lexicon file under *base*; return how many were loaded."""
        files = find_lexicon_files(base)
        for path in files:
            self.load_file(path)
        logger.debug(f"Loaded {len(files)} lexicon files from {base}")
        return len(files)

    def build(self) -> SchemaGraph:
        with self._lock:
            if self._graph is None:
                self._graph = build_graph(self._documents.values(), resolver=self.resolver, formats=self.formats)
            return self._graph

    def resolve(self, document_id: str, name: str) -> Optional[DefinitionHandle]:
        with self._lock:
            if document_id not in self._documents:
                return None
            return self.build().lookup(document_id, name)

    def source_of(self, document_id: str) -> Optional[Path]:
        return self._sources.get(document_id)

    @property
    def document_ids(self) -> List[str]:
        return sorted(self._documents)

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._documents

    def __len__(self) -> int:
        return len(self._documents)


def load_registry(base: Union[str, Path], resolver: Optional[Resolver] = None) -> DocumentRegistry:
    registry = DocumentRegistry(resolver=resolver)
    registry.load_directory(base)
    return registry
