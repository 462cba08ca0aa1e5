"""Lexicon documents and the compiled schema graph.

Documents are checked against a packaged JSON Schema before compilation;
the builder then links references, verifies formats and rejects
unsatisfiable reference cycles.
"""

from .builder import DefinitionHandle, GraphBuilder, Resolver, SchemaGraph, build_graph
from .document import LexiconDocument, parse_lexicon_json
from .nodes import KeyStrategy
