"""File loading for lexicon documents and record files."""

from .lexicon_loader import DocumentRegistry, find_lexicon_files, load_document, load_registry
from .source_location import SourceLocation, format_source, lookup_source
from .yaml_parser import DataFileParser, data_parser
