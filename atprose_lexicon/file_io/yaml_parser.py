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

"""JSON/YAML data file parser with caching and source maps."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from ..config import lexicon_config
from ..exceptions import DocumentStructureError, DuplicateDefinitionError, LoaderError
from ..schema.document import parse_lexicon_json

logger = logging.getLogger(__name__)

SourceMap = Dict[str, Dict[str, int]]

MERGE_TAG = "tag:yaml.org,2002:merge"


class UniqueKeyLoader(yaml.SafeLoader):
    """``yaml.SafeLoader`` that refuses a key repeated within one mapping."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            if key_node.tag == MERGE_TAG:
                continue
            key = self.construct_object(key_node, deep=deep)
            try:
                repeated = key in seen
            except TypeError:
                # unhashable keys are reported by SafeLoader itself
                continue
            if repeated:
                mark = key_node.start_mark
                raise DuplicateDefinitionError(
                    f"Duplicate definition or property name '{key}' (line {mark.line + 1}, column {mark.column + 1})"
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


class DataFileParser:
    """Loads ``.json``, ``.yaml`` and ``.yml`` files.

    Both formats are decoded strictly: a key repeated within one object is a
    :class:`~atprose_lexicon.exceptions.DuplicateDefinitionError`. Every load also
    produces a source map from JSON pointers to 1-based line/column, built
    from PyYAML's node tree; YAML is a superset of JSON, so the same
    composer serves both.
    """

    def __init__(self, cache_enabled: Optional[bool] = None):
        self.cache_enabled = cache_enabled if cache_enabled is not None else lexicon_config.cache_enabled
        self._cache: Dict[Path, Tuple[Any, SourceMap]] = {}

    @staticmethod
    def _json_pointer_escape(token: str) -> str:
        return token.replace("~", "~0").replace("/", "~1")

    @classmethod
    def build_source_map(cls, content: str) -> SourceMap:
        """Map JSON pointers (e.g. ``/body/languages/0``) to 1-based line/column."""
        source_map: SourceMap = {}

        try:
            root = yaml.compose(content, Loader=yaml.SafeLoader)
        except yaml.YAMLError:
            # Parsing errors are reported by the data load itself
            return source_map

        if root is None:
            return source_map

        def _walk(node, path: str) -> None:
            mark = node.start_mark
            source_map[path] = {"line": mark.line + 1, "column": mark.column + 1}

            if isinstance(node, yaml.nodes.MappingNode):
                for key_node, value_node in node.value:
                    _walk(value_node, f"{path}/{cls._json_pointer_escape(str(key_node.value))}")
            elif isinstance(node, yaml.nodes.SequenceNode):
                for idx, item_node in enumerate(node.value):
                    _walk(item_node, f"{path}/{idx}")

        _walk(root, "")
        return source_map

    @staticmethod
    def parse_content(content: str, suffix: str = ".json") -> Any:
        if suffix == ".json":
            return parse_lexicon_json(content)
        return yaml.load(content, Loader=UniqueKeyLoader)

    def load_with_source(self, file_path: Union[str, Path]) -> Tuple[Any, SourceMap]:
        """Load a data file and return ``(data, source_map)``.

        Raises:
            LoaderError: If the file cannot be read or parsed.
            DuplicateDefinitionError: If an object repeats a key.
        """
        path = Path(file_path)

        if not path.is_file():
            raise LoaderError(f"Data file not found: {path}")

        if self.cache_enabled and path in self._cache:
            logger.debug(f"Loading data file from cache: {path}")
            return self._cache[path]

        logger.debug(f"Loading data file: {path}")
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise LoaderError(f"Failed to read data file {path}: {exc}") from exc

        try:
            data = self.parse_content(content, path.suffix.lower())
        except yaml.YAMLError as exc:
            raise LoaderError(f"Failed to parse YAML file {path}: {exc}") from exc
        except DuplicateDefinitionError as exc:
            raise DuplicateDefinitionError(f"{exc} in {path}") from exc
        except DocumentStructureError as exc:
            raise LoaderError(f"Failed to parse JSON file {path}: {exc}") from exc

        result = (data, self.build_source_map(content))
        if self.cache_enabled:
            self._cache[path] = result
        return result

    def load(self, file_path: Union[str, Path]) -> Any:
        return self.load_with_source(file_path)[0]

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.debug("Data file cache cleared")


# Global parser instance
data_parser = DataFileParser()
