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

"""CLI entry point for linting lexicon record files."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import lexicon_config
from ..exceptions import LexiconError
from ..file_io.lexicon_loader import LEXICON_SUFFIXES, DocumentRegistry
from . import LintResult, lint_files

logger = logging.getLogger(__name__)


def find_record_files(paths: List[str]) -> List[Path]:
    """Find all JSON/YAML record files in the given paths."""
    record_files = []

    for path_str in paths:
        path = Path(path_str)

        if not path.exists():
            logger.warning(f"Path does not exist: {path}")
            continue

        if path.is_file():
            if path.suffix.lower() in LEXICON_SUFFIXES:
                record_files.append(path)
            else:
                logger.warning(f"File is not a JSON or YAML file: {path}")
        elif path.is_dir():
            record_files.extend(p for p in path.rglob('*') if p.is_file() and p.suffix.lower() in LEXICON_SUFFIXES)
        else:
            logger.warning(f"Path is neither file nor directory: {path}")

    return sorted(set(record_files))


def _position(entry: Dict[str, Any]) -> str:
    if 'line' not in entry:
        return ""
    if 'column' in entry:
        return f":{entry['line']}:{entry['column']}"
    return f":{entry['line']}"


def _annotation(level: str, file_path: Path, entry: Dict[str, Any]) -> str:
    props = f"file={file_path},line={entry.get('line', 1)}"
    if 'column' in entry:
        props += f",col={entry['column']}"
    return f"::{level} {props}::{entry['message']}"


def print_results(results: List[LintResult], output_format: str) -> None:
    if output_format == 'json':
        output = {
            'files': len(results),
            'errors': sum(len(r.errors) for r in results),
            'warnings': sum(len(r.warnings) for r in results),
            'results': [r.to_dict() for r in results],
        }
        print(json.dumps(output, indent=2))
    elif output_format == 'github-actions':
        for result in results:
            for error in result.errors:
                print(_annotation('error', result.file_path, error))
            for warning in result.warnings:
                print(_annotation('warning', result.file_path, warning))
    else:  # human-readable
        for result in results:
            if result.errors or result.warnings:
                print(f"\n{result.file_path}:")
                for error in result.errors:
                    print(f"  ERROR{_position(error)}: {error['message']}")
                for warning in result.warnings:
                    print(f"  WARNING{_position(warning)}: {warning['message']}")


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the linter CLI."""
    parser = argparse.ArgumentParser(
        description='Validate record files against lexicon schemas',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        'paths',
        nargs='*',
        default=None,
        help='Record files or directories to lint (default: current directory)',
    )
    parser.add_argument(
        '--lexicons',
        required=True,
        help='Directory holding the lexicon documents',
    )
    parser.add_argument(
        '--collection',
        default=None,
        help="Record type to validate against (default: each record's '$type')",
    )
    parser.add_argument(
        '--key',
        default=None,
        help='Record key to validate (default: derived from the key strategy)',
    )
    parser.add_argument(
        '--format',
        choices=['human', 'json', 'github-actions'],
        default='human',
        help='Output format (default: human)',
    )

    args = parser.parse_args(argv)
    lexicon_config.set_logging()

    if not args.paths:
        args.paths = ['.']

    try:
        registry = DocumentRegistry()
        registry.load_directory(args.lexicons)
        graph = registry.build()
    except LexiconError as e:
        logger.error(f"Failed to load lexicons from {args.lexicons}: {e}")
        sys.exit(1)

    record_files = find_record_files(args.paths)
    if not record_files:
        logger.error("No record files found.")
        sys.exit(1)

    results = lint_files(graph, record_files, collection=args.collection, key=args.key)
    print_results(results, args.format)

    # Exit with error code if any errors found
    total_errors = sum(len(r.errors) for r in results)
    if total_errors > 0:
        sys.exit(1)
    if args.format == 'human':
        print("Lint succeeded with no errors.")
    sys.exit(0)


if __name__ == '__main__':
    main()
