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

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional


@dataclass(frozen=True)
class SourceLocation:
    file_path: Optional[Path] = None
    pointer: Optional[str] = None
    line: Optional[int] = None  # 1-based
    column: Optional[int] = None  # 1-based


def lookup_source(
    source_map: Optional[Dict[str, Dict[str, int]]],
    pointer: Optional[str],
    file_path: Optional[Path] = None,
) -> SourceLocation:
    """Find the position of *pointer*, falling back to its closest ancestor.

    Missing fields have no position of their own; their parent object does.
    """
    if not source_map or pointer is None:
        return SourceLocation(file_path=file_path, pointer=pointer)

    current = pointer
    while current not in source_map and current:
        current = current.rsplit("/", 1)[0]

    entry = source_map.get(current)
    if not entry:
        return SourceLocation(file_path=file_path, pointer=pointer)

    return SourceLocation(
        file_path=file_path,
        pointer=pointer,
        line=entry.get("line"),
        column=entry.get("column"),
    )


def format_source(loc: Optional[SourceLocation]) -> str:
    if not loc:
        return ""

    parts = []
    if loc.file_path is not None:
        if loc.line is not None and loc.column is not None:
            parts.append(f"source={loc.file_path}:{loc.line}:{loc.column}")
        elif loc.line is not None:
            parts.append(f"source={loc.file_path}:{loc.line}")
        else:
            parts.append(f"source={loc.file_path}")

    if loc.pointer:
        parts.append(f"path={loc.pointer}")

    if not parts:
        return ""

    return " (" + " ".join(parts) + ")"
