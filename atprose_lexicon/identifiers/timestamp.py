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

"""RFC 3339 timestamps with a mandatory timezone."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from ..exceptions import FormatError

_DATETIME_RE = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"[Tt](?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?P<fraction>\.\d+)?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})?\Z"
)


def parse_datetime(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware ``datetime``.

    Fractions beyond microseconds are truncated.

    Raises:
        FormatError: If the timestamp is invalid or has no timezone.
    """
    if not isinstance(raw, str):
        raise FormatError("MalformedDatetime", "timestamp must be a string", raw)
    match = _DATETIME_RE.match(raw)
    if match is None:
        raise FormatError("MalformedDatetime", "expected YYYY-MM-DDTHH:MM:SS[.frac](Z|+HH:MM)", raw)

    offset = match.group("offset")
    if offset is None:
        raise FormatError("MissingTimezone", "timestamp has no timezone offset", raw)
    if offset == "-00:00":
        raise FormatError("UnknownLocalOffset", "'-00:00' does not name a timezone", raw)

    if offset in ("Z", "z"):
        tz = timezone.utc
    else:
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        if hours > 23 or minutes > 59:
            raise FormatError("BadTimezoneOffset", f"invalid offset '{offset}'", raw)
        delta = timedelta(hours=hours, minutes=minutes)
        tz = timezone(-delta if offset[0] == "-" else delta)

    fraction = match.group("fraction")
    micros = int((fraction[1:] + "000000")[:6]) if fraction else 0
    try:
        return datetime(
            int(match.group("year")),
            int(match.group("month")),
            int(match.group("day")),
            int(match.group("hour")),
            int(match.group("minute")),
            int(match.group("second")),
            micros,
            tzinfo=tz,
        )
    except ValueError as exc:
        raise FormatError("InvalidDate", str(exc), raw) from exc


def validate_datetime(raw: str) -> str:
    """Validate a timestamp; the canonical form uses uppercase ``T`` and ``Z``."""
    parse_datetime(raw)
    return raw[:10] + "T" + raw[11:].replace("z", "Z")
