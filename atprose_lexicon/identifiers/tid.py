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

"""Timestamp identifiers (TIDs).

A TID is a 64-bit integer, top bit zero, laid out as a 53-bit microsecond
UNIX timestamp shifted left by 10 bits, OR-ed with a 10-bit clock id. Its
string form is 13 characters of base32-sortable, so lexical order equals
numeric order.
"""

from __future__ import annotations

import random
import re
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..exceptions import FormatError
from .encoding import decode_sortable_u64, encode_sortable_u64

TID_LENGTH = 13
TIMESTAMP_MASK = (1 << 53) - 1
CLOCK_ID_MASK = (1 << 10) - 1

_TID_RE = re.compile(r"^[234567abcdefghij][234567abcdefghijklmnopqrstuvwxyz]{12}\Z")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def validate_tid(raw: str) -> str:
    """Validate a TID string and return it unchanged.

    Raises:
        FormatError: If the TID is invalid.
    """
    if not isinstance(raw, str) or len(raw) != TID_LENGTH:
        raise FormatError("BadTidLength", f"TID must be {TID_LENGTH} characters", raw)
    if not _TID_RE.match(raw):
        if raw[0] in "klmnopqrstuvwxyz":
            raise FormatError("BadTidHighBit", "TID top bit must be zero", raw)
        raise FormatError("BadTidCharacter", "TID contains characters outside base32-sortable", raw)
    return raw


@dataclass(frozen=True, order=True)
class Tid:
    value: int

    @classmethod
    def from_parts(cls, timestamp: int, clock_id: int) -> "Tid":
        return cls(((timestamp & TIMESTAMP_MASK) << 10) | (clock_id & CLOCK_ID_MASK))

    @classmethod
    def parse(cls, raw: str) -> "Tid":
        return cls(decode_sortable_u64(validate_tid(raw)))

    @property
    def timestamp(self) -> int:
        """Microseconds since the UNIX epoch."""
        return (self.value >> 10) & TIMESTAMP_MASK

    @property
    def clock_id(self) -> int:
        return self.value & CLOCK_ID_MASK

    @property
    def datetime(self) -> datetime:
        return _EPOCH + timedelta(microseconds=self.timestamp)

    def __str__(self) -> str:
        return encode_sortable_u64(self.value, TID_LENGTH)


class TidGenerator:
    """Produce strictly increasing TIDs.

    Monotonicity holds within one generator instance, including across
    clock steps backwards. Safe to share between threads.
    """

    def __init__(self, clock_id: Optional[int] = None, clock=None):
        if clock_id is None:
            clock_id = random.randrange(CLOCK_ID_MASK + 1)
        self.clock_id = clock_id & CLOCK_ID_MASK
        self._clock = clock or (lambda: time.time_ns() // 1000)
        self._last = -1
        self._lock = threading.Lock()

    def next(self) -> Tid:
        with self._lock:
            now = self._clock()
            if now <= self._last:
                now = self._last + 1
            self._last = now
            return Tid.from_parts(now, self.clock_id)

    def next_str(self) -> str:
        return str(self.next())
