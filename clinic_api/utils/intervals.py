# clinic_api/utils/intervals.py
"""
Half-open time interval arithmetic used by scheduling.

[start, end) semantics: back-to-back intervals sharing a boundary
(09:00-09:30 and 09:30-10:00) do not overlap.
"""
from datetime import datetime
from typing import NamedTuple


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    return a_start < b_end and b_start < a_end


class TimeInterval(NamedTuple):
    start: datetime
    end: datetime

    def overlaps(self, other: "TimeInterval") -> bool:
        return intervals_overlap(self.start, self.end, other.start, other.end)

    @property
    def is_valid(self) -> bool:
        return self.end > self.start
