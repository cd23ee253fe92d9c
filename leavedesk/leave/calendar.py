"""Chargeable-day counting for leave requests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable

from leavedesk.common.constants import HALF_DAY, HALF_DAY_DURATIONS, LeaveDuration


def compute_days(
    start: date,
    end: date,
    duration: LeaveDuration,
    holidays: Iterable[date] = (),
) -> Decimal:
    """Return the number of days a request charges against a balance.

    Half-day requests always cost half a day, whatever the date span.
    Full-day requests cost every calendar day from *start* to *end*
    inclusive, minus each distinct holiday falling inside that range.
    The result is never negative.

    A reversed range is not rejected here; callers validate date order.
    With ``end < start`` no holiday can satisfy ``start <= d <= end`` so
    nothing is subtracted.
    """
    if duration in HALF_DAY_DURATIONS:
        return HALF_DAY

    span = abs((end - start).days) + 1
    excluded = sum(1 for d in set(holidays) if start <= d <= end)
    return Decimal(max(span - excluded, 0))
