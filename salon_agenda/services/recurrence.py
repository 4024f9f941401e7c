from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from salon_agenda.schemas.appointment import RecurrenceType

MAX_OCCURRENCES = 52

_STEPS = {
    RecurrenceType.WEEKLY: relativedelta(weeks=1),
    RecurrenceType.BIWEEKLY: relativedelta(weeks=2),
    RecurrenceType.MONTHLY: relativedelta(months=1),
    RecurrenceType.YEARLY: relativedelta(years=1),
}


def expand_recurrence(
    start_date: date,
    recurrence_type: RecurrenceType,
    count: Optional[int] = None,
    end_date: Optional[date] = None,
    *,
    limit: int = MAX_OCCURRENCES,
) -> List[date]:
    """Return the occurrence dates of a recurring booking, ``start_date`` first.

    Each occurrence is offset from ``start_date`` rather than from the previous
    one, so a series starting on the 31st lands on the last day of shorter
    months without drifting. Generation stops at ``count``, at the first date
    past ``end_date`` (inclusive bound), or at ``limit`` occurrences.
    """

    step = _STEPS[RecurrenceType(recurrence_type)]
    total = min(count, limit) if count else limit
    dates = [start_date]
    for index in range(1, total):
        candidate = start_date + step * index
        if end_date is not None and candidate > end_date:
            break
        dates.append(candidate)
    return dates


def new_recurrence_id() -> str:
    return uuid.uuid4().hex
