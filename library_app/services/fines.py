"""Fine arithmetic and loan status derivation.

These are pure functions.  The stored ``Issue.status`` column is only a
cache of ``derive_status`` at the time of the last write, so anything that
reports on loans calls in here instead of trusting the column.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from decimal import Decimal

DEFAULT_FINE_PER_DAY = 2

ONE_DAY = timedelta(days=1)


def days_overdue(due_date: datetime, as_of: datetime) -> int:
    """Whole days past ``due_date``, any started day counting as a full one."""
    if as_of <= due_date:
        return 0
    return math.ceil((as_of - due_date) / ONE_DAY)


def compute_fine(due_date: datetime, as_of: datetime, rate_per_day=DEFAULT_FINE_PER_DAY) -> Decimal:
    rate = Decimal(str(rate_per_day))
    return (rate * days_overdue(due_date, as_of)).quantize(Decimal("0.01"))


def derive_status(issue, now: datetime) -> str:
    if issue.return_date is not None:
        return "returned"
    if now > issue.due_date:
        return "overdue"
    return "issued"


def live_fine(issue, now: datetime, rate_per_day=DEFAULT_FINE_PER_DAY) -> Decimal:
    """Stored fine for returned loans, running estimate for open ones."""
    if issue.return_date is not None:
        return Decimal(str(issue.fine_amount or 0))
    return compute_fine(issue.due_date, now, rate_per_day)
