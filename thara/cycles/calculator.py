"""
Financial Cycle Calculator

A financial cycle is a ~30 day accounting period that starts on a fixed
day of the month (the user's payday, 23 by default) instead of on the 1st.

DESIGN DECISION: Everything here is a pure function of its arguments.
"Today" is a parameter (defaulting to the local clock) so the cycle math
can be tested for any reference date.

The start day is limited to 1-28 so that every month has that day.
Values outside the range are rejected, never clamped.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from thara.models.ledger import FinancialCycle


DEFAULT_CYCLE_START_DAY = 23
MIN_CYCLE_START_DAY = 1
MAX_CYCLE_START_DAY = 28

DateLike = Union[datetime, date, str]


def _validate_start_day(cycle_start_day: int) -> None:
    if not MIN_CYCLE_START_DAY <= cycle_start_day <= MAX_CYCLE_START_DAY:
        raise ValueError(
            f"cycle_start_day must be between {MIN_CYCLE_START_DAY} and "
            f"{MAX_CYCLE_START_DAY}, got {cycle_start_day}"
        )


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Return (year, month) moved by `delta` calendar months."""
    index = year * 12 + (month - 1) + delta
    shifted_year, shifted_month = divmod(index, 12)
    return shifted_year, shifted_month + 1


def to_local_datetime(moment: DateLike) -> datetime:
    """
    Normalize a date-like value to a naive local datetime.

    Accepts datetimes, dates (taken at midnight) and ISO-8601 strings.
    Timezone-aware values are converted to local time first.
    """
    if isinstance(moment, str):
        moment = datetime.fromisoformat(moment.replace("Z", "+00:00"))
    if not isinstance(moment, datetime):
        return datetime.combine(moment, time.min)
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def get_current_cycle(
    cycle_start_day: int = DEFAULT_CYCLE_START_DAY,
    today: Optional[DateLike] = None,
) -> FinancialCycle:
    """
    Compute the cycle that contains `today`.

    If today's day-of-month is before the start day, the cycle began on the
    start day of the previous month; otherwise it began this month. It ends
    the day before the next start day.

    Returns a FinancialCycle whose start is 00:00 of the first day and whose
    end is the last microsecond of the final day.
    """
    _validate_start_day(cycle_start_day)
    reference = to_local_datetime(today) if today is not None else datetime.now()

    if reference.day < cycle_start_day:
        prev_year, prev_month = _shift_month(reference.year, reference.month, -1)
        start = date(prev_year, prev_month, cycle_start_day)
        end = date(reference.year, reference.month, cycle_start_day) - timedelta(days=1)
    else:
        start = date(reference.year, reference.month, cycle_start_day)
        next_year, next_month = _shift_month(reference.year, reference.month, 1)
        end = date(next_year, next_month, cycle_start_day) - timedelta(days=1)

    return FinancialCycle(
        id=f"{start.year}-{start.month}",
        start_date=datetime.combine(start, time.min),
        end_date=datetime.combine(end, time.max),
    )


def is_in_current_cycle(
    moment: DateLike,
    cycle_start_day: int = DEFAULT_CYCLE_START_DAY,
    today: Optional[DateLike] = None,
) -> bool:
    """True iff `moment` falls inside the current cycle, bounds included."""
    cycle = get_current_cycle(cycle_start_day, today)
    return cycle.contains(to_local_datetime(moment))


def obligation_period_label(moment: Optional[datetime] = None) -> str:
    """
    Label of the calendar month an obligation belongs to, as 'YYYY-MM' in UTC.

    NOTE: This is a calendar-month label and is computed independently of
    the cycle start day. It disagrees with FinancialCycle.id whenever the
    custom cycle straddles a month boundary.
    """
    if moment is None:
        moment = datetime.now(timezone.utc)
    # Naive values are local time; astimezone() interprets them that way.
    return moment.astimezone(timezone.utc).strftime("%Y-%m")
