"""
Display Formatters

Money is shown with one decimal place, dates and cycles in Arabic,
matching the single locale the app ships with.
"""

import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from thara.config import get_settings
from thara.cycles.calculator import DateLike, to_local_datetime
from thara.models.ledger import FinancialCycle


ARABIC_MONTHS = [
    "يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو",
    "يوليو", "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر",
]

TODAY_LABEL = "اليوم"
YESTERDAY_LABEL = "أمس"

_ONE_DECIMAL = Decimal("0.1")
_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")

Number = Union[Decimal, int, float, str]


def _round_one_decimal(amount: Number) -> Decimal:
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return value.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)


def format_currency(amount: Number) -> str:
    """Format an amount with exactly one decimal, e.g. 69.5 -> '69.5'."""
    return f"{_round_one_decimal(amount):.1f}"


def format_currency_with_symbol(amount: Number, symbol: Optional[str] = None) -> str:
    """Format an amount followed by the configured currency symbol."""
    if symbol is None:
        symbol = get_settings().ledger.currency_symbol
    return f"{format_currency(amount)} {symbol}"


def parse_currency(value: str) -> Decimal:
    """
    Parse user input into an amount rounded to one decimal.

    Like a lenient numeric field: the leading number is used and anything
    unparsable becomes zero.
    """
    match = _LEADING_NUMBER.match(value or "")
    if not match:
        return Decimal("0.0")
    try:
        return _round_one_decimal(Decimal(match.group(1)))
    except InvalidOperation:
        return Decimal("0.0")


def format_cycle_display(cycle: FinancialCycle) -> str:
    """Render a cycle as '23 فبراير - 22 مارس'."""
    start = cycle.start_date
    end = cycle.end_date
    return (
        f"{start.day} {ARABIC_MONTHS[start.month - 1]} - "
        f"{end.day} {ARABIC_MONTHS[end.month - 1]}"
    )


def format_long_date(moment: DateLike) -> str:
    moment = to_local_datetime(moment)
    return f"{moment.day} {ARABIC_MONTHS[moment.month - 1]} {moment.year}"


def format_relative_date(moment: DateLike, now: Optional[datetime] = None) -> str:
    """
    Describe how long ago `moment` was.

    Today, yesterday and "N days ago" up to a week; older (and future)
    dates are shown in full.
    """
    moment = to_local_datetime(moment)
    now = to_local_datetime(now) if now is not None else datetime.now()

    diff_days = (now - moment).days
    if diff_days < 0:
        return format_long_date(moment)
    if diff_days == 0:
        return TODAY_LABEL
    if diff_days == 1:
        return YESTERDAY_LABEL
    if diff_days < 7:
        return f"منذ {diff_days} أيام"

    return format_long_date(moment)
