"""Formatting helpers for amounts, dates and cycles."""

from thara.display.formatters import (
    ARABIC_MONTHS,
    format_currency,
    format_currency_with_symbol,
    format_cycle_display,
    format_long_date,
    format_relative_date,
    parse_currency,
)

__all__ = [
    "ARABIC_MONTHS",
    "format_currency",
    "format_currency_with_symbol",
    "format_cycle_display",
    "format_long_date",
    "format_relative_date",
    "parse_currency",
]
