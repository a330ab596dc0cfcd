"""Financial cycle computation package."""

from thara.cycles.calculator import (
    DEFAULT_CYCLE_START_DAY,
    MAX_CYCLE_START_DAY,
    MIN_CYCLE_START_DAY,
    get_current_cycle,
    is_in_current_cycle,
    obligation_period_label,
    to_local_datetime,
)

__all__ = [
    "DEFAULT_CYCLE_START_DAY",
    "MAX_CYCLE_START_DAY",
    "MIN_CYCLE_START_DAY",
    "get_current_cycle",
    "is_in_current_cycle",
    "obligation_period_label",
    "to_local_datetime",
]
