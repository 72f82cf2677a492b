"""Input validation package."""

from event_budget.validation.validator import (
    InputValidator,
    combine_date_time,
    parse_int_field,
)

__all__ = ["InputValidator", "combine_date_time", "parse_int_field"]
