"""Allocation engine package."""

from event_budget.allocation.engine import (
    LOW_BUDGET_THRESHOLD_PCT,
    WARNING_BUDGET_THRESHOLD_PCT,
    budget_health,
    compute_financials,
    effective_cost,
    event_financials,
    own_cost_total,
    profit_margin,
    profitability_chart,
    remaining_budget,
    shared_cost_per_event,
    total_shared_cost,
    total_spent,
)
from event_budget.allocation.summary import (
    advice_prompt,
    format_clp,
    format_margin,
    summary_text,
    voice_system_instruction,
)

__all__ = [
    "LOW_BUDGET_THRESHOLD_PCT",
    "WARNING_BUDGET_THRESHOLD_PCT",
    "advice_prompt",
    "budget_health",
    "compute_financials",
    "effective_cost",
    "event_financials",
    "format_clp",
    "format_margin",
    "own_cost_total",
    "profit_margin",
    "profitability_chart",
    "remaining_budget",
    "shared_cost_per_event",
    "summary_text",
    "total_shared_cost",
    "total_spent",
    "voice_system_instruction",
]
