"""
Budget Allocation Engine

DESIGN DECISION: Every financial figure is a pure function of the current
events and shared costs. Nothing is cached, nothing is mutated, no I/O.
The dashboard recomputes on every read, so a figure can never go stale
after an edit, an import or a deletion.

Money handling:
- Cost amounts and budgets are whole currency units (int).
- The shared pool is split evenly across ALL current events. The share is
  a Decimal quantized to cents (ROUND_HALF_EVEN), so
  share x event_count differs from the pool total by at most
  event_count x 0.005.
- Spend, remaining budget and margin are Decimals derived from the share,
  which keeps remaining + spent == total_budget exact.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable, Sequence

from event_budget.models.event import (
    BudgetHealth,
    ChartBar,
    CostItem,
    EventData,
    EventFinancials,
)


CENT = Decimal("0.01")
HUNDRED = Decimal(100)

# Remaining-budget percentages below which a card changes colour
LOW_BUDGET_THRESHOLD_PCT = 15.0
WARNING_BUDGET_THRESHOLD_PCT = 40.0


def total_shared_cost(shared_costs: Iterable[CostItem]) -> int:
    """Sum of the shared pool. Empty pool -> 0."""
    return sum(item.amount for item in shared_costs)


def shared_cost_per_event(shared_costs: Iterable[CostItem], event_count: int) -> Decimal:
    """
    Even share of the shared pool for each current event.

    Zero events is a defined state (share 0), not an error.
    """
    if event_count <= 0:
        return Decimal(0)
    share = Decimal(total_shared_cost(shared_costs)) / Decimal(event_count)
    return share.quantize(CENT, rounding=ROUND_HALF_EVEN)


def effective_cost(item: CostItem, attendees: int) -> int:
    """Cost of one line: per-attendee rate x attendees when variable."""
    if item.is_variable:
        return item.amount * attendees
    return item.amount


def own_cost_total(event: EventData) -> int:
    """
    Total of the event's specific costs.

    With 0 attendees every variable item contributes 0, whatever its rate.
    """
    return sum(effective_cost(item, event.attendees) for item in event.cost_items)


def total_spent(event: EventData, shared_share: Decimal) -> Decimal:
    return Decimal(own_cost_total(event)) + shared_share


def remaining_budget(event: EventData, spent: Decimal) -> Decimal:
    """Budget left. Negative means over budget, which is a valid state."""
    return Decimal(event.total_budget) - spent


def profit_margin(event: EventData, remaining: Decimal) -> Decimal:
    """Remaining budget as a percentage of the total budget (may be negative)."""
    if event.total_budget <= 0:
        return Decimal(0)
    return remaining / Decimal(event.total_budget) * HUNDRED


def budget_health(
    margin: Decimal,
    low_threshold_pct: float = LOW_BUDGET_THRESHOLD_PCT,
    warning_threshold_pct: float = WARNING_BUDGET_THRESHOLD_PCT,
) -> BudgetHealth:
    """Classify a margin for display."""
    if margin < Decimal(str(low_threshold_pct)):
        return BudgetHealth.CRITICAL
    if margin < Decimal(str(warning_threshold_pct)):
        return BudgetHealth.WARNING
    return BudgetHealth.HEALTHY


def event_financials(
    event: EventData,
    shared_share: Decimal,
    low_threshold_pct: float = LOW_BUDGET_THRESHOLD_PCT,
    warning_threshold_pct: float = WARNING_BUDGET_THRESHOLD_PCT,
) -> EventFinancials:
    """Bundle every derived figure for one event."""
    spent = total_spent(event, shared_share)
    remaining = remaining_budget(event, spent)
    margin = profit_margin(event, remaining)

    return EventFinancials(
        event_id=event.id,
        name=event.name,
        total_budget=event.total_budget,
        attendees=event.attendees,
        own_cost_total=own_cost_total(event),
        shared_cost_share=shared_share,
        total_spent=spent,
        remaining_budget=remaining,
        profit_margin=margin,
        health=budget_health(margin, low_threshold_pct, warning_threshold_pct),
    )


def compute_financials(
    events: Sequence[EventData],
    shared_costs: Sequence[CostItem],
    low_threshold_pct: float = LOW_BUDGET_THRESHOLD_PCT,
    warning_threshold_pct: float = WARNING_BUDGET_THRESHOLD_PCT,
) -> list[EventFinancials]:
    """
    Derived figures for every event, in store order.

    The shared share is computed once from the current event count
    and applied to every event.
    """
    share = shared_cost_per_event(shared_costs, len(events))
    return [
        event_financials(event, share, low_threshold_pct, warning_threshold_pct)
        for event in events
    ]


def profitability_chart(financials: Sequence[EventFinancials]) -> list[ChartBar]:
    """
    Bars for the margin comparison chart.

    Heights are relative to the largest absolute margin; when every margin
    is 0 the scale falls back to 100 so bars stay at height 0.
    """
    if not financials:
        return []

    largest = max(abs(item.profit_margin) for item in financials)
    scale = largest if largest > 0 else HUNDRED

    return [
        ChartBar(
            event_id=item.event_id,
            name=item.name,
            profit_margin=item.profit_margin,
            height_pct=float(abs(item.profit_margin) / scale * HUNDRED),
        )
        for item in financials
    ]
