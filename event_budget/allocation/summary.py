"""
Financial summary text for the advisory services.

The advisors never see the store. They receive a plain-text summary built
here from the same EventFinancials the cards and the spreadsheet use, so the
figures the AI talks about are the figures on screen.

Everything in this module is deterministic: same inputs, same string.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence, Union

from event_budget.allocation.engine import compute_financials, total_shared_cost
from event_budget.models.event import CostItem, EventData


ADVISOR_PERSONA = "Eres un asesor experto en producción de eventos."

DEFAULT_QUESTION = "Dame un consejo general sobre cómo optimizar mis presupuestos."

ONBOARDING_ADVICE_PROMPT = (
    f"{ADVISOR_PERSONA} El usuario aún no ha creado ningún evento. "
    "Anímale a crear su primer evento para poder empezar a planificar "
    "y usar tus servicios de asesoría."
)

ONBOARDING_VOICE_PROMPT = (
    f"{ADVISOR_PERSONA} El usuario aún no ha creado ningún evento. "
    "Anímale a crear su primer evento para poder empezar a planificar."
)


def format_clp(amount: Union[int, float, Decimal]) -> str:
    """
    Format an amount as Chilean pesos (es-CL style).

    Example:
        >>> format_clp(1500000)
        '$1.500.000'
        >>> format_clp(Decimal("-2500.5"))
        '-$2.501'
    """
    value = Decimal(str(amount)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    digits = f"{abs(int(value)):,}".replace(",", ".")
    sign = "-" if value < 0 else ""
    return f"{sign}${digits}"


def format_margin(margin: Decimal) -> str:
    return f"{float(margin):.1f}%"


def summary_text(events: Sequence[EventData], shared_costs: Sequence[CostItem]) -> str:
    """
    Plain-text financial summary: one block per event plus the shared total.
    """
    blocks = []
    for item in compute_financials(events, shared_costs):
        blocks.append(
            "\n".join([
                f"Evento: {item.name}",
                f"- Asistentes: {item.attendees}",
                f"- Presupuesto Total: {format_clp(item.total_budget)}",
                f"- Gasto Total: {format_clp(item.total_spent)}",
                f"- Presupuesto Disponible: {format_clp(item.remaining_budget)}",
                f"- Margen: {format_margin(item.profit_margin)}",
            ])
        )

    blocks.append(
        "Costos compartidos entre todos los eventos suman: "
        f"{format_clp(total_shared_cost(shared_costs))}"
    )
    return "\n\n".join(blocks)


def advice_prompt(
    events: Sequence[EventData],
    shared_costs: Sequence[CostItem],
    question: Optional[str] = None,
) -> str:
    """Prompt for the text advisor."""
    if not events:
        return ONBOARDING_ADVICE_PROMPT

    question = (question or "").strip() or DEFAULT_QUESTION

    return (
        f"{ADVISOR_PERSONA} Estoy planificando {len(events)} evento(s). "
        "Aquí está el resumen financiero actual:\n\n"
        f"{summary_text(events, shared_costs)}\n\n"
        f'Mi pregunta es: "{question}".\n\n'
        "Por favor, dame tu consejo de forma clara, concisa y orientada a la acción. "
        "Usa markdown para formatear tu respuesta."
    )


def voice_system_instruction(
    events: Sequence[EventData],
    shared_costs: Sequence[CostItem],
) -> str:
    """System instruction for the live voice session."""
    if not events:
        return ONBOARDING_VOICE_PROMPT

    return (
        f"{ADVISOR_PERSONA} El usuario te hablará para consultarte sobre el estado "
        "financiero de sus eventos. Responde de forma amigable y conversacional. "
        "Aquí está el resumen financiero actual:\n\n"
        f"{summary_text(events, shared_costs)}\n\n"
        "Responde directamente a las preguntas del usuario basándote en esta información."
    )
