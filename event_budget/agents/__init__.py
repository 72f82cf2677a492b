"""AI Agents package."""

from event_budget.agents.ai_agents import (
    AUTH_ERROR_MESSAGE,
    BLOCKED_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    NETWORK_ERROR_MESSAGE,
    AdviceResponse,
    AdvisoryError,
    BudgetAdvisorAgent,
    translate_advice_error,
)
from event_budget.agents.live_voice import (
    CONNECTION_ERROR_MESSAGE,
    AssistantState,
    AudioFormatError,
    LiveVoiceSession,
    TranscriptLog,
    TranscriptTurn,
    VoiceExchange,
    VoiceSessionError,
)

__all__ = [
    "AUTH_ERROR_MESSAGE",
    "BLOCKED_MESSAGE",
    "CONNECTION_ERROR_MESSAGE",
    "GENERIC_ERROR_MESSAGE",
    "NETWORK_ERROR_MESSAGE",
    "AdviceResponse",
    "AdvisoryError",
    "AssistantState",
    "AudioFormatError",
    "BudgetAdvisorAgent",
    "LiveVoiceSession",
    "TranscriptLog",
    "TranscriptTurn",
    "VoiceExchange",
    "VoiceSessionError",
    "translate_advice_error",
]
