"""
AI Agents for the Event Budget Dashboard

DESIGN DECISION: The advisor is a thin adapter around Gemini. It receives
a finished prompt (built from the same figures the cards show) and returns
text. It never reads or writes the store.

CRITICAL BOUNDARIES:

1. BUDGET ADVISOR AGENT:
   - CAN: Comment on the financial summary it is given
   - CANNOT: Change events, costs or tasks
   - MUST: Return a user-facing Spanish message on ANY failure

Errors never reach the UI as exceptions. Every failure is translated into
one of a fixed set of messages, keyed on what went wrong (network, bad API
key, blocked content, anything else).
"""

from typing import Any, Optional

import structlog
from google import genai
from google.genai import types
from pydantic import BaseModel, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from event_budget.config import GeminiSettings, get_settings


logger = structlog.get_logger(__name__)


NETWORK_ERROR_MESSAGE = (
    "Error de red: No se pudo conectar con el servicio de IA. "
    "Por favor, revisa tu conexión a internet e inténtalo de nuevo."
)
AUTH_ERROR_MESSAGE = (
    "Error de autenticación: La clave de API no es válida. "
    "Por favor, verifica la configuración."
)
BLOCKED_MESSAGE = (
    "Tu solicitud fue bloqueada por políticas de seguridad. "
    "Por favor, ajusta tu pregunta."
)
GENERIC_ERROR_MESSAGE = (
    "Lo siento, ha ocurrido un error inesperado al contactar al asistente de IA. "
    "Por favor, inténtalo de nuevo más tarde."
)


class AdvisoryError(Exception):
    """Base exception for the advisory services."""
    pass


def translate_advice_error(error: BaseException) -> str:
    """
    Map any advisor failure to the message shown to the user.

    Order matters: a network failure mentioning 'blocked' is still a
    network failure.
    """
    message = str(error)
    lowered = message.lower()

    if isinstance(error, (ConnectionError, TimeoutError)):
        return NETWORK_ERROR_MESSAGE
    if "fetch failed" in lowered or "network" in lowered:
        return NETWORK_ERROR_MESSAGE
    if "API key not valid" in message:
        return AUTH_ERROR_MESSAGE
    if "blocked" in lowered:
        return BLOCKED_MESSAGE
    if message:
        return f"Ha ocurrido un error con el servicio de IA: {message}"
    return GENERIC_ERROR_MESSAGE


class AdviceResponse(BaseModel):
    """What the advisor produced for one request."""

    text: str = Field(
        description="Advice (markdown) or the translated error message"
    )
    succeeded: bool = Field(
        description="False when text is an error message"
    )
    error_message: Optional[str] = Field(
        default=None,
        description="Raw error, for the audit trail only"
    )


class BudgetAdvisorAgent:
    """
    Text advisor backed by Gemini.

    RESPONSIBILITIES:
    - Send one prompt, return one answer
    - Retry transient network failures
    - Translate every failure into a user-facing message

    BOUNDARIES:
    - NEVER sees the store, only the prompt
    - NEVER raises to the caller from get_advice
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        client: Optional[Any] = None,
    ):
        """
        Args:
            settings: Gemini settings; loaded from the environment if None
            client: A google-genai Client (or a stand-in with the same shape)
        """
        self._settings = settings or get_settings().gemini
        self._client = client or genai.Client(api_key=self._settings.api_key)

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=self._settings.temperature,
            max_output_tokens=self._settings.max_tokens,
        )

    @retry(
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, prompt: str) -> str:
        response = await self._client.aio.models.generate_content(
            model=self._settings.model_name,
            contents=prompt,
            config=self._generation_config(),
        )

        text = response.text
        if text:
            return text

        feedback = getattr(response, "prompt_feedback", None)
        reason = getattr(feedback, "block_reason", None)
        if reason:
            raise AdvisoryError(f"Request blocked: {reason}")
        raise AdvisoryError("The model returned an empty response")

    async def advise(self, prompt: str) -> AdviceResponse:
        """
        Ask Gemini for advice.

        Returns an AdviceResponse whose text is always displayable.
        """
        try:
            text = await self._generate(prompt)
        except Exception as e:
            logger.warning(
                "advice_request_failed",
                error=str(e),
                error_type=type(e).__name__,
                model=self._settings.model_name,
            )
            return AdviceResponse(
                text=translate_advice_error(e),
                succeeded=False,
                error_message=str(e) or type(e).__name__,
            )

        logger.info("advice_received", model=self._settings.model_name, length=len(text))
        return AdviceResponse(text=text, succeeded=True)

    async def get_advice(self, prompt: str) -> str:
        """Advice text, or the translated error message."""
        return (await self.advise(prompt)).text
