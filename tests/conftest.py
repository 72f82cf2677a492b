"""
Shared fixtures.

No test talks to Gemini: the google-genai clients are replaced by the
small fakes below, which mimic only the attributes our adapters use.
"""

from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest

from event_budget.audit import AuditLogger
from event_budget.config import get_settings
from event_budget.models.event import CostItem, EventData
from event_budget.services.storage import InMemoryAuditTrail, InMemoryEventStore


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Settings come from the test's environment only."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def scenario_events() -> tuple[EventData, EventData]:
    """Two events: 100 and 50 attendees, budgets 20M and 10M."""
    first = EventData(
        id="e1",
        name="Los Ríos Atrae",
        start_date="2026-01-07T09:00:00",
        end_date="2026-01-07T19:00:00",
        total_budget=20_000_000,
        attendees=100,
        cost_items=(
            CostItem(id="c1", description="Escenario", amount=500_000),
            CostItem(id="c2", description="Catering", amount=1_000, is_variable=True),
        ),
    )
    second = EventData(
        id="e2",
        name="Ruedalab IA",
        total_budget=10_000_000,
        attendees=50,
    )
    return first, second


@pytest.fixture
def scenario_shared() -> tuple[CostItem, CostItem]:
    """Shared pool totalling 3,000,000."""
    return (
        CostItem(id="s1", description="Pago Proyectista", amount=2_000_000),
        CostItem(id="s2", description="Productora", amount=1_000_000),
    )


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def scenario_store(scenario_events, scenario_shared) -> InMemoryEventStore:
    return InMemoryEventStore(scenario_events, scenario_shared)


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger(InMemoryAuditTrail())


# =============================================================================
# GEMINI FAKES
# =============================================================================

class FakeModels:
    """Stands in for client.aio.models."""

    def __init__(self, outcomes):
        # Each outcome is either a response text or an exception to raise
        self._outcomes = list(outcomes)
        self.calls = []

    async def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, SimpleNamespace):
            return outcome
        return SimpleNamespace(text=outcome, prompt_feedback=None)


def make_text_client(*outcomes) -> SimpleNamespace:
    models = FakeModels(outcomes)
    return SimpleNamespace(aio=SimpleNamespace(models=models), models=models)


class FakeLiveSession:
    """Stands in for the session yielded by client.aio.live.connect."""

    def __init__(self, messages):
        self._messages = list(messages)
        self.sent = []

    async def send_realtime_input(self, **kwargs):
        self.sent.append(kwargs)

    async def receive(self):
        for message in self._messages:
            yield message


class FakeLive:
    def __init__(self, session=None, error=None):
        self.session = session
        self.error = error
        self.connect_kwargs = None

    @asynccontextmanager
    async def connect(self, model, config):
        self.connect_kwargs = {"model": model, "config": config}
        if self.error is not None:
            raise self.error
        yield self.session


def make_live_client(messages=(), error=None) -> SimpleNamespace:
    live = FakeLive(FakeLiveSession(messages), error)
    return SimpleNamespace(aio=SimpleNamespace(live=live))


def server_message(
    user_text=None,
    model_text=None,
    audio=None,
    turn_complete=False,
) -> SimpleNamespace:
    """Build a LiveServerMessage-shaped object."""
    model_turn = None
    if audio is not None:
        model_turn = SimpleNamespace(
            parts=[SimpleNamespace(inline_data=SimpleNamespace(data=audio))]
        )
    return SimpleNamespace(
        server_content=SimpleNamespace(
            input_transcription=SimpleNamespace(text=user_text) if user_text else None,
            output_transcription=SimpleNamespace(text=model_text) if model_text else None,
            model_turn=model_turn,
            turn_complete=turn_complete,
        )
    )


@pytest.fixture
def text_client_factory():
    return make_text_client


@pytest.fixture
def live_client_factory():
    return make_live_client


@pytest.fixture
def message_factory():
    return server_message
