"""
Main Orchestrator for the Event Budget Dashboard

This module ties together all the components and defines the flows for:
1. Event planning (events, cost items, tasks → store, with validation)
2. Spreadsheet sync (snapshot → workbook, workbook → store)
3. Advice (snapshot → summary prompt → Gemini → text)
4. Voice (snapshot → system instruction → Gemini Live → audio + transcript)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Destructive actions (event deletion, import) need explicit confirmation
- Rejected input never reaches the store and is reported, not raised
- Advisors only ever see a summary built from one store snapshot
- Every step is audited

Flows return (result, message) tuples so the UI can show the message
inline whatever happened.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, NamedTuple, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict

from event_budget.agents import (
    CONNECTION_ERROR_MESSAGE,
    AudioFormatError,
    BudgetAdvisorAgent,
    LiveVoiceSession,
    VoiceExchange,
    VoiceSessionError,
)
from event_budget.agents.live_voice import MICROPHONE_ERROR_MESSAGE, wav_to_pcm16
from event_budget.allocation import (
    advice_prompt,
    compute_financials,
    profitability_chart,
    shared_cost_per_event,
    total_shared_cost,
    voice_system_instruction,
)
from event_budget.audit import AuditLogger, create_correlation_id
from event_budget.config import AppSettings, LiveVoiceSettings, get_settings
from event_budget.models.audit import AuditEventBuilder, AuditEventType
from event_budget.models.event import (
    ChartBar,
    CostItem,
    EventData,
    EventFinancials,
    StoreSnapshot,
    Task,
)
from event_budget.services.spreadsheet import (
    ImportResult,
    WorkbookError,
    apply_import,
    check_file_extension,
    export_filename,
    export_workbook,
    read_workbook,
)
from event_budget.services.storage import (
    SHARED_POOL,
    CostOwner,
    CostPool,
    EventStoreInterface,
    InMemoryAuditTrail,
    InMemoryEventStore,
    InvalidInputError,
    NotFoundError,
    StorageError,
    seed_snapshot,
)


logger = structlog.get_logger(__name__)


DELETE_CONFIRMATION_PROMPT = (
    "¿Estás seguro de que quieres eliminar este evento? "
    "Se eliminarán también sus costos y tareas."
)
IMPORT_CONFIRMATION_PROMPT = (
    "¿Estás seguro de que quieres importar este archivo? "
    "Se sobrescribirán todos los datos actuales."
)
IMPORT_SUCCESS_MESSAGE = "¡Datos importados correctamente!"
EVENT_NOT_FOUND_MESSAGE = "El evento ya no existe."
NO_EVENTS_VOICE_MESSAGE = "Crea un evento para habilitar el asistente"
ADVISOR_UNAVAILABLE_MESSAGE = (
    "El asistente de IA no está configurado. "
    "Define GEMINI_API_KEY para habilitarlo."
)


def _owner_label(owner: CostOwner) -> str:
    return owner.value if isinstance(owner, CostPool) else owner


class DashboardView(BaseModel):
    """Everything the dashboard renders, derived from one snapshot."""
    model_config = ConfigDict(frozen=True)

    snapshot: StoreSnapshot
    financials: list[EventFinancials]
    chart: list[ChartBar]
    total_shared_cost: int
    shared_cost_per_event: Decimal

    def financials_for(self, event_id: str) -> Optional[EventFinancials]:
        return next((f for f in self.financials if f.event_id == event_id), None)


class EventPlanningFlow:
    """
    Orchestrates edits to events, cost items and tasks.

    Every mutation:
    1. Goes through the store (which validates before touching state)
    2. Is audited, including rejections
    3. Returns (result, message); result is None/False when nothing changed
    """

    def __init__(
        self,
        store: EventStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._app_settings = app_settings or AppSettings()

    @property
    def store(self) -> EventStoreInterface:
        return self._store

    def dashboard(self) -> DashboardView:
        """Recompute every derived figure from the current state."""
        snapshot = self._store.snapshot()
        financials = compute_financials(
            snapshot.events,
            snapshot.shared_costs,
            self._app_settings.low_budget_threshold_pct,
            self._app_settings.warning_budget_threshold_pct,
        )
        return DashboardView(
            snapshot=snapshot,
            financials=financials,
            chart=profitability_chart(financials),
            total_shared_cost=total_shared_cost(snapshot.shared_costs),
            shared_cost_per_event=shared_cost_per_event(
                snapshot.shared_costs, snapshot.event_count
            ),
        )

    def _rejected(
        self,
        error: StorageError,
        correlation_id: Optional[UUID],
    ) -> str:
        """Audit a rejected mutation and return the message to show."""
        if isinstance(error, InvalidInputError):
            if self._audit_logger:
                self._audit_logger.log_validation_failed(error.result, correlation_id)
            return str(error)

        if isinstance(error, NotFoundError):
            logger.info("mutation_target_missing", error=str(error))
            return EVENT_NOT_FOUND_MESSAGE

        if self._audit_logger:
            self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        return str(error)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def create_event(
        self,
        name: str,
        start_date: str,
        end_date: str,
        total_budget: Union[int, str],
        attendees: Union[int, str],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[EventData], str]:
        """
        Create an event.

        Returns:
            (event, message). event is None if the input was rejected.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            event = self._store.create_event(
                name, start_date, end_date, total_budget, attendees
            )
        except StorageError as e:
            return None, self._rejected(e, correlation_id)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.event_created(
                event_id=event.id,
                name=event.name,
                total_budget=event.total_budget,
                correlation_id=correlation_id,
            ))

        return event, f"Evento creado: {event.name}"

    def update_event(
        self,
        event_id: str,
        correlation_id: Optional[UUID] = None,
        **fields,
    ) -> tuple[Optional[EventData], str]:
        """Edit event fields. Cost items and tasks are kept unless passed."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            event = self._store.update_event(event_id, **fields)
        except StorageError as e:
            return None, self._rejected(e, correlation_id)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.event_updated(
                event_id=event.id,
                fields=sorted(fields),
                correlation_id=correlation_id,
            ))

        return event, "Evento actualizado."

    def delete_event(
        self,
        event_id: str,
        confirmed: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[bool, str]:
        """
        Delete an event with its cost items and tasks.

        CRITICAL: Nothing happens unless the user confirmed
        (DELETE_CONFIRMATION_PROMPT) and the caller passes confirmed=True.
        """
        if not confirmed:
            return False, DELETE_CONFIRMATION_PROMPT

        correlation_id = correlation_id or create_correlation_id()
        event = self._store.get_event(event_id)
        if event is None or not self._store.delete_event(event_id):
            return False, EVENT_NOT_FOUND_MESSAGE

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.event_deleted(
                event_id=event.id,
                name=event.name,
                cost_items=len(event.cost_items),
                tasks=len(event.tasks),
                correlation_id=correlation_id,
            ))

        return True, f"Evento eliminado: {event.name}"

    # -------------------------------------------------------------------------
    # Cost items
    # -------------------------------------------------------------------------

    def add_cost_item(
        self,
        owner: CostOwner,
        description: str,
        amount: Union[int, str],
        is_variable: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[CostItem], str]:
        """Add a cost to an event (owner = event id) or to SHARED_POOL."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            item = self._store.add_cost_item(owner, description, amount, is_variable)
        except StorageError as e:
            return None, self._rejected(e, correlation_id)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.cost_item_added(
                owner=_owner_label(owner),
                cost_id=item.id,
                amount=item.amount,
                is_variable=item.is_variable,
                correlation_id=correlation_id,
            ))

        return item, "Costo agregado."

    def add_shared_cost(
        self,
        description: str,
        amount: Union[int, str],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[CostItem], str]:
        return self.add_cost_item(
            SHARED_POOL, description, amount, correlation_id=correlation_id
        )

    def remove_cost_item(
        self,
        owner: CostOwner,
        cost_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[bool, str]:
        """Remove a cost. Removing an unknown cost is a no-op."""
        try:
            removed = self._store.remove_cost_item(owner, cost_id)
        except StorageError as e:
            return False, self._rejected(e, correlation_id)

        if removed and self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.cost_item_removed(
                owner=_owner_label(owner),
                cost_id=cost_id,
                correlation_id=correlation_id,
            ))

        return removed, "Costo eliminado." if removed else ""

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    def _audit_task(
        self,
        event_type: AuditEventType,
        event_id: str,
        task_id: str,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            self._audit_logger.log_task_changed(event_type, event_id, task_id, correlation_id)

    def add_task(
        self,
        event_id: str,
        description: str,
        due_date: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Task], str]:
        try:
            task = self._store.add_task(event_id, description, due_date)
        except StorageError as e:
            return None, self._rejected(e, correlation_id)

        self._audit_task(AuditEventType.TASK_ADDED, event_id, task.id, correlation_id)
        return task, "Tarea agregada."

    def update_task(
        self,
        event_id: str,
        task_id: str,
        description: Optional[str] = None,
        due_date: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Task], str]:
        try:
            task = self._store.update_task(event_id, task_id, description, due_date)
        except StorageError as e:
            return None, self._rejected(e, correlation_id)

        if task is None:
            return None, ""

        self._audit_task(AuditEventType.TASK_UPDATED, event_id, task_id, correlation_id)
        return task, "Tarea actualizada."

    def toggle_task(
        self,
        event_id: str,
        task_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Task], str]:
        try:
            task = self._store.toggle_task(event_id, task_id)
        except StorageError as e:
            return None, self._rejected(e, correlation_id)

        if task is None:
            return None, ""

        self._audit_task(AuditEventType.TASK_TOGGLED, event_id, task_id, correlation_id)
        return task, ""

    def remove_task(
        self,
        event_id: str,
        task_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[bool, str]:
        try:
            removed = self._store.remove_task(event_id, task_id)
        except StorageError as e:
            return False, self._rejected(e, correlation_id)

        if removed:
            self._audit_task(AuditEventType.TASK_REMOVED, event_id, task_id, correlation_id)
        return removed, "Tarea eliminada." if removed else ""


class SpreadsheetFlow:
    """
    Orchestrates Excel export and import.

    Import is all-or-nothing at the file level: the store is replaced in one
    step after the file has been fully parsed and mapped, or not at all.
    """

    def __init__(
        self,
        store: EventStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._app_settings = app_settings or AppSettings()

    def export(self, today: Optional[date] = None) -> tuple[bytes, str]:
        """
        Build the workbook for download.

        Not audited here: the dashboard rebuilds the download on every
        render. record_export is called when the user actually downloads.

        Returns:
            (xlsx_bytes, filename)
        """
        snapshot = self._store.snapshot()
        content = export_workbook(snapshot.events, snapshot.shared_costs)
        filename = export_filename(today, self._app_settings.export_filename_prefix)
        return content, filename

    def record_export(
        self,
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Audit a download of the current state."""
        if not self._audit_logger:
            return
        snapshot = self._store.snapshot()
        self._audit_logger.log(AuditEventBuilder.workbook_exported(
            filename=filename,
            events=snapshot.event_count,
            shared_costs=len(snapshot.shared_costs),
            correlation_id=correlation_id,
        ))

    def _import_failed(
        self,
        filename: str,
        message: str,
        correlation_id: UUID,
    ) -> tuple[None, str]:
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.workbook_import_failed(
                filename=filename,
                error_message=message,
                correlation_id=correlation_id,
            ))
        return None, message

    def import_file(
        self,
        data: bytes,
        filename: str,
        confirmed: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[ImportResult], str]:
        """
        Replace cost items, tasks and shared costs with the workbook's.

        CRITICAL: Overwrites the current data. Nothing happens unless the
        user confirmed (IMPORT_CONFIRMATION_PROMPT) and confirmed=True.

        Returns:
            (import_result, message). import_result is None if the store
            was left untouched.
        """
        if not confirmed:
            return None, IMPORT_CONFIRMATION_PROMPT

        correlation_id = correlation_id or create_correlation_id()

        if len(data) > self._app_settings.max_upload_size_bytes:
            return self._import_failed(
                filename,
                f"El archivo supera el tamaño máximo de "
                f"{self._app_settings.max_upload_size_mb} MB.",
                correlation_id,
            )

        try:
            check_file_extension(filename, self._app_settings.supported_formats_list)
            tables = read_workbook(data)
        except WorkbookError as e:
            return self._import_failed(filename, str(e), correlation_id)

        snapshot = self._store.snapshot()
        result = apply_import(snapshot.events, tables)
        self._store.replace_all(result.events, result.shared_costs)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.workbook_imported(
                filename=filename,
                counts=result.counts,
                correlation_id=correlation_id,
            ))

        message = IMPORT_SUCCESS_MESSAGE
        if result.dropped_rows:
            message += (
                f" {result.dropped_rows} fila(s) no coincidían con ningún evento "
                "y se omitieron."
            )
        return result, message


class AdvisoryFlow:
    """
    Orchestrates the text advisor.

    The advisor sees a prompt built from one snapshot; it never sees the
    store. Failures come back as displayable text, never as exceptions.
    """

    def __init__(
        self,
        store: EventStoreInterface,
        advisor: Optional[BudgetAdvisorAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._advisor = advisor
        self._audit_logger = audit_logger

    @property
    def available(self) -> bool:
        return self._advisor is not None

    def build_prompt(self, question: Optional[str] = None) -> str:
        snapshot = self._store.snapshot()
        return advice_prompt(snapshot.events, snapshot.shared_costs, question)

    async def ask(
        self,
        question: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[str, bool]:
        """
        Ask for advice about the current budgets.

        Returns:
            (text, succeeded). text is always displayable.
        """
        if self._advisor is None:
            return ADVISOR_UNAVAILABLE_MESSAGE, False

        correlation_id = correlation_id or create_correlation_id()
        snapshot = self._store.snapshot()
        prompt = advice_prompt(snapshot.events, snapshot.shared_costs, question)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.advice_requested(
                question=(question or "").strip(),
                events=snapshot.event_count,
                correlation_id=correlation_id,
            ))

        response = await self._advisor.advise(prompt)

        if not response.succeeded and self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.advice_failed(
                service="gemini",
                error_message=response.error_message or response.text,
                correlation_id=correlation_id,
            ))

        return response.text, response.succeeded


class VoiceFlow:
    """
    Orchestrates one spoken question to the live voice assistant.

    The recorded clip (WAV) is converted to 16 kHz PCM, streamed to a fresh
    session, and the reply audio and transcript come back together.
    """

    def __init__(
        self,
        store: EventStoreInterface,
        session_factory: Optional[Callable[[], LiveVoiceSession]] = None,
        voice_settings: Optional[LiveVoiceSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._session_factory = session_factory
        self._voice_settings = voice_settings or LiveVoiceSettings()
        self._audit_logger = audit_logger

    @property
    def available(self) -> bool:
        return self._session_factory is not None

    def system_instruction(self) -> str:
        snapshot = self._store.snapshot()
        return voice_system_instruction(snapshot.events, snapshot.shared_costs)

    async def converse(
        self,
        recording: bytes,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[VoiceExchange], str]:
        """
        Returns:
            (exchange, message). exchange is None on any failure.
        """
        if self._session_factory is None:
            return None, ADVISOR_UNAVAILABLE_MESSAGE
        if self._store.snapshot().event_count == 0:
            return None, NO_EVENTS_VOICE_MESSAGE

        correlation_id = correlation_id or create_correlation_id()

        try:
            pcm = wav_to_pcm16(recording, self._voice_settings.input_sample_rate)
        except AudioFormatError as e:
            logger.warning("voice_recording_unreadable", error=str(e))
            return None, MICROPHONE_ERROR_MESSAGE

        session = self._session_factory()
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.voice_session(
                started=True,
                details={"input_bytes": len(pcm)},
                correlation_id=correlation_id,
            ))

        try:
            exchange = await session.converse(self.system_instruction(), pcm)
        except VoiceSessionError as e:
            if self._audit_logger:
                self._audit_logger.log_external_service_error(
                    service="gemini_live",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return None, CONNECTION_ERROR_MESSAGE
        finally:
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.voice_session(
                    started=False,
                    details={"state": session.state.value},
                    correlation_id=correlation_id,
                ))

        return exchange, ""


class AppComponents(NamedTuple):
    planning: EventPlanningFlow
    spreadsheet: SpreadsheetFlow
    advisory: AdvisoryFlow
    voice: VoiceFlow
    audit_logger: AuditLogger


def create_app_components(
    seed: Optional[bool] = None,
    use_advisors: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        seed: Start with the sample events. Defaults to the
              SEED_DEMO_DATA setting.
        use_advisors: Whether to initialize the Gemini advisors.
                      Set to False for running without an API key.

    Returns:
        AppComponents (a tuple of the four flows and the audit logger)
    """
    settings = get_settings()
    app_settings = settings.app

    if seed is None:
        seed = app_settings.seed_demo_data

    initial = seed_snapshot() if seed else StoreSnapshot()
    store = InMemoryEventStore(initial.events, initial.shared_costs)
    audit_logger = AuditLogger(InMemoryAuditTrail())

    advisor = None
    session_factory = None
    voice_settings = settings.live_voice

    if use_advisors:
        try:
            gemini_settings = settings.gemini
            advisor = BudgetAdvisorAgent(gemini_settings)

            def session_factory() -> LiveVoiceSession:
                return LiveVoiceSession(voice_settings, api_key=gemini_settings.api_key)
        except Exception as e:
            # Advisors not configured - the dashboard works without them
            logger.warning("advisors_not_configured", error=str(e))
            advisor = None
            session_factory = None

    return AppComponents(
        planning=EventPlanningFlow(store, audit_logger, app_settings),
        spreadsheet=SpreadsheetFlow(store, audit_logger, app_settings),
        advisory=AdvisoryFlow(store, advisor, audit_logger),
        voice=VoiceFlow(store, session_factory, voice_settings, audit_logger),
        audit_logger=audit_logger,
    )
