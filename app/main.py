"""
Streamlit Frontend for the Event Budget Dashboard

This is the interface event producers use to plan budgets for several
events that share common costs.

DESIGN PRINCIPLES:
1. Every number on screen comes from one recomputed DashboardView
2. Explicit confirmation before deleting an event or importing a file
3. Validation messages shown inline, in Spanish
4. The UI never touches the store directly; it calls the flows

State lives in st.session_state, so each browser session has its own
events and everything is lost on reload (export to Excel to keep a copy).
"""

import asyncio
from typing import Optional

import plotly.graph_objects as go
import streamlit as st

from event_budget.allocation import format_clp, format_margin
from event_budget.config import validate_all_settings
from event_budget.models.event import BudgetHealth, EventData, EventFinancials
from event_budget.orchestrator import (
    DELETE_CONFIRMATION_PROMPT,
    IMPORT_CONFIRMATION_PROMPT,
    AppComponents,
    DashboardView,
    EventPlanningFlow,
    create_app_components,
)
from event_budget.services.spreadsheet import XLSX_MIME_TYPE
from event_budget.services.storage import SHARED_POOL
from event_budget.validation import combine_date_time


# Page configuration
st.set_page_config(
    page_title="Presupuesto de Eventos",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
)

HEALTH_COLORS = {
    BudgetHealth.HEALTHY: "#2ecc71",
    BudgetHealth.WARNING: "#f1c40f",
    BudgetHealth.CRITICAL: "#e74c3c",
}

# Custom CSS for the cards
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .big-number {
        font-size: 1.8em;
        font-weight: bold;
    }
    .muted {
        color: #7f8c8d;
        font-size: 0.9em;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_components() -> AppComponents:
    """Per-session application components (the store lives in here)."""
    if "components" not in st.session_state:
        st.session_state.components = create_app_components()
    return st.session_state.components


def flash(message: str, kind: str = "success") -> None:
    """Show a message after the next rerun."""
    if message:
        st.session_state.flash = (kind, message)


def show_flash() -> None:
    kind, message = st.session_state.pop("flash", (None, None))
    if message:
        getattr(st, kind)(message)


def main():
    """Main application entry point."""
    components = get_components()

    st.sidebar.title("📊 Presupuesto de Eventos")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Ir a:",
        ["📊 Panel", "💡 Asesor IA", "🎙️ Asistente de Voz", "⚙️ Configuración"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **Cómo usar:**
        1. Crea tus eventos con su presupuesto
        2. Agrega costos específicos y compartidos
        3. Revisa el margen de cada evento
        4. Exporta a Excel para guardar tu trabajo
        """
    )

    show_flash()

    if page == "📊 Panel":
        render_dashboard_page(components)
    elif page == "💡 Asesor IA":
        render_advisor_page(components)
    elif page == "🎙️ Asistente de Voz":
        render_voice_page(components)
    elif page == "⚙️ Configuración":
        render_settings_page(components)


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard_page(components: AppComponents):
    """Cards, shared costs, chart and Excel sync."""
    st.title("📊 Panel de Eventos")

    planning = components.planning
    view = planning.dashboard()

    render_event_form(planning)

    if not view.snapshot.events:
        st.info("Aún no tienes eventos. Crea tu primer evento para empezar a planificar.")

    columns = st.columns(2)
    for index, event in enumerate(view.snapshot.events):
        with columns[index % 2]:
            render_event_card(planning, event, view.financials_for(event.id))

    st.markdown("---")
    col1, col2 = st.columns(2)
    with col1:
        render_shared_costs_card(planning, view)
    with col2:
        render_profitability_chart(view)

    st.markdown("---")
    render_excel_controls(components)


def render_event_form(planning: EventPlanningFlow, event: Optional[EventData] = None):
    """Create form, or edit form when an event is given."""
    key = event.id if event else "new"
    label = "✏️ Editar evento" if event else "➕ Nuevo evento"

    with st.expander(label, expanded=False):
        with st.form(f"event_form_{key}", clear_on_submit=event is None):
            name = st.text_input("Nombre del evento", value=event.name if event else "")

            col1, col2 = st.columns(2)
            with col1:
                start_day = st.text_input(
                    "Fecha de inicio (AAAA-MM-DD)",
                    value=event.start_date[:10] if event else "",
                )
                start_time = st.text_input(
                    "Hora de inicio (HH:MM)",
                    value=event.start_date[11:16] if event else "",
                )
            with col2:
                end_day = st.text_input(
                    "Fecha de término (AAAA-MM-DD)",
                    value=event.end_date[:10] if event else "",
                )
                end_time = st.text_input(
                    "Hora de término (HH:MM)",
                    value=event.end_date[11:16] if event else "",
                )

            col3, col4 = st.columns(2)
            with col3:
                budget = st.text_input(
                    "Presupuesto total (CLP)",
                    value=str(event.total_budget) if event else "",
                )
            with col4:
                attendees = st.text_input(
                    "Número de asistentes",
                    value=str(event.attendees) if event else "0",
                )

            submitted = st.form_submit_button("Guardar" if event else "Crear evento")

        if submitted:
            start_date = combine_date_time(start_day.strip(), start_time.strip())
            end_date = combine_date_time(end_day.strip(), end_time.strip())

            if event:
                result, message = planning.update_event(
                    event.id,
                    name=name,
                    start_date=start_date,
                    end_date=end_date,
                    total_budget=budget,
                    attendees=attendees,
                )
            else:
                result, message = planning.create_event(
                    name, start_date, end_date, budget, attendees
                )

            if result is None:
                st.error(message)
            else:
                flash(message)
                st.rerun()


def render_event_card(
    planning: EventPlanningFlow,
    event: EventData,
    financials: EventFinancials,
):
    """One event: budget figures, costs, tasks, edit and delete."""
    with st.container(border=True):
        st.subheader(event.name)
        if event.start_date:
            st.markdown(
                f"<span class='muted'>{event.start_date.replace('T', ' ')[:16]}"
                f" → {event.end_date.replace('T', ' ')[:16] or '—'}</span>",
                unsafe_allow_html=True,
            )

        col1, col2, col3 = st.columns(3)
        col1.metric("Presupuesto Total", format_clp(financials.total_budget))
        col2.metric("Gasto Total", format_clp(financials.total_spent))
        color = HEALTH_COLORS[financials.health]
        col3.markdown(
            f"Presupuesto Disponible<br>"
            f"<span class='big-number' style='color:{color}'>"
            f"{format_clp(financials.remaining_budget)}</span>",
            unsafe_allow_html=True,
        )

        st.caption(
            f"👥 {event.attendees} asistentes · "
            f"Costos propios {format_clp(financials.own_cost_total)} · "
            f"Parte de costos compartidos {format_clp(financials.shared_cost_share)} · "
            f"Margen {format_margin(financials.profit_margin)}"
        )

        render_cost_items(planning, event)
        render_tasks(planning, event)

        render_event_form(planning, event)
        render_delete_control(planning, event)


def render_cost_items(planning: EventPlanningFlow, event: EventData):
    st.markdown("**Costos específicos**")
    for item in event.cost_items:
        col1, col2 = st.columns([5, 1])
        if item.is_variable:
            amount = (
                f"{format_clp(item.amount)} × {event.attendees} = "
                f"{format_clp(item.amount * event.attendees)}"
            )
        else:
            amount = format_clp(item.amount)
        col1.markdown(f"{item.description}: {amount}")
        if col2.button("🗑️", key=f"rm_cost_{event.id}_{item.id}"):
            removed, message = planning.remove_cost_item(event.id, item.id)
            flash(message)
            st.rerun()

    with st.form(f"cost_form_{event.id}", clear_on_submit=True):
        col1, col2, col3 = st.columns([3, 2, 1])
        description = col1.text_input("Descripción", key=f"cost_desc_{event.id}")
        amount = col2.text_input("Monto", key=f"cost_amount_{event.id}")
        is_variable = col3.checkbox("Por asistente", key=f"cost_var_{event.id}")
        if st.form_submit_button("Agregar costo"):
            item, message = planning.add_cost_item(event.id, description, amount, is_variable)
            if item is None:
                st.error(message)
            else:
                st.rerun()


def render_tasks(planning: EventPlanningFlow, event: EventData):
    st.markdown(
        f"**Tareas Pendientes ({len(event.pending_tasks)})** · "
        f"Completadas ({len(event.completed_tasks)})"
    )

    for task in event.pending_tasks + event.completed_tasks:
        col1, col2, col3 = st.columns([5, 1, 1])
        label = task.description + (f" · 📅 {task.due_date}" if task.due_date else "")
        checked = col1.checkbox(label, value=task.is_complete, key=f"task_{event.id}_{task.id}")
        if checked != task.is_complete:
            planning.toggle_task(event.id, task.id)
            st.rerun()

        if col2.button("✏️", key=f"edit_task_{event.id}_{task.id}"):
            st.session_state.editing_task = (event.id, task.id)
        if col3.button("🗑️", key=f"rm_task_{event.id}_{task.id}"):
            planning.remove_task(event.id, task.id)
            st.rerun()

        if st.session_state.get("editing_task") == (event.id, task.id):
            with st.form(f"task_edit_{event.id}_{task.id}"):
                description = st.text_input("Tarea", value=task.description)
                due_date = st.text_input("Fecha límite (AAAA-MM-DD)", value=task.due_date)
                if st.form_submit_button("Guardar tarea"):
                    updated, message = planning.update_task(
                        event.id, task.id, description, due_date
                    )
                    if updated is None and message:
                        st.error(message)
                    else:
                        del st.session_state.editing_task
                        st.rerun()

    with st.form(f"task_form_{event.id}", clear_on_submit=True):
        col1, col2 = st.columns([3, 2])
        description = col1.text_input("Nueva tarea", key=f"task_desc_{event.id}")
        due_date = col2.date_input("Fecha límite", value=None, key=f"task_due_{event.id}")
        if st.form_submit_button("Agregar tarea"):
            task, message = planning.add_task(
                event.id, description, due_date.isoformat() if due_date else ""
            )
            if task is None:
                st.error(message)
            else:
                st.rerun()


def render_delete_control(planning: EventPlanningFlow, event: EventData):
    """Two-step delete: ask, then confirm."""
    if st.session_state.get("confirm_delete") != event.id:
        if st.button("Eliminar evento", key=f"delete_{event.id}"):
            st.session_state.confirm_delete = event.id
            st.rerun()
        return

    st.warning(DELETE_CONFIRMATION_PROMPT)
    col1, col2 = st.columns(2)
    if col1.button("Sí, eliminar", key=f"confirm_delete_{event.id}", type="primary"):
        deleted, message = planning.delete_event(event.id, confirmed=True)
        del st.session_state.confirm_delete
        flash(message, "success" if deleted else "error")
        st.rerun()
    if col2.button("Cancelar", key=f"cancel_delete_{event.id}"):
        del st.session_state.confirm_delete
        st.rerun()


def render_shared_costs_card(planning: EventPlanningFlow, view: DashboardView):
    with st.container(border=True):
        st.subheader("Costos Compartidos")
        col1, col2 = st.columns(2)
        col1.metric("Total", format_clp(view.total_shared_cost))
        col2.metric("Por evento", format_clp(view.shared_cost_per_event))

        for item in view.snapshot.shared_costs:
            c1, c2 = st.columns([5, 1])
            c1.markdown(f"{item.description}: {format_clp(item.amount)}")
            if c2.button("🗑️", key=f"rm_shared_{item.id}"):
                planning.remove_cost_item(SHARED_POOL, item.id)
                st.rerun()

        with st.form("shared_cost_form", clear_on_submit=True):
            c1, c2 = st.columns([3, 2])
            description = c1.text_input("Descripción")
            amount = c2.text_input("Monto")
            if st.form_submit_button("Agregar costo compartido"):
                item, message = planning.add_shared_cost(description, amount)
                if item is None:
                    st.error(message)
                else:
                    st.rerun()


def render_profitability_chart(view: DashboardView):
    st.subheader("Rentabilidad por Evento")
    if not view.chart:
        st.info("Sin eventos para comparar.")
        return

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=[bar.name for bar in view.chart],
        y=[float(bar.profit_margin) for bar in view.chart],
        text=[bar.label for bar in view.chart],
        textposition="outside",
        marker_color=["#2ecc71" if bar.is_positive else "#e74c3c" for bar in view.chart],
    ))
    fig.update_layout(
        yaxis_title="Margen (%)",
        showlegend=False,
        margin=dict(t=20, b=20),
    )
    st.plotly_chart(fig, width="stretch")


def render_excel_controls(components: AppComponents):
    st.subheader("Sincronización con Excel")
    st.markdown(
        "<span class='muted'>Importa o exporta el estado actual, "
        "incluyendo costos y tareas.</span>",
        unsafe_allow_html=True,
    )

    col1, col2 = st.columns(2)
    with col1:
        content, filename = components.spreadsheet.export()
        st.download_button(
            "⬇️ Exportar",
            data=content,
            file_name=filename,
            mime=XLSX_MIME_TYPE,
            on_click=components.spreadsheet.record_export,
            args=(filename,),
        )

    with col2:
        uploaded = st.file_uploader("Importar", type=["xlsx", "xls"])
        if uploaded is not None:
            confirmed = st.checkbox(IMPORT_CONFIRMATION_PROMPT, key="confirm_import")
            if st.button("⬆️ Importar", disabled=not confirmed):
                result, message = components.spreadsheet.import_file(
                    uploaded.getvalue(),
                    uploaded.name,
                    confirmed=confirmed,
                )
                flash(message, "success" if result is not None else "error")
                st.rerun()


# =============================================================================
# ADVISORS
# =============================================================================

def render_advisor_page(components: AppComponents):
    st.title("💡 Asesor IA")
    advisory = components.advisory

    if not advisory.available:
        st.warning("El asistente de IA no está configurado. Revisa la página de configuración.")
        return

    question = st.text_area(
        "¿Qué quieres preguntar?",
        placeholder="Dame un consejo general sobre cómo optimizar mis presupuestos.",
    )

    if st.button("Obtener consejo", type="primary"):
        with st.spinner("Consultando al asesor..."):
            text, succeeded = run_async(advisory.ask(question))
        st.session_state.advice = (text, succeeded)

    if "advice" in st.session_state:
        text, succeeded = st.session_state.advice
        if succeeded:
            st.markdown(text)
        else:
            st.error(text)


def render_voice_page(components: AppComponents):
    st.title("🎙️ Asistente de Voz")
    voice = components.voice

    if not voice.available:
        st.warning("El asistente de voz no está configurado. Revisa la página de configuración.")
        return

    if components.planning.dashboard().snapshot.event_count == 0:
        st.info("Crea un evento para habilitar el asistente")
        return

    recording = st.audio_input("Graba tu pregunta")
    if recording is not None and st.button("Enviar pregunta", type="primary"):
        with st.spinner("Conectando..."):
            exchange, message = run_async(voice.converse(recording.getvalue()))
        if exchange is None:
            st.error(message)
        else:
            st.session_state.voice_turns = (
                st.session_state.get("voice_turns", []) + exchange.turns
            )
            st.session_state.voice_reply = exchange.wav() if exchange.audio else None

    turns = st.session_state.get("voice_turns", [])
    if not turns:
        st.markdown("Hola, ¿en qué puedo ayudarte hoy?")
    for turn in turns:
        if turn.user:
            st.markdown(f"**Tú:** {turn.user}")
        if turn.model:
            st.markdown(f"**IA:** {turn.model}")

    if st.session_state.get("voice_reply"):
        st.audio(st.session_state.voice_reply, format="audio/wav", autoplay=True)


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(components: AppComponents):
    """Connection status and the session's audit trail."""
    st.title("⚙️ Configuración")

    st.markdown("### Estado de conexión")
    status = validate_all_settings()

    services = [
        ("Gemini (Asesor IA)", "gemini"),
        ("Gemini Live (Asistente de Voz)", "live_voice"),
        ("Aplicación", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configurado")
        else:
            error = status.get(f"{key}_error", "No configurado")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Historial de la sesión")
    trail = components.audit_logger.trail
    events = trail.get_recent_events(limit=50) if trail else []
    if not events:
        st.info("Sin actividad todavía.")
    else:
        st.dataframe(
            [
                {
                    "Hora": e.timestamp.strftime("%H:%M:%S"),
                    "Tipo": e.event_type.value,
                    "Descripción": e.description,
                    "Error": e.error_message or "",
                }
                for e in events
            ],
            width="stretch",
        )

    st.markdown("---")
    st.markdown("### Configuración")
    st.markdown(
        "Crea un archivo `.env` con `GEMINI_API_KEY` para habilitar los asistentes. "
        "Consulta `.env.example` para ver todas las variables."
    )


if __name__ == "__main__":
    main()
