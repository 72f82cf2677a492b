"""
Spreadsheet Import/Export

DESIGN DECISION: The workbook is a projection of the store, not a second
source of truth. Export reads one snapshot and writes four sheets; import
parses the file into plain row dicts and then rebuilds cost items and tasks
for the events that already exist.

Three layers, each testable on its own:
1. build_export_tables / apply_import: pure mapping between the store and rows
2. write_workbook / read_workbook: openpyxl I/O between rows and bytes
   (legacy .xls is read through pandas with the xlrd engine)
3. export_workbook: convenience wrapper for the download button

CRITICAL: Rows are joined to events by exact event NAME, not id. When two
events share a name the first one in store order receives every row.

Import is destructive: every event's cost items and tasks, and the whole
shared pool, are replaced by what the file contains. Malformed rows degrade
(defaults, dropped rows) instead of aborting; only a file that cannot be
read as a workbook at all aborts the import.
"""

import math
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from pathlib import PurePath
from typing import Any, Iterable, Optional, Sequence, Union

import numpy as np
import pandas as pd
import structlog
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from pydantic import BaseModel, ConfigDict, Field

from event_budget.allocation.engine import compute_financials, effective_cost
from event_budget.models.event import (
    MAX_DESCRIPTION_LENGTH,
    CostItem,
    EventData,
    Task,
    TaskStatus,
)


logger = structlog.get_logger(__name__)


# =============================================================================
# SHEET LAYOUT
# =============================================================================

SHEET_SUMMARY = "Resumen"
SHEET_SPECIFIC_COSTS = "Costos Específicos"
SHEET_SHARED_COSTS = "Costos Compartidos"
SHEET_TASKS = "Tareas"

COL_EVENT = "Evento"
COL_DESCRIPTION = "Descripción"
COL_AMOUNT = "Monto"
COL_PER_ATTENDEE = "Por Asistente"
COL_TOTAL_BUDGET = "Presupuesto Total"
COL_TOTAL_SPENT = "Gasto Total"
COL_REMAINING = "Presupuesto Disponible"
COL_TASK = "Tarea"
COL_DUE_DATE = "Fecha Límite"
COL_STATUS = "Estado"

# Compound File header of legacy BIFF (.xls) workbooks
XLS_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

SHEET_HEADERS: dict[str, list[str]] = {
    SHEET_SUMMARY: [COL_EVENT, COL_TOTAL_BUDGET, COL_TOTAL_SPENT, COL_REMAINING],
    SHEET_SPECIFIC_COSTS: [COL_EVENT, COL_DESCRIPTION, COL_AMOUNT, COL_PER_ATTENDEE],
    SHEET_SHARED_COSTS: [COL_DESCRIPTION, COL_AMOUNT],
    SHEET_TASKS: [COL_EVENT, COL_TASK, COL_DUE_DATE, COL_STATUS],
}

MONEY_COLUMNS = frozenset({
    COL_AMOUNT,
    COL_PER_ATTENDEE,
    COL_TOTAL_BUDGET,
    COL_TOTAL_SPENT,
    COL_REMAINING,
})

MONEY_FORMAT = '"$"#,##0'

PLACEHOLDER_DESCRIPTION = "Sin descripción"

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# =============================================================================
# ERRORS
# =============================================================================

class WorkbookError(Exception):
    """Base exception for spreadsheet import/export."""
    pass


class WorkbookFormatError(WorkbookError):
    """The file could not be read as a spreadsheet. Nothing was imported."""
    pass


class UnsupportedFileTypeError(WorkbookError):
    """The file extension is not one we import."""

    def __init__(self, filename: str, supported: Sequence[str]):
        self.filename = filename
        self.supported = list(supported)
        super().__init__(
            f"Tipo de archivo no soportado: {filename}. "
            f"Formatos aceptados: {', '.join('.' + ext for ext in supported)}"
        )


# =============================================================================
# ROW MODELS
# =============================================================================

class WorkbookTables(BaseModel):
    """
    The four sheets as lists of row dicts keyed by column header.

    Missing sheets are empty lists; missing cells are absent or None.
    """
    summary: list[dict[str, Any]] = Field(default_factory=list)
    specific_costs: list[dict[str, Any]] = Field(default_factory=list)
    shared_costs: list[dict[str, Any]] = Field(default_factory=list)
    tasks: list[dict[str, Any]] = Field(default_factory=list)

    def rows_for(self, sheet: str) -> list[dict[str, Any]]:
        return {
            SHEET_SUMMARY: self.summary,
            SHEET_SPECIFIC_COSTS: self.specific_costs,
            SHEET_SHARED_COSTS: self.shared_costs,
            SHEET_TASKS: self.tasks,
        }[sheet]


class ImportResult(BaseModel):
    """New store contents produced by an import, plus what happened."""
    model_config = ConfigDict(frozen=True)

    events: tuple[EventData, ...]
    shared_costs: tuple[CostItem, ...]
    cost_items_imported: int = 0
    tasks_imported: int = 0
    dropped_rows: int = Field(
        default=0,
        description="Specific-cost and task rows naming no current event"
    )

    @property
    def counts(self) -> dict[str, int]:
        return {
            "events": len(self.events),
            "shared_costs": len(self.shared_costs),
            "cost_items": self.cost_items_imported,
            "tasks": self.tasks_imported,
            "dropped_rows": self.dropped_rows,
        }


# =============================================================================
# EXPORT
# =============================================================================

def _sheet_number(value: Decimal) -> Union[int, float]:
    """openpyxl writes int/float; keep whole amounts as ints."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def build_export_tables(
    events: Sequence[EventData],
    shared_costs: Sequence[CostItem],
) -> WorkbookTables:
    """
    Project the store into the four sheets.

    Specific-cost amounts are effective amounts (variable items already
    multiplied by attendees). The per-attendee rate goes in its own column
    so the import can restore the item as variable.
    """
    summary = [
        {
            COL_EVENT: item.name,
            COL_TOTAL_BUDGET: item.total_budget,
            COL_TOTAL_SPENT: _sheet_number(item.total_spent),
            COL_REMAINING: _sheet_number(item.remaining_budget),
        }
        for item in compute_financials(events, shared_costs)
    ]

    specific_costs = [
        {
            COL_EVENT: event.name,
            COL_DESCRIPTION: item.description,
            COL_AMOUNT: effective_cost(item, event.attendees),
            COL_PER_ATTENDEE: item.amount if item.is_variable else None,
        }
        for event in events
        for item in event.cost_items
    ]

    shared = [
        {COL_DESCRIPTION: item.description, COL_AMOUNT: item.amount}
        for item in shared_costs
    ]

    tasks = [
        {
            COL_EVENT: event.name,
            COL_TASK: task.description,
            COL_DUE_DATE: task.due_date or None,
            COL_STATUS: task.status.value,
        }
        for event in events
        for task in event.tasks
    ]

    return WorkbookTables(
        summary=summary,
        specific_costs=specific_costs,
        shared_costs=shared,
        tasks=tasks,
    )


def _style_header(ws, row: int = 1) -> None:
    """Bold white text on blue for the header row."""
    header_font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor="4F81BD")
    align = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin", color="A0A0A0")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for cell in ws[row]:
        cell.font = header_font
        cell.fill = fill
        cell.alignment = align
        cell.border = border


def _autosize_columns(ws, min_width: int = 10, max_width: int = 50) -> None:
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        longest = max(
            (len(str(cell.value)) for cell in ws[letter] if cell.value is not None),
            default=0,
        )
        ws.column_dimensions[letter].width = max(min_width, min(max_width, longest + 2))


def write_workbook(tables: WorkbookTables) -> bytes:
    """
    Serialize the four sheets to .xlsx bytes.

    Every sheet gets its header row even when it has no data rows.
    """
    wb = Workbook()
    wb.remove(wb.active)

    for sheet_name, headers in SHEET_HEADERS.items():
        ws = wb.create_sheet(sheet_name)
        ws.append(headers)
        _style_header(ws)
        ws.freeze_panes = "A2"

        for row in tables.rows_for(sheet_name):
            ws.append([row.get(header) for header in headers])

        for col, header in enumerate(headers, start=1):
            if header not in MONEY_COLUMNS:
                continue
            for (cell,) in ws.iter_rows(min_row=2, min_col=col, max_col=col):
                if isinstance(cell.value, (int, float)):
                    cell.number_format = MONEY_FORMAT

        _autosize_columns(ws)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def export_workbook(
    events: Sequence[EventData],
    shared_costs: Sequence[CostItem],
) -> bytes:
    """Build and serialize the export in one call."""
    return write_workbook(build_export_tables(events, shared_costs))


def export_filename(today: Optional[date] = None, prefix: str = "Presupuesto_Eventos") -> str:
    """e.g. Presupuesto_Eventos_2026-01-07.xlsx"""
    today = today or date.today()
    return f"{prefix}_{today.isoformat()}.xlsx"


# =============================================================================
# IMPORT - FILE LAYER
# =============================================================================

def check_file_extension(filename: str, supported: Sequence[str] = ("xlsx", "xls")) -> None:
    """
    Reject files whose extension is not supported, before reading them.

    Raises:
        UnsupportedFileTypeError
    """
    suffix = PurePath(filename or "").suffix.lower().lstrip(".")
    if suffix not in {ext.lower().lstrip(".") for ext in supported}:
        raise UnsupportedFileTypeError(filename, supported)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _sheet_rows(rows: Iterable[Sequence[Any]]) -> list[dict[str, Any]]:
    """
    First row is the header; every later non-blank row becomes a dict.

    Columns with an empty header are ignored.
    """
    rows = iter(rows)
    header_row = next(rows, None)
    if header_row is None:
        return []

    headers = [
        str(value).strip() if not _is_blank(value) else None
        for value in header_row
    ]

    records = []
    for values in rows:
        if all(_is_blank(value) for value in values):
            continue
        records.append({
            header: value
            for header, value in zip(headers, values)
            if header is not None and not _is_blank(value)
        })
    return records


def _unreadable(e: Exception, event: str = "workbook_unreadable") -> WorkbookFormatError:
    logger.warning(event, error=str(e), error_type=type(e).__name__)
    detail = str(e) or type(e).__name__
    return WorkbookFormatError(f"Hubo un error al procesar el archivo. {detail}")


def _read_xlsx_sheets(data: bytes) -> dict[str, list[dict[str, Any]]]:
    try:
        wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        raise _unreadable(e) from e

    try:
        return {
            name: _sheet_rows(wb[name].iter_rows(values_only=True))
            if name in wb.sheetnames else []
            for name in SHEET_HEADERS
        }
    except Exception as e:
        raise _unreadable(e, "workbook_sheet_unreadable") from e
    finally:
        wb.close()


def _frame_cell(value: Any) -> Any:
    """pandas scalars back to the plain values openpyxl would give."""
    if pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value


def _read_xls_sheets(data: bytes) -> dict[str, list[dict[str, Any]]]:
    """Legacy BIFF workbooks, which openpyxl cannot open, go through pandas/xlrd."""
    try:
        frames = pd.read_excel(BytesIO(data), sheet_name=None, header=None, engine="xlrd")
    except Exception as e:
        raise _unreadable(e) from e

    return {
        name: _sheet_rows(
            tuple(_frame_cell(value) for value in values)
            for values in frames[name].itertuples(index=False, name=None)
        )
        if name in frames else []
        for name in SHEET_HEADERS
    }


def read_workbook(data: bytes) -> WorkbookTables:
    """
    Parse workbook bytes (.xlsx or legacy .xls) into row dicts.

    The format is taken from the file signature, not the name. Sheets that
    are missing come back empty. The summary sheet is read for completeness
    but import never uses it: its figures are derived.

    Raises:
        WorkbookFormatError: If the bytes are not a readable spreadsheet
    """
    if data.startswith(XLS_SIGNATURE):
        sheets = _read_xls_sheets(data)
    else:
        sheets = _read_xlsx_sheets(data)

    return WorkbookTables(
        summary=sheets[SHEET_SUMMARY],
        specific_costs=sheets[SHEET_SPECIFIC_COSTS],
        shared_costs=sheets[SHEET_SHARED_COSTS],
        tasks=sheets[SHEET_TASKS],
    )


# =============================================================================
# IMPORT - MAPPING LAYER
# =============================================================================

def _amount(value: Any) -> int:
    """Numeric cells only; anything else imports as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            return 0
        return int(round(value))
    return 0


def _description(value: Any) -> str:
    """Blank cells get the placeholder; overlong text is cut to the model limit."""
    if _is_blank(value):
        return PLACEHOLDER_DESCRIPTION
    return str(value).strip()[:MAX_DESCRIPTION_LENGTH].strip()


def _due_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if _is_blank(value):
        return ""
    return str(value).strip()


def _find_by_name(events: Iterable[EventData], name: Any) -> Optional[EventData]:
    if not isinstance(name, str):
        return None
    return next((event for event in events if event.name == name), None)


def apply_import(
    events: Sequence[EventData],
    tables: WorkbookTables,
) -> ImportResult:
    """
    Rebuild cost items, tasks and the shared pool from parsed sheets.

    Pure: the current events are only read. Event fields other than cost
    items and tasks are kept; events are never created or removed.

    Row indexes in synthetic ids are positions within each sheet's data rows.
    """
    cost_items: dict[str, list[CostItem]] = {event.id: [] for event in events}
    tasks: dict[str, list[Task]] = {event.id: [] for event in events}
    dropped = 0

    shared_costs = tuple(
        CostItem(
            id=f"shared-imported-{index}",
            description=_description(row.get(COL_DESCRIPTION)),
            amount=_amount(row.get(COL_AMOUNT)),
        )
        for index, row in enumerate(tables.shared_costs)
    )

    for index, row in enumerate(tables.specific_costs):
        target = _find_by_name(events, row.get(COL_EVENT))
        if target is None:
            dropped += 1
            continue

        rate = _amount(row.get(COL_PER_ATTENDEE))
        is_variable = rate > 0
        cost_items[target.id].append(CostItem(
            id=f"specific-imported-{target.id}-{index}",
            description=_description(row.get(COL_DESCRIPTION)),
            amount=rate if is_variable else _amount(row.get(COL_AMOUNT)),
            is_variable=is_variable,
        ))

    for index, row in enumerate(tables.tasks):
        target = _find_by_name(events, row.get(COL_EVENT))
        if target is None:
            dropped += 1
            continue

        status = row.get(COL_STATUS)
        tasks[target.id].append(Task(
            id=f"task-imported-{target.id}-{index}",
            description=_description(row.get(COL_TASK)),
            due_date=_due_date(row.get(COL_DUE_DATE)),
            is_complete=isinstance(status, str) and status.strip() == TaskStatus.COMPLETED.value,
        ))

    if dropped:
        logger.info("workbook_rows_dropped", dropped_rows=dropped)

    rebuilt = tuple(
        event.model_copy(update={
            "cost_items": tuple(cost_items[event.id]),
            "tasks": tuple(tasks[event.id]),
        })
        for event in events
    )

    return ImportResult(
        events=rebuilt,
        shared_costs=shared_costs,
        cost_items_imported=sum(len(items) for items in cost_items.values()),
        tasks_imported=sum(len(items) for items in tasks.values()),
        dropped_rows=dropped,
    )
