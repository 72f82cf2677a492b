"""
Input Validation

DESIGN DECISION: Every value a user types goes through this module before
it reaches the store. Validation NEVER silently fixes input; it reports
every problem as a ValidationIssue so the form can show it inline, and the
store refuses to mutate anything while an error-level issue exists.

Messages are in Spanish because they are shown to the user as-is.
"""

import re
from datetime import date, datetime
from typing import Optional, Union

from event_budget.models.event import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    ValidationIssue,
    ValidationResult,
)


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int_field(raw: Union[str, int, float, None]) -> Optional[int]:
    """
    Parse a numeric form field the way the browser form does.

    Leading integer digits are used ("1500abc" -> 1500, "12.9" -> 12);
    anything else gives None.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw == raw else None
    match = _LEADING_INT.match(str(raw))
    return int(match.group(1)) if match else None


def combine_date_time(date_part: str, time_part: str) -> str:
    """
    Build the ISO datetime stored on an event from the form's date and time.

    Both parts are required; if either is missing the event has no date.
    """
    if not date_part or not time_part:
        return ""
    return f"{date_part}T{time_part[:5]}:00"


def _parse_iso_datetime(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _parse_iso_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class InputValidator:
    """
    Validates event, cost item and task input.

    Stateless; one instance can be shared by the store and the UI.
    """

    def validate_event(
        self,
        name: Optional[str],
        total_budget: Union[str, int, None],
        attendees: Union[str, int, None],
        start_date: str = "",
        end_date: str = "",
    ) -> ValidationResult:
        """
        Validate the event form.

        Checks:
        - Name present
        - Name no longer than MAX_NAME_LENGTH
        - Budget is a positive integer
        - Attendees is a non-negative integer
        - Dates are ISO datetimes (or empty) and end is not before start
        """
        issues = []

        if not (name or "").strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="El nombre del evento es obligatorio.",
                severity="error",
            ))
        self._check_length("name", name, MAX_NAME_LENGTH, issues)

        budget = parse_int_field(total_budget)
        if budget is None or budget <= 0:
            issues.append(ValidationIssue(
                field="total_budget",
                issue_type="invalid_value",
                message="El presupuesto debe ser un número positivo.",
                severity="error",
            ))

        attendee_count = parse_int_field(attendees)
        if attendee_count is None or attendee_count < 0:
            issues.append(ValidationIssue(
                field="attendees",
                issue_type="invalid_value",
                message="El número de asistentes no puede ser negativo.",
                severity="error",
            ))

        start = self._check_datetime("start_date", start_date, issues)
        end = self._check_datetime("end_date", end_date, issues)
        comparable = start and end and (start.tzinfo is None) == (end.tzinfo is None)
        if comparable and end < start:
            issues.append(ValidationIssue(
                field="end_date",
                issue_type="inconsistent",
                message="La fecha de término no puede ser anterior a la de inicio.",
                severity="error",
                suggested_fix="Revisa ambas fechas",
            ))

        return ValidationResult(subject="event", issues=issues)

    def validate_cost_item(
        self,
        description: Optional[str],
        amount: Union[str, int, None],
        is_variable: bool = False,
        shared: bool = False,
    ) -> ValidationResult:
        """
        Validate a cost item before it is added.

        Shared costs are split evenly across events, so they cannot be
        priced per attendee.
        """
        issues = []

        if not (description or "").strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="La descripción del costo es obligatoria.",
                severity="error",
            ))
        self._check_length("description", description, MAX_DESCRIPTION_LENGTH, issues)

        value = parse_int_field(amount)
        if value is None or value <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="El monto debe ser un número positivo.",
                severity="error",
            ))

        if shared and is_variable:
            issues.append(ValidationIssue(
                field="is_variable",
                issue_type="invalid_value",
                message="Los costos compartidos no pueden ser por asistente.",
                severity="error",
                suggested_fix="Agrega el costo variable al evento correspondiente",
            ))

        return ValidationResult(subject="cost_item", issues=issues)

    def validate_task(
        self,
        description: Optional[str],
        due_date: str = "",
    ) -> ValidationResult:
        """Validate a task before it is added or edited."""
        issues = []

        if not (description or "").strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="La descripción de la tarea es obligatoria.",
                severity="error",
            ))
        self._check_length("description", description, MAX_DESCRIPTION_LENGTH, issues)

        if due_date and _parse_iso_date(due_date) is None:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="invalid_format",
                message=f"La fecha límite '{due_date}' no es una fecha válida (AAAA-MM-DD).",
                severity="error",
            ))

        return ValidationResult(subject="task", issues=issues)

    @staticmethod
    def _check_datetime(
        field: str,
        value: str,
        issues: list[ValidationIssue],
    ) -> Optional[datetime]:
        if not value:
            return None
        parsed = _parse_iso_datetime(value)
        if parsed is None:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_format",
                message=f"La fecha '{value}' no es válida.",
                severity="error",
            ))
        return parsed

    @staticmethod
    def _check_length(
        field: str,
        value: Optional[str],
        limit: int,
        issues: list[ValidationIssue],
    ) -> None:
        length = len((value or "").strip())
        if length > limit:
            issues.append(ValidationIssue(
                field=field,
                issue_type="too_long",
                message=f"El texto no puede superar los {limit} caracteres (tiene {length}).",
                severity="error",
                suggested_fix=f"Acorta el texto a {limit} caracteres",
            ))
