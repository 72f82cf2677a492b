"""Tests for form input validation."""

import pytest

from event_budget.models.event import MAX_DESCRIPTION_LENGTH, MAX_NAME_LENGTH
from event_budget.validation import InputValidator, combine_date_time, parse_int_field


@pytest.fixture
def validator():
    return InputValidator()


class TestParseIntField:
    """Tests for numeric form parsing."""

    @pytest.mark.parametrize("raw,expected", [
        ("1500", 1500),
        ("1500abc", 1500),
        ("12.9", 12),
        ("  -5", -5),
        (42, 42),
        (3.7, 3),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
    ])
    def test_parse(self, raw, expected):
        """Test leading-integer parsing."""
        assert parse_int_field(raw) == expected


class TestCombineDateTime:
    """Tests for building event datetimes from the form."""

    def test_both_parts(self):
        """Test a full date and time."""
        assert combine_date_time("2026-01-07", "09:00") == "2026-01-07T09:00:00"

    def test_seconds_are_dropped(self):
        """Test that the time is cut to minutes."""
        assert combine_date_time("2026-01-07", "09:30:45") == "2026-01-07T09:30:00"

    def test_missing_part_gives_no_date(self):
        """Test that either part missing means no date."""
        assert combine_date_time("2026-01-07", "") == ""
        assert combine_date_time("", "09:00") == ""


class TestEventValidation:
    """Tests for the event form."""

    def test_valid_event(self, validator):
        """Test a complete, valid event."""
        result = validator.validate_event(
            "Los Ríos Atrae", "20000000", "150",
            "2026-01-07T09:00:00", "2026-01-07T19:00:00",
        )
        assert result.is_valid

    def test_missing_name(self, validator):
        """Test that a blank name is rejected."""
        result = validator.validate_event("  ", 1000, 0)
        assert result.errors_for("name") == ["El nombre del evento es obligatorio."]

    @pytest.mark.parametrize("budget", ["0", "-10", "abc", None])
    def test_invalid_budget(self, validator, budget):
        """Test that the budget must be a positive integer."""
        result = validator.validate_event("Evento", budget, 0)
        assert result.errors_for("total_budget") == [
            "El presupuesto debe ser un número positivo."
        ]

    def test_negative_attendees(self, validator):
        """Test that attendees cannot be negative."""
        result = validator.validate_event("Evento", 1000, "-1")
        assert result.errors_for("attendees")

    def test_zero_attendees_allowed(self, validator):
        """Test that zero attendees is valid."""
        assert validator.validate_event("Evento", 1000, "0").is_valid

    def test_name_length_limit(self, validator):
        """Test that a name over the limit is rejected and one at the limit is not."""
        assert validator.validate_event("x" * MAX_NAME_LENGTH, 1000, 0).is_valid
        result = validator.validate_event("x" * (MAX_NAME_LENGTH + 1), 1000, 0)
        assert result.errors_for("name") == [
            f"El texto no puede superar los {MAX_NAME_LENGTH} caracteres (tiene {MAX_NAME_LENGTH + 1})."
        ]

    def test_end_before_start(self, validator):
        """Test that an event cannot end before it starts."""
        result = validator.validate_event(
            "Evento", 1000, 0, "2026-01-08T09:00:00", "2026-01-07T09:00:00"
        )
        assert result.errors_for("end_date")

    def test_malformed_date(self, validator):
        """Test that a date must be ISO."""
        result = validator.validate_event("Evento", 1000, 0, "07/01/2026")
        assert result.errors_for("start_date")

    def test_reports_every_problem(self, validator):
        """Test that all issues are reported together."""
        result = validator.validate_event("", "x", "-3")
        assert result.error_count == 3


class TestCostItemValidation:
    """Tests for the cost item form."""

    def test_valid_cost(self, validator):
        """Test a valid fixed cost."""
        assert validator.validate_cost_item("Sonido", "300000").is_valid

    def test_missing_description(self, validator):
        """Test that a description is required."""
        result = validator.validate_cost_item("", 100)
        assert result.errors_for("description")

    @pytest.mark.parametrize("amount", ["0", "-1", "", "gratis"])
    def test_amount_must_be_positive(self, validator, amount):
        """Test that the amount must be a positive integer."""
        result = validator.validate_cost_item("Sonido", amount)
        assert result.errors_for("amount") == ["El monto debe ser un número positivo."]

    def test_description_length_limit(self, validator):
        """Test that an overlong description is rejected."""
        result = validator.validate_cost_item("d" * (MAX_DESCRIPTION_LENGTH + 1), 100)
        assert result.errors_for("description")
        assert validator.validate_cost_item("d" * MAX_DESCRIPTION_LENGTH, 100).is_valid

    def test_surrounding_whitespace_not_counted(self, validator):
        """Test that the limit applies to the stripped text."""
        assert validator.validate_cost_item("  " + "d" * MAX_DESCRIPTION_LENGTH + "  ", 100).is_valid

    def test_shared_cost_cannot_be_variable(self, validator):
        """Test that the shared pool only takes fixed costs."""
        result = validator.validate_cost_item("Catering", 1000, is_variable=True, shared=True)
        assert result.errors_for("is_variable")
        assert validator.validate_cost_item("Catering", 1000, is_variable=True).is_valid


class TestTaskValidation:
    """Tests for the task form."""

    def test_valid_task(self, validator):
        """Test a task with a due date."""
        assert validator.validate_task("Reservar hotel", "2026-01-05").is_valid

    def test_due_date_optional(self, validator):
        """Test a task without a due date."""
        assert validator.validate_task("Reservar hotel").is_valid

    def test_missing_description(self, validator):
        """Test that a description is required."""
        assert validator.validate_task("   ").errors_for("description")

    def test_invalid_due_date(self, validator):
        """Test that the due date must be YYYY-MM-DD."""
        assert validator.validate_task("Reservar", "mañana").errors_for("due_date")

    def test_description_length_limit(self, validator):
        """Test that an overlong task description is rejected."""
        result = validator.validate_task("t" * (MAX_DESCRIPTION_LENGTH + 1))
        assert [issue.issue_type for issue in result.issues] == ["too_long"]
