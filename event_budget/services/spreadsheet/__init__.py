"""Spreadsheet import/export package."""

from event_budget.services.spreadsheet.workbook import (
    PLACEHOLDER_DESCRIPTION,
    SHEET_HEADERS,
    SHEET_SHARED_COSTS,
    SHEET_SPECIFIC_COSTS,
    SHEET_SUMMARY,
    SHEET_TASKS,
    XLSX_MIME_TYPE,
    ImportResult,
    UnsupportedFileTypeError,
    WorkbookError,
    WorkbookFormatError,
    WorkbookTables,
    apply_import,
    build_export_tables,
    check_file_extension,
    export_filename,
    export_workbook,
    read_workbook,
    write_workbook,
)

__all__ = [
    "PLACEHOLDER_DESCRIPTION",
    "SHEET_HEADERS",
    "SHEET_SHARED_COSTS",
    "SHEET_SPECIFIC_COSTS",
    "SHEET_SUMMARY",
    "SHEET_TASKS",
    "XLSX_MIME_TYPE",
    "ImportResult",
    "UnsupportedFileTypeError",
    "WorkbookError",
    "WorkbookFormatError",
    "WorkbookTables",
    "apply_import",
    "build_export_tables",
    "check_file_extension",
    "export_filename",
    "export_workbook",
    "read_workbook",
    "write_workbook",
]
