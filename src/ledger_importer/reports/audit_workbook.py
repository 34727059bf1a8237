"""
Excel audit workbook for import runs.
Records what a run imported, skipped and created.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional
import logging

from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ImporterConfig, SheetConfig
from ..models.steps import ImportSummary
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
IMPORTED_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
CONFIRMED_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


class AuditWorkbookWriter:
    """Writes an ``ImportSummary`` to a multi-sheet workbook."""

    def __init__(self, config: Optional[ImporterConfig] = None):
        self.config = config or ImporterConfig()
        self.sheets = self.config.output.sheets

    def default_path(self, now: Optional[datetime] = None) -> Path:
        """Output path built from the configured filename template."""
        now = now or datetime.now()
        return Path(
            self.config.output.audit.filename_template.format(
                date=now.strftime("%Y%m%d"), time=now.strftime("%H%M%S")
            )
        )

    def write(self, summary: ImportSummary, output_path: Path) -> Path:
        """
        Write the workbook.

        Args:
            summary: Summary of a finished run
            output_path: Path for the workbook

        Returns:
            Path to the written workbook

        Raises:
            ReportGenerationError: If the workbook cannot be saved
        """
        logger.info(f"Writing audit workbook: {output_path}")

        wb = Workbook()
        if wb.active:
            wb.remove(wb.active)

        if self.sheets.summary.enabled:
            self._create_summary_sheet(wb, self.sheets.summary, summary)
        if self.sheets.imported.enabled:
            self._create_imported_sheet(wb, self.sheets.imported, summary)
        if self.sheets.discarded.enabled:
            self._create_discarded_sheet(wb, self.sheets.discarded, summary)
        if self.sheets.accounts_created.enabled:
            self._create_accounts_sheet(wb, self.sheets.accounts_created, summary)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save {output_path}: {e}") from e

        logger.info(f"Audit workbook saved: {output_path}")
        return output_path

    def _create_summary_sheet(
        self, wb: Workbook, sheet: SheetConfig, summary: ImportSummary
    ) -> None:
        ws = wb.create_sheet(sheet.name)
        ws["A1"] = "Import Summary"
        ws["A1"].font = Font(size=16, bold=True)

        rows = [
            ("Export", summary.source_name),
            ("Format", summary.format_name),
            ("Started", summary.started_at.strftime("%Y-%m-%d %H:%M:%S")),
            ("Entries Read", summary.entries_read),
            ("Imported", summary.imported_count),
            ("Skipped", summary.discarded_count),
            ("Skipped by Operator", summary.confirmed_duplicate_count),
            ("Accounts Created", len(summary.accounts_created)),
            ("Decisions Asked", summary.decisions_asked),
            ("Processing Time (s)", round(summary.processing_time_seconds, 2)),
        ]
        for i, (label, value) in enumerate(rows, start=3):
            ws.cell(row=i, column=1, value=label).font = Font(bold=True)
            ws.cell(row=i, column=2, value=value)

        self._auto_fit_columns(ws)

    def _create_imported_sheet(
        self, wb: Workbook, sheet: SheetConfig, summary: ImportSummary
    ) -> None:
        ws = wb.create_sheet(sheet.name)
        self._write_headers(
            ws, ["Transaction", "Date", "Title", "Amount", "Source IBAN", "Destination IBAN", "Line"]
        )
        self._write_rows(
            ws,
            (
                [
                    s.transaction.id,
                    s.entry.date,
                    s.entry.title,
                    float(s.entry.amount),
                    s.entry.source.iban,
                    s.entry.destination.iban,
                    s.entry.line_number,
                ]
                for s in summary.imported
            ),
            fill=IMPORTED_FILL,
        )
        self._auto_fit_columns(ws)

    def _create_discarded_sheet(
        self, wb: Workbook, sheet: SheetConfig, summary: ImportSummary
    ) -> None:
        ws = wb.create_sheet(sheet.name)
        self._write_headers(
            ws, ["Date", "Title", "Amount", "Existing Transaction", "Reason", "Line"]
        )
        for row, step in enumerate(summary.discarded, start=2):
            values = [
                step.entry.date,
                step.entry.title,
                float(step.entry.amount),
                step.duplicate.id,
                "Confirmed by operator" if step.confirmed_by_operator else "Already imported",
                step.entry.line_number,
            ]
            for col, value in enumerate(values, start=1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = THIN_BORDER
                if step.confirmed_by_operator:
                    cell.fill = CONFIRMED_FILL
        self._auto_fit_columns(ws)

    def _create_accounts_sheet(
        self, wb: Workbook, sheet: SheetConfig, summary: ImportSummary
    ) -> None:
        ws = wb.create_sheet(sheet.name)
        self._write_headers(ws, ["Account", "Name", "IBAN", "BIC"])
        self._write_rows(
            ws, ([a.id, a.name, a.iban, a.bic] for a in summary.accounts_created)
        )
        self._auto_fit_columns(ws)

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _write_rows(
        self,
        ws: Worksheet,
        rows: Iterable[list[Any]],
        fill: Optional[PatternFill] = None,
    ) -> None:
        for row, values in enumerate(rows, start=2):
            for col, value in enumerate(values, start=1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = THIN_BORDER
                if fill is not None:
                    cell.fill = fill

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            column = column_cells[0].column_letter
            max_length = max((len(str(c.value)) for c in column_cells if c.value), default=0)
            ws.column_dimensions[column].width = min(max_length + 2, 50)
