"""Custom exceptions for the ledger importer."""

from typing import Optional


class ImporterError(Exception):
    """Base exception for importer errors."""

    pass


class FormatError(ImporterError):
    """A row of the export does not fit the selected format."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class ValidationError(ImporterError):
    """Malformed IBAN, BIC or entry value."""

    pass


class LedgerError(ImporterError):
    """Reading from or writing to the ledger failed."""

    pass


class SelectionError(ImporterError):
    """The operator's selection does not belong to the pending decision."""

    pass


class SessionBusyError(ImporterError):
    """A session was entered while another call was still running."""

    pass


class ImportAbortedError(ImporterError):
    """The session was aborted by an earlier fatal error."""

    pass


class ConfigurationError(ImporterError):
    """Error in configuration."""

    pass


class ReportGenerationError(ImporterError):
    """Error generating the audit workbook."""

    pass
