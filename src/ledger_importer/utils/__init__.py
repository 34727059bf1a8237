"""Utility modules."""

from .exceptions import (
    ImporterError,
    FormatError,
    ValidationError,
    LedgerError,
    SelectionError,
    SessionBusyError,
    ImportAbortedError,
    ConfigurationError,
    ReportGenerationError,
)
from .iban import normalize_identifier, validate_bic, validate_iban
from .logging_config import setup_logging

__all__ = [
    "ImporterError",
    "FormatError",
    "ValidationError",
    "LedgerError",
    "SelectionError",
    "SessionBusyError",
    "ImportAbortedError",
    "ConfigurationError",
    "ReportGenerationError",
    "normalize_identifier",
    "validate_bic",
    "validate_iban",
    "setup_logging",
]
