"""Parsers turning bank exports into pending entries."""

from .base import ColumnExtractors, DelimitedParser, EntryParser
from .formats import (
    DEFAULT_FORMAT,
    EXPORT_FORMATS,
    CsvCamtV2Format,
    ExportFormat,
    get_format,
)
from .summary import summarize_export

__all__ = [
    "ColumnExtractors",
    "DelimitedParser",
    "EntryParser",
    "DEFAULT_FORMAT",
    "EXPORT_FORMATS",
    "CsvCamtV2Format",
    "ExportFormat",
    "get_format",
    "summarize_export",
]
