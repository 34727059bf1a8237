"""Quick statistics over an export file, without touching the ledger."""

from decimal import Decimal
from pathlib import Path
from typing import Any, Optional
import logging

import pandas as pd

from ..utils.exceptions import FormatError
from .formats import ExportFormat

logger = logging.getLogger(__name__)


def summarize_export(
    file_path: Path,
    export_format: ExportFormat,
    encoding: Optional[str] = None,
) -> dict[str, Any]:
    """
    Get summary information from an export file.

    Args:
        file_path: Path to the export
        export_format: Layout of the export
        encoding: Optional encoding override

    Returns:
        Dictionary with row counts, date range and totals

    Raises:
        FormatError: If the file cannot be read as the given format
    """
    try:
        df = pd.read_csv(
            file_path,
            sep=export_format.delimiter,
            encoding=encoding or export_format.encoding,
            dtype=str,
            keep_default_na=False,
        )
    except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise FormatError(f"Failed to read {file_path}: {e}") from e

    extractors = export_format.extractors()
    records = df.values.tolist()
    try:
        booked = [r for r in records if not extractors.ignore(r)]
        amounts = pd.Series([extractors.amount(r) for r in booked], dtype=object)
        dates = pd.Series([extractors.date(r) for r in booked], dtype=object)
        counterparties = {extractors.other_iban(r) for r in booked}
    except (IndexError, TypeError, ValueError) as e:
        raise FormatError(f"{file_path} does not match {export_format.name}: {e}") from e

    inflow = sum((a for a in amounts if a > 0), Decimal("0"))
    outflow = sum((-a for a in amounts if a < 0), Decimal("0"))

    summary = {
        "format": export_format.name,
        "row_count": len(df),
        "booked_count": len(booked),
        "ignored_count": len(records) - len(booked),
        "columns": list(df.columns),
        "date_range": {
            "start": min(dates).isoformat() if len(dates) > 0 else None,
            "end": max(dates).isoformat() if len(dates) > 0 else None,
        },
        "totals": {
            "inflow": inflow,
            "outflow": outflow,
            "net": inflow - outflow,
        },
        "counterparty_count": len(counterparties),
    }

    logger.debug(f"Summary of {file_path}: {summary}")
    return summary
