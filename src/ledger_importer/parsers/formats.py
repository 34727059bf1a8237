"""
Export formats.

An ``ExportFormat`` is a capability object: it knows its name, how its
bytes are encoded and delimited, and which column extractors turn its rows
into pending entries. Callers pick the format object directly; the CLI
looks it up by name in ``EXPORT_FORMATS``.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, Optional
import logging

from ..utils.exceptions import ConfigurationError, FormatError
from .base import ColumnExtractors, DelimitedParser, Record

logger = logging.getLogger(__name__)


class ExportFormat(ABC):
    """A bank export layout."""

    name: str = ""
    encoding: str = "utf-8"
    delimiter: str = ","
    description: str = ""

    @abstractmethod
    def extractors(self) -> ColumnExtractors:
        """Column extractors for this layout."""
        pass

    def open_parser(self, lines: Iterable[str], iban_checksum: bool = False) -> DelimitedParser:
        """Parser over already decoded text lines."""
        return DelimitedParser(
            lines,
            format_name=self.name,
            extractors=self.extractors(),
            delimiter=self.delimiter,
            iban_checksum=iban_checksum,
        )

    def parse_bytes(
        self,
        data: bytes,
        encoding: Optional[str] = None,
        iban_checksum: bool = False,
    ) -> DelimitedParser:
        """
        Decode raw export bytes and return a parser over them.

        Raises:
            FormatError: If the bytes cannot be decoded
        """
        encoding = encoding or self.encoding
        try:
            text = data.decode(encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise FormatError(f"Cannot decode export as {encoding}: {e}") from e
        # Rows end at "\n" only; form feeds and NELs may occur inside fields
        return self.open_parser(text.split("\n"), iban_checksum=iban_checksum)

    def parse_file(
        self,
        file_path: Path,
        encoding: Optional[str] = None,
        iban_checksum: bool = False,
    ) -> DelimitedParser:
        """Read an export file and return a parser over its rows."""
        logger.info(f"Reading {self.name} export: {file_path}")
        return self.parse_bytes(file_path.read_bytes(), encoding, iban_checksum)


def parse_decimal_comma(value: str) -> Decimal:
    """
    Parse an amount written with a decimal comma, e.g. ``-1.234,56``.

    Raises:
        FormatError: If the value is not a number
    """
    text = value.strip()
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        return Decimal(text).quantize(Decimal("0.01"))
    except InvalidOperation as e:
        raise FormatError(f"Invalid amount {value!r}") from e


def parse_short_date(value: str) -> date:
    """Parse ``DD.MM.YY``; two-digit years are in the 2000s."""
    day, month, year = value.strip().split(".")
    if len(year) != 2:
        raise FormatError(f"Invalid date {value!r}")
    return date(2000 + int(year), int(month), int(day))


class CsvCamtV2Format(ExportFormat):
    """
    Savings-bank "CSV-CAMT V2" export.

    Seventeen semicolon-separated columns, ISO-8859-15 encoded. Only booked
    rows are imported; the exporting account's IBAN is in the first column.
    """

    name = "CSV_CAMT_V2"
    encoding = "iso-8859-15"
    delimiter = ";"
    description = "Savings bank CSV-CAMT V2 (semicolon, ISO-8859-15, EUR only)"

    BOOKED_MARKER = "Umsatz gebucht"
    CURRENCY = "EUR"

    # Column positions
    SELF_IBAN = 0
    BOOKING_DATE = 1
    BOOKING_TEXT = 3
    PURPOSE = 4
    OTHER_NAME = 11
    OTHER_IBAN = 12
    OTHER_BIC = 13
    AMOUNT = 14
    CURRENCY_COLUMN = 15
    STATUS = 16

    def extractors(self) -> ColumnExtractors:
        return ColumnExtractors(
            ignore=self._is_not_booked,
            title=lambda r: r[self.BOOKING_TEXT],
            amount=self._amount,
            description=lambda r: f"{r[self.PURPOSE]}\n{r[self.OTHER_NAME]}",
            self_iban=lambda r: r[self.SELF_IBAN],
            other_iban=lambda r: r[self.OTHER_IBAN],
            other_name=lambda r: r[self.OTHER_NAME] or None,
            other_bic=lambda r: r[self.OTHER_BIC] or None,
            date=lambda r: parse_short_date(r[self.BOOKING_DATE]),
        )

    def _is_not_booked(self, record: Record) -> bool:
        return record[self.STATUS] != self.BOOKED_MARKER

    def _amount(self, record: Record) -> Decimal:
        currency = record[self.CURRENCY_COLUMN]
        if currency != self.CURRENCY:
            raise FormatError(f"Unsupported currency {currency!r}, expected {self.CURRENCY}")
        return parse_decimal_comma(record[self.AMOUNT])


EXPORT_FORMATS: dict[str, ExportFormat] = {
    fmt.name: fmt for fmt in (CsvCamtV2Format(),)
}

DEFAULT_FORMAT = CsvCamtV2Format.name


def get_format(name: str) -> ExportFormat:
    """
    Look up a bundled export format by name.

    Raises:
        ConfigurationError: If no format has that name
    """
    try:
        return EXPORT_FORMATS[name]
    except KeyError:
        known = ", ".join(sorted(EXPORT_FORMATS))
        raise ConfigurationError(f"Unknown export format {name!r} (known: {known})") from None
