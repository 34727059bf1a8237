"""
Entry parser contract and the extractor-driven delimited text parser.

New bank layouts do not subclass the parser: they supply a set of column
extractors (see ``ColumnExtractors``) and the parser takes care of header
handling, row splitting, sign normalization and error reporting.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Iterator, Optional
import csv
import logging

from ..models.entry import AccountRef, EntrySide, PendingEntry
from ..utils.exceptions import FormatError
from ..utils.iban import validate_iban

logger = logging.getLogger(__name__)

Record = list[str]


def _no_value(record: Record) -> Optional[str]:
    return None


def _never_ignore(record: Record) -> bool:
    return False


@dataclass
class ColumnExtractors:
    """
    Functions pulling entry fields out of a split row.

    ``amount`` returns the signed amount as seen from the exported ("self")
    account: negative values leave it, positive values arrive at it.
    """

    title: Callable[[Record], str]
    amount: Callable[[Record], Decimal]
    description: Callable[[Record], str]
    self_iban: Callable[[Record], str]
    other_iban: Callable[[Record], str]
    date: Callable[[Record], date]
    self_name: Callable[[Record], Optional[str]] = _no_value
    self_bic: Callable[[Record], Optional[str]] = _no_value
    other_name: Callable[[Record], Optional[str]] = _no_value
    other_bic: Callable[[Record], Optional[str]] = _no_value
    ignore: Callable[[Record], bool] = _never_ignore


class EntryParser(ABC):
    """
    Lazy, single-pass source of pending entries.

    ``next_entry`` returns ``None`` once the input is exhausted and keeps
    returning ``None`` afterwards; a parser cannot be restarted.
    """

    format_name: str

    @abstractmethod
    def next_entry(self) -> Optional[PendingEntry]:
        """
        Return the next entry of the export.

        Raises:
            FormatError: If a row does not fit the format
            ValidationError: If a row carries a malformed IBAN or BIC
        """
        pass

    def __iter__(self) -> Iterator[PendingEntry]:
        while True:
            entry = self.next_entry()
            if entry is None:
                return
            yield entry


class DelimitedParser(EntryParser):
    """
    Parser for delimited text exports with a single header line.

    The header is discarded; its column count is the width every following
    row must have.
    """

    def __init__(
        self,
        lines: Iterable[str],
        format_name: str,
        extractors: ColumnExtractors,
        delimiter: str = ",",
        iban_checksum: bool = False,
    ):
        """
        Initialize the parser.

        Args:
            lines: Decoded text lines, e.g. an open text file
            format_name: Name stored with every imported transaction
            extractors: Column extractors for this layout
            delimiter: Field delimiter
            iban_checksum: Also validate IBAN check digits
        """
        self.format_name = format_name
        self.extractors = extractors
        self.delimiter = delimiter
        self.iban_checksum = iban_checksum

        self._lines = iter(lines)
        self._line_number = 0
        self._exhausted = False
        self.header = self._read_header()
        self.width = len(self.header) if self.header is not None else 0

    def _read_header(self) -> Optional[Record]:
        line = self._read_line()
        if line is None:
            self._exhausted = True
            return None
        return self._split(line)

    def _read_line(self) -> Optional[str]:
        raw = next(self._lines, None)
        if raw is None:
            return None
        self._line_number += 1
        return raw.rstrip("\r\n")

    def _split(self, line: str) -> Record:
        try:
            return next(csv.reader([line], delimiter=self.delimiter))
        except (csv.Error, StopIteration) as e:
            raise FormatError(f"Cannot split row: {e}", self._line_number) from e

    def next_entry(self) -> Optional[PendingEntry]:
        while not self._exhausted:
            line = self._read_line()
            if line is None:
                self._exhausted = True
                break
            if not line.strip():
                continue

            record = self._split(line)
            if len(record) != self.width:
                raise FormatError(
                    f"Expected {self.width} columns, found {len(record)}", self._line_number
                )

            if self._extract(self.extractors.ignore, record, "ignore"):
                logger.debug(f"Line {self._line_number} ignored by {self.format_name}")
                continue

            return self._build_entry(line, record)

        return None

    def _extract(self, extractor: Callable, record: Record, field_name: str):
        """Run one extractor, turning parsing failures into a FormatError."""
        try:
            return extractor(record)
        except FormatError as e:
            if e.line_number is None:
                raise FormatError(f"{field_name}: {e}", self._line_number) from e
            raise
        except (IndexError, KeyError, ValueError, InvalidOperation) as e:
            raise FormatError(f"Cannot read {field_name}: {e}", self._line_number) from e

    def _build_entry(self, line: str, record: Record) -> PendingEntry:
        x = self.extractors
        amount = self._extract(x.amount, record, "amount")

        self_ref = AccountRef(
            iban=validate_iban(self._extract(x.self_iban, record, "self IBAN"), self.iban_checksum),
            name=self._extract(x.self_name, record, "self name"),
            bic=self._extract(x.self_bic, record, "self BIC"),
        )
        other_ref = AccountRef(
            iban=validate_iban(
                self._extract(x.other_iban, record, "other IBAN"), self.iban_checksum
            ),
            name=self._extract(x.other_name, record, "other name"),
            bic=self._extract(x.other_bic, record, "other BIC"),
        )

        # Negative amounts leave the exported account
        if amount < 0:
            source, destination, self_side = self_ref, other_ref, EntrySide.SOURCE
        else:
            source, destination, self_side = other_ref, self_ref, EntrySide.DESTINATION

        return PendingEntry(
            raw_line=line,
            title=self._extract(x.title, record, "title"),
            description=self._extract(x.description, record, "description"),
            amount=abs(amount),
            source=source,
            destination=destination,
            date=self._extract(x.date, record, "date"),
            self_side=self_side,
            line_number=self._line_number,
        )
