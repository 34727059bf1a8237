"""Canonical pending entries produced by export parsers."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..utils.exceptions import ValidationError
from ..utils.iban import validate_bic, validate_iban


class EntrySide(Enum):
    """Side of a transaction that belongs to the exported ("self") account."""

    SOURCE = "source"
    DESTINATION = "destination"

    @property
    def opposite(self) -> "EntrySide":
        return EntrySide.DESTINATION if self is EntrySide.SOURCE else EntrySide.SOURCE


@dataclass
class AccountRef:
    """
    Account reference as found in an export row.

    Only the IBAN identifies the account; name and BIC are carried along so a
    new account can be created and the operator can recognise it.
    """

    iban: str
    name: Optional[str] = None
    bic: Optional[str] = None

    def __post_init__(self) -> None:
        self.iban = validate_iban(self.iban)
        self.bic = validate_bic(self.bic)
        if self.name is not None:
            self.name = self.name.strip() or None

    @property
    def display_name(self) -> str:
        """Name to show or to create an account with; falls back to the IBAN."""
        return self.name or self.iban


@dataclass
class PendingEntry:
    """
    A parsed export row that has not been written to the ledger yet.

    The amount is always unsigned; the direction is carried by which
    reference is the source and which the destination.
    """

    # Raw export line, used as the idempotence key
    raw_line: str

    title: str
    description: str
    amount: Decimal

    source: AccountRef
    destination: AccountRef

    date: date

    # Which of source/destination is the exported account
    self_side: EntrySide = EntrySide.SOURCE

    # Position in the export file, for messages only
    line_number: Optional[int] = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValidationError(f"Entry amount must not be negative: {self.amount}")

    @property
    def self_ref(self) -> AccountRef:
        return self.ref_for(self.self_side)

    @property
    def counterparty_ref(self) -> AccountRef:
        return self.ref_for(self.self_side.opposite)

    def ref_for(self, side: EntrySide) -> AccountRef:
        return self.source if side is EntrySide.SOURCE else self.destination
