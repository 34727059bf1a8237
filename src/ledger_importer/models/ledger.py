"""Ledger-side values as returned by a ledger backend."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from ..utils.iban import normalize_identifier


class AccountKind(Enum):
    """Kind of ledger account."""

    ASSET = "asset"  # Accounts owned by the ledger user
    BOOK_CHECKING = "book_checking"  # Counter-party accounts, bookkeeping only


@dataclass
class Account:
    """A stored ledger account."""

    id: int
    name: str
    iban: Optional[str] = None
    bic: Optional[str] = None
    kind: AccountKind = AccountKind.BOOK_CHECKING
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        # Stored values may have been entered by hand
        if self.iban:
            self.iban = normalize_identifier(self.iban)
        if self.bic:
            self.bic = normalize_identifier(self.bic)


@dataclass
class Transaction:
    """A stored ledger transaction."""

    id: int
    amount: Decimal
    title: str
    description: Optional[str]
    source_id: int
    destination_id: int
    date: date
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DateWindow:
    """Inclusive date range used to fetch ledger transactions."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Window end {self.end} is before start {self.start}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @classmethod
    def around(cls, dates: Iterable[date], margin_days: int = 0) -> Optional["DateWindow"]:
        """Smallest window holding all dates, widened by ``margin_days`` on each side."""
        dates = list(dates)
        if not dates:
            return None
        margin = timedelta(days=margin_days)
        return cls(start=min(dates) - margin, end=max(dates) + margin)
