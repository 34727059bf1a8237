"""
Minimal ledger interface consumed by the importer.

Backends (in-memory, SQL, REST) implement this class. Calls are blocking;
implementations report I/O failures by raising ``LedgerError``.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional

from ..models.ledger import Account, DateWindow, Transaction


class Ledger(ABC):
    """Abstract base class for ledger backends."""

    @abstractmethod
    def get_accounts(self) -> list[Account]:
        """Return every stored account."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Return the account with ``account_id`` or ``None``."""
        pass

    @abstractmethod
    def create_book_account(
        self, name: str, iban: Optional[str], bic: Optional[str]
    ) -> Account:
        """
        Create a bookkeeping account for a counter-party.

        Args:
            name: Display name
            iban: Normalized IBAN
            bic: Normalized BIC, if known

        Returns:
            The stored account with its new id
        """
        pass

    @abstractmethod
    def get_transactions_in_window(self, window: DateWindow) -> list[Transaction]:
        """Return transactions whose date lies inside ``window``."""
        pass

    @abstractmethod
    def create_transaction(
        self,
        amount: Decimal,
        title: str,
        description: Optional[str],
        source: int,
        destination: int,
        date: date,
        metadata: Mapping[str, str],
    ) -> Transaction:
        """
        Store a new transaction.

        Args:
            amount: Unsigned amount moved from source to destination
            title: Short title
            description: Free text
            source: Id of the account money leaves
            destination: Id of the account money arrives at
            date: Booking date
            metadata: Key/value pairs stored alongside the transaction

        Returns:
            The stored transaction with its new id
        """
        pass
