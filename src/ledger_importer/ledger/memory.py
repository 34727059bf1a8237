"""In-memory ledger backend."""

from datetime import date
from decimal import Decimal
from typing import Mapping, Optional
import logging

from ..models.ledger import Account, AccountKind, DateWindow, Transaction
from ..utils.exceptions import LedgerError
from .base import Ledger

logger = logging.getLogger(__name__)


class InMemoryLedger(Ledger):
    """
    Ledger kept in plain dictionaries.

    Used by tests and as the working copy behind ``YamlLedgerFile``.
    """

    def __init__(
        self,
        accounts: Optional[list[Account]] = None,
        transactions: Optional[list[Transaction]] = None,
    ):
        self.accounts: dict[int, Account] = {a.id: a for a in accounts or []}
        self.transactions: dict[int, Transaction] = {t.id: t for t in transactions or []}
        self._next_id = max([0, *self.accounts, *self.transactions]) + 1

    def _allocate_id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def get_accounts(self) -> list[Account]:
        return list(self.accounts.values())

    def get_account(self, account_id: int) -> Optional[Account]:
        return self.accounts.get(account_id)

    def create_account(
        self,
        name: str,
        iban: Optional[str] = None,
        bic: Optional[str] = None,
        kind: AccountKind = AccountKind.BOOK_CHECKING,
        notes: Optional[str] = None,
    ) -> Account:
        """Store an account of any kind; used to seed the ledger."""
        account = Account(
            id=self._allocate_id(), name=name, iban=iban, bic=bic, kind=kind, notes=notes
        )
        self.accounts[account.id] = account
        logger.debug(f"Stored account {account.id}: {account.name}")
        return account

    def create_book_account(
        self, name: str, iban: Optional[str], bic: Optional[str]
    ) -> Account:
        return self.create_account(name, iban, bic, kind=AccountKind.BOOK_CHECKING)

    def get_transactions_in_window(self, window: DateWindow) -> list[Transaction]:
        return [t for t in self.transactions.values() if window.contains(t.date)]

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
        for account_id in (source, destination):
            if account_id not in self.accounts:
                raise LedgerError(f"Account {account_id} does not exist")

        transaction = Transaction(
            id=self._allocate_id(),
            amount=amount,
            title=title,
            description=description,
            source_id=source,
            destination_id=destination,
            date=date,
            metadata=dict(metadata),
        )
        self.transactions[transaction.id] = transaction
        logger.debug(f"Stored transaction {transaction.id}: {transaction.title}")
        return transaction
