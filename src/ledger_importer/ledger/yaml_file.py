"""YAML snapshot of an in-memory ledger, used by the command-line importer."""

from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
import logging

import yaml

from ..models.ledger import Account, AccountKind, Transaction
from ..utils.exceptions import LedgerError
from .memory import InMemoryLedger

logger = logging.getLogger(__name__)


class YamlLedgerFile:
    """
    Loads and saves an ``InMemoryLedger`` as a YAML document.

    The document has two top-level lists, ``accounts`` and ``transactions``.
    A missing file is an empty ledger.
    """

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> InMemoryLedger:
        """
        Read the snapshot.

        Raises:
            LedgerError: If the file cannot be read or is malformed
        """
        if not self.path.exists():
            logger.info(f"Ledger file {self.path} does not exist, starting empty")
            return InMemoryLedger()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = yaml.safe_load(f) or {}
            accounts = [self._account_from_dict(a) for a in document.get("accounts") or []]
            transactions = [
                self._transaction_from_dict(t) for t in document.get("transactions") or []
            ]
        except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise LedgerError(f"Failed to load ledger file {self.path}: {e}") from e

        logger.info(
            f"Loaded ledger {self.path}: {len(accounts)} accounts, "
            f"{len(transactions)} transactions"
        )
        return InMemoryLedger(accounts, transactions)

    def save(self, ledger: InMemoryLedger) -> None:
        """Write the snapshot, replacing the file."""
        document = {
            "accounts": [self._account_to_dict(a) for a in ledger.get_accounts()],
            "transactions": [
                self._transaction_to_dict(t)
                for t in sorted(ledger.transactions.values(), key=lambda t: t.id)
            ],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(document, f, sort_keys=False, allow_unicode=True)
        except OSError as e:
            raise LedgerError(f"Failed to save ledger file {self.path}: {e}") from e

        logger.info(f"Saved ledger {self.path}")

    @staticmethod
    def _account_from_dict(data: dict[str, Any]) -> Account:
        return Account(
            id=int(data["id"]),
            name=str(data["name"]),
            iban=data.get("iban"),
            bic=data.get("bic"),
            kind=AccountKind(data.get("kind", AccountKind.BOOK_CHECKING.value)),
            notes=data.get("notes"),
        )

    @staticmethod
    def _account_to_dict(account: Account) -> dict[str, Any]:
        return {
            "id": account.id,
            "name": account.name,
            "iban": account.iban,
            "bic": account.bic,
            "kind": account.kind.value,
            "notes": account.notes,
        }

    @staticmethod
    def _transaction_from_dict(data: dict[str, Any]) -> Transaction:
        booking_date = data["date"]
        if not isinstance(booking_date, date):
            booking_date = date.fromisoformat(str(booking_date))
        return Transaction(
            id=int(data["id"]),
            amount=Decimal(str(data["amount"])),
            title=str(data.get("title", "")),
            description=data.get("description"),
            source_id=int(data["source"]),
            destination_id=int(data["destination"]),
            date=booking_date,
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        )

    @staticmethod
    def _transaction_to_dict(transaction: Transaction) -> dict[str, Any]:
        return {
            "id": transaction.id,
            # Decimals are stored as strings to keep them exact
            "amount": str(transaction.amount),
            "title": transaction.title,
            "description": transaction.description,
            "source": transaction.source_id,
            "destination": transaction.destination_id,
            "date": transaction.date.isoformat(),
            "metadata": dict(transaction.metadata),
        }
