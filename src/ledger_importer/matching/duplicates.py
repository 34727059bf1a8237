"""
Duplicate detection for pending entries.

Two tiers are applied in order:

1. Import key: a stored transaction whose import metadata carries the same
   raw line and format name is the entry itself, imported earlier. This is
   certain and never escalated.
2. Field match: same amount, same date and the entry's counter-party IBAN
   on either side of the stored transaction. Such candidates may be
   coincidences and are always handed to the operator.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional
import logging

from ..models.entry import PendingEntry
from ..models.ledger import Account, Transaction

logger = logging.getLogger(__name__)

METADATA_RAW_CONTENT = "parser-row-content"
METADATA_IMPORT_FORMAT = "parser-import-format"
METADATA_IMPORTER_VERSION = "parser-version"
IMPORTER_VERSION = "1"


def import_metadata(entry: PendingEntry, format_name: str) -> dict[str, str]:
    """Metadata stored with a transaction created from ``entry``."""
    return {
        METADATA_RAW_CONTENT: entry.raw_line,
        METADATA_IMPORT_FORMAT: format_name,
        METADATA_IMPORTER_VERSION: IMPORTER_VERSION,
    }


@dataclass
class DuplicateCheck:
    """Result of looking for an entry among stored transactions."""

    exact: Optional[Transaction] = None
    candidates: list[Transaction] = field(default_factory=list)

    @property
    def is_certain(self) -> bool:
        return self.exact is not None

    @property
    def needs_operator(self) -> bool:
        return self.exact is None and bool(self.candidates)


class DuplicateDetector:
    """Finds stored transactions that may correspond to a pending entry."""

    def __init__(
        self,
        format_name: str,
        account_lookup: Callable[[int], Optional[Account]],
    ):
        """
        Initialize the detector.

        Args:
            format_name: Format of the export being imported
            account_lookup: Returns the stored account for an id
        """
        self.format_name = format_name
        self.account_lookup = account_lookup

    def has_import_key(self, entry: PendingEntry, transaction: Transaction) -> bool:
        metadata = transaction.metadata
        return (
            metadata.get(METADATA_RAW_CONTENT) == entry.raw_line
            and metadata.get(METADATA_IMPORT_FORMAT) == self.format_name
        )

    def find_by_import_key(
        self, entry: PendingEntry, transactions: Iterable[Transaction]
    ) -> Optional[Transaction]:
        return next((t for t in transactions if self.has_import_key(entry, t)), None)

    def is_field_match(self, entry: PendingEntry, transaction: Transaction) -> bool:
        if transaction.amount != entry.amount or transaction.date != entry.date:
            return False

        counter_iban = entry.counterparty_ref.iban
        # Either side: the stored orientation is not trusted
        for account_id in (transaction.source_id, transaction.destination_id):
            account = self.account_lookup(account_id)
            if account is not None and account.iban == counter_iban:
                return True
        return False

    def find_existing(
        self, entry: PendingEntry, ledger_transactions: Iterable[Transaction]
    ) -> DuplicateCheck:
        """
        Look for ``entry`` among ``ledger_transactions``.

        Returns:
            A check with ``exact`` set on an import-key hit, otherwise the
            field-match candidates (possibly none)
        """
        transactions = list(ledger_transactions)

        exact = self.find_by_import_key(entry, transactions)
        if exact is not None:
            logger.debug(f"Line {entry.line_number} already imported as transaction {exact.id}")
            return DuplicateCheck(exact=exact)

        candidates = [t for t in transactions if self.is_field_match(entry, t)]
        if candidates:
            logger.warning(
                f"Line {entry.line_number} matches {len(candidates)} stored "
                f"transaction(s) by amount, date and IBAN"
            )
        return DuplicateCheck(candidates=candidates)
