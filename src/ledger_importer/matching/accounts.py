"""
Account resolution by IBAN.

Accounts are matched on exact, normalized IBAN equality only. Names and
BICs in bank exports are free text and are never used for matching.
"""

from dataclasses import dataclass
from typing import Iterable, Optional
import logging

from ..models.entry import AccountRef
from ..models.ledger import Account
from ..models.steps import AccountSlot, CandidateMatch, ExistingAccount, PendingAccount
from ..utils.iban import normalize_identifier

logger = logging.getLogger(__name__)


def resolve(ref: AccountRef, known_accounts: Iterable[Account]) -> list[Account]:
    """Return the known accounts whose IBAN equals the reference's IBAN."""
    return [
        account
        for account in known_accounts
        if account.iban and normalize_identifier(account.iban) == ref.iban
    ]


@dataclass
class AccountResolution:
    """
    Outcome of resolving one account reference.

    ``slot`` is set when the account could be settled without asking the
    operator; otherwise ``match`` holds the candidates to present.
    """

    ref: AccountRef
    match: CandidateMatch[Account]
    slot: Optional[AccountSlot] = None

    @property
    def needs_operator(self) -> bool:
        return self.slot is None


class AccountResolver:
    """
    Resolves account references against a per-run account cache.

    The cache is filled once from the ledger; accounts created during the
    run are added with ``remember`` so every IBAN is created at most once.
    """

    def __init__(
        self,
        known_accounts: Iterable[Account],
        auto_create: bool = True,
        confirm_single_match: bool = False,
    ):
        """
        Initialize the resolver.

        Args:
            known_accounts: Accounts stored in the ledger at the start of the run
            auto_create: Create unknown accounts without asking
            confirm_single_match: Ask even when exactly one account matches
        """
        self.accounts: dict[int, Account] = {a.id: a for a in known_accounts}
        self.auto_create = auto_create
        self.confirm_single_match = confirm_single_match
        self._created_ids: set[int] = set()

    def get(self, account_id: int) -> Optional[Account]:
        return self.accounts.get(account_id)

    def candidates(self, ref: AccountRef) -> CandidateMatch[Account]:
        return CandidateMatch(resolve(ref, self.accounts.values()))

    def resolve(self, ref: AccountRef) -> AccountResolution:
        """Decide whether ``ref`` can be settled silently."""
        match = self.candidates(ref)

        if match.is_ambiguous:
            logger.warning(
                f"{len(match.candidates)} accounts share IBAN {ref.iban}, asking operator"
            )
            return AccountResolution(ref, match)

        if match.is_empty:
            if self.auto_create:
                return AccountResolution(ref, match, PendingAccount(ref))
            logger.debug(f"No account for IBAN {ref.iban}, auto-create disabled")
            return AccountResolution(ref, match)

        account = match.single
        if self.confirm_single_match and account.id not in self._created_ids:
            return AccountResolution(ref, match)
        return AccountResolution(ref, match, ExistingAccount(account.id))

    def remember(self, account: Account) -> None:
        """Add an account created during this run to the cache."""
        self.accounts[account.id] = account
        self._created_ids.add(account.id)
