"""Data models for importing."""

from .entry import AccountRef, EntrySide, PendingEntry
from .ledger import Account, AccountKind, DateWindow, Transaction
from .steps import (
    AccountMightExist,
    AccountSlot,
    CandidateMatch,
    DestinationAccountMightExist,
    EntryDiscarded,
    EntryImported,
    ExistingAccount,
    ImportFinished,
    ImportStep,
    ImportSummary,
    PendingAccount,
    PendingDecision,
    SourceAccountMightExist,
    TransactionMightExist,
)

__all__ = [
    "AccountRef",
    "EntrySide",
    "PendingEntry",
    "Account",
    "AccountKind",
    "DateWindow",
    "Transaction",
    "AccountMightExist",
    "AccountSlot",
    "CandidateMatch",
    "DestinationAccountMightExist",
    "EntryDiscarded",
    "EntryImported",
    "ExistingAccount",
    "ImportFinished",
    "ImportStep",
    "ImportSummary",
    "PendingAccount",
    "PendingDecision",
    "SourceAccountMightExist",
    "TransactionMightExist",
]
