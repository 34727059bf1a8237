"""
Values exchanged between an import session and its front-end.

An import session never blocks on the operator. Each call returns one of
the step values below; a ``PendingDecision`` is handed back to the session
through ``ImportSession.perform`` once a candidate (or none) was selected.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Generic, Optional, TypeVar, Union

from ..utils.exceptions import SelectionError
from .entry import AccountRef, EntrySide, PendingEntry
from .ledger import Account, Transaction

T = TypeVar("T", Account, Transaction)


@dataclass
class CandidateMatch(Generic[T]):
    """Existing ledger objects that may correspond to a parsed facet."""

    candidates: list[T] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.candidates

    @property
    def is_unique(self) -> bool:
        return len(self.candidates) == 1

    @property
    def is_ambiguous(self) -> bool:
        return len(self.candidates) > 1

    @property
    def single(self) -> T:
        if not self.is_unique:
            raise ValueError(f"Expected exactly one candidate, found {len(self.candidates)}")
        return self.candidates[0]


@dataclass(frozen=True)
class ExistingAccount:
    """Account slot bound to a stored ledger account."""

    account_id: int


@dataclass(frozen=True)
class PendingAccount:
    """Account slot that still has to be created from the parsed reference."""

    ref: AccountRef


AccountSlot = Union[ExistingAccount, PendingAccount]


class ImportStep:
    """Base class of everything a session hands back to its caller."""

    finished: ClassVar[bool] = False
    is_decision: ClassVar[bool] = False


@dataclass
class EntryImported(ImportStep):
    """The entry was written to the ledger."""

    entry: PendingEntry
    transaction: Transaction


@dataclass
class EntryDiscarded(ImportStep):
    """The entry already exists in the ledger and was not written."""

    entry: PendingEntry
    duplicate: Transaction
    confirmed_by_operator: bool = False


@dataclass(eq=False)
class PendingDecision(ImportStep, Generic[T]):
    """
    A question for the operator about one entry.

    ``candidates`` are the ledger objects the entry may correspond to. The
    operator picks one of them with ``select`` or selects ``None`` to say
    that none of them matches.
    """

    is_decision: ClassVar[bool] = True
    prompt: ClassVar[str] = ""

    entry: PendingEntry
    candidates: list[T]
    _selected: Optional[T] = field(default=None, init=False, repr=False)

    def select(self, candidate: Optional[T]) -> "PendingDecision[T]":
        """
        Record the operator's choice and return the decision for ``perform``.

        Raises:
            SelectionError: If ``candidate`` is not one of the candidates
        """
        if candidate is None:
            self._selected = None
            return self

        for option in self.candidates:
            if isinstance(candidate, type(option)) and option.id == candidate.id:
                self._selected = option
                return self

        raise SelectionError(
            f"{type(candidate).__name__} {candidate.id} is not a valid option"
        )

    def select_index(self, index: Optional[int]) -> "PendingDecision[T]":
        """Select by position in ``candidates``; ``None`` selects no candidate."""
        if index is None:
            return self.select(None)
        if not 0 <= index < len(self.candidates):
            raise SelectionError(f"Option {index} is out of range")
        return self.select(self.candidates[index])

    @property
    def selected(self) -> Optional[T]:
        return self._selected


@dataclass(eq=False)
class TransactionMightExist(PendingDecision[Transaction]):
    """The entry may already be stored as one of ``candidates``."""

    prompt: ClassVar[str] = (
        "The following transaction could already exist. What do you want to do?"
    )


@dataclass(eq=False)
class AccountMightExist(PendingDecision[Account]):
    """One side of the entry may refer to one of ``candidates``."""

    side: ClassVar[EntrySide] = EntrySide.SOURCE
    prompt: ClassVar[str] = (
        "The following account could already exist. What do you want to do?"
    )

    @property
    def ref(self) -> AccountRef:
        return self.entry.ref_for(self.side)


@dataclass(eq=False)
class SourceAccountMightExist(AccountMightExist):
    side: ClassVar[EntrySide] = EntrySide.SOURCE


@dataclass(eq=False)
class DestinationAccountMightExist(AccountMightExist):
    side: ClassVar[EntrySide] = EntrySide.DESTINATION


@dataclass
class ImportSummary:
    """Outcome of one import run."""

    format_name: str
    source_name: str
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    entries_read: int = 0
    decisions_asked: int = 0

    imported: list[EntryImported] = field(default_factory=list)
    discarded: list[EntryDiscarded] = field(default_factory=list)
    accounts_created: list[Account] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.imported)

    @property
    def discarded_count(self) -> int:
        return len(self.discarded)

    @property
    def confirmed_duplicate_count(self) -> int:
        """Entries discarded because the operator confirmed a candidate."""
        return sum(1 for d in self.discarded if d.confirmed_by_operator)

    @property
    def processing_time_seconds(self) -> float:
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()


@dataclass
class ImportFinished(ImportStep):
    """No entries are left; the run is over."""

    finished: ClassVar[bool] = True

    summary: ImportSummary
