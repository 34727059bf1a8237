"""
Import session: the state machine driving one import run.

A session walks every entry of an export through

    AWAITING_NEXT_ENTRY -> RESOLVING_SOURCE -> RESOLVING_DESTINATION
        -> CHECKING_DUPLICATE -> WRITING -> AWAITING_NEXT_ENTRY | FINISHED

and never blocks on the operator. Whenever more than one outcome is
possible it returns a ``PendingDecision``; the caller selects a candidate
and hands the decision back with ``perform``. Any front-end can therefore
drive a run with the same loop::

    step = session.next_step()
    while not step.finished:
        if step.is_decision:
            step = session.perform(step.select(ask_operator(step)))
        else:
            step = session.next_step()

Nothing is written for an entry before both of its accounts exist and the
duplicate check is settled. Ledger failures abort the whole run.
"""

from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterator, Optional
import logging
import threading

from .config import ImporterConfig
from .ledger.base import Ledger
from .matching.accounts import AccountResolver
from .matching.duplicates import DuplicateDetector, import_metadata
from .models.entry import EntrySide, PendingEntry
from .models.ledger import DateWindow, Transaction
from .models.steps import (
    AccountMightExist,
    AccountSlot,
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
from .parsers.base import EntryParser
from .utils.exceptions import (
    ImportAbortedError,
    LedgerError,
    SelectionError,
    SessionBusyError,
)

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Where the session is in the processing of the current entry."""

    AWAITING_NEXT_ENTRY = "awaiting_next_entry"
    RESOLVING_SOURCE = "resolving_source"
    RESOLVING_DESTINATION = "resolving_destination"
    CHECKING_DUPLICATE = "checking_duplicate"
    WRITING = "writing"
    FINISHED = "finished"
    ABORTED = "aborted"


@dataclass
class _InFlight:
    """The entry being processed and its settled accounts."""

    entry: PendingEntry
    source: Optional[ExistingAccount] = None
    destination: Optional[ExistingAccount] = None


class ImportSession:
    """
    One run of importing an export into a ledger.

    The export is parsed completely when the session is created, not one
    entry ahead of each write. Ledger calls then run per entry in the order
    resolve source, resolve destination, duplicate check, write. Knowing
    every booking date up front lets the transactions of the statement's
    date window be fetched once, and a malformed row fails the run before
    the first write.

    Calls on a session must not overlap; an overlapping call raises
    ``SessionBusyError`` instead of observing a half-applied decision.
    """

    def __init__(
        self,
        parser: EntryParser,
        ledger: Ledger,
        config: Optional[ImporterConfig] = None,
        source_name: str = "",
    ):
        """
        Read the export and prepare the ledger caches.

        The whole export is parsed here, so a malformed file fails before
        anything is written.

        Args:
            parser: Parser over the export
            ledger: Ledger to import into
            config: Import settings; defaults when omitted
            source_name: Name of the export, for the summary

        Raises:
            FormatError: If a row of the export is malformed
            ValidationError: If a row carries a malformed IBAN or BIC
            LedgerError: If the ledger cannot be read
        """
        self.config = config or ImporterConfig()
        self.ledger = ledger
        self.format_name = parser.format_name
        self.state = SessionState.AWAITING_NEXT_ENTRY
        self.summary = ImportSummary(format_name=self.format_name, source_name=source_name)

        self._lock = threading.Lock()
        self._current: Optional[_InFlight] = None
        self._pending: Optional[PendingDecision] = None

        self._queue: deque[PendingEntry] = deque(parser)
        self.summary.entries_read = len(self._queue)
        logger.info(f"Read {len(self._queue)} entries from {source_name or self.format_name}")

        accounts = self._ledger_call("read accounts", ledger.get_accounts)
        self.resolver = AccountResolver(
            accounts,
            auto_create=self.config.accounts.auto_create,
            confirm_single_match=self.config.accounts.confirm_single_match,
        )
        self.detector = DuplicateDetector(self.format_name, self.resolver.get)

        # Fetched once; transactions written by this run are appended
        self.window = DateWindow.around(
            (e.date for e in self._queue), self.config.duplicates.window_days
        )
        self._transactions: list[Transaction] = []
        if self.window is not None:
            self._transactions = self._ledger_call(
                "read transactions", ledger.get_transactions_in_window, self.window
            )
            logger.debug(
                f"Fetched {len(self._transactions)} transactions between "
                f"{self.window.start} and {self.window.end}"
            )

    @property
    def remaining(self) -> int:
        """Entries not yet taken from the queue."""
        return len(self._queue)

    @property
    def pending_decision(self) -> Optional[PendingDecision]:
        return self._pending

    @property
    def finished(self) -> bool:
        return self.state is SessionState.FINISHED

    def next_step(self) -> ImportStep:
        """
        Advance to the next decision, entry outcome or the end of the run.

        While a decision is pending it is returned again unchanged.
        """
        with self._entered():
            if self._pending is not None:
                return self._pending
            return self._advance()

    def perform(self, decision: PendingDecision) -> ImportStep:
        """
        Apply the operator's selection and continue with the current entry.

        Args:
            decision: The pending decision, after ``select`` was called on it

        Returns:
            The next decision for the same entry, or its outcome

        Raises:
            SelectionError: If ``decision`` is not the pending decision
        """
        with self._entered():
            if self._pending is None or decision is not self._pending:
                raise SelectionError("Decision is not pending in this session")
            self._pending = None

            if isinstance(decision, TransactionMightExist):
                if decision.selected is not None:
                    return self._discard(decision.selected, confirmed=True)
                logger.info(f"Operator dismissed {len(decision.candidates)} duplicate candidate(s)")
                self.state = SessionState.WRITING
            elif isinstance(decision, AccountMightExist):
                if decision.selected is not None:
                    slot: AccountSlot = ExistingAccount(decision.selected.id)
                else:
                    slot = PendingAccount(decision.ref)
                self._settle(decision.side, slot)
                self.state = (
                    SessionState.RESOLVING_DESTINATION
                    if isinstance(decision, SourceAccountMightExist)
                    else SessionState.CHECKING_DUPLICATE
                )
            else:
                raise SelectionError(f"Unknown decision type {type(decision).__name__}")

            return self._advance()

    def run(self, decide: Callable[[PendingDecision], Optional[Any]]) -> ImportSummary:
        """
        Drive the whole run, asking ``decide`` for every pending decision.

        Args:
            decide: Returns one of the decision's candidates or ``None``

        Returns:
            The summary of the run
        """
        step = self.next_step()
        while not step.finished:
            if step.is_decision:
                step = self.perform(step.select(decide(step)))
            else:
                step = self.next_step()
        return step.summary

    @contextmanager
    def _entered(self) -> Iterator[None]:
        if self.state is SessionState.ABORTED:
            raise ImportAbortedError("The import was aborted by an earlier error")
        if not self._lock.acquire(blocking=False):
            raise SessionBusyError("Another call on this import session is in progress")
        try:
            yield
        finally:
            self._lock.release()

    def _advance(self) -> ImportStep:
        while True:
            if self.state is SessionState.AWAITING_NEXT_ENTRY:
                if not self._queue:
                    return self._finish()
                entry = self._queue.popleft()
                self._current = _InFlight(entry)
                logger.debug(f"Processing line {entry.line_number}: {entry.title}")

                # Already imported: skip before creating any account for it
                exact = self.detector.find_by_import_key(entry, self._transactions)
                if exact is not None:
                    return self._discard(exact, confirmed=False)
                self.state = SessionState.RESOLVING_SOURCE

            elif self.state is SessionState.RESOLVING_SOURCE:
                decision = self._resolve(EntrySide.SOURCE)
                if decision is not None:
                    return self._suspend(decision)
                self.state = SessionState.RESOLVING_DESTINATION

            elif self.state is SessionState.RESOLVING_DESTINATION:
                decision = self._resolve(EntrySide.DESTINATION)
                if decision is not None:
                    return self._suspend(decision)
                self.state = SessionState.CHECKING_DUPLICATE

            elif self.state is SessionState.CHECKING_DUPLICATE:
                entry = self._current.entry
                check = self.detector.find_existing(entry, self._transactions)
                if check.is_certain:
                    return self._discard(check.exact, confirmed=False)
                if check.needs_operator:
                    return self._suspend(TransactionMightExist(entry, check.candidates))
                self.state = SessionState.WRITING

            elif self.state is SessionState.WRITING:
                return self._write()

            elif self.state is SessionState.FINISHED:
                return ImportFinished(self.summary)

            else:
                raise ImportAbortedError(f"Cannot advance from state {self.state.value}")

    def _resolve(self, side: EntrySide) -> Optional[AccountMightExist]:
        entry = self._current.entry
        resolution = self.resolver.resolve(entry.ref_for(side))
        if resolution.needs_operator:
            decision_type = (
                SourceAccountMightExist if side is EntrySide.SOURCE else DestinationAccountMightExist
            )
            return decision_type(entry, resolution.match.candidates)
        self._settle(side, resolution.slot)
        return None

    def _settle(self, side: EntrySide, slot: AccountSlot) -> None:
        """Bind one side of the current entry to a stored account, creating it if needed."""
        if isinstance(slot, PendingAccount):
            ref = slot.ref
            account = self._ledger_call(
                "create account", self.ledger.create_book_account, ref.display_name, ref.iban, ref.bic
            )
            self.resolver.remember(account)
            self.summary.accounts_created.append(account)
            logger.info(f"Account created: {account.name} ({account.iban})")
            slot = ExistingAccount(account.id)

        if side is EntrySide.SOURCE:
            self._current.source = slot
        else:
            self._current.destination = slot

    def _write(self) -> EntryImported:
        current = self._current
        entry = current.entry
        if current.source is None or current.destination is None:
            raise ImportAbortedError("Cannot write an entry with unresolved accounts")

        transaction = self._ledger_call(
            "create transaction",
            self.ledger.create_transaction,
            entry.amount,
            entry.title,
            entry.description,
            current.source.account_id,
            current.destination.account_id,
            entry.date,
            import_metadata(entry, self.format_name),
        )
        self._transactions.append(transaction)
        logger.info(
            f"Transaction created: {transaction.id} {entry.title} {entry.amount} on {entry.date}"
        )

        step = EntryImported(entry, transaction)
        self.summary.imported.append(step)
        self._next_entry()
        return step

    def _discard(self, duplicate: Transaction, confirmed: bool) -> EntryDiscarded:
        entry = self._current.entry
        logger.info(
            f"Line {entry.line_number} skipped, already stored as transaction {duplicate.id}"
            + (" (confirmed by operator)" if confirmed else "")
        )
        step = EntryDiscarded(entry, duplicate, confirmed_by_operator=confirmed)
        self.summary.discarded.append(step)
        self._next_entry()
        return step

    def _suspend(self, decision: PendingDecision) -> PendingDecision:
        self._pending = decision
        self.summary.decisions_asked += 1
        logger.debug(
            f"Waiting for operator: {type(decision).__name__} with "
            f"{len(decision.candidates)} candidate(s)"
        )
        return decision

    def _next_entry(self) -> None:
        self._current = None
        self.state = SessionState.AWAITING_NEXT_ENTRY

    def _finish(self) -> ImportFinished:
        self.state = SessionState.FINISHED
        self._current = None
        self.summary.finished_at = datetime.now()
        logger.info(
            f"Import finished: {self.summary.imported_count} imported, "
            f"{self.summary.discarded_count} skipped, "
            f"{len(self.summary.accounts_created)} accounts created"
        )
        return ImportFinished(self.summary)

    def _ledger_call(self, action: str, func: Callable, *args: Any) -> Any:
        """Run a ledger operation; any failure aborts the session."""
        try:
            return func(*args)
        except LedgerError:
            self._abort(action)
            raise
        except Exception as e:
            self._abort(action)
            raise LedgerError(f"Failed to {action}: {e}") from e

    def _abort(self, action: str) -> None:
        logger.error(f"Ledger failed to {action}, aborting import")
        self.state = SessionState.ABORTED
        self._pending = None
