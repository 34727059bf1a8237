"""Tests for the import session state machine."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from conftest import LANDLORD_IBAN, SELF_IBAN, SHOP_IBAN, camt_lines, camt_row
from ledger_importer.config import ImporterConfig
from ledger_importer.ledger.memory import InMemoryLedger
from ledger_importer.matching.duplicates import (
    METADATA_IMPORT_FORMAT,
    METADATA_RAW_CONTENT,
)
from ledger_importer.models.ledger import Account, AccountKind
from ledger_importer.models.steps import (
    DestinationAccountMightExist,
    EntryDiscarded,
    EntryImported,
    ImportFinished,
    SourceAccountMightExist,
    TransactionMightExist,
)
from ledger_importer.parsers.formats import CsvCamtV2Format
from ledger_importer.session import ImportSession, SessionState
from ledger_importer.utils.exceptions import (
    FormatError,
    ImportAbortedError,
    LedgerError,
    SelectionError,
    SessionBusyError,
)


def start_session(ledger, *rows, config=None) -> ImportSession:
    parser = CsvCamtV2Format().open_parser(camt_lines(*rows))
    return ImportSession(parser, ledger, config, source_name="test.csv")


def never_asked(decision):
    raise AssertionError(f"Unexpected decision: {decision}")


def accounts_by_iban(ledger: InMemoryLedger) -> dict:
    return {a.iban: a for a in ledger.get_accounts()}


class FailingLedger(InMemoryLedger):
    """Ledger whose transaction writes fail."""

    def __init__(self, error: Exception):
        super().__init__()
        self.error = error

    def create_transaction(self, *args, **kwargs):
        raise self.error


class CountingLedger(InMemoryLedger):
    """Ledger recording the windows it was asked for."""

    def __init__(self):
        super().__init__()
        self.windows = []

    def get_transactions_in_window(self, window):
        self.windows.append(window)
        return super().get_transactions_in_window(window)


class TestScenarios:
    """End-to-end import of a single row."""

    def test_first_import_creates_accounts_and_transaction(self, ledger):
        session = start_session(
            ledger, camt_row(amount="-90,00", self_iban="DE01", other_iban="DE02")
        )

        step = session.next_step()

        assert isinstance(step, EntryImported)
        assert step.entry.amount == Decimal("90.00")
        assert step.entry.source.iban == "DE01"
        assert step.entry.destination.iban == "DE02"

        accounts = accounts_by_iban(ledger)
        assert set(accounts) == {"DE01", "DE02"}
        assert all(a.kind is AccountKind.BOOK_CHECKING for a in accounts.values())

        [transaction] = ledger.transactions.values()
        assert transaction.amount == Decimal("90.00")
        assert transaction.source_id == accounts["DE01"].id
        assert transaction.destination_id == accounts["DE02"].id
        assert transaction.date == date(2024, 1, 4)
        assert transaction.title == "Groceries"

        assert isinstance(session.next_step(), ImportFinished)
        assert session.finished

    def test_reimport_discards_entry(self, ledger):
        row = camt_row(amount="-90,00", self_iban="DE01", other_iban="DE02")
        start_session(ledger, row).run(never_asked)
        accounts_before = len(ledger.accounts)

        session = start_session(ledger, row)
        step = session.next_step()

        assert isinstance(step, EntryDiscarded)
        assert not step.confirmed_by_operator
        assert len(ledger.transactions) == 1
        assert len(ledger.accounts) == accounts_before

    def test_transaction_carries_import_key(self, ledger):
        row = camt_row()
        session = start_session(ledger, row)

        step = session.next_step()

        assert step.transaction.metadata[METADATA_RAW_CONTENT] == row
        assert step.transaction.metadata[METADATA_IMPORT_FORMAT] == "CSV_CAMT_V2"

    def test_incoming_payment_flows_to_self(self, seeded_ledger):
        session = start_session(
            seeded_ledger, camt_row(amount="1.250,00", other_iban=LANDLORD_IBAN)
        )

        step = session.next_step()

        accounts = accounts_by_iban(seeded_ledger)
        assert step.transaction.source_id == accounts[LANDLORD_IBAN].id
        assert step.transaction.destination_id == accounts[SELF_IBAN].id
        assert step.transaction.amount == Decimal("1250.00")


class TestIdempotence:
    """Running the same export twice creates nothing the second time."""

    def test_second_run_imports_nothing(self, ledger):
        rows = [
            camt_row(),
            camt_row(amount="-12,00", booking_date="06.01.24", title="Bakery"),
            camt_row(amount="1.250,00", booking_date="07.01.24", other_iban=LANDLORD_IBAN),
        ]

        first = start_session(ledger, *rows).run(never_asked)
        count = len(ledger.transactions)
        second = start_session(ledger, *rows).run(never_asked)

        assert first.imported_count == 3
        assert second.imported_count == 0
        assert second.discarded_count == 3
        assert len(ledger.transactions) == count

    def test_repeated_line_within_one_export_is_written_once(self, ledger):
        row = camt_row()

        summary = start_session(ledger, row, row).run(never_asked)

        assert summary.imported_count == 1
        assert summary.discarded_count == 1


class TestAutoCreation:
    """Unknown IBANs become book accounts exactly once per run."""

    def test_one_account_per_distinct_iban(self, ledger):
        rows = [
            camt_row(booking_date="04.01.24"),
            camt_row(booking_date="05.01.24"),
            camt_row(booking_date="06.01.24", other_iban=LANDLORD_IBAN),
        ]

        summary = start_session(ledger, *rows).run(never_asked)

        ibans = sorted(a.iban for a in ledger.get_accounts())
        assert ibans == sorted([SELF_IBAN, SHOP_IBAN, LANDLORD_IBAN])
        assert len(summary.accounts_created) == 3

    def test_name_falls_back_to_iban(self, ledger):
        start_session(ledger, camt_row(other_name="")).run(never_asked)

        accounts = accounts_by_iban(ledger)
        assert accounts[SHOP_IBAN].name == SHOP_IBAN

    def test_parsed_name_and_bic_are_stored(self, ledger):
        start_session(ledger, camt_row(other_bic="COBADEFFXXX")).run(never_asked)

        shop = accounts_by_iban(ledger)[SHOP_IBAN]
        assert shop.name == "Corner Shop"
        assert shop.bic == "COBADEFFXXX"

    def test_existing_accounts_are_reused(self, seeded_ledger):
        summary = start_session(seeded_ledger, camt_row()).run(never_asked)

        assert summary.accounts_created == []
        assert len(seeded_ledger.accounts) == 2


class TestTransactionDecisions:
    """Field-match candidates are always put to the operator."""

    @pytest.fixture
    def ambiguous_ledger(self, seeded_ledger):
        accounts = accounts_by_iban(seeded_ledger)
        for _ in range(2):
            seeded_ledger.create_transaction(
                Decimal("90.00"),
                "Groceries",
                None,
                accounts[SELF_IBAN].id,
                accounts[SHOP_IBAN].id,
                date(2024, 1, 4),
                {},
            )
        return seeded_ledger

    def test_two_candidates(self, ambiguous_ledger):
        session = start_session(ambiguous_ledger, camt_row())

        decision = session.next_step()

        assert isinstance(decision, TransactionMightExist)
        assert len(decision.candidates) == 2
        assert session.state is SessionState.CHECKING_DUPLICATE

    def test_confirming_a_candidate_discards_the_entry(self, ambiguous_ledger):
        session = start_session(ambiguous_ledger, camt_row())
        decision = session.next_step()

        step = session.perform(decision.select(decision.candidates[1]))

        assert isinstance(step, EntryDiscarded)
        assert step.confirmed_by_operator
        assert step.duplicate.id == decision.candidates[1].id
        assert len(ambiguous_ledger.transactions) == 2

    def test_dismissing_candidates_writes_the_entry(self, ambiguous_ledger):
        session = start_session(ambiguous_ledger, camt_row())
        decision = session.next_step()

        step = session.perform(decision.select(None))

        assert isinstance(step, EntryImported)
        assert len(ambiguous_ledger.transactions) == 3

    def test_pending_decision_is_returned_again(self, ambiguous_ledger):
        session = start_session(ambiguous_ledger, camt_row())

        decision = session.next_step()

        assert session.next_step() is decision
        assert session.pending_decision is decision


class TestAccountDecisions:
    """Shared IBANs and disabled auto-creation suspend the session."""

    def test_shared_self_iban_asks_for_source(self, seeded_ledger):
        twin = seeded_ledger.create_account("Checking (old)", SELF_IBAN)
        session = start_session(seeded_ledger, camt_row())

        decision = session.next_step()

        assert isinstance(decision, SourceAccountMightExist)
        assert session.state is SessionState.RESOLVING_SOURCE
        assert decision.ref.iban == SELF_IBAN
        assert len(decision.candidates) == 2

        step = session.perform(decision.select(twin))

        assert isinstance(step, EntryImported)
        assert step.transaction.source_id == twin.id

    def test_source_then_destination(self, ledger):
        for iban in (SELF_IBAN, SELF_IBAN, SHOP_IBAN, SHOP_IBAN):
            ledger.create_account(iban, iban)
        session = start_session(ledger, camt_row())

        first = session.next_step()
        second = session.perform(first.select_index(0))

        assert isinstance(first, SourceAccountMightExist)
        assert isinstance(second, DestinationAccountMightExist)
        assert second.ref.iban == SHOP_IBAN

        step = session.perform(second.select_index(1))
        assert step.transaction.destination_id == second.candidates[1].id

    def test_selecting_none_creates_account(self, seeded_ledger):
        seeded_ledger.create_account("Shop twin", SHOP_IBAN)
        session = start_session(seeded_ledger, camt_row())

        decision = session.next_step()
        step = session.perform(decision.select(None))

        assert isinstance(decision, DestinationAccountMightExist)
        assert isinstance(step, EntryImported)
        new_account = seeded_ledger.get_account(step.transaction.destination_id)
        assert new_account.iban == SHOP_IBAN
        assert new_account.id not in [c.id for c in decision.candidates]
        assert session.summary.accounts_created == [new_account]

    def test_without_auto_create_unknown_account_is_asked(self, ledger):
        ledger.create_account("Checking", SELF_IBAN, kind=AccountKind.ASSET)
        config = ImporterConfig()
        config.accounts.auto_create = False
        session = start_session(ledger, camt_row(), config=config)

        decision = session.next_step()

        assert isinstance(decision, DestinationAccountMightExist)
        assert decision.candidates == []
        assert len(ledger.accounts) == 1

        step = session.perform(decision.select(None))
        assert isinstance(step, EntryImported)
        assert len(ledger.accounts) == 2

    def test_confirm_single_match(self, seeded_ledger):
        config = ImporterConfig()
        config.accounts.confirm_single_match = True
        session = start_session(seeded_ledger, camt_row(), config=config)

        decisions = []

        def pick_first(decision):
            decisions.append(decision)
            return decision.candidates[0]

        summary = session.run(pick_first)

        assert [type(d) for d in decisions] == [
            SourceAccountMightExist,
            DestinationAccountMightExist,
        ]
        assert summary.imported_count == 1
        assert summary.decisions_asked == 2


class TestSelectionErrors:
    """Decisions only accept their own candidates."""

    @pytest.fixture
    def suspended(self, seeded_ledger):
        seeded_ledger.create_account("Shop twin", SHOP_IBAN)
        session = start_session(seeded_ledger, camt_row())
        return session, session.next_step()

    def test_foreign_candidate_is_rejected(self, suspended, seeded_ledger):
        session, decision = suspended
        self_account = accounts_by_iban(seeded_ledger)[SELF_IBAN]

        with pytest.raises(SelectionError):
            decision.select(self_account)

    def test_object_of_other_kind_with_same_id_is_rejected(self, seeded_ledger):
        transaction = seeded_ledger.create_transaction(
            Decimal("90.00"), "Groceries", None, 1, 2, date(2024, 1, 4), {}
        )
        entry = CsvCamtV2Format().open_parser(camt_lines(camt_row())).next_entry()
        decision = TransactionMightExist(entry, [transaction])
        lookalike = Account(transaction.id, "Same id, other kind")

        with pytest.raises(SelectionError):
            decision.select(lookalike)

        assert decision.selected is None

    def test_out_of_range_index_is_rejected(self, suspended):
        _, decision = suspended

        with pytest.raises(SelectionError):
            decision.select_index(5)

    def test_stale_decision_is_rejected(self, suspended):
        session, decision = suspended
        session.perform(decision.select(None))

        with pytest.raises(SelectionError):
            session.perform(decision)

    def test_decision_from_another_session_is_rejected(self, suspended, seeded_ledger):
        session, _ = suspended
        other = start_session(seeded_ledger, camt_row(booking_date="09.01.24"))
        foreign = other.next_step()

        with pytest.raises(SelectionError):
            session.perform(foreign)


class TestFatalErrors:
    """Ledger failures abort the run; malformed exports never start one."""

    def test_write_failure_aborts(self):
        ledger = FailingLedger(LedgerError("disk full"))
        session = start_session(ledger, camt_row(), camt_row(booking_date="05.01.24"))

        with pytest.raises(LedgerError, match="disk full"):
            session.next_step()

        assert session.state is SessionState.ABORTED
        with pytest.raises(ImportAbortedError):
            session.next_step()

    def test_unexpected_backend_error_is_wrapped(self):
        ledger = FailingLedger(RuntimeError("connection reset"))
        session = start_session(ledger, camt_row())

        with pytest.raises(LedgerError, match="connection reset") as exc_info:
            session.next_step()

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_malformed_export_writes_nothing(self, ledger):
        with pytest.raises(FormatError):
            start_session(ledger, camt_row(), camt_row(currency="USD"))

        assert ledger.accounts == {}
        assert ledger.transactions == {}

    def test_busy_session_rejects_calls(self, ledger):
        session = start_session(ledger, camt_row())
        session._lock.acquire()
        try:
            with pytest.raises(SessionBusyError):
                session.next_step()
        finally:
            session._lock.release()


class TestLedgerAccess:
    """Transactions are fetched once for the statement window."""

    def test_window_is_fetched_once(self):
        ledger = CountingLedger()
        rows = [
            camt_row(booking_date="04.01.24"),
            camt_row(booking_date="10.01.24", title="Later"),
            camt_row(booking_date="07.01.24", title="Middle"),
        ]

        start_session(ledger, *rows).run(never_asked)

        [window] = ledger.windows
        assert window.start == date(2024, 1, 4) - timedelta(days=2)
        assert window.end == date(2024, 1, 10) + timedelta(days=2)

    def test_window_margin_from_config(self):
        ledger = CountingLedger()
        config = ImporterConfig()
        config.duplicates.window_days = 0

        start_session(ledger, camt_row(), config=config)

        assert ledger.windows[0].start == date(2024, 1, 4)

    def test_export_is_read_before_any_ledger_write(self):
        ledger = CountingLedger()
        rows = [camt_row(), camt_row(booking_date="05.01.24", title="Second")]

        session = start_session(ledger, *rows)

        assert session.remaining == 2
        assert session.summary.entries_read == 2
        assert len(ledger.windows) == 1
        assert ledger.accounts == {}
        assert ledger.transactions == {}

        session.next_step()

        assert session.remaining == 1
        assert len(ledger.transactions) == 1

    def test_empty_export_finishes_immediately(self):
        ledger = CountingLedger()
        session = start_session(ledger)

        step = session.next_step()

        assert isinstance(step, ImportFinished)
        assert step.summary.entries_read == 0
        assert ledger.windows == []
        assert isinstance(session.next_step(), ImportFinished)


class TestSummary:
    def test_counts(self, seeded_ledger):
        rows = [camt_row(), camt_row(booking_date="05.01.24", other_iban=LANDLORD_IBAN)]
        start_session(seeded_ledger, rows[0]).run(never_asked)

        summary = start_session(seeded_ledger, *rows).run(never_asked)

        assert summary.entries_read == 2
        assert summary.imported_count == 1
        assert summary.discarded_count == 1
        assert summary.confirmed_duplicate_count == 0
        assert [a.iban for a in summary.accounts_created] == [LANDLORD_IBAN]
        assert summary.source_name == "test.csv"
        assert summary.finished_at is not None
