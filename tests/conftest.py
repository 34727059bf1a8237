"""Test fixtures and utilities."""

from pathlib import Path

import pytest

from ledger_importer.ledger.memory import InMemoryLedger
from ledger_importer.models.ledger import AccountKind
from ledger_importer.parsers.formats import CsvCamtV2Format

SELF_IBAN = "DE89370400440532013000"
SHOP_IBAN = "DE02120300000000202051"
LANDLORD_IBAN = "GB82WEST12345698765432"

CAMT_HEADER = ";".join(
    f'"{name}"'
    for name in [
        "Auftragskonto",
        "Buchungstag",
        "Valutadatum",
        "Buchungstext",
        "Verwendungszweck",
        "Glaeubiger ID",
        "Mandatsreferenz",
        "Kundenreferenz (End-to-End)",
        "Sammlerreferenz",
        "Lastschrift Ursprungsbetrag",
        "Auslagenersatz Ruecklastschrift",
        "Beguenstigter/Zahlungspflichtiger",
        "Kontonummer/IBAN",
        "BIC (SWIFT-Code)",
        "Betrag",
        "Waehrung",
        "Info",
    ]
)


def camt_row(
    amount: str = "-90,00",
    booking_date: str = "04.01.24",
    self_iban: str = SELF_IBAN,
    other_iban: str = SHOP_IBAN,
    title: str = "Groceries",
    purpose: str = "Weekly shopping",
    other_name: str = "Corner Shop",
    other_bic: str = "",
    currency: str = "EUR",
    status: str = "Umsatz gebucht",
) -> str:
    """Build one CSV-CAMT V2 data line."""
    fields = [
        self_iban,
        booking_date,
        booking_date,
        title,
        purpose,
        "",
        "",
        "",
        "",
        "",
        "",
        other_name,
        other_iban,
        other_bic,
        amount,
        currency,
        status,
    ]
    return ";".join(f'"{value}"' for value in fields)


def camt_lines(*rows: str) -> list[str]:
    """Header plus data lines, as read from a file."""
    return [CAMT_HEADER + "\r\n"] + [row + "\r\n" for row in rows]


def camt_bytes(*rows: str) -> bytes:
    return "".join(camt_lines(*rows)).encode("iso-8859-15")


@pytest.fixture
def camt_format() -> CsvCamtV2Format:
    return CsvCamtV2Format()


@pytest.fixture
def ledger() -> InMemoryLedger:
    """Empty in-memory ledger."""
    return InMemoryLedger()


@pytest.fixture
def seeded_ledger() -> InMemoryLedger:
    """Ledger holding the exported asset account and one shop account."""
    ledger = InMemoryLedger()
    ledger.create_account("Checking", SELF_IBAN, kind=AccountKind.ASSET)
    ledger.create_account("Corner Shop", SHOP_IBAN)
    return ledger


@pytest.fixture
def export_file(tmp_path: Path) -> Path:
    """Export file with two booked rows and one pending row."""
    path = tmp_path / "export.csv"
    path.write_bytes(
        camt_bytes(
            camt_row(),
            camt_row(
                amount="1.250,00",
                booking_date="05.01.24",
                other_iban=LANDLORD_IBAN,
                title="Rent refund",
                purpose="Deposit return",
                other_name="Müller Immobilien",
            ),
            camt_row(amount="-5,00", status="Umsatz vorgemerkt"),
        )
    )
    return path
