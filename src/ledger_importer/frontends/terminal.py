"""
Terminal front-end for import sessions.

Shows each pending decision with the entry it concerns, enumerates the
candidates and reads an option number or ``none`` from the operator.
"""

from typing import Callable, Optional, Union

import click
from rich.console import Console
from rich.table import Table

from ..ledger.base import Ledger
from ..models.entry import PendingEntry
from ..models.ledger import Account, Transaction
from ..models.steps import (
    AccountMightExist,
    EntryDiscarded,
    EntryImported,
    ImportStep,
    PendingDecision,
)

NONE_ANSWER = "none"


def _ask(text: str) -> str:
    return click.prompt(text, default=NONE_ANSWER, show_default=True)


class TerminalFrontend:
    """Answers pending decisions interactively in a terminal."""

    def __init__(
        self,
        ledger: Ledger,
        console: Optional[Console] = None,
        prompt: Optional[Callable[[str], str]] = None,
    ):
        """
        Initialize the front-end.

        Args:
            ledger: Ledger used to show the accounts of candidate transactions
            console: Rich console to print to
            prompt: Reads one answer; defaults to ``click.prompt``
        """
        self.ledger = ledger
        self.console = console or Console()
        self.prompt = prompt or _ask

    def decide(self, decision: PendingDecision) -> Optional[Union[Account, Transaction]]:
        """Ask the operator which candidate matches; ``None`` means none does."""
        self.console.print(f"\n[bold yellow]{decision.prompt}[/bold yellow]")
        self.console.print(self.entry_table(decision.entry))

        if isinstance(decision, AccountMightExist) and not decision.candidates:
            self.console.print(
                f"No account with IBAN {decision.ref.iban} exists; "
                f"'{NONE_ANSWER}' creates '{decision.ref.display_name}'."
            )
        else:
            self.console.print(self.candidates_table(decision))

        while True:
            answer = self.prompt(
                f"Enter the number of the matching option or '{NONE_ANSWER}'"
            ).strip()
            if answer.lower() == NONE_ANSWER:
                return None
            try:
                index = int(answer)
            except ValueError:
                index = -1
            if 0 <= index < len(decision.candidates):
                self.console.print(f"Selected option {index}.")
                return decision.candidates[index]
            self.console.print("[red]Invalid input. Please try again.[/red]")

    def report(self, step: ImportStep) -> None:
        """Print a one-line note about a finished entry."""
        if isinstance(step, EntryImported):
            self.console.print(
                f"[green]Imported[/green] {step.entry.date:%d.%m.%Y} "
                f"{step.entry.title} {step.entry.amount:.2f}"
            )
        elif isinstance(step, EntryDiscarded):
            self.console.print(
                f"[dim]Skipped[/dim] {step.entry.date:%d.%m.%Y} {step.entry.title} "
                f"(transaction {step.duplicate.id})"
            )

    def entry_table(self, entry: PendingEntry) -> Table:
        table = Table(title="You are deciding for this entry", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")

        table.add_row("Title", entry.title)
        table.add_row("Description", entry.description)
        table.add_row("Value", f"{entry.amount:.2f}")
        table.add_row("Date", entry.date.strftime("%d.%m.%Y"))
        for label, ref in (("Source", entry.source), ("Destination", entry.destination)):
            table.add_row(f"{label} IBAN", ref.iban)
            table.add_row(f"{label} BIC", ref.bic or "")
            table.add_row(f"{label} Name", ref.name or "")
        return table

    def candidates_table(self, decision: PendingDecision) -> Table:
        table = Table(title="Options")
        table.add_column("#", justify="right")

        if isinstance(decision, AccountMightExist):
            table.add_column("Name")
            table.add_column("IBAN")
            table.add_column("BIC")
            table.add_column("Notes")
            for i, account in enumerate(decision.candidates):
                table.add_row(
                    str(i), account.name, account.iban or "", account.bic or "", account.notes or ""
                )
        else:
            table.add_column("Title")
            table.add_column("Value", justify="right")
            table.add_column("Date")
            table.add_column("Source")
            table.add_column("Destination")
            for i, transaction in enumerate(decision.candidates):
                table.add_row(
                    str(i),
                    transaction.title,
                    f"{transaction.amount:.2f}",
                    transaction.date.strftime("%d.%m.%Y"),
                    self._account_label(transaction.source_id),
                    self._account_label(transaction.destination_id),
                )
        return table

    def _account_label(self, account_id: int) -> str:
        account = self.ledger.get_account(account_id)
        if account is None:
            return f"#{account_id}"
        return f"{account.name} ({account.iban})" if account.iban else account.name
