"""
Command-line interface for the ledger importer.
"""

from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import ImporterConfig, generate_default_config, load_config
from .frontends.terminal import TerminalFrontend
from .ledger.yaml_file import YamlLedgerFile
from .models.steps import ImportSummary
from .parsers.formats import EXPORT_FORMATS, ExportFormat, get_format
from .parsers.summary import summarize_export
from .reports.audit_workbook import AuditWorkbookWriter
from .session import ImportSession
from .utils.logging_config import setup_logging

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """Import bank exports into a ledger without creating duplicates."""
    pass


@main.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-l",
    "--ledger",
    "ledger_path",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="YAML ledger file (created if missing)",
)
@click.option("-f", "--format", "format_name", default=None, help="Export format name")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-r", "--report", type=click.Path(path_type=Path), help="Write an audit workbook")
@click.option(
    "--audit",
    is_flag=True,
    help="Write an audit workbook named from the configured filename template",
)
@click.option(
    "--no-auto-create", is_flag=True, help="Ask before creating unknown accounts"
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--dry-run", is_flag=True, help="Run the import but do not save the ledger")
def import_export(
    source: Path,
    ledger_path: Path,
    format_name: Optional[str],
    config: Optional[Path],
    report: Optional[Path],
    audit: bool,
    no_auto_create: bool,
    verbose: bool,
    dry_run: bool,
):
    """
    Import a bank export into a ledger file.

    SOURCE: Path to the bank export
    """
    setup_logging(logging.DEBUG if verbose else logging.INFO)

    try:
        import_config = load_config(config)
        _configure_logging(import_config, verbose)
        if no_auto_create:
            import_config.accounts.auto_create = False

        export_format = get_format(format_name or import_config.input.default_format)
        ledger_file = YamlLedgerFile(ledger_path)
        ledger = ledger_file.load()

        parser = export_format.parse_file(
            source,
            encoding=import_config.input.encoding,
            iban_checksum=import_config.validation.iban_checksum,
        )
        session = ImportSession(parser, ledger, import_config, source_name=source.name)
        frontend = TerminalFrontend(ledger, console)

        step = session.next_step()
        while not step.finished:
            if step.is_decision:
                step = session.perform(step.select(frontend.decide(step)))
            else:
                frontend.report(step)
                step = session.next_step()

        summary = step.summary
        _display_summary(summary)

        if report or audit:
            writer = AuditWorkbookWriter(import_config)
            report_path = writer.write(summary, report or writer.default_path())
            console.print(f"[green]Audit workbook written: {report_path}[/green]")

        if dry_run:
            console.print("\n[yellow]Dry run - ledger not saved[/yellow]")
            return

        ledger_file.save(ledger)
        console.print(f"\n[green]Ledger saved: {ledger_path}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command("parse")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-f", "--format", "format_name", default=None, help="Export format name")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def parse_export(source: Path, format_name: Optional[str], config: Optional[Path]):
    """
    Parse an export and display its pending entries.

    SOURCE: Path to the bank export
    """
    import_config = load_config(config)

    try:
        export_format = get_format(format_name or import_config.input.default_format)
        parser = export_format.parse_file(
            source,
            encoding=import_config.input.encoding,
            iban_checksum=import_config.validation.iban_checksum,
        )
        entries = list(parser)

        table = Table(title=f"{export_format.name} Entries: {source.name}")
        table.add_column("Date")
        table.add_column("Title")
        table.add_column("Amount", justify="right")
        table.add_column("Source")
        table.add_column("Destination")

        for entry in entries[:20]:  # Show first 20
            table.add_row(
                entry.date.strftime("%d.%m.%Y"),
                entry.title[:40] + "..." if len(entry.title) > 40 else entry.title,
                f"{entry.amount:,.2f}",
                entry.source.display_name,
                entry.destination.display_name,
            )

        console.print(table)

        if len(entries) > 20:
            console.print(f"\n... and {len(entries) - 20} more entries")

        console.print(f"\nTotal entries: {len(entries)}")

    except Exception as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)


@main.command("summarize")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-f", "--format", "format_name", default=None, help="Export format name")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def summarize(source: Path, format_name: Optional[str], config: Optional[Path]):
    """
    Show row counts, date range and totals of an export.

    SOURCE: Path to the bank export
    """
    import_config = load_config(config)

    try:
        export_format = get_format(format_name or import_config.input.default_format)
        info = summarize_export(source, export_format, import_config.input.encoding)
    except Exception as e:
        console.print(f"[red]Error reading file: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"Export Summary: {source.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Format", info["format"])
    table.add_row("Rows", str(info["row_count"]))
    table.add_row("Booked Rows", str(info["booked_count"]))
    table.add_row("Ignored Rows", str(info["ignored_count"]))
    table.add_row("First Date", info["date_range"]["start"] or "-")
    table.add_row("Last Date", info["date_range"]["end"] or "-")
    table.add_row("Inflow", f"{info['totals']['inflow']:,.2f}")
    table.add_row("Outflow", f"{info['totals']['outflow']:,.2f}")
    table.add_row("Net", f"{info['totals']['net']:,.2f}")
    table.add_row("Counter-parties", str(info["counterparty_count"]))

    console.print(table)


@main.command("formats")
def list_formats():
    """List the bundled export formats."""
    table = Table(title="Export Formats")
    table.add_column("Name", style="cyan")
    table.add_column("Encoding")
    table.add_column("Delimiter")
    table.add_column("Description")

    for export_format in EXPORT_FORMATS.values():
        table.add_row(*_format_row(export_format))

    console.print(table)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("importer.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _format_row(export_format: ExportFormat) -> list[str]:
    return [
        export_format.name,
        export_format.encoding,
        repr(export_format.delimiter),
        export_format.description,
    ]


def _configure_logging(config: ImporterConfig, verbose: bool) -> None:
    """Re-apply logging with the level and file from the configuration."""
    log_file = Path(config.logging.file) if config.logging.file else None
    setup_logging("DEBUG" if verbose else config.logging.level, log_file, config.logging.format)


def _display_summary(summary: ImportSummary) -> None:
    """Display import summary in console."""
    table = Table(title="Import Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Entries Read", str(summary.entries_read))
    table.add_row("Imported", str(summary.imported_count))
    table.add_row("Skipped", str(summary.discarded_count))
    table.add_row("Skipped by Operator", str(summary.confirmed_duplicate_count))
    table.add_row("Accounts Created", str(len(summary.accounts_created)))
    table.add_row("Decisions Asked", str(summary.decisions_asked))
    table.add_row("Processing Time", f"{summary.processing_time_seconds:.2f}s")

    console.print(table)


if __name__ == "__main__":
    main()
