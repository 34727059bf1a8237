"""Tests for the command-line interface."""

import logging
from datetime import date
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import SHOP_IBAN, camt_bytes, camt_row
from ledger_importer.cli import main
from ledger_importer.ledger.yaml_file import YamlLedgerFile
from ledger_importer.utils.logging_config import LOGGER_NAME


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to the runner's captured streams."""
    yield
    logging.getLogger(LOGGER_NAME).handlers = []


class TestImportCommand:
    def test_import_creates_ledger(self, runner, tmp_path, export_file):
        ledger_path = tmp_path / "ledger.yaml"

        result = runner.invoke(main, ["import", str(export_file), "-l", str(ledger_path)])

        assert result.exit_code == 0, result.output
        ledger = YamlLedgerFile(ledger_path).load()
        assert len(ledger.transactions) == 2
        assert len(ledger.accounts) == 3
        assert "Ledger saved" in result.output

    def test_second_import_skips_everything(self, runner, tmp_path, export_file):
        ledger_path = tmp_path / "ledger.yaml"
        runner.invoke(main, ["import", str(export_file), "-l", str(ledger_path)])

        result = runner.invoke(main, ["import", str(export_file), "-l", str(ledger_path)])

        assert result.exit_code == 0, result.output
        assert len(YamlLedgerFile(ledger_path).load().transactions) == 2
        assert "Skipped" in result.output

    def test_dry_run_leaves_ledger_untouched(self, runner, tmp_path, export_file):
        ledger_path = tmp_path / "ledger.yaml"

        result = runner.invoke(
            main, ["import", str(export_file), "-l", str(ledger_path), "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        assert not ledger_path.exists()
        assert "Dry run" in result.output

    def test_operator_answers_prompt(self, runner, tmp_path):
        source = tmp_path / "export.csv"
        source.write_bytes(camt_bytes(camt_row()))
        ledger_path = tmp_path / "ledger.yaml"

        result = runner.invoke(
            main,
            ["import", str(source), "-l", str(ledger_path), "--no-auto-create"],
            input="none\nnone\n",
        )

        assert result.exit_code == 0, result.output
        assert result.output.count("could already exist") == 2
        ibans = {a.iban for a in YamlLedgerFile(ledger_path).load().get_accounts()}
        assert SHOP_IBAN in ibans

    def test_report_is_written(self, runner, tmp_path, export_file):
        report = tmp_path / "audit.xlsx"

        result = runner.invoke(
            main,
            ["import", str(export_file), "-l", str(tmp_path / "l.yaml"), "-r", str(report)],
        )

        assert result.exit_code == 0, result.output
        assert report.exists()

    def test_audit_uses_configured_filename(self, runner, tmp_path, export_file):
        config = tmp_path / "importer.yaml"
        config.write_text("output:\n  audit:\n    filename_template: audit_{date}.xlsx\n")
        ledger_path = tmp_path / "ledger.yaml"

        with runner.isolated_filesystem(temp_dir=tmp_path) as workdir:
            result = runner.invoke(
                main,
                ["import", str(export_file), "-l", str(ledger_path), "-c", str(config), "--audit"],
            )
            written = list(Path(workdir).glob("audit_*.xlsx"))

        assert result.exit_code == 0, result.output
        assert len(written) == 1
        assert written[0].name == f"audit_{date.today():%Y%m%d}.xlsx"

    def test_report_path_wins_over_template(self, runner, tmp_path, export_file):
        report = tmp_path / "explicit.xlsx"

        with runner.isolated_filesystem(temp_dir=tmp_path) as workdir:
            result = runner.invoke(
                main,
                [
                    "import",
                    str(export_file),
                    "-l",
                    str(tmp_path / "l.yaml"),
                    "-r",
                    str(report),
                    "--audit",
                ],
            )
            templated = list(Path(workdir).glob("import_audit_*.xlsx"))

        assert result.exit_code == 0, result.output
        assert report.exists()
        assert templated == []

    def test_malformed_export_fails(self, runner, tmp_path):
        source = tmp_path / "export.csv"
        source.write_bytes(camt_bytes(camt_row(currency="USD")))
        ledger_path = tmp_path / "ledger.yaml"

        result = runner.invoke(main, ["import", str(source), "-l", str(ledger_path)])

        assert result.exit_code == 1
        assert "USD" in result.output
        assert not ledger_path.exists()

    def test_unknown_format_fails(self, runner, tmp_path, export_file):
        result = runner.invoke(
            main, ["import", str(export_file), "-l", str(tmp_path / "l.yaml"), "-f", "MT940"]
        )

        assert result.exit_code == 1
        assert "Unknown export format" in result.output


class TestInspectionCommands:
    def test_parse(self, runner, export_file):
        result = runner.invoke(main, ["parse", str(export_file)])

        assert result.exit_code == 0, result.output
        assert "Total entries: 2" in result.output

    def test_summarize(self, runner, export_file):
        result = runner.invoke(main, ["summarize", str(export_file)])

        assert result.exit_code == 0, result.output
        assert "1,250.00" in result.output
        assert "2024-01-04" in result.output

    def test_formats(self, runner):
        result = runner.invoke(main, ["formats"])

        assert result.exit_code == 0
        assert "CSV_CAMT_V2" in result.output

    def test_init_config(self, runner, tmp_path):
        output = tmp_path / "importer.yaml"

        result = runner.invoke(main, ["init-config", "-o", str(output)])

        assert result.exit_code == 0
        assert "window_days: 2" in output.read_text()
