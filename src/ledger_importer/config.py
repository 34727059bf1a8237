"""Configuration loader and validation for import settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class InputConfig(BaseModel):
    """Configuration for reading exports."""

    default_format: str = "CSV_CAMT_V2"
    # Overrides the format's own encoding when set
    encoding: Optional[str] = None


class AccountsConfig(BaseModel):
    """Policy for resolving export accounts against the ledger."""

    auto_create: bool = True
    confirm_single_match: bool = False


class DuplicatesConfig(BaseModel):
    """Configuration for duplicate detection."""

    window_days: int = Field(default=2, ge=0)


class ValidationConfig(BaseModel):
    """Configuration for IBAN validation."""

    iban_checksum: bool = False


class AuditWorkbookConfig(BaseModel):
    """Configuration for the audit workbook."""

    filename_template: str = "import_audit_{date}_{time}.xlsx"


class SheetConfig(BaseModel):
    """Configuration for a workbook sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all audit workbook sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    imported: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Imported"))
    discarded: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Discarded"))
    accounts_created: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Accounts Created")
    )


class OutputConfig(BaseModel):
    """Configuration for output."""

    audit: AuditWorkbookConfig = Field(default_factory=AuditWorkbookConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ImporterConfig(BaseModel):
    """Main configuration model for importing."""

    input: InputConfig = Field(default_factory=InputConfig)
    accounts: AccountsConfig = Field(default_factory=AccountsConfig)
    duplicates: DuplicatesConfig = Field(default_factory=DuplicatesConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return ImporterConfig().model_dump(exclude={"config_file_path"})


def load_config(config_path: Optional[Path] = None) -> ImporterConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ImporterConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or has invalid values
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping")

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ImporterConfig(**config_dict)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    yaml_content = """# Ledger importer configuration
# accounts.auto_create: create unknown counter-party accounts without asking
# accounts.confirm_single_match: ask even when exactly one account has the IBAN
# duplicates.window_days: days around the statement fetched for duplicate checks
# validation.iban_checksum: also verify IBAN check digits

"""
    yaml_content += yaml.safe_dump(get_default_config(), default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
