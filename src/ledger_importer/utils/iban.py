"""IBAN and BIC normalization and structural validation."""

from typing import Optional
import re

from .exceptions import ValidationError

# Country code, two check digits, up to 30 alphanumeric BBAN characters
IBAN_PATTERN = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z0-9]{0,30}$")
# Bank code, country code, location code, optional branch code
BIC_PATTERN = re.compile(r"^[A-Z]{4}[A-Z]{2}[A-Z0-9]{2}([A-Z0-9]{3})?$")

MIN_CHECKSUM_IBAN_LENGTH = 15


def normalize_identifier(value: str) -> str:
    """Uppercase an IBAN/BIC and drop all whitespace."""
    return re.sub(r"\s+", "", value).upper()


def validate_iban(value: str, checksum: bool = False) -> str:
    """
    Normalize an IBAN and check its structure.

    Args:
        value: IBAN as found in the export, possibly spaced or lowercase
        checksum: Also require the ISO 13616 mod-97 check to pass

    Returns:
        The normalized IBAN

    Raises:
        ValidationError: If the value is not a structurally valid IBAN
    """
    if value is None:
        raise ValidationError("IBAN is missing")

    iban = normalize_identifier(str(value))
    if not IBAN_PATTERN.match(iban):
        raise ValidationError(f"Malformed IBAN: {value!r}")

    if checksum and not _passes_mod97(iban):
        raise ValidationError(f"IBAN fails checksum validation: {value!r}")

    return iban


def validate_bic(value: Optional[str]) -> Optional[str]:
    """Normalize an optional BIC; empty values become ``None``."""
    if value is None:
        return None

    bic = normalize_identifier(str(value))
    if not bic:
        return None
    if not BIC_PATTERN.match(bic):
        raise ValidationError(f"Malformed BIC: {value!r}")
    return bic


def _passes_mod97(iban: str) -> bool:
    if len(iban) < MIN_CHECKSUM_IBAN_LENGTH:
        return False
    rearranged = iban[4:] + iban[:4]
    digits = "".join(str(int(ch, 36)) for ch in rearranged)
    return int(digits) % 97 == 1
