"""Account resolution and duplicate detection."""

from .accounts import AccountResolution, AccountResolver, resolve
from .duplicates import (
    METADATA_IMPORT_FORMAT,
    METADATA_IMPORTER_VERSION,
    METADATA_RAW_CONTENT,
    DuplicateCheck,
    DuplicateDetector,
    import_metadata,
)

__all__ = [
    "AccountResolution",
    "AccountResolver",
    "resolve",
    "METADATA_IMPORT_FORMAT",
    "METADATA_IMPORTER_VERSION",
    "METADATA_RAW_CONTENT",
    "DuplicateCheck",
    "DuplicateDetector",
    "import_metadata",
]
