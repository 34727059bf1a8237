"""Bank export importer with duplicate detection and operator decisions."""

__version__ = "0.1.0"
