"""Ledger interface and bundled backends."""

from .base import Ledger
from .memory import InMemoryLedger
from .yaml_file import YamlLedgerFile

__all__ = ["Ledger", "InMemoryLedger", "YamlLedgerFile"]
