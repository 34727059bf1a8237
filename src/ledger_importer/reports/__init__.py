"""Reports about import runs."""

from .audit_workbook import AuditWorkbookWriter

__all__ = ["AuditWorkbookWriter"]
