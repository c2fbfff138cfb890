"""Audit logging package."""

from inkledger.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
