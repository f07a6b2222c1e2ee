"""Audit logging package."""

from stewardly.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
