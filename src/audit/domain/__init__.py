"""
Audit Domain Layer
==================

Contains:
- Entities: AuditLogEntry (immutable), AuditQuery, AuditPage
"""

from src.audit.domain.entities import AuditLogEntry, AuditQuery, AuditPage

__all__ = ["AuditLogEntry", "AuditQuery", "AuditPage"]
