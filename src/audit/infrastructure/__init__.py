"""
Audit Infrastructure Layer
==========================

- Models: AuditLogModel with immutability guards and triggers
- Repositories: SQLAlchemyAuditLogRepository (append-only)
"""

from src.audit.infrastructure.models import AuditLogModel
from src.audit.infrastructure.repositories import SQLAlchemyAuditLogRepository

__all__ = ["AuditLogModel", "SQLAlchemyAuditLogRepository"]
