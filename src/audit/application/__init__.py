"""
Audit Application Layer
=======================

Contains:
- Services: AuditLedger (append / query / query_for_entity)
- Repository interface: IAuditLogRepository (append-only)
- DTOs: API response models
"""

from src.audit.application.dto import (
    AuditLogResponse,
    AuditLogPageResponse,
    EntityAuditResponse,
    PaginationResponse,
)
from src.audit.application.services import AuditLedger, IAuditLogRepository

__all__ = [
    # DTOs
    "AuditLogResponse",
    "AuditLogPageResponse",
    "EntityAuditResponse",
    "PaginationResponse",
    # Services
    "AuditLedger",
    # Repository Interfaces
    "IAuditLogRepository",
]
