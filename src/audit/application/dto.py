"""
Audit Application DTOs
======================

Pydantic models for audit log API responses.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from src.audit.domain import AuditLogEntry, AuditPage
from src.config import AuditAction, EntityType
from src.shared.api.schemas import PaginationResponse


class AuditLogResponse(BaseModel):
    """One audit entry."""
    id: str
    action: AuditAction
    entity: EntityType
    entity_id: str
    previous_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    performed_by: str
    organization_id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime

    @classmethod
    def from_entry(cls, entry: AuditLogEntry) -> "AuditLogResponse":
        return cls(
            id=entry.id,
            action=entry.action,
            entity=entry.entity,
            entity_id=entry.entity_id,
            previous_value=entry.previous_value,
            new_value=entry.new_value,
            performed_by=entry.performed_by,
            organization_id=entry.organization_id,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            timestamp=entry.timestamp,
        )


class AuditLogPageResponse(BaseModel):
    """Paginated audit query result."""
    data: List[AuditLogResponse]
    pagination: PaginationResponse

    @classmethod
    def from_page(cls, page: AuditPage) -> "AuditLogPageResponse":
        return cls(
            data=[AuditLogResponse.from_entry(e) for e in page.entries],
            pagination=PaginationResponse(
                total=page.total,
                page=page.page,
                limit=page.limit,
                total_pages=page.total_pages,
            ),
        )


class EntityAuditResponse(BaseModel):
    """Full history of a single entity."""
    count: int
    data: List[AuditLogResponse]
