"""
Audit Domain Entities
=====================

Immutable audit facts and the filter used to query them.

Snapshots (previous_value / new_value) are loosely typed documents: the
recorded fields differ per action, so they are kept as plain dicts and
stored verbatim.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.config import AuditAction, EntityType


@dataclass(frozen=True)
class AuditLogEntry:
    """One recorded state change. Never mutated once stored."""

    action: AuditAction
    entity: EntityType
    entity_id: str
    performed_by: str
    organization_id: str
    previous_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: Optional[datetime] = None
    id: Optional[str] = None


@dataclass
class AuditQuery:
    """Intersection of optional filters; organization_id is always set."""

    organization_id: str
    entity: Optional[EntityType] = None
    entity_id: Optional[str] = None
    action: Optional[AuditAction] = None
    performed_by: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass
class AuditPage:
    """One page of query results with server-computed totals."""

    entries: List[AuditLogEntry]
    total: int
    page: int
    limit: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        self.total_pages = math.ceil(self.total / self.limit) if self.limit else 0
