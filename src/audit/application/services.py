"""
Audit Application Services
==========================

The ledger is the only way the rest of the system touches audit entries.

The repository interface exposes add/find/count and nothing else: there is
no method to update or delete an entry, so no caller can ask for one.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, List, Optional

from src.audit.domain import AuditLogEntry, AuditPage, AuditQuery
from src.config import AuditAction, EntityType
from src.infrastructure.database import utcnow
from src.shared.infrastructure.logging import get_logger
from src.tenancy.domain import Actor

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IAuditLogRepository(ABC):
    """Append-only access to stored audit entries."""

    @abstractmethod
    async def add(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Persist a new entry and return it with its id."""

    @abstractmethod
    async def find(
        self,
        query: AuditQuery,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[AuditLogEntry]:
        """Entries matching the query, newest first."""

    @abstractmethod
    async def count(self, query: AuditQuery) -> int:
        """Number of entries matching the query."""


# ========== Application Services ==========

class AuditLedger:
    """
    Fire-and-forget audit writer plus tenant-scoped queries.

    append() is called after the audited change has already been committed.
    It logs and swallows its own failures so the business outcome never
    depends on audit durability. A crash between the two writes leaves the
    change unaudited.
    """

    def __init__(self, repository: IAuditLogRepository):
        self._repo = repository

    async def append(self, entry: AuditLogEntry) -> Optional[AuditLogEntry]:
        """
        Store an entry, assigning a server timestamp if none was preset.

        Returns:
            The stored entry, or None if the write failed (already logged)
        """
        if entry.timestamp is None:
            entry = replace(entry, timestamp=utcnow())

        try:
            return await self._repo.add(entry)
        except Exception as e:
            logger.error(
                "Failed to append audit entry",
                extra={
                    "action": entry.action.value,
                    "entity": entry.entity.value,
                    "entity_id": entry.entity_id,
                    "organization_id": entry.organization_id,
                    "error": str(e),
                }
            )
            return None

    async def record(
        self,
        actor: Actor,
        action: AuditAction,
        entity: EntityType,
        entity_id: str,
        previous_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLogEntry]:
        """Append an entry attributed to an authenticated caller."""
        return await self.append(AuditLogEntry(
            action=action,
            entity=entity,
            entity_id=entity_id,
            performed_by=actor.user_id,
            organization_id=actor.tenant_id,
            previous_value=previous_value,
            new_value=new_value,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
        ))

    async def query(self, query: AuditQuery, page: int = 1, limit: int = 50) -> AuditPage:
        page = max(page, 1)
        limit = max(limit, 1)
        entries = await self._repo.find(query, offset=(page - 1) * limit, limit=limit)
        total = await self._repo.count(query)
        return AuditPage(entries=entries, total=total, page=page, limit=limit)

    async def query_for_entity(
        self,
        tenant_id: str,
        entity: EntityType,
        entity_id: str
    ) -> List[AuditLogEntry]:
        """Every entry for one entity, newest first, unpaginated."""
        return await self._repo.find(
            AuditQuery(organization_id=tenant_id, entity=entity, entity_id=entity_id)
        )
