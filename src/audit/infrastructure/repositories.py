"""
Audit Infrastructure Repositories
=================================

SQLAlchemy implementation of the append-only audit repository.
"""

from typing import List, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.audit.application import IAuditLogRepository
from src.audit.domain import AuditLogEntry, AuditQuery
from src.audit.infrastructure.models import AuditLogModel
from src.config import AuditAction, EntityType
from src.core import RepositoryException
from src.infrastructure.database import parse_uuid


class SQLAlchemyAuditLogRepository(IAuditLogRepository):
    """
    Persists audit entries with async SQLAlchemy.

    Each add() commits on its own so an audit failure can be rolled back
    without touching the already-committed change it describes.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, entry: AuditLogEntry) -> AuditLogEntry:
        model = AuditLogModel(
            action=entry.action.value,
            entity=entry.entity.value,
            entity_id=str(entry.entity_id),
            previous_value=jsonable_encoder(entry.previous_value) if entry.previous_value is not None else None,
            new_value=jsonable_encoder(entry.new_value) if entry.new_value is not None else None,
            performed_by=parse_uuid(entry.performed_by),
            organization_id=parse_uuid(entry.organization_id),
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            timestamp=entry.timestamp,
        )

        try:
            self._session.add(model)
            await self._session.flush()
            stored = self._to_entity(model)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to store audit entry: {e}")

        # Detach so the committed row can never be flushed again from this session
        self._session.expunge(model)
        return stored

    async def find(
        self,
        query: AuditQuery,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[AuditLogEntry]:
        conditions = self._conditions(query)
        if conditions is None:
            return []

        stmt = (
            select(AuditLogModel)
            .where(and_(*conditions))
            .order_by(AuditLogModel.timestamp.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def count(self, query: AuditQuery) -> int:
        conditions = self._conditions(query)
        if conditions is None:
            return 0

        stmt = select(func.count()).select_from(AuditLogModel).where(and_(*conditions))
        result = await self._session.execute(stmt)
        return result.scalar_one()

    @staticmethod
    def _conditions(query: AuditQuery) -> Optional[list]:
        """Translate a query into WHERE clauses; None when it cannot match."""
        organization_id = parse_uuid(query.organization_id)
        if organization_id is None:
            return None

        conditions = [AuditLogModel.organization_id == organization_id]

        if query.entity is not None:
            conditions.append(AuditLogModel.entity == query.entity.value)
        if query.entity_id is not None:
            conditions.append(AuditLogModel.entity_id == str(query.entity_id))
        if query.action is not None:
            conditions.append(AuditLogModel.action == query.action.value)
        if query.performed_by is not None:
            performed_by = parse_uuid(query.performed_by)
            if performed_by is None:
                return None
            conditions.append(AuditLogModel.performed_by == performed_by)
        if query.start is not None:
            conditions.append(AuditLogModel.timestamp >= query.start)
        if query.end is not None:
            conditions.append(AuditLogModel.timestamp <= query.end)

        return conditions

    @staticmethod
    def _to_entity(model: AuditLogModel) -> AuditLogEntry:
        return AuditLogEntry(
            id=str(model.id),
            action=AuditAction(model.action),
            entity=EntityType(model.entity),
            entity_id=model.entity_id,
            previous_value=model.previous_value,
            new_value=model.new_value,
            performed_by=str(model.performed_by),
            organization_id=str(model.organization_id),
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            timestamp=model.timestamp,
        )
