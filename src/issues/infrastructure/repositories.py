"""
Issue Infrastructure Repositories
=================================

SQLAlchemy implementation of the issue repository.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import and_, func, literal, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import IssueCategory, IssuePriority
from src.core import ConcurrentModification, RepositoryException
from src.infrastructure.database import UTCDateTime, parse_uuid, utcnow
from src.issues.application import IIssueRepository
from src.issues.domain import AISummary, Attachment, Issue, IssueFilter
from src.issues.infrastructure.models import AISummaryModel, AttachmentModel, IssueModel
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Attempts at claiming the next summary version before giving up
SUMMARY_VERSION_RETRIES = 3


class SQLAlchemyIssueRepository(IIssueRepository):
    """
    SQLAlchemy implementation of issue repository.

    Every write commits before returning and results are re-read from the
    database, so callers never see stale identity-map state.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, tenant_id: str, issue_id: str) -> Optional[Issue]:
        model = await self._get_model(tenant_id, issue_id)
        return self._to_entity(model) if model else None

    async def list(
        self,
        tenant_id: str,
        filters: IssueFilter,
        offset: int = 0,
        limit: int = 20
    ) -> List[Issue]:
        conditions = self._conditions(tenant_id, filters)
        if conditions is None:
            return []

        stmt = (
            select(IssueModel)
            .where(and_(*conditions))
            .order_by(IssueModel.created_at.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def count(self, tenant_id: str, filters: IssueFilter) -> int:
        conditions = self._conditions(tenant_id, filters)
        if conditions is None:
            return 0

        stmt = select(func.count()).select_from(IssueModel).where(and_(*conditions))
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def create(self, issue: Issue) -> Issue:
        org_uuid = parse_uuid(issue.organization_id)
        if org_uuid is None:
            raise RepositoryException("Issue has no valid organization id")

        model = IssueModel(
            organization_id=org_uuid,
            title=issue.title,
            description=issue.description,
            category=issue.category.value,
            priority=issue.priority.value,
            status=issue.status,
            created_by=parse_uuid(issue.created_by),
            assigned_to=parse_uuid(issue.assigned_to),
            due_date=issue.due_date,
            sla_breached=False,
        )

        try:
            self._session.add(model)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to create issue: {e}")

        return await self.get(issue.organization_id, str(model.id))

    async def update_fields(self, tenant_id: str, issue_id: str, changes: Dict[str, Any]) -> Optional[Issue]:
        model = await self._get_model(tenant_id, issue_id)
        if model is None:
            return None

        for name, value in changes.items():
            setattr(model, name, self._to_column_value(name, value))

        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to update issue: {e}")

        return await self.get(tenant_id, issue_id)

    async def transition_status(
        self,
        tenant_id: str,
        issue_id: str,
        expected_status: str,
        new_status: str,
        resolved_at: Optional[datetime] = None
    ) -> Optional[Issue]:
        org_uuid = parse_uuid(tenant_id)
        issue_uuid = parse_uuid(issue_id)
        if org_uuid is None or issue_uuid is None:
            return None

        values: Dict[str, Any] = {"status": new_status, "updated_at": utcnow()}
        if resolved_at is not None:
            # First resolution wins; re-entering a final state keeps it
            values["resolved_at"] = func.coalesce(
                IssueModel.resolved_at, literal(resolved_at, type_=UTCDateTime())
            )

        stmt = (
            update(IssueModel)
            .where(
                IssueModel.id == issue_uuid,
                IssueModel.organization_id == org_uuid,
                IssueModel.status == expected_status,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self._session.execute(stmt)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to transition issue: {e}")

        if result.rowcount == 0:
            return None
        return await self.get(tenant_id, issue_id)

    async def delete(self, tenant_id: str, issue_id: str) -> bool:
        model = await self._get_model(tenant_id, issue_id)
        if model is None:
            return False

        try:
            await self._session.delete(model)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to delete issue: {e}")

        return True

    async def append_summary(
        self,
        tenant_id: str,
        issue_id: str,
        summary: str,
        model: str,
        generated_at: datetime
    ) -> Optional[AISummary]:
        issue_model = await self._get_model(tenant_id, issue_id)
        if issue_model is None:
            return None
        issue_uuid = issue_model.id

        for attempt in range(1, SUMMARY_VERSION_RETRIES + 1):
            next_version = select(
                func.coalesce(func.max(AISummaryModel.version), 0) + 1
            ).where(AISummaryModel.issue_id == issue_uuid)
            version = (await self._session.execute(next_version)).scalar_one()

            row = AISummaryModel(
                issue_id=issue_uuid,
                version=version,
                summary=summary,
                model=model,
                generated_at=generated_at,
            )
            try:
                self._session.add(row)
                await self._session.commit()
            except IntegrityError:
                await self._session.rollback()
                logger.warning(
                    "Summary version already taken, retrying",
                    extra={"issue_id": issue_id, "version": version, "attempt": attempt}
                )
                continue
            except SQLAlchemyError as e:
                await self._session.rollback()
                raise RepositoryException(f"Failed to store AI summary: {e}")

            return AISummary(
                version=row.version,
                summary=row.summary,
                model=row.model,
                generated_at=row.generated_at,
            )

        raise ConcurrentModification(
            "Could not allocate a summary version; retry the request.",
            {"issue_id": issue_id}
        )

    async def add_attachment(self, tenant_id: str, issue_id: str, attachment: Attachment) -> Optional[Issue]:
        model = await self._get_model(tenant_id, issue_id)
        if model is None:
            return None

        try:
            self._session.add(AttachmentModel(
                issue_id=model.id,
                filename=attachment.filename,
                url=attachment.url,
                uploaded_at=attachment.uploaded_at,
            ))
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to add attachment: {e}")

        return await self.get(tenant_id, issue_id)

    # ========== SLA queries (cross-tenant unless tenant_id is given) ==========

    async def find_sla_candidates(self, now: datetime, tenant_id: Optional[str] = None) -> List[Issue]:
        conditions = [IssueModel.due_date < now, IssueModel.sla_breached.is_(False)]
        if tenant_id is not None:
            org_uuid = parse_uuid(tenant_id)
            if org_uuid is None:
                return []
            conditions.append(IssueModel.organization_id == org_uuid)

        stmt = (
            select(IssueModel)
            .where(*conditions)
            .order_by(IssueModel.due_date.asc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def mark_sla_breached(
        self,
        issue_id: str,
        breached_at: datetime,
        final_states: Sequence[str] = ()
    ) -> bool:
        issue_uuid = parse_uuid(issue_id)
        if issue_uuid is None:
            return False

        conditions = [IssueModel.id == issue_uuid, IssueModel.sla_breached.is_(False)]
        if final_states:
            # The issue may have been resolved since the candidate query
            conditions.append(IssueModel.status.notin_(list(final_states)))

        stmt = (
            update(IssueModel)
            .where(*conditions)
            .values(sla_breached=True, sla_breached_at=breached_at, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self._session.execute(stmt)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to flag SLA breach: {e}")

        return result.rowcount > 0

    async def list_breached(self, tenant_id: str) -> List[Issue]:
        org_uuid = parse_uuid(tenant_id)
        if org_uuid is None:
            return []

        stmt = (
            select(IssueModel)
            .where(
                IssueModel.organization_id == org_uuid,
                IssueModel.sla_breached.is_(True),
            )
            .order_by(IssueModel.sla_breached_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    # ========== Helpers ==========

    async def _get_model(self, tenant_id: str, issue_id: str) -> Optional[IssueModel]:
        org_uuid = parse_uuid(tenant_id)
        issue_uuid = parse_uuid(issue_id)
        if org_uuid is None or issue_uuid is None:
            return None

        stmt = (
            select(IssueModel)
            .where(IssueModel.id == issue_uuid, IssueModel.organization_id == org_uuid)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _conditions(tenant_id: str, filters: IssueFilter) -> Optional[list]:
        org_uuid = parse_uuid(tenant_id)
        if org_uuid is None:
            return None

        conditions = [IssueModel.organization_id == org_uuid]

        if filters.status is not None:
            conditions.append(IssueModel.status == filters.status)
        if filters.category is not None:
            conditions.append(IssueModel.category == filters.category.value)
        if filters.priority is not None:
            conditions.append(IssueModel.priority == filters.priority.value)
        if filters.assigned_to is not None:
            assignee = parse_uuid(filters.assigned_to)
            if assignee is None:
                return None
            conditions.append(IssueModel.assigned_to == assignee)
        if filters.sla_breached is not None:
            conditions.append(IssueModel.sla_breached.is_(filters.sla_breached))

        return conditions

    @staticmethod
    def _to_column_value(name: str, value: Any) -> Any:
        if name == "assigned_to":
            return parse_uuid(value)
        if isinstance(value, (IssueCategory, IssuePriority)):
            return value.value
        return value

    @staticmethod
    def _to_entity(model: IssueModel) -> Issue:
        return Issue(
            id=str(model.id),
            organization_id=str(model.organization_id),
            title=model.title,
            description=model.description,
            category=IssueCategory(model.category),
            priority=IssuePriority(model.priority),
            status=model.status,
            created_by=str(model.created_by),
            assigned_to=str(model.assigned_to) if model.assigned_to else None,
            due_date=model.due_date,
            sla_breached=model.sla_breached,
            sla_breached_at=model.sla_breached_at,
            resolved_at=model.resolved_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
            ai_summaries=[
                AISummary(
                    version=s.version,
                    summary=s.summary,
                    model=s.model,
                    generated_at=s.generated_at,
                )
                for s in model.ai_summaries
            ],
            attachments=[
                Attachment(filename=a.filename, url=a.url, uploaded_at=a.uploaded_at)
                for a in model.attachments
            ],
        )
