"""
Workflow Infrastructure Repositories
====================================

SQLAlchemy implementation of the workflow repository.
"""

from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core import ConcurrentModification, RepositoryException, ResourceNotFoundException
from src.infrastructure.database import parse_uuid
from src.shared.infrastructure.logging import get_logger
from src.tenancy.infrastructure.models import OrganizationModel
from src.workflow.application import IWorkflowRepository
from src.workflow.domain import Transition, Workflow
from src.workflow.infrastructure.models import WorkflowModel

logger = get_logger(__name__)


class SQLAlchemyWorkflowRepository(IWorkflowRepository):
    """
    SQLAlchemy implementation of workflow repository.

    Writes commit before returning. Default switching (clear the previous
    default, set the new one, move the organization pointer) is a single
    transaction.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, tenant_id: str, workflow_id: str) -> Optional[Workflow]:
        model = await self._get_model(tenant_id, workflow_id)
        return self._to_entity(model) if model else None

    async def get_active_default(self, tenant_id: str) -> Optional[Workflow]:
        org_uuid = parse_uuid(tenant_id)
        if org_uuid is None:
            return None

        stmt = select(WorkflowModel).where(
            WorkflowModel.organization_id == org_uuid,
            WorkflowModel.is_default.is_(True),
            WorkflowModel.is_active.is_(True),
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return self._to_entity(model) if model else None

    async def list(self, tenant_id: str) -> List[Workflow]:
        org_uuid = parse_uuid(tenant_id)
        if org_uuid is None:
            return []

        stmt = (
            select(WorkflowModel)
            .where(WorkflowModel.organization_id == org_uuid)
            .order_by(WorkflowModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def save(self, workflow: Workflow) -> Workflow:
        org_uuid = parse_uuid(workflow.organization_id)
        if org_uuid is None:
            raise RepositoryException("Workflow has no valid organization id")

        try:
            model = None
            was_default = False
            if workflow.id is not None:
                model = await self._get_model(workflow.organization_id, workflow.id)
                if model is None:
                    raise ResourceNotFoundException("Workflow", workflow.id)
                was_default = model.is_default

            if workflow.is_default:
                clear = update(WorkflowModel).where(
                    WorkflowModel.organization_id == org_uuid,
                    WorkflowModel.is_default.is_(True),
                )
                if model is not None:
                    clear = clear.where(WorkflowModel.id != model.id)
                await self._session.execute(clear.values(is_default=False))

            if model is None:
                model = WorkflowModel(organization_id=org_uuid)
                self._session.add(model)

            model.name = workflow.name
            model.states = list(workflow.states)
            model.initial_state = workflow.initial_state
            model.final_states = list(workflow.final_states)
            model.transitions = [t.to_dict() for t in workflow.transitions]
            model.is_default = workflow.is_default
            model.is_active = workflow.is_active

            await self._session.flush()

            if workflow.is_default:
                await self._session.execute(
                    update(OrganizationModel)
                    .where(OrganizationModel.id == org_uuid)
                    .values(default_workflow_id=model.id)
                )
            elif was_default:
                await self._session.execute(
                    update(OrganizationModel)
                    .where(
                        OrganizationModel.id == org_uuid,
                        OrganizationModel.default_workflow_id == model.id,
                    )
                    .values(default_workflow_id=None)
                )

            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            logger.warning(
                "Default workflow switch lost a race",
                extra={"tenant_id": workflow.organization_id, "error": str(e)}
            )
            raise ConcurrentModification(
                "Another default workflow was set concurrently; retry the request.",
                {"organization_id": workflow.organization_id}
            )
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to save workflow: {e}")

        await self._session.refresh(model)
        return self._to_entity(model)

    async def delete(self, tenant_id: str, workflow_id: str) -> bool:
        org_uuid = parse_uuid(tenant_id)
        wf_uuid = parse_uuid(workflow_id)
        if org_uuid is None or wf_uuid is None:
            return False

        try:
            result = await self._session.execute(
                delete(WorkflowModel).where(
                    WorkflowModel.id == wf_uuid,
                    WorkflowModel.organization_id == org_uuid,
                    WorkflowModel.is_default.is_(False),
                )
            )
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to delete workflow: {e}")

        return result.rowcount > 0

    async def _get_model(self, tenant_id: str, workflow_id: str) -> Optional[WorkflowModel]:
        org_uuid = parse_uuid(tenant_id)
        wf_uuid = parse_uuid(workflow_id)
        if org_uuid is None or wf_uuid is None:
            return None

        stmt = (
            select(WorkflowModel)
            .where(WorkflowModel.id == wf_uuid, WorkflowModel.organization_id == org_uuid)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _to_entity(model: WorkflowModel) -> Workflow:
        return Workflow(
            id=str(model.id),
            organization_id=str(model.organization_id),
            name=model.name,
            states=list(model.states or []),
            initial_state=model.initial_state,
            final_states=list(model.final_states or []),
            transitions=[Transition.from_dict(t) for t in model.transitions or []],
            is_default=model.is_default,
            is_active=model.is_active,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
