"""
Tenancy Infrastructure Repositories
===================================

SQLAlchemy implementations of the organization and user repositories.
"""

from typing import List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Industry, Role
from src.core import DuplicateEmail, DuplicateOrganizationName, RepositoryException
from src.infrastructure.database import parse_uuid
from src.tenancy.application import IOrganizationRepository, IUserRepository
from src.tenancy.domain import Organization, User
from src.tenancy.infrastructure.models import OrganizationModel, UserModel


class SQLAlchemyOrganizationRepository(IOrganizationRepository):
    """SQLAlchemy implementation of organization repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, organization_id: str) -> Optional[Organization]:
        org_uuid = parse_uuid(organization_id)
        if org_uuid is None:
            return None

        stmt = (
            select(OrganizationModel)
            .where(OrganizationModel.id == org_uuid)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def exists_by_name_or_slug(self, name: str, slug: str) -> bool:
        stmt = select(OrganizationModel.id).where(
            or_(OrganizationModel.name == name, OrganizationModel.slug == slug)
        )
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def create_with_admin(self, organization: Organization, admin: User) -> Tuple[Organization, User]:
        org_model = OrganizationModel(
            name=organization.name,
            slug=organization.slug,
            industry=organization.industry.value,
            is_active=organization.is_active,
            sla_default_days=organization.sla_default_days,
        )
        try:
            self._session.add(org_model)
            await self._session.flush()

            user_model = UserModel(
                organization_id=org_model.id,
                name=admin.name,
                email=admin.email,
                password_hash=admin.password_hash,
                role=admin.role.value,
                is_active=admin.is_active,
            )
            self._session.add(user_model)
            await self._session.flush()
            await self._session.commit()
        except IntegrityError:
            await self._session.rollback()
            # Lost a race with a concurrent registration; report which key collided
            taken = await self._session.execute(select(UserModel.id).where(UserModel.email == admin.email))
            if taken.first() is not None:
                raise DuplicateEmail(admin.email)
            raise DuplicateOrganizationName(organization.name)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to register organization: {e}")

        return self._to_entity(org_model), SQLAlchemyUserRepository._to_entity(user_model)

    @staticmethod
    def _to_entity(model: OrganizationModel) -> Organization:
        return Organization(
            id=str(model.id),
            name=model.name,
            slug=model.slug,
            industry=Industry(model.industry),
            is_active=model.is_active,
            default_workflow_id=str(model.default_workflow_id) if model.default_workflow_id else None,
            sla_default_days=model.sla_default_days,
            created_at=model.created_at,
        )


class SQLAlchemyUserRepository(IUserRepository):
    """SQLAlchemy implementation of user repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, user_id: str) -> Optional[User]:
        user_uuid = parse_uuid(user_id)
        if user_uuid is None:
            return None

        result = await self._session.execute(select(UserModel).where(UserModel.id == user_uuid))
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self._session.execute(select(UserModel).where(UserModel.email == email))
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_by_organization(self, organization_id: str) -> List[User]:
        org_uuid = parse_uuid(organization_id)
        if org_uuid is None:
            return []

        stmt = (
            select(UserModel)
            .where(UserModel.organization_id == org_uuid)
            .order_by(UserModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def create(self, user: User) -> User:
        model = UserModel(
            organization_id=parse_uuid(user.organization_id),
            name=user.name,
            email=user.email,
            password_hash=user.password_hash,
            role=user.role.value,
            is_active=user.is_active,
        )
        try:
            self._session.add(model)
            await self._session.commit()
        except IntegrityError:
            await self._session.rollback()
            raise DuplicateEmail(user.email)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to create user: {e}")

        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=str(model.id),
            organization_id=str(model.organization_id),
            name=model.name,
            email=model.email,
            password_hash=model.password_hash,
            role=Role(model.role),
            is_active=model.is_active,
            created_at=model.created_at,
        )
