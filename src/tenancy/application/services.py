"""
Tenancy Application Services
============================

Registration, login, caller resolution and user management.

Every inbound operation elsewhere in the system starts from the Actor
produced by TenancyService.authenticate().
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from src.audit.application import AuditLedger
from src.config import AuditAction, EntityType, Role, settings
from src.core import AuthenticationFailed, DuplicateEmail, DuplicateOrganizationName
from src.shared.infrastructure.logging import get_logger
from src.shared.infrastructure.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from src.tenancy.application.dto import RegisterRequest, UserCreateRequest
from src.tenancy.domain import Actor, Organization, User
from src.workflow.application import IWorkflowRepository
from src.workflow.domain import bootstrap_workflow

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password."


# ========== Repository Interfaces (Dependency Inversion) ==========

class IOrganizationRepository(ABC):
    """Interface for organization data access."""

    @abstractmethod
    async def get(self, organization_id: str) -> Optional[Organization]:
        """Get organization by id."""

    @abstractmethod
    async def exists_by_name_or_slug(self, name: str, slug: str) -> bool:
        """True if the name or its slug is already taken."""

    @abstractmethod
    async def create_with_admin(self, organization: Organization, admin: User) -> Tuple[Organization, User]:
        """Insert an organization and its first user in one transaction."""


class IUserRepository(ABC):
    """Interface for user data access."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]:
        """Get user by id."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by (normalized) email."""

    @abstractmethod
    async def list_by_organization(self, organization_id: str) -> List[User]:
        """All users of one organization."""

    @abstractmethod
    async def create(self, user: User) -> User:
        """Insert a user."""


# ========== Application Services ==========

class TenancyService:
    """
    Application service for the tenant registry.

    Duplicate checks run before any write; the unique constraints on
    email, name and slug back them up under concurrency.
    """

    def __init__(
        self,
        organizations: IOrganizationRepository,
        users: IUserRepository,
        workflows: IWorkflowRepository,
        ledger: AuditLedger
    ):
        self._organizations = organizations
        self._users = users
        self._workflows = workflows
        self._ledger = ledger

    @staticmethod
    def _actor_for(user: User, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> Actor:
        return Actor(
            user_id=user.id,
            name=user.name,
            role=user.role,
            tenant_id=user.organization_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    @staticmethod
    def _token_for(user: User) -> str:
        return create_access_token(user.id, user.role.value, user.organization_id)

    async def register(
        self,
        request: RegisterRequest,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Tuple[str, User, Organization]:
        """
        Create an organization, its Admin and the seeded default workflow.

        Returns:
            (access token, admin user, organization)

        Raises:
            DuplicateEmail, DuplicateOrganizationName
        """
        if await self._users.get_by_email(request.email):
            raise DuplicateEmail(request.email)

        organization = Organization.new(request.organization_name, request.industry, settings.sla_default_days)
        if not organization.slug or await self._organizations.exists_by_name_or_slug(
            organization.name, organization.slug
        ):
            raise DuplicateOrganizationName(organization.name)

        admin = User(
            id=None,
            organization_id="",
            name=request.name.strip(),
            email=request.email,
            password_hash=hash_password(request.password),
            role=Role.ADMIN,
        )
        organization, admin = await self._organizations.create_with_admin(organization, admin)

        workflow = await self._workflows.save(bootstrap_workflow(organization.id))
        organization.default_workflow_id = workflow.id

        logger.info(
            "Organization registered",
            extra={"organization_id": organization.id, "slug": organization.slug, "admin_id": admin.id}
        )

        await self._ledger.record(
            self._actor_for(admin, ip_address, user_agent),
            AuditAction.REGISTER, EntityType.USER, admin.id,
            new_value={"name": admin.name, "email": admin.email, "role": admin.role.value},
        )
        return self._token_for(admin), admin, organization

    async def login(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Tuple[str, User, Organization]:
        """
        Raises:
            AuthenticationFailed: Unknown email, wrong password, or inactive account
        """
        user = await self._users.get_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationFailed(INVALID_CREDENTIALS)

        organization = await self._organizations.get(user.organization_id)
        if not user.is_active or organization is None or not organization.is_active:
            raise AuthenticationFailed(INVALID_CREDENTIALS)

        await self._ledger.record(
            self._actor_for(user, ip_address, user_agent),
            AuditAction.LOGIN, EntityType.USER, user.id,
        )
        return self._token_for(user), user, organization

    async def authenticate(
        self,
        token: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Actor:
        """Resolve a bearer token into the calling Actor."""
        claims = decode_access_token(token)

        user = await self._users.get(claims["sub"])
        if user is None or not user.is_active or user.organization_id != claims["organization"]:
            raise AuthenticationFailed("Invalid or expired token.")

        organization = await self._organizations.get(user.organization_id)
        if organization is None or not organization.is_active:
            raise AuthenticationFailed("Organization is inactive.")

        return self._actor_for(user, ip_address, user_agent)

    async def get_me(self, actor: Actor) -> Tuple[User, Organization]:
        user = await self._users.get(actor.user_id)
        organization = await self._organizations.get(actor.tenant_id)
        if user is None or organization is None:
            raise AuthenticationFailed("Invalid or expired token.")
        return user, organization

    async def list_users(self, actor: Actor) -> List[User]:
        return await self._users.list_by_organization(actor.tenant_id)

    async def create_user(self, actor: Actor, request: UserCreateRequest) -> User:
        if await self._users.get_by_email(request.email):
            raise DuplicateEmail(request.email)

        user = await self._users.create(User(
            id=None,
            organization_id=actor.tenant_id,
            name=request.name.strip(),
            email=request.email,
            password_hash=hash_password(request.password),
            role=request.role,
        ))

        logger.info(
            "User created",
            extra={"user_id": user.id, "tenant_id": actor.tenant_id, "role": user.role.value}
        )

        await self._ledger.record(
            actor, AuditAction.CREATE, EntityType.USER, user.id,
            new_value={"name": user.name, "email": user.email, "role": user.role.value},
        )
        return user
