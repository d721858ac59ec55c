"""
Authentication Dependencies
===========================

FastAPI dependencies that turn a bearer token into an Actor and gate
endpoints by role. Every tenant-scoped route depends on get_current_actor.
"""

from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.audit.application import AuditLedger
from src.audit.infrastructure import SQLAlchemyAuditLogRepository
from src.config import Role
from src.core import AuthenticationFailed, PermissionDenied
from src.infrastructure.database import get_session
from src.tenancy.application import TenancyService
from src.tenancy.domain import Actor
from src.tenancy.infrastructure import SQLAlchemyOrganizationRepository, SQLAlchemyUserRepository
from src.workflow.infrastructure import SQLAlchemyWorkflowRepository

bearer_scheme = HTTPBearer(auto_error=False)


def get_audit_ledger(session: AsyncSession = Depends(get_session)) -> AuditLedger:
    return AuditLedger(SQLAlchemyAuditLogRepository(session))


def get_tenancy_service(
    session: AsyncSession = Depends(get_session),
    ledger: AuditLedger = Depends(get_audit_ledger)
) -> TenancyService:
    """Get tenancy service instance."""
    return TenancyService(
        SQLAlchemyOrganizationRepository(session),
        SQLAlchemyUserRepository(session),
        SQLAlchemyWorkflowRepository(session),
        ledger,
    )


def client_info(request: Request) -> tuple:
    """(ip_address, user_agent) of the caller, for audit attribution."""
    ip_address = request.client.host if request.client else None
    return ip_address, request.headers.get("user-agent")


async def get_current_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tenancy: TenancyService = Depends(get_tenancy_service)
) -> Actor:
    """
    Resolve the Authorization header into the calling Actor.

    Raises:
        AuthenticationFailed: Missing, invalid or expired token, or the user
            or organization is no longer active
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationFailed("Not authorized, no token.")

    ip_address, user_agent = client_info(request)
    actor = await tenancy.authenticate(credentials.credentials, ip_address, user_agent)
    request.state.actor = actor
    return actor


def require_roles(*roles: Role) -> Callable:
    """Dependency factory: allow only callers holding one of roles."""

    async def checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.has_role(*roles):
            raise PermissionDenied(
                f"Role '{actor.role.value}' is not permitted to perform this action.",
                {"role": actor.role.value, "allowed_roles": [r.value for r in roles]}
            )
        return actor

    return checker
