"""
SLA Controllers (API Routes)
============================

FastAPI routes for SLA monitoring endpoints.

Controllers are thin - they delegate to application services.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.audit.application import AuditLedger
from src.config import Role
from src.infrastructure.database import get_session
from src.issues.application import IssueResponse
from src.issues.infrastructure import SQLAlchemyIssueRepository
from src.shared.infrastructure.logging import get_logger
from src.shared.infrastructure.notifications import INotificationPublisher, get_notification_publisher
from src.sla.application import BreachListResponse, ScanResultResponse, SLABreachScanner, SLAService
from src.tenancy.domain import Actor
from src.tenancy.interfaces.dependencies import get_audit_ledger, get_current_actor, require_roles
from src.workflow.infrastructure import SQLAlchemyWorkflowRepository

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Monitoring"])


# ========== Dependencies ==========

def get_sla_scanner(
    session: AsyncSession = Depends(get_session),
    ledger: AuditLedger = Depends(get_audit_ledger),
    publisher: INotificationPublisher = Depends(get_notification_publisher)
) -> SLABreachScanner:
    """Get SLA scanner instance."""
    return SLABreachScanner(
        SQLAlchemyIssueRepository(session),
        SQLAlchemyWorkflowRepository(session),
        ledger,
        publisher,
    )


def get_sla_service(session: AsyncSession = Depends(get_session)) -> SLAService:
    """Get SLA service instance."""
    return SLAService(SQLAlchemyIssueRepository(session))


# ========== Route Handlers ==========

@router.post(
    "/scan",
    response_model=ScanResultResponse,
    summary="Run an SLA scan now",
    description="""
    Admin only. Runs one scan immediately over the caller organization's
    issues; other organizations are left to the background scan.

    Safe to call while a background scan is in progress: flagging is
    conditional, so an issue is never flagged or audited twice.
    """
)
async def trigger_scan(
    actor: Actor = Depends(require_roles(Role.ADMIN)),
    scanner: SLABreachScanner = Depends(get_sla_scanner)
):
    logger.info("Manual SLA scan requested", extra={"user_id": actor.user_id, "tenant_id": actor.tenant_id})
    return ScanResultResponse.from_result(await scanner.scan(tenant_id=actor.tenant_id))


@router.get(
    "/breaches",
    response_model=BreachListResponse,
    summary="List breached issues",
    description="The caller organization's breached issues, most recent breach first."
)
async def list_breaches(
    actor: Actor = Depends(get_current_actor),
    service: SLAService = Depends(get_sla_service)
):
    issues = await service.list_breaches(actor)
    return BreachListResponse(count=len(issues), data=[IssueResponse.from_entity(i) for i in issues])


# Export router for inclusion in main app
sla_router = router
