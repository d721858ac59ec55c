"""
Audit Controllers (API Routes)
==============================

Read-only routes over the audit ledger. There is no write, update or
delete route: entries are only ever produced by other modules.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.audit.application import AuditLedger, AuditLogPageResponse, AuditLogResponse, EntityAuditResponse
from src.audit.domain import AuditQuery
from src.config import AuditAction, EntityType, Role
from src.tenancy.domain import Actor
from src.tenancy.interfaces.dependencies import get_audit_ledger, get_current_actor, require_roles

router = APIRouter(prefix="/audit", tags=["Audit Log"])


@router.get(
    "",
    response_model=AuditLogPageResponse,
    summary="Query the audit log",
    description="""
    Paginated, newest-first audit entries of the caller's organization.

    Admin and Manager only. All filters are optional and combined with AND;
    `start` / `end` bound the entry timestamp inclusively.
    """
)
async def query_audit_log(
    entity: Optional[EntityType] = Query(None),
    entity_id: Optional[str] = Query(None),
    action: Optional[AuditAction] = Query(None),
    performed_by: Optional[str] = Query(None, description="User id"),
    start: Optional[datetime] = Query(None, alias="startDate"),
    end: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    actor: Actor = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    ledger: AuditLedger = Depends(get_audit_ledger)
):
    query = AuditQuery(
        organization_id=actor.tenant_id,
        entity=entity,
        entity_id=entity_id,
        action=action,
        performed_by=performed_by,
        start=start,
        end=end,
    )
    return AuditLogPageResponse.from_page(await ledger.query(query, page=page, limit=limit))


@router.get(
    "/entity/{entity}/{entity_id}",
    response_model=EntityAuditResponse,
    summary="History of one entity"
)
async def entity_history(
    entity: EntityType,
    entity_id: str,
    actor: Actor = Depends(get_current_actor),
    ledger: AuditLedger = Depends(get_audit_ledger)
):
    entries = await ledger.query_for_entity(actor.tenant_id, entity, entity_id)
    return EntityAuditResponse(
        count=len(entries),
        data=[AuditLogResponse.from_entry(e) for e in entries],
    )


# Export router for inclusion in main app
audit_router = router
