"""
Workflow Controllers (API Routes)
=================================

FastAPI routes for managing a tenant's workflow definitions.

Reads are open to every role; writes require Admin.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.audit.application import AuditLedger
from src.config import Role
from src.infrastructure.database import get_session
from src.shared.api.schemas import MessageResponse
from src.tenancy.domain import Actor
from src.tenancy.interfaces.dependencies import get_audit_ledger, get_current_actor, require_roles
from src.workflow.application import (
    WorkflowCreateRequest,
    WorkflowListResponse,
    WorkflowResponse,
    WorkflowService,
    WorkflowUpdateRequest,
)
from src.workflow.infrastructure import SQLAlchemyWorkflowRepository

router = APIRouter(prefix="/workflows", tags=["Workflows"])


# ========== Dependencies ==========

def get_workflow_service(
    session: AsyncSession = Depends(get_session),
    ledger: AuditLedger = Depends(get_audit_ledger)
) -> WorkflowService:
    """Get workflow service instance."""
    return WorkflowService(SQLAlchemyWorkflowRepository(session), ledger)


# ========== Route Handlers ==========

@router.get("", response_model=WorkflowListResponse, summary="List workflows")
async def list_workflows(
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service)
):
    workflows = await service.list_workflows(actor)
    return WorkflowListResponse(
        count=len(workflows),
        data=[WorkflowResponse.from_entity(w) for w in workflows],
    )


@router.get("/{workflow_id}", response_model=WorkflowResponse, summary="Get a workflow")
async def get_workflow(
    workflow_id: str,
    actor: Actor = Depends(get_current_actor),
    service: WorkflowService = Depends(get_workflow_service)
):
    return WorkflowResponse.from_entity(await service.get_workflow(actor, workflow_id))


@router.post(
    "",
    response_model=WorkflowResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workflow",
    description="""
    Define a new workflow for the caller's organization.

    The definition is validated as a whole: states non-empty and unique,
    initial and final states declared, every transition between declared
    states. Setting `is_default` makes it the active workflow and clears
    the previous default in the same transaction.

    **Example Request**:
    ```json
    {
        "name": "CAPA Workflow",
        "states": ["Open", "Investigating", "Closed"],
        "initial_state": "Open",
        "final_states": ["Closed"],
        "transitions": [
            {"from": "Open", "to": "Investigating", "allowed_roles": ["Admin", "Manager"]},
            {"from": "Investigating", "to": "Closed", "allowed_roles": ["Admin"]}
        ],
        "is_default": true
    }
    ```
    """
)
async def create_workflow(
    body: WorkflowCreateRequest,
    actor: Actor = Depends(require_roles(Role.ADMIN)),
    service: WorkflowService = Depends(get_workflow_service)
):
    return WorkflowResponse.from_entity(await service.create_workflow(actor, body))


@router.put("/{workflow_id}", response_model=WorkflowResponse, summary="Update a workflow")
async def update_workflow(
    workflow_id: str,
    body: WorkflowUpdateRequest,
    actor: Actor = Depends(require_roles(Role.ADMIN)),
    service: WorkflowService = Depends(get_workflow_service)
):
    return WorkflowResponse.from_entity(await service.update_workflow(actor, workflow_id, body))


@router.delete(
    "/{workflow_id}",
    response_model=MessageResponse,
    summary="Delete a workflow",
    description="The tenant's default workflow cannot be deleted."
)
async def delete_workflow(
    workflow_id: str,
    actor: Actor = Depends(require_roles(Role.ADMIN)),
    service: WorkflowService = Depends(get_workflow_service)
):
    await service.delete_workflow(actor, workflow_id)
    return MessageResponse(message="Workflow deleted")


# Export router for inclusion in main app
workflow_router = router
