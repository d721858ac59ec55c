"""
Issue Controllers (API Routes)
==============================

FastAPI routes for the issue store and its AI root-cause summaries.

Controllers are thin - they delegate to IssueService.
"""

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.audit.application import AuditLedger
from src.config import IssueCategory, IssuePriority, Role
from src.infrastructure.database import get_session
from src.infrastructure.llm import create_llm_client
from src.issues.application import (
    AISummaryResponse,
    AttachmentRequest,
    IssueCreateRequest,
    IssueListResponse,
    IssueResponse,
    IssueService,
    IssueUpdateRequest,
    ISummaryGenerator,
    SummaryGeneratedResponse,
    SummaryListResponse,
    TransitionRequest,
)
from src.issues.domain import IssueFilter
from src.issues.infrastructure import LLMSummaryGenerator, SQLAlchemyIssueRepository
from src.shared.api.schemas import MessageResponse, PaginationResponse
from src.shared.infrastructure.notifications import INotificationPublisher, get_notification_publisher
from src.tenancy.domain import Actor
from src.tenancy.infrastructure import SQLAlchemyUserRepository
from src.tenancy.interfaces.dependencies import get_audit_ledger, get_current_actor, require_roles
from src.workflow.application import WorkflowEngine
from src.workflow.infrastructure import SQLAlchemyWorkflowRepository

router = APIRouter(prefix="/issues", tags=["Issues"])
ai_router = APIRouter(prefix="/ai", tags=["AI Summaries"])


# ========== Example payloads for Swagger ==========

ISSUE_CREATE_EXAMPLE = {
    "title": "Temperature excursion in cold storage room B",
    "description": "Logger recorded 9.4C for 45 minutes during the night shift.",
    "category": "Quality",
    "priority": "High",
    "due_date": "2026-11-01T00:00:00Z",
}


# ========== Dependencies ==========

@lru_cache()
def get_summary_generator() -> ISummaryGenerator:
    """Process-wide summary generator (Groq when configured, else fallback)."""
    return LLMSummaryGenerator(create_llm_client())


def get_issue_service(
    session: AsyncSession = Depends(get_session),
    ledger: AuditLedger = Depends(get_audit_ledger),
    publisher: INotificationPublisher = Depends(get_notification_publisher),
    summary_generator: ISummaryGenerator = Depends(get_summary_generator)
) -> IssueService:
    """Get issue service instance."""
    return IssueService(
        SQLAlchemyIssueRepository(session),
        SQLAlchemyUserRepository(session),
        WorkflowEngine(SQLAlchemyWorkflowRepository(session)),
        ledger,
        publisher,
        summary_generator,
    )


# ========== Issue routes ==========

@router.post(
    "",
    response_model=IssueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an issue",
    description="""
    Create a compliance issue in the caller's organization.

    The status is never taken from the request: it is the initial state of
    the organization's active workflow (or `Draft` when none is active).
    """,
    responses={201: {"content": {"application/json": {"example": ISSUE_CREATE_EXAMPLE}}}}
)
async def create_issue(
    body: IssueCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(get_issue_service)
):
    return IssueResponse.from_entity(await service.create_issue(actor, body))


@router.get(
    "",
    response_model=IssueListResponse,
    summary="List issues",
    description="Newest first. All filters are optional equality matches."
)
async def list_issues(
    status_filter: Optional[str] = Query(None, alias="status"),
    category: Optional[IssueCategory] = Query(None),
    priority: Optional[IssuePriority] = Query(None),
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    sla_breached: Optional[bool] = Query(None, alias="slaBreached"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(get_issue_service)
):
    filters = IssueFilter(
        status=status_filter,
        category=category,
        priority=priority,
        assigned_to=assigned_to,
        sla_breached=sla_breached,
    )
    issues, total = await service.list_issues(actor, filters, page=page, limit=limit)
    return IssueListResponse(
        data=[IssueResponse.from_entity(i) for i in issues],
        pagination=PaginationResponse.build(total, page, limit),
    )


@router.get("/{issue_id}", response_model=IssueResponse, summary="Get an issue")
async def get_issue(
    issue_id: str,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(get_issue_service)
):
    return IssueResponse.from_entity(await service.get_issue(actor, issue_id))


@router.put(
    "/{issue_id}",
    response_model=IssueResponse,
    summary="Edit issue fields",
    description="Updates title, description, category, priority, assignee and due date. "
                "Status is ignored here; use the transition route."
)
async def update_issue(
    issue_id: str,
    body: IssueUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(get_issue_service)
):
    return IssueResponse.from_entity(await service.update_fields(actor, issue_id, body))


@router.patch(
    "/{issue_id}/transition",
    response_model=IssueResponse,
    summary="Transition an issue",
    description="""
    Move the issue to `new_status` under the organization's active workflow.

    - 400 `ILLEGAL_TRANSITION`: the workflow declares no such edge
    - 403 `ROLE_NOT_AUTHORIZED`: the edge exists but excludes the caller's role
    - 409 `CONCURRENT_MODIFICATION`: another transition landed first
    """
)
async def transition_issue(
    issue_id: str,
    body: TransitionRequest,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(get_issue_service)
):
    return IssueResponse.from_entity(await service.transition(actor, issue_id, body.new_status))


@router.delete(
    "/{issue_id}",
    response_model=MessageResponse,
    summary="Delete an issue",
    description="Admin and Manager only."
)
async def delete_issue(
    issue_id: str,
    actor: Actor = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    service: IssueService = Depends(get_issue_service)
):
    await service.delete_issue(actor, issue_id)
    return MessageResponse(message="Issue deleted")


@router.post(
    "/{issue_id}/attachments",
    response_model=IssueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a file reference"
)
async def add_attachment(
    issue_id: str,
    body: AttachmentRequest,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(get_issue_service)
):
    return IssueResponse.from_entity(await service.add_attachment(actor, issue_id, body.filename, body.url))


# ========== AI summary routes ==========

@ai_router.post(
    "/summarize/{issue_id}",
    response_model=SummaryGeneratedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a root-cause summary",
    description="""
    Generate a new summary version for the issue.

    Uses the Groq model when configured; on error, timeout or missing key a
    deterministic summary is stored with model `groq-mock-engine`.
    """
)
async def generate_summary(
    issue_id: str,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(get_issue_service)
):
    summary, total = await service.generate_summary(actor, issue_id)
    return SummaryGeneratedResponse(
        issue_id=issue_id,
        summary=AISummaryResponse.from_entity(summary),
        total_versions=total,
    )


@ai_router.get(
    "/summaries/{issue_id}",
    response_model=SummaryListResponse,
    summary="List summary versions",
    description="Newest version first."
)
async def list_summaries(
    issue_id: str,
    actor: Actor = Depends(get_current_actor),
    service: IssueService = Depends(get_issue_service)
):
    issue, summaries = await service.list_summaries(actor, issue_id)
    return SummaryListResponse(
        issue_id=issue.id,
        issue_title=issue.title,
        summaries=[AISummaryResponse.from_entity(s) for s in summaries],
    )


# Export routers for inclusion in main app
issue_router = router
summary_router = ai_router
