"""
Issue Application DTOs
======================

Pydantic models for issue API requests and responses.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from src.config import IssueCategory, IssuePriority
from src.issues.domain import AISummary, Attachment, Issue
from src.shared.api.schemas import PaginationResponse


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ========== Request DTOs ==========

class IssueCreateRequest(BaseModel):
    """Request model for creating an issue. Status is never client-supplied."""
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    category: IssueCategory
    priority: IssuePriority = IssuePriority.MEDIUM
    assigned_to: Optional[str] = Field(None, description="User id of the assignee")
    due_date: datetime = Field(..., description="SLA deadline")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, v: datetime) -> datetime:
        return _as_utc(v)


class IssueUpdateRequest(BaseModel):
    """Partial update of the editable fields."""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[IssueCategory] = None
    priority: Optional[IssuePriority] = None
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class TransitionRequest(BaseModel):
    """Request model for a workflow transition."""
    new_status: str = Field(..., min_length=1, description="Target workflow state")


class AttachmentRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=500)
    url: str = Field(..., min_length=1, max_length=2000)


# ========== Response DTOs ==========

class AISummaryResponse(BaseModel):
    version: int
    summary: str
    model: str
    generated_at: datetime

    @classmethod
    def from_entity(cls, summary: AISummary) -> "AISummaryResponse":
        return cls(
            version=summary.version,
            summary=summary.summary,
            model=summary.model,
            generated_at=summary.generated_at,
        )


class AttachmentResponse(BaseModel):
    filename: str
    url: str
    uploaded_at: datetime

    @classmethod
    def from_entity(cls, attachment: Attachment) -> "AttachmentResponse":
        return cls(filename=attachment.filename, url=attachment.url, uploaded_at=attachment.uploaded_at)


class IssueResponse(BaseModel):
    """Full issue representation."""
    id: str
    organization_id: str
    title: str
    description: str
    category: IssueCategory
    priority: IssuePriority
    status: str
    assigned_to: Optional[str] = None
    created_by: str
    due_date: datetime
    sla_breached: bool
    sla_breached_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    ai_summaries: List[AISummaryResponse] = Field(default_factory=list)
    attachments: List[AttachmentResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, issue: Issue) -> "IssueResponse":
        return cls(
            id=issue.id,
            organization_id=issue.organization_id,
            title=issue.title,
            description=issue.description,
            category=issue.category,
            priority=issue.priority,
            status=issue.status,
            assigned_to=issue.assigned_to,
            created_by=issue.created_by,
            due_date=issue.due_date,
            sla_breached=issue.sla_breached,
            sla_breached_at=issue.sla_breached_at,
            resolved_at=issue.resolved_at,
            created_at=issue.created_at,
            updated_at=issue.updated_at,
            ai_summaries=[AISummaryResponse.from_entity(s) for s in issue.ai_summaries],
            attachments=[AttachmentResponse.from_entity(a) for a in issue.attachments],
        )


class IssueListResponse(BaseModel):
    data: List[IssueResponse]
    pagination: PaginationResponse


class SummaryGeneratedResponse(BaseModel):
    issue_id: str
    summary: AISummaryResponse
    total_versions: int


class SummaryListResponse(BaseModel):
    issue_id: str
    issue_title: str
    summaries: List[AISummaryResponse]
