"""
Issue Domain Entities
=====================

Pure Python domain entities for compliance issues.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from src.config import IssueCategory, IssuePriority


@dataclass
class AISummary:
    """One generated root-cause summary. Versions start at 1 per issue."""

    version: int
    summary: str
    model: str
    generated_at: datetime


@dataclass
class Attachment:
    filename: str
    url: str
    uploaded_at: datetime


@dataclass
class Issue:
    """
    Compliance issue entity.

    Status is free text constrained by the tenant's workflow. It only
    changes through a workflow transition, never through a field edit.
    """

    # Fields editable through update_fields
    MUTABLE_FIELDS = ("title", "description", "category", "priority", "assigned_to", "due_date")
    NULLABLE_FIELDS = ("assigned_to",)

    id: Optional[str]
    organization_id: str
    title: str
    description: str
    category: IssueCategory
    status: str
    created_by: str
    due_date: datetime
    priority: IssuePriority = IssuePriority.MEDIUM
    assigned_to: Optional[str] = None

    # SLA tracking
    sla_breached: bool = False
    sla_breached_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    ai_summaries: List[AISummary] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)

    def is_overdue(self, now: datetime) -> bool:
        return self.due_date < now

    @property
    def latest_summary_version(self) -> int:
        return max((s.version for s in self.ai_summaries), default=0)

    def snapshot(self, fields: Iterable[str]) -> Dict[str, Any]:
        """Plain-value view of selected fields for audit documents."""
        values = {}
        for name in fields:
            value = getattr(self, name)
            values[name] = value.value if hasattr(value, "value") else value
        return values


@dataclass
class IssueFilter:
    """Equality filters for listing issues; None means no constraint."""

    status: Optional[str] = None
    category: Optional[IssueCategory] = None
    priority: Optional[IssuePriority] = None
    assigned_to: Optional[str] = None
    sla_breached: Optional[bool] = None
