"""
Issue Application Services
==========================

Issue lifecycle: create, edit, transition, delete, summaries, attachments.

Ordering for every mutation: the primary write commits first, then the
audit entry is appended (failures logged, never raised), then the event is
published to the tenant room and, for existing issues, the issue room.
Deletion is the exception: it is audited before the record is removed so
the entry describes a state that existed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from src.audit.application import AuditLedger
from src.config import AuditAction, EntityType, IssueCategory, IssuePriority, NotificationEvent
from src.core import ConcurrentModification, ResourceNotFoundException, ValidationException
from src.infrastructure.database import utcnow
from src.issues.application.dto import IssueCreateRequest, IssueResponse, IssueUpdateRequest
from src.issues.domain import AISummary, Attachment, Issue, IssueFilter
from src.shared.infrastructure.logging import get_logger
from src.shared.infrastructure.notifications import INotificationPublisher, issue_room, tenant_room
from src.tenancy.application import IUserRepository
from src.tenancy.domain import Actor
from src.workflow.application import WorkflowEngine

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IIssueRepository(ABC):
    """Interface for issue data access. Every lookup is tenant-scoped."""

    @abstractmethod
    async def get(self, tenant_id: str, issue_id: str) -> Optional[Issue]:
        """Get an issue; None when absent or owned by another tenant."""

    @abstractmethod
    async def list(
        self,
        tenant_id: str,
        filters: IssueFilter,
        offset: int = 0,
        limit: int = 20
    ) -> List[Issue]:
        """Issues matching filters, newest first."""

    @abstractmethod
    async def count(self, tenant_id: str, filters: IssueFilter) -> int:
        """Number of issues matching filters."""

    @abstractmethod
    async def create(self, issue: Issue) -> Issue:
        """Persist a new issue."""

    @abstractmethod
    async def update_fields(self, tenant_id: str, issue_id: str, changes: Dict[str, Any]) -> Optional[Issue]:
        """Apply field changes; None when the issue is gone."""

    @abstractmethod
    async def transition_status(
        self,
        tenant_id: str,
        issue_id: str,
        expected_status: str,
        new_status: str,
        resolved_at: Optional[datetime] = None
    ) -> Optional[Issue]:
        """
        Set status only if it still equals expected_status.

        resolved_at, when given, is stored only if the issue has none yet.
        Returns None when the conditional write matched nothing.
        """

    @abstractmethod
    async def delete(self, tenant_id: str, issue_id: str) -> bool:
        """Remove an issue and its child records."""

    @abstractmethod
    async def append_summary(
        self,
        tenant_id: str,
        issue_id: str,
        summary: str,
        model: str,
        generated_at: datetime
    ) -> Optional[AISummary]:
        """Store a summary as version max+1; None when the issue is gone."""

    @abstractmethod
    async def add_attachment(self, tenant_id: str, issue_id: str, attachment: Attachment) -> Optional[Issue]:
        """Append an attachment record."""

    @abstractmethod
    async def find_sla_candidates(self, now: datetime, tenant_id: Optional[str] = None) -> List[Issue]:
        """Issues with due_date < now and sla_breached unset; every tenant when tenant_id is None."""

    @abstractmethod
    async def mark_sla_breached(
        self,
        issue_id: str,
        breached_at: datetime,
        final_states: Sequence[str] = ()
    ) -> bool:
        """
        Flag an issue as breached unless it already is or its status is now
        one of final_states. True if flagged now.
        """

    @abstractmethod
    async def list_breached(self, tenant_id: str) -> List[Issue]:
        """A tenant's breached issues, most recently breached first."""


# ========== AI Summary port ==========

@dataclass
class SummaryResult:
    """Output of a summary generation; error is set when the fallback was used."""

    summary: str
    model: str
    error: Optional[str] = None


class ISummaryGenerator(ABC):
    """Opaque root-cause text generation. Implementations never raise."""

    @abstractmethod
    async def generate(
        self,
        title: str,
        description: str,
        category: IssueCategory,
        priority: IssuePriority
    ) -> SummaryResult:
        """Return summary text and the id of the model that produced it."""


# ========== Application Services ==========

class IssueService:
    """
    Orchestrates issue mutations across the store, workflow engine,
    audit ledger and notification fan-out.
    """

    def __init__(
        self,
        repository: IIssueRepository,
        users: IUserRepository,
        engine: WorkflowEngine,
        ledger: AuditLedger,
        publisher: INotificationPublisher,
        summary_generator: Optional[ISummaryGenerator] = None
    ):
        self._repo = repository
        self._users = users
        self._engine = engine
        self._ledger = ledger
        self._publisher = publisher
        self._summary_generator = summary_generator

    async def _get_or_404(self, actor: Actor, issue_id: str) -> Issue:
        issue = await self._repo.get(actor.tenant_id, issue_id)
        if issue is None:
            raise ResourceNotFoundException("Issue", issue_id)
        return issue

    async def _check_assignee(self, actor: Actor, assigned_to: Optional[str]) -> Optional[str]:
        """Return the canonical user id, or raise unless it names a member of the actor's tenant."""
        if assigned_to is None:
            return None

        user = await self._users.get(assigned_to)
        if user is None or user.organization_id != actor.tenant_id:
            # Same error for malformed, unknown and foreign ids
            raise ValidationException(
                "assigned_to must be a user of your organization.",
                {"field": "assigned_to"}
            )
        return user.id

    async def _publish(
        self,
        actor: Actor,
        event: NotificationEvent,
        payload: Dict[str, Any],
        issue_id: Optional[str] = None
    ) -> None:
        rooms = [tenant_room(actor.tenant_id)]
        if issue_id is not None:
            rooms.append(issue_room(actor.tenant_id, issue_id))
        for room in rooms:
            await self._publisher.publish(room, event.value, payload)

    async def get_issue(self, actor: Actor, issue_id: str) -> Issue:
        return await self._get_or_404(actor, issue_id)

    async def list_issues(
        self,
        actor: Actor,
        filters: IssueFilter,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Issue], int]:
        page = max(page, 1)
        limit = max(limit, 1)
        issues = await self._repo.list(actor.tenant_id, filters, offset=(page - 1) * limit, limit=limit)
        total = await self._repo.count(actor.tenant_id, filters)
        return issues, total

    async def create_issue(self, actor: Actor, request: IssueCreateRequest) -> Issue:
        assigned_to = await self._check_assignee(actor, request.assigned_to)
        initial_state = await self._engine.initial_state_for(actor.tenant_id)

        issue = await self._repo.create(Issue(
            id=None,
            organization_id=actor.tenant_id,
            title=request.title,
            description=request.description,
            category=request.category,
            priority=request.priority,
            status=initial_state,
            created_by=actor.user_id,
            assigned_to=assigned_to,
            due_date=request.due_date,
        ))

        logger.info(
            "Issue created",
            extra={"issue_id": issue.id, "tenant_id": actor.tenant_id, "status": issue.status}
        )

        await self._ledger.record(
            actor, AuditAction.CREATE, EntityType.ISSUE, issue.id,
            new_value=issue.snapshot(("title", "status", "category", "priority")),
        )
        await self._publish(actor, NotificationEvent.ISSUE_CREATED, IssueResponse.from_entity(issue).model_dump())
        return issue

    async def update_fields(self, actor: Actor, issue_id: str, request: IssueUpdateRequest) -> Issue:
        """
        Edit allow-listed fields. Unknown fields and status are ignored.

        A field is applied when it is present in the request; an explicit
        null clears assigned_to and is ignored for required fields. Only
        fields whose value actually changes are written and audited.
        """
        issue = await self._get_or_404(actor, issue_id)

        patch = {
            name: value
            for name, value in request.model_dump(exclude_unset=True).items()
            if name in Issue.MUTABLE_FIELDS and (value is not None or name in Issue.NULLABLE_FIELDS)
        }
        if "assigned_to" in patch:
            patch["assigned_to"] = await self._check_assignee(actor, patch["assigned_to"])

        changes = {name: value for name, value in patch.items() if getattr(issue, name) != value}
        if not changes:
            return issue

        previous = issue.snapshot(changes)
        updated = await self._repo.update_fields(actor.tenant_id, issue_id, changes)
        if updated is None:
            raise ResourceNotFoundException("Issue", issue_id)

        logger.info(
            "Issue updated",
            extra={"issue_id": issue_id, "tenant_id": actor.tenant_id, "fields": sorted(changes)}
        )

        await self._ledger.record(
            actor, AuditAction.UPDATE, EntityType.ISSUE, issue_id,
            previous_value=previous,
            new_value=updated.snapshot(changes),
        )
        await self._publish(
            actor, NotificationEvent.ISSUE_UPDATED, IssueResponse.from_entity(updated).model_dump(), updated.id
        )
        return updated

    async def transition(self, actor: Actor, issue_id: str, new_status: str) -> Issue:
        """
        Move an issue to new_status under the tenant's active workflow.

        The write is conditional on the status read here, so a concurrent
        transition that lands first makes this one fail instead of
        overwriting it.

        Raises:
            ResourceNotFoundException, NoActiveWorkflow, IllegalTransition,
            RoleNotAuthorized, ConcurrentModification
        """
        issue = await self._get_or_404(actor, issue_id)
        previous_status = issue.status

        decision = await self._engine.validate_transition(
            actor.tenant_id, previous_status, new_status, actor.role
        )

        resolved_at = utcnow() if decision.workflow.is_final(new_status) else None
        updated = await self._repo.transition_status(
            actor.tenant_id, issue_id, previous_status, new_status, resolved_at
        )
        if updated is None:
            raise ConcurrentModification(
                "Issue status changed while the transition was being applied.",
                {"issue_id": issue_id, "expected_status": previous_status}
            )

        logger.info(
            "Issue transitioned",
            extra={
                "issue_id": issue_id,
                "tenant_id": actor.tenant_id,
                "from_status": previous_status,
                "to_status": new_status,
                "role": actor.role.value,
            }
        )

        await self._ledger.record(
            actor, AuditAction.WORKFLOW_TRANSITION, EntityType.ISSUE, issue_id,
            previous_value={"status": previous_status},
            new_value={"status": new_status},
        )
        await self._publish(actor, NotificationEvent.ISSUE_TRANSITIONED, {
            "issue_id": issue_id,
            "previous_status": previous_status,
            "new_status": new_status,
            "performed_by": actor.name,
        }, updated.id)
        return updated

    async def delete_issue(self, actor: Actor, issue_id: str) -> None:
        issue = await self._get_or_404(actor, issue_id)

        await self._ledger.record(
            actor, AuditAction.DELETE, EntityType.ISSUE, issue_id,
            previous_value=issue.snapshot(("title", "status")),
        )

        if not await self._repo.delete(actor.tenant_id, issue_id):
            raise ResourceNotFoundException("Issue", issue_id)

        logger.info("Issue deleted", extra={"issue_id": issue_id, "tenant_id": actor.tenant_id})
        await self._publish(actor, NotificationEvent.ISSUE_DELETED, {"issue_id": issue_id}, issue.id)

    # ========== AI summaries ==========

    async def generate_summary(self, actor: Actor, issue_id: str) -> Tuple[AISummary, int]:
        """
        Generate and append a new summary version.

        Returns:
            (stored summary, number of versions after the append)
        """
        if self._summary_generator is None:
            raise RuntimeError("Summary generator not configured")

        issue = await self._get_or_404(actor, issue_id)

        result = await self._summary_generator.generate(
            issue.title, issue.description, issue.category, issue.priority
        )

        summary = await self._repo.append_summary(
            actor.tenant_id, issue_id, result.summary, result.model, utcnow()
        )
        if summary is None:
            raise ResourceNotFoundException("Issue", issue_id)

        logger.info(
            "AI summary stored",
            extra={
                "issue_id": issue_id,
                "version": summary.version,
                "model": summary.model,
                "fallback": result.error is not None,
            }
        )

        await self._ledger.record(
            actor, AuditAction.AI_SUMMARY_GENERATED, EntityType.ISSUE, issue_id,
            new_value={"version": summary.version, "model": summary.model},
        )

        refreshed = await self._repo.get(actor.tenant_id, issue_id)
        total = len(refreshed.ai_summaries) if refreshed else summary.version
        return summary, total

    async def list_summaries(self, actor: Actor, issue_id: str) -> Tuple[Issue, List[AISummary]]:
        """Summaries of an issue, newest version first."""
        issue = await self._get_or_404(actor, issue_id)
        return issue, sorted(issue.ai_summaries, key=lambda s: s.version, reverse=True)

    # ========== Attachments ==========

    async def add_attachment(self, actor: Actor, issue_id: str, filename: str, url: str) -> Issue:
        await self._get_or_404(actor, issue_id)

        attachment = Attachment(filename=filename, url=url, uploaded_at=utcnow())
        updated = await self._repo.add_attachment(actor.tenant_id, issue_id, attachment)
        if updated is None:
            raise ResourceNotFoundException("Issue", issue_id)

        await self._ledger.record(
            actor, AuditAction.UPDATE, EntityType.ISSUE, issue_id,
            new_value={"attachment": {"filename": filename, "url": url}},
        )
        await self._publish(
            actor, NotificationEvent.ISSUE_UPDATED, IssueResponse.from_entity(updated).model_dump(), updated.id
        )
        return updated
