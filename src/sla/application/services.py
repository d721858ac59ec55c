"""
SLA Application Services
========================

SLABreachScanner flags overdue issues exactly once; SLAService serves the
tenant-facing breach listing.

Following SOLID principles:
- Single Responsibility: the scanner only detects and flags
- Dependency Inversion: depends on repository and publisher interfaces
"""

from datetime import datetime
from typing import Dict, List, Optional

from src.audit.application import AuditLedger
from src.audit.domain import AuditLogEntry
from src.config import BOOTSTRAP_FINAL_STATES, AuditAction, EntityType, NotificationEvent
from src.infrastructure.database import utcnow
from src.issues.application import IIssueRepository
from src.issues.domain import Issue
from src.shared.infrastructure.logging import get_logger
from src.shared.infrastructure.notifications import INotificationPublisher, issue_room, tenant_room
from src.sla.domain import ScanResult
from src.tenancy.domain import Actor
from src.workflow.application import IWorkflowRepository

logger = get_logger(__name__)


class SLABreachScanner:
    """
    One pass over every tenant's overdue issues, or a single tenant's.

    An issue is matched when due_date < now, it is not yet flagged, and its
    status is not a final state of its tenant's active workflow. Tenants
    without an active workflow fall back to the bootstrap final states.

    Flagging is a conditional write on sla_breached = false and a non-final
    status, so two overlapping passes can never flag (or audit) the same
    issue twice, and an issue resolved mid-pass is left alone.
    """

    def __init__(
        self,
        issues: IIssueRepository,
        workflows: IWorkflowRepository,
        ledger: AuditLedger,
        publisher: INotificationPublisher
    ):
        self._issues = issues
        self._workflows = workflows
        self._ledger = ledger
        self._publisher = publisher

    async def _final_states(self, tenant_id: str, cache: Dict[str, List[str]]) -> List[str]:
        if tenant_id not in cache:
            workflow = await self._workflows.get_active_default(tenant_id)
            cache[tenant_id] = list(workflow.final_states) if workflow else list(BOOTSTRAP_FINAL_STATES)
        return cache[tenant_id]

    async def scan(self, now: Optional[datetime] = None, tenant_id: Optional[str] = None) -> ScanResult:
        """
        Run one scan.

        Args:
            now: Reference time; defaults to the current UTC time
            tenant_id: Restrict the pass to one organization; None scans all

        Returns:
            ScanResult with matched / flagged / failed counts
        """
        now = now or utcnow()
        result = ScanResult()
        final_states: Dict[str, List[str]] = {}

        candidates = await self._issues.find_sla_candidates(now, tenant_id)

        for issue in candidates:
            try:
                finals = await self._final_states(issue.organization_id, final_states)
                if issue.status in finals:
                    continue
                result.scanned += 1
                if await self._flag(issue, now, finals):
                    result.breached += 1
            except Exception as e:
                result.failed += 1
                logger.error(
                    "SLA breach processing failed",
                    extra={
                        "issue_id": issue.id,
                        "tenant_id": issue.organization_id,
                        "error": str(e),
                    }
                )

        if result.scanned or result.failed:
            logger.info("SLA scan complete", extra={**result.as_dict(), "candidates": len(candidates)})
        return result

    async def _flag(self, issue: Issue, now: datetime, final_states: List[str]) -> bool:
        if not await self._issues.mark_sla_breached(issue.id, now, final_states=final_states):
            # Flagged by a concurrent pass, or resolved, since the candidate query
            return False

        logger.warning(
            "SLA breached",
            extra={
                "issue_id": issue.id,
                "tenant_id": issue.organization_id,
                "due_date": issue.due_date.isoformat(),
                "status": issue.status,
            }
        )

        await self._ledger.append(AuditLogEntry(
            action=AuditAction.SLA_BREACH,
            entity=EntityType.ISSUE,
            entity_id=issue.id,
            performed_by=issue.created_by,
            organization_id=issue.organization_id,
            previous_value={"sla_breached": False},
            new_value={"sla_breached": True, "sla_breached_at": now},
        ))

        payload = {
            "issue_id": issue.id,
            "title": issue.title,
            "due_date": issue.due_date,
            "breached_at": now,
        }
        for room in (tenant_room(issue.organization_id), issue_room(issue.organization_id, issue.id)):
            await self._publisher.publish(room, NotificationEvent.SLA_BREACH.value, payload)
        return True


class SLAService:
    """Tenant-scoped SLA queries."""

    def __init__(self, issues: IIssueRepository):
        self._issues = issues

    async def list_breaches(self, actor: Actor) -> List[Issue]:
        return await self._issues.list_breached(actor.tenant_id)
