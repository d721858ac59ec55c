"""Issue creation, editing, transitions and deletion."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from src.config import AuditAction, EntityType, IssueCategory, IssuePriority, NotificationEvent, Role
from src.core import (
    ConcurrentModification,
    IllegalTransition,
    ResourceNotFoundException,
    RoleNotAuthorized,
    ValidationException,
)
from src.infrastructure.database import utcnow
from src.issues.application import IssueCreateRequest, IssueUpdateRequest
from src.issues.domain import IssueFilter
from src.shared.infrastructure.notifications import issue_room, tenant_room
from src.workflow.application import TransitionDTO, WorkflowCreateRequest


class TestIssueCreation:

    async def test_new_issue_starts_in_initial_state(self, admin, new_issue, publisher):
        issue = await new_issue(admin)

        assert issue.status == "Draft"
        assert issue.created_by == admin.user_id
        assert issue.sla_breached is False
        assert issue.resolved_at is None

        [(room, event, payload)] = publisher.named(NotificationEvent.ISSUE_CREATED.value)
        assert room == tenant_room(admin.tenant_id)
        assert payload["id"] == issue.id

    def _request(self, assigned_to):
        return IssueCreateRequest(
            title="Unlabelled sample",
            description="Sample found without a batch label.",
            category=IssueCategory.QUALITY,
            due_date=utcnow() + timedelta(days=2),
            assigned_to=assigned_to,
        )

    async def test_create_with_assignee_in_same_tenant(self, admin, add_user, issue_service):
        reviewer = await add_user(admin, Role.REVIEWER, "reviewer@acme.example")
        issue = await issue_service.create_issue(admin, self._request(reviewer.user_id))
        assert issue.assigned_to == reviewer.user_id

    async def test_create_with_malformed_assignee_is_rejected(self, admin, issue_service):
        with pytest.raises(ValidationException):
            await issue_service.create_issue(admin, self._request("not-a-uuid"))

        _, total = await issue_service.list_issues(admin, IssueFilter())
        assert total == 0

    async def test_create_with_foreign_assignee_is_rejected(self, admin, register, issue_service):
        other = await register("Other Org", "admin@other.example")
        with pytest.raises(ValidationException):
            await issue_service.create_issue(admin, self._request(other.user_id))

    async def test_creation_is_audited(self, admin, new_issue, ledger):
        issue = await new_issue(admin)
        [entry] = await ledger.query_for_entity(admin.tenant_id, EntityType.ISSUE, issue.id)
        assert entry.action == AuditAction.CREATE
        assert entry.performed_by == admin.user_id
        assert entry.new_value["status"] == "Draft"


class TestIssueQueries:

    async def test_list_is_tenant_scoped(self, admin, register, new_issue, issue_service):
        other = await register("Other Org", "admin@other.example")
        await new_issue(admin, "Ours")
        await new_issue(other, "Theirs")

        issues, total = await issue_service.list_issues(admin, IssueFilter())
        assert total == 1
        assert [i.title for i in issues] == ["Ours"]

    async def test_other_tenant_issue_looks_missing(self, admin, register, new_issue, issue_service):
        other = await register("Other Org", "admin@other.example")
        theirs = await new_issue(other)

        with pytest.raises(ResourceNotFoundException):
            await issue_service.get_issue(admin, theirs.id)
        with pytest.raises(ResourceNotFoundException):
            await issue_service.transition(admin, theirs.id, "Submitted")

    async def test_malformed_id_is_not_found(self, admin, issue_service):
        with pytest.raises(ResourceNotFoundException):
            await issue_service.get_issue(admin, "12345")

    async def test_filter_and_paginate(self, admin, new_issue, issue_service):
        for n in range(5):
            await new_issue(admin, f"Issue {n}")
        first = await new_issue(admin, "Submitted one")
        await issue_service.transition(admin, first.id, "Submitted")

        issues, total = await issue_service.list_issues(admin, IssueFilter(status="Draft"), page=2, limit=2)
        assert total == 5
        assert len(issues) == 2

        issues, total = await issue_service.list_issues(admin, IssueFilter(status="Submitted"))
        assert total == 1
        assert issues[0].id == first.id


class TestIssueUpdate:

    async def test_update_changes_only_allowed_fields(self, admin, new_issue, issue_service, ledger, publisher):
        issue = await new_issue(admin)
        updated = await issue_service.update_fields(
            admin, issue.id, IssueUpdateRequest(title="Renamed", priority=IssuePriority.CRITICAL)
        )

        assert updated.title == "Renamed"
        assert updated.priority == IssuePriority.CRITICAL
        assert updated.status == "Draft"

        entries = await ledger.query_for_entity(admin.tenant_id, EntityType.ISSUE, issue.id)
        update_entry = next(e for e in entries if e.action == AuditAction.UPDATE)
        assert set(update_entry.new_value) == {"title", "priority"}
        assert update_entry.previous_value["title"] == "Deviation in batch 42"
        assert publisher.named(NotificationEvent.ISSUE_UPDATED.value)

    async def test_unchanged_values_are_not_audited(self, admin, new_issue, issue_service, ledger, publisher):
        issue = await new_issue(admin)
        await issue_service.update_fields(admin, issue.id, IssueUpdateRequest(title=issue.title))

        entries = await ledger.query_for_entity(admin.tenant_id, EntityType.ISSUE, issue.id)
        assert [e.action for e in entries] == [AuditAction.CREATE]
        assert not publisher.named(NotificationEvent.ISSUE_UPDATED.value)

    async def test_explicit_null_unassigns(self, admin, add_user, new_issue, issue_service, ledger):
        reviewer = await add_user(admin, Role.REVIEWER, "reviewer@acme.example")
        issue = await new_issue(admin)
        assigned = await issue_service.update_fields(
            admin, issue.id, IssueUpdateRequest(assigned_to=reviewer.user_id)
        )
        assert assigned.assigned_to == reviewer.user_id

        cleared = await issue_service.update_fields(
            admin, issue.id, IssueUpdateRequest.model_validate({"assigned_to": None})
        )
        assert cleared.assigned_to is None

        entries = await ledger.query_for_entity(admin.tenant_id, EntityType.ISSUE, issue.id)
        updates = [(e.previous_value, e.new_value) for e in entries if e.action == AuditAction.UPDATE]
        assert ({"assigned_to": reviewer.user_id}, {"assigned_to": None}) in updates

    async def test_explicit_null_is_ignored_for_required_fields(self, admin, new_issue, issue_service):
        issue = await new_issue(admin)
        unchanged = await issue_service.update_fields(
            admin, issue.id, IssueUpdateRequest.model_validate({"title": None, "due_date": None})
        )
        assert unchanged.title == issue.title
        assert unchanged.due_date == issue.due_date

    @pytest.mark.parametrize("assignee", ["not-a-uuid", "00000000-0000-0000-0000-000000000000"])
    async def test_invalid_assignee_on_update_is_rejected(self, admin, new_issue, issue_service, assignee):
        issue = await new_issue(admin)
        with pytest.raises(ValidationException) as exc:
            await issue_service.update_fields(admin, issue.id, IssueUpdateRequest(assigned_to=assignee))
        assert exc.value.details == {"field": "assigned_to"}
        assert (await issue_service.get_issue(admin, issue.id)).assigned_to is None

    async def test_assignee_from_other_tenant_is_rejected(self, admin, register, new_issue, issue_service):
        other = await register("Other Org", "admin@other.example")
        issue = await new_issue(admin)

        with pytest.raises(ValidationException) as foreign:
            await issue_service.update_fields(admin, issue.id, IssueUpdateRequest(assigned_to=other.user_id))
        with pytest.raises(ValidationException) as unknown:
            await issue_service.update_fields(
                admin, issue.id, IssueUpdateRequest(assigned_to="00000000-0000-0000-0000-000000000000")
            )

        assert foreign.value.message == unknown.value.message
        assert (await issue_service.get_issue(admin, issue.id)).assigned_to is None

    async def test_update_publishes_to_issue_room(self, admin, new_issue, issue_service, publisher):
        issue = await new_issue(admin)
        await issue_service.update_fields(admin, issue.id, IssueUpdateRequest(title="Renamed"))

        rooms = [room for room, _, _ in publisher.named(NotificationEvent.ISSUE_UPDATED.value)]
        assert rooms == [tenant_room(admin.tenant_id), issue_room(admin.tenant_id, issue.id)]

    def test_status_is_not_an_editable_field(self):
        request = IssueUpdateRequest.model_validate({"title": "x", "status": "Closed"})
        assert "status" not in request.model_dump(exclude_unset=True)


class TestIssueTransitions:

    async def _walk(self, issue_service, actor, issue_id, *states):
        issue = None
        for state in states:
            issue = await issue_service.transition(actor, issue_id, state)
        return issue

    async def test_full_approval_path(self, admin, new_issue, issue_service, ledger, publisher):
        issue = await new_issue(admin)
        closed = await self._walk(
            issue_service, admin, issue.id, "Submitted", "Under Review", "Approved", "Closed"
        )

        assert closed.status == "Closed"
        assert closed.resolved_at is not None

        entries = await ledger.query_for_entity(admin.tenant_id, EntityType.ISSUE, issue.id)
        transitions = [e for e in entries if e.action == AuditAction.WORKFLOW_TRANSITION]
        assert len(transitions) == 4
        assert {(e.previous_value["status"], e.new_value["status"]) for e in transitions} == {
            ("Draft", "Submitted"),
            ("Submitted", "Under Review"),
            ("Under Review", "Approved"),
            ("Approved", "Closed"),
        }

        events = publisher.named(NotificationEvent.ISSUE_TRANSITIONED.value)
        assert events[-1][2] == {
            "issue_id": issue.id,
            "previous_status": "Approved",
            "new_status": "Closed",
            "performed_by": admin.name,
        }

    async def test_user_cannot_review(self, admin, add_user, new_issue, issue_service):
        user = await add_user(admin, Role.USER, "user@acme.example")
        issue = await new_issue(user)
        await issue_service.transition(user, issue.id, "Submitted")

        with pytest.raises(RoleNotAuthorized):
            await issue_service.transition(user, issue.id, "Under Review")

        assert (await issue_service.get_issue(user, issue.id)).status == "Submitted"

    async def test_reviewer_can_review_but_not_approve(self, admin, add_user, new_issue, issue_service):
        reviewer = await add_user(admin, Role.REVIEWER, "reviewer@acme.example")
        issue = await new_issue(admin)
        await issue_service.transition(admin, issue.id, "Submitted")
        await issue_service.transition(reviewer, issue.id, "Under Review")

        with pytest.raises(RoleNotAuthorized):
            await issue_service.transition(reviewer, issue.id, "Approved")

    async def test_illegal_transition_leaves_issue_unchanged(self, admin, new_issue, issue_service, ledger):
        issue = await new_issue(admin)
        with pytest.raises(IllegalTransition):
            await issue_service.transition(admin, issue.id, "Closed")

        assert (await issue_service.get_issue(admin, issue.id)).status == "Draft"
        entries = await ledger.query_for_entity(admin.tenant_id, EntityType.ISSUE, issue.id)
        assert all(e.action != AuditAction.WORKFLOW_TRANSITION for e in entries)

    async def test_rejected_issue_can_be_reopened(self, admin, new_issue, issue_service):
        issue = await new_issue(admin)
        rejected = await self._walk(issue_service, admin, issue.id, "Submitted", "Under Review", "Rejected")
        first_resolution = rejected.resolved_at
        assert first_resolution is not None

        reopened = await issue_service.transition(admin, issue.id, "Draft")
        assert reopened.status == "Draft"
        assert reopened.resolved_at == first_resolution

    async def test_lost_race_raises_conflict(self, admin, new_issue, issue_service, issue_repo):
        issue = await new_issue(admin)

        async def lose_race(*args, **kwargs):
            return None

        with patch.object(issue_repo, "transition_status", side_effect=lose_race):
            with pytest.raises(ConcurrentModification):
                await issue_service.transition(admin, issue.id, "Submitted")

    async def test_stale_expected_status_matches_nothing(self, admin, new_issue, issue_service, issue_repo):
        issue = await new_issue(admin)
        await issue_service.transition(admin, issue.id, "Submitted")

        result = await issue_repo.transition_status(admin.tenant_id, issue.id, "Draft", "Submitted")
        assert result is None


class TestIssueDeletion:

    async def test_delete_removes_issue_and_keeps_audit(self, admin, new_issue, issue_service, ledger, publisher):
        issue = await new_issue(admin)
        await issue_service.generate_summary(admin, issue.id)
        await issue_service.delete_issue(admin, issue.id)

        with pytest.raises(ResourceNotFoundException):
            await issue_service.get_issue(admin, issue.id)

        entries = await ledger.query_for_entity(admin.tenant_id, EntityType.ISSUE, issue.id)
        delete_entry = next(e for e in entries if e.action == AuditAction.DELETE)
        assert delete_entry.previous_value == {"title": issue.title, "status": "Draft"}
        assert publisher.named(NotificationEvent.ISSUE_DELETED.value)[-1][2] == {"issue_id": issue.id}

    async def test_delete_missing_issue(self, admin, issue_service):
        with pytest.raises(ResourceNotFoundException):
            await issue_service.delete_issue(admin, "00000000-0000-0000-0000-000000000000")


class TestAttachments:

    async def test_add_attachment(self, admin, new_issue, issue_service, ledger):
        issue = await new_issue(admin)
        updated = await issue_service.add_attachment(admin, issue.id, "capa.pdf", "https://files.example/capa.pdf")

        assert [a.filename for a in updated.attachments] == ["capa.pdf"]
        entries = await ledger.query_for_entity(admin.tenant_id, EntityType.ISSUE, issue.id)
        assert any(
            e.new_value and e.new_value.get("attachment", {}).get("filename") == "capa.pdf"
            for e in entries
        )


class TestCustomWorkflowScenario:
    """Draft -> Submitted (User) -> Closed (Manager), then an SLA pass."""

    @pytest.fixture
    async def tenant(self, admin, add_user, workflow_service):
        await workflow_service.create_workflow(admin, WorkflowCreateRequest(
            name="Short Review",
            states=["Draft", "Submitted", "Closed"],
            initial_state="Draft",
            final_states=["Closed"],
            transitions=[
                TransitionDTO(**{"from": "Draft", "to": "Submitted", "allowed_roles": [Role.USER]}),
                TransitionDTO(**{"from": "Submitted", "to": "Closed", "allowed_roles": [Role.MANAGER]}),
            ],
            is_default=True,
        ))
        user = await add_user(admin, Role.USER, "user@acme.example")
        manager = await add_user(admin, Role.MANAGER, "manager@acme.example")
        return admin, user, manager

    async def test_walkthrough(self, tenant, new_issue, issue_service, engine_service, workflow_service, ledger):
        admin, user, manager = tenant

        defaults = [w for w in await workflow_service.list_workflows(admin) if w.is_default]
        assert [w.name for w in defaults] == ["Short Review"]

        issue = await new_issue(user)
        assert issue.status == "Draft"

        with pytest.raises(IllegalTransition):
            await issue_service.transition(user, issue.id, "Closed")

        submitted = await issue_service.transition(user, issue.id, "Submitted")
        assert submitted.status == "Submitted"
        assert submitted.resolved_at is None
        entries = await ledger.query_for_entity(admin.tenant_id, EntityType.ISSUE, issue.id)
        assert len([e for e in entries if e.action == AuditAction.WORKFLOW_TRANSITION]) == 1

        with pytest.raises(RoleNotAuthorized):
            await issue_service.transition(user, issue.id, "Closed")
        assert (await issue_service.get_issue(user, issue.id)).status == "Submitted"

        closed = await issue_service.transition(manager, issue.id, "Closed")
        assert closed.status == "Closed"
        assert closed.resolved_at is not None
        assert await engine_service.is_final_state(admin.tenant_id, "Closed")

    async def test_overdue_submitted_issue_breaches_once(self, tenant, new_issue, issue_service, scanner, ledger):
        admin, user, _ = tenant
        issue = await new_issue(user)
        await issue_service.transition(user, issue.id, "Submitted")
        await issue_service.update_fields(
            user, issue.id, IssueUpdateRequest(due_date=utcnow() - timedelta(hours=1))
        )

        assert (await scanner.scan()).breached == 1
        assert (await scanner.scan()).breached == 0

        stored = await issue_service.get_issue(user, issue.id)
        assert stored.sla_breached is True
        assert stored.sla_breached_at is not None

        entries = await ledger.query_for_entity(admin.tenant_id, EntityType.ISSUE, issue.id)
        assert len([e for e in entries if e.action == AuditAction.SLA_BREACH]) == 1
