"""Workflow definitions and transition validation."""

import pytest

from src.config import BOOTSTRAP_FINAL_STATES, BOOTSTRAP_STATES, AuditAction, EntityType, Role
from src.core import (
    CannotDeleteDefaultWorkflow,
    IllegalTransition,
    InvalidWorkflowDefinition,
    NoActiveWorkflow,
    ResourceNotFoundException,
    RoleNotAuthorized,
)
from src.workflow.application import TransitionDTO, WorkflowCreateRequest, WorkflowUpdateRequest
from src.workflow.domain import Transition, Workflow, bootstrap_workflow


def simple_request(name="Two Step", is_default=False, roles=None):
    return WorkflowCreateRequest(
        name=name,
        states=["Open", "Done"],
        initial_state="Open",
        final_states=["Done"],
        transitions=[TransitionDTO(**{"from": "Open", "to": "Done", "allowed_roles": roles or []})],
        is_default=is_default,
    )


class TestWorkflowValidation:

    def _workflow(self, **overrides):
        data = dict(
            id=None,
            organization_id="org",
            name="WF",
            states=["A", "B"],
            initial_state="A",
            final_states=["B"],
            transitions=[Transition("A", "B")],
        )
        data.update(overrides)
        return Workflow(**data)

    def test_valid_definition_passes(self):
        self._workflow().validate()

    def test_initial_state_must_be_declared(self):
        with pytest.raises(InvalidWorkflowDefinition) as exc:
            self._workflow(initial_state="Z").validate()
        assert exc.value.details["field"] == "initial_state"

    def test_final_states_must_be_declared(self):
        with pytest.raises(InvalidWorkflowDefinition) as exc:
            self._workflow(final_states=["B", "Z"]).validate()
        assert exc.value.details["field"] == "final_states"

    def test_transition_endpoints_must_be_declared(self):
        with pytest.raises(InvalidWorkflowDefinition) as exc:
            self._workflow(transitions=[Transition("A", "Z")]).validate()
        assert exc.value.details["field"] == "transitions"

    def test_duplicate_states_rejected(self):
        with pytest.raises(InvalidWorkflowDefinition):
            self._workflow(states=["A", "B", "A"]).validate()

    def test_empty_role_set_permits_everyone(self):
        transition = Transition("A", "B")
        assert all(transition.permits(role) for role in Role)

    def test_bootstrap_workflow_shape(self):
        workflow = bootstrap_workflow("org")
        workflow.validate()
        assert workflow.states == list(BOOTSTRAP_STATES)
        assert workflow.initial_state == "Draft"
        assert set(workflow.final_states) == set(BOOTSTRAP_FINAL_STATES)
        assert workflow.is_default and workflow.is_active

        draft_to_submitted = workflow.find_transition("Draft", "Submitted")
        assert all(draft_to_submitted.permits(role) for role in Role)

        approve = workflow.find_transition("Under Review", "Approved")
        assert approve.permits(Role.MANAGER)
        assert not approve.permits(Role.REVIEWER)
        assert not approve.permits(Role.USER)


class TestWorkflowEngine:

    async def test_new_tenant_starts_in_draft(self, admin, engine_service):
        assert await engine_service.initial_state_for(admin.tenant_id) == "Draft"

    async def test_validate_transition_allowed(self, admin, engine_service):
        decision = await engine_service.validate_transition(admin.tenant_id, "Draft", "Submitted", Role.USER)
        assert decision.transition.to_state == "Submitted"
        assert not decision.workflow.is_final("Submitted")

    async def test_undeclared_pair_is_illegal(self, admin, engine_service):
        with pytest.raises(IllegalTransition):
            await engine_service.validate_transition(admin.tenant_id, "Draft", "Closed", Role.ADMIN)

    async def test_self_loop_is_illegal_unless_declared(self, admin, engine_service):
        with pytest.raises(IllegalTransition):
            await engine_service.validate_transition(admin.tenant_id, "Draft", "Draft", Role.ADMIN)

    async def test_role_excluded(self, admin, engine_service):
        with pytest.raises(RoleNotAuthorized):
            await engine_service.validate_transition(admin.tenant_id, "Submitted", "Under Review", Role.USER)

    async def test_final_state_query(self, admin, engine_service):
        assert await engine_service.is_final_state(admin.tenant_id, "Closed")
        assert await engine_service.is_final_state(admin.tenant_id, "Rejected")
        assert not await engine_service.is_final_state(admin.tenant_id, "Approved")

    async def test_no_active_workflow(self, admin, engine_service, workflow_service, workflow_repo):
        default = await workflow_repo.get_active_default(admin.tenant_id)
        await workflow_service.update_workflow(admin, default.id, WorkflowUpdateRequest(is_active=False))

        assert await engine_service.resolve_active_workflow(admin.tenant_id) is None
        assert await engine_service.initial_state_for(admin.tenant_id) == "Draft"
        with pytest.raises(NoActiveWorkflow):
            await engine_service.validate_transition(admin.tenant_id, "Draft", "Submitted", Role.ADMIN)


class TestWorkflowService:

    async def test_tenant_has_one_seeded_default(self, admin, workflow_service):
        workflows = await workflow_service.list_workflows(admin)
        assert len(workflows) == 1
        assert workflows[0].is_default

    async def test_create_default_switches_default_atomically(self, admin, workflow_service, engine_service):
        created = await workflow_service.create_workflow(admin, simple_request(is_default=True))

        workflows = await workflow_service.list_workflows(admin)
        defaults = [w for w in workflows if w.is_default]
        assert [w.id for w in defaults] == [created.id]
        assert await engine_service.initial_state_for(admin.tenant_id) == "Open"

    async def test_invalid_definition_is_not_stored(self, admin, workflow_service):
        request = simple_request()
        request.initial_state = "Nowhere"
        with pytest.raises(InvalidWorkflowDefinition):
            await workflow_service.create_workflow(admin, request)
        assert len(await workflow_service.list_workflows(admin)) == 1

    async def test_update_revalidates_merged_definition(self, admin, workflow_service):
        created = await workflow_service.create_workflow(admin, simple_request())
        with pytest.raises(InvalidWorkflowDefinition):
            await workflow_service.update_workflow(admin, created.id, WorkflowUpdateRequest(states=["Open"]))

        unchanged = await workflow_service.get_workflow(admin, created.id)
        assert unchanged.states == ["Open", "Done"]

    async def test_cannot_delete_default(self, admin, workflow_service):
        default = (await workflow_service.list_workflows(admin))[0]
        with pytest.raises(CannotDeleteDefaultWorkflow):
            await workflow_service.delete_workflow(admin, default.id)

    async def test_delete_non_default(self, admin, workflow_service):
        created = await workflow_service.create_workflow(admin, simple_request())
        await workflow_service.delete_workflow(admin, created.id)
        with pytest.raises(ResourceNotFoundException):
            await workflow_service.get_workflow(admin, created.id)

    async def test_other_tenant_workflow_is_not_found(self, admin, register, workflow_service):
        other = await register("Other Org", "admin@other.example")
        other_default = (await workflow_service.list_workflows(other))[0]
        with pytest.raises(ResourceNotFoundException):
            await workflow_service.get_workflow(admin, other_default.id)

    async def test_malformed_id_is_not_found(self, admin, workflow_service):
        with pytest.raises(ResourceNotFoundException):
            await workflow_service.get_workflow(admin, "not-a-uuid")

    async def test_writes_are_audited(self, admin, workflow_service, ledger):
        created = await workflow_service.create_workflow(admin, simple_request())
        entries = await ledger.query_for_entity(admin.tenant_id, EntityType.WORKFLOW, created.id)
        assert [e.action for e in entries] == [AuditAction.CREATE]
        assert entries[0].new_value["name"] == "Two Step"
