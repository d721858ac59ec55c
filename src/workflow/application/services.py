"""
Workflow Application Services
=============================

WorkflowEngine answers lifecycle questions for a tenant (initial state,
final states, transition legality). WorkflowService manages the stored
definitions and audits every write.

The active default workflow is re-read from the repository on every
engine call; there is no process-level cache to invalidate.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import List, Optional

from src.audit.application import AuditLedger
from src.config import BOOTSTRAP_INITIAL_STATE, AuditAction, EntityType, Role
from src.core import (
    CannotDeleteDefaultWorkflow,
    IllegalTransition,
    NoActiveWorkflow,
    ResourceNotFoundException,
    RoleNotAuthorized,
)
from src.shared.infrastructure.logging import get_logger
from src.tenancy.domain import Actor
from src.workflow.application.dto import WorkflowCreateRequest, WorkflowUpdateRequest
from src.workflow.domain import Transition, Workflow

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IWorkflowRepository(ABC):
    """Interface for workflow data access."""

    @abstractmethod
    async def get(self, tenant_id: str, workflow_id: str) -> Optional[Workflow]:
        """Get a workflow by id within a tenant."""

    @abstractmethod
    async def get_active_default(self, tenant_id: str) -> Optional[Workflow]:
        """The tenant's workflow with is_default and is_active both set."""

    @abstractmethod
    async def list(self, tenant_id: str) -> List[Workflow]:
        """All workflows of a tenant."""

    @abstractmethod
    async def save(self, workflow: Workflow) -> Workflow:
        """
        Insert or update a workflow.

        When the workflow is default, every other default of the tenant is
        cleared and the organization's default pointer is moved in the same
        transaction.
        """

    @abstractmethod
    async def delete(self, tenant_id: str, workflow_id: str) -> bool:
        """Delete a non-default workflow. False if nothing was deleted."""


# ========== Engine ==========

@dataclass(frozen=True)
class TransitionDecision:
    """A validated transition and the workflow that allowed it."""

    workflow: Workflow
    transition: Transition


class WorkflowEngine:
    """
    Read-only state machine queries against a tenant's active workflow.
    """

    def __init__(self, repository: IWorkflowRepository):
        self._repo = repository

    async def resolve_active_workflow(self, tenant_id: str) -> Optional[Workflow]:
        return await self._repo.get_active_default(tenant_id)

    async def initial_state_for(self, tenant_id: str) -> str:
        """Initial state of the active workflow, or the bootstrap 'Draft'."""
        workflow = await self.resolve_active_workflow(tenant_id)
        if workflow is None:
            logger.info(
                "No active workflow, using bootstrap initial state",
                extra={"tenant_id": tenant_id}
            )
            return BOOTSTRAP_INITIAL_STATE
        return workflow.initial_state

    async def is_final_state(self, tenant_id: str, state: str) -> bool:
        workflow = await self.resolve_active_workflow(tenant_id)
        if workflow is None:
            return False
        return workflow.is_final(state)

    async def validate_transition(
        self,
        tenant_id: str,
        from_state: str,
        to_state: str,
        role: Role
    ) -> TransitionDecision:
        """
        Check a transition against the active workflow without writing.

        Raises:
            NoActiveWorkflow: tenant has no active default workflow
            IllegalTransition: no declared from/to pair
            RoleNotAuthorized: pair declared but role excluded
        """
        workflow = await self.resolve_active_workflow(tenant_id)
        if workflow is None:
            raise NoActiveWorkflow(tenant_id)

        transition = workflow.find_transition(from_state, to_state)
        if transition is None:
            raise IllegalTransition(from_state, to_state)

        if not transition.permits(role):
            raise RoleNotAuthorized(role.value, from_state, to_state)

        return TransitionDecision(workflow=workflow, transition=transition)


# ========== Definition management ==========

class WorkflowService:
    """
    CRUD over workflow definitions.

    Every write validates the full definition first and is audited after
    it has been committed.
    """

    def __init__(self, repository: IWorkflowRepository, ledger: AuditLedger):
        self._repo = repository
        self._ledger = ledger

    async def list_workflows(self, actor: Actor) -> List[Workflow]:
        return await self._repo.list(actor.tenant_id)

    async def get_workflow(self, actor: Actor, workflow_id: str) -> Workflow:
        workflow = await self._repo.get(actor.tenant_id, workflow_id)
        if workflow is None:
            raise ResourceNotFoundException("Workflow", workflow_id)
        return workflow

    async def create_or_update_workflow(self, definition: Workflow) -> Workflow:
        """
        Validate and persist a definition.

        Raises:
            InvalidWorkflowDefinition: structural violation
        """
        definition.validate()
        return await self._repo.save(definition)

    async def create_workflow(self, actor: Actor, request: WorkflowCreateRequest) -> Workflow:
        workflow = await self.create_or_update_workflow(Workflow(
            id=None,
            organization_id=actor.tenant_id,
            name=request.name.strip(),
            states=list(request.states),
            initial_state=request.initial_state,
            final_states=list(request.final_states),
            transitions=[t.to_domain() for t in request.transitions],
            is_default=request.is_default,
            is_active=request.is_active,
        ))

        logger.info(
            "Workflow created",
            extra={"workflow_id": workflow.id, "tenant_id": actor.tenant_id, "is_default": workflow.is_default}
        )

        await self._ledger.record(
            actor, AuditAction.CREATE, EntityType.WORKFLOW, workflow.id,
            new_value=workflow.snapshot(),
        )
        return workflow

    async def update_workflow(
        self,
        actor: Actor,
        workflow_id: str,
        request: WorkflowUpdateRequest
    ) -> Workflow:
        current = await self.get_workflow(actor, workflow_id)
        previous = current.snapshot()

        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        if "transitions" in changes:
            changes["transitions"] = [t.to_domain() for t in request.transitions]
        if "name" in changes:
            changes["name"] = changes["name"].strip()

        workflow = await self.create_or_update_workflow(replace(current, **changes))

        logger.info(
            "Workflow updated",
            extra={"workflow_id": workflow.id, "tenant_id": actor.tenant_id, "fields": sorted(changes)}
        )

        await self._ledger.record(
            actor, AuditAction.UPDATE, EntityType.WORKFLOW, workflow.id,
            previous_value=previous,
            new_value=workflow.snapshot(),
        )
        return workflow

    async def delete_workflow(self, actor: Actor, workflow_id: str) -> None:
        """
        Raises:
            ResourceNotFoundException: unknown id or other tenant
            CannotDeleteDefaultWorkflow: target is the tenant default
        """
        workflow = await self.get_workflow(actor, workflow_id)
        if workflow.is_default:
            raise CannotDeleteDefaultWorkflow(workflow_id)

        if not await self._repo.delete(actor.tenant_id, workflow_id):
            # Became default (or vanished) between the read and the delete
            latest = await self.get_workflow(actor, workflow_id)
            if latest.is_default:
                raise CannotDeleteDefaultWorkflow(workflow_id)
            raise ResourceNotFoundException("Workflow", workflow_id)

        logger.info("Workflow deleted", extra={"workflow_id": workflow_id, "tenant_id": actor.tenant_id})

        await self._ledger.record(
            actor, AuditAction.DELETE, EntityType.WORKFLOW, workflow_id,
            previous_value=workflow.snapshot(),
        )
