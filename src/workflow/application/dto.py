"""
Workflow Application DTOs
=========================

Pydantic models for workflow API requests and responses.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.config import Role
from src.workflow.domain import Transition, Workflow


class TransitionDTO(BaseModel):
    """One declared edge. Serialized with 'from' / 'to' keys."""
    model_config = ConfigDict(populate_by_name=True)

    from_state: str = Field(..., alias="from", min_length=1)
    to_state: str = Field(..., alias="to", min_length=1)
    allowed_roles: List[Role] = Field(
        default_factory=list,
        description="Roles allowed to take this transition; empty means any role"
    )

    def to_domain(self) -> Transition:
        return Transition(
            from_state=self.from_state,
            to_state=self.to_state,
            allowed_roles=frozenset(self.allowed_roles),
        )

    @classmethod
    def from_domain(cls, transition: Transition) -> "TransitionDTO":
        return cls(
            from_state=transition.from_state,
            to_state=transition.to_state,
            allowed_roles=sorted(transition.allowed_roles, key=lambda r: list(Role).index(r)),
        )


# ========== Request DTOs ==========

class WorkflowCreateRequest(BaseModel):
    """Request model for creating a workflow."""
    name: str = Field(..., min_length=1, max_length=255)
    states: List[str] = Field(..., min_length=1)
    initial_state: str = Field(..., min_length=1)
    final_states: List[str] = Field(default_factory=list)
    transitions: List[TransitionDTO] = Field(default_factory=list)
    is_default: bool = False
    is_active: bool = True


class WorkflowUpdateRequest(BaseModel):
    """Partial update; the merged definition is re-validated as a whole."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    states: Optional[List[str]] = Field(None, min_length=1)
    initial_state: Optional[str] = None
    final_states: Optional[List[str]] = None
    transitions: Optional[List[TransitionDTO]] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None


# ========== Response DTOs ==========

class WorkflowResponse(BaseModel):
    """Stored workflow definition."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    organization_id: str
    name: str
    states: List[str]
    initial_state: str
    final_states: List[str]
    transitions: List[TransitionDTO]
    is_default: bool
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, workflow: Workflow) -> "WorkflowResponse":
        return cls(
            id=workflow.id,
            organization_id=workflow.organization_id,
            name=workflow.name,
            states=workflow.states,
            initial_state=workflow.initial_state,
            final_states=workflow.final_states,
            transitions=[TransitionDTO.from_domain(t) for t in workflow.transitions],
            is_default=workflow.is_default,
            is_active=workflow.is_active,
            created_at=workflow.created_at,
            updated_at=workflow.updated_at,
        )


class WorkflowListResponse(BaseModel):
    count: int
    data: List[WorkflowResponse]
