"""
Workflow Domain Entities
========================

A workflow is a named finite-state machine scoped to one organization.

Roles allowed on a transition form a set over the closed Role enum; an
empty set means any role may take the transition.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from src.config import (
    BOOTSTRAP_FINAL_STATES,
    BOOTSTRAP_INITIAL_STATE,
    BOOTSTRAP_STATES,
    DEFAULT_WORKFLOW_NAME,
    Role,
)
from src.core import InvalidWorkflowDefinition


@dataclass(frozen=True)
class Transition:
    """A declared edge between two states."""

    from_state: str
    to_state: str
    allowed_roles: FrozenSet[Role] = frozenset()

    def permits(self, role: Role) -> bool:
        return not self.allowed_roles or role in self.allowed_roles

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_state,
            "to": self.to_state,
            "allowed_roles": sorted(r.value for r in self.allowed_roles),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transition":
        try:
            roles = frozenset(Role(r) for r in data.get("allowed_roles") or [])
        except ValueError as e:
            raise InvalidWorkflowDefinition("transitions", f"Unknown role in transition: {e}")
        return cls(from_state=data["from"], to_state=data["to"], allowed_roles=roles)


@dataclass
class Workflow:
    """Tenant workflow definition."""

    id: Optional[str]
    organization_id: str
    name: str
    states: List[str]
    initial_state: str
    final_states: List[str] = field(default_factory=list)
    transitions: List[Transition] = field(default_factory=list)
    is_default: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def validate(self) -> None:
        """
        Check structural invariants.

        Raises:
            InvalidWorkflowDefinition: naming the offending field
        """
        if not self.name or not self.name.strip():
            raise InvalidWorkflowDefinition("name", "Workflow name is required.")

        if not self.states:
            raise InvalidWorkflowDefinition("states", "A workflow must define at least one state.")

        if any(not s or not s.strip() for s in self.states):
            raise InvalidWorkflowDefinition("states", "State names must not be empty.")

        duplicates = sorted({s for s in self.states if self.states.count(s) > 1})
        if duplicates:
            raise InvalidWorkflowDefinition(
                "states", "State names must be unique.", {"duplicates": duplicates}
            )

        known = set(self.states)

        if self.initial_state not in known:
            raise InvalidWorkflowDefinition(
                "initial_state",
                "initial_state must be one of the defined states.",
                {"initial_state": self.initial_state}
            )

        unknown_finals = [s for s in self.final_states if s not in known]
        if unknown_finals:
            raise InvalidWorkflowDefinition(
                "final_states",
                "All final_states must be in the defined states.",
                {"unknown": unknown_finals}
            )

        for t in self.transitions:
            if t.from_state not in known or t.to_state not in known:
                raise InvalidWorkflowDefinition(
                    "transitions",
                    f"Transition from '{t.from_state}' to '{t.to_state}' references undefined states.",
                    {"from": t.from_state, "to": t.to_state}
                )

    def find_transition(self, from_state: str, to_state: str) -> Optional[Transition]:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def is_final(self, state: str) -> bool:
        return state in self.final_states

    @property
    def is_active_default(self) -> bool:
        return self.is_default and self.is_active

    def snapshot(self) -> Dict[str, Any]:
        """Audit representation."""
        return {
            "name": self.name,
            "states": list(self.states),
            "transitions": [t.to_dict() for t in self.transitions],
        }


def _roles(*roles: Role) -> FrozenSet[Role]:
    return frozenset(roles)


def bootstrap_workflow(organization_id: str) -> Workflow:
    """The workflow every new organization starts with."""
    everyone: Iterable[Role] = tuple(Role)
    return Workflow(
        id=None,
        organization_id=organization_id,
        name=DEFAULT_WORKFLOW_NAME,
        states=list(BOOTSTRAP_STATES),
        initial_state=BOOTSTRAP_INITIAL_STATE,
        final_states=list(BOOTSTRAP_FINAL_STATES),
        transitions=[
            Transition("Draft", "Submitted", _roles(*everyone)),
            Transition("Submitted", "Under Review", _roles(Role.ADMIN, Role.MANAGER, Role.REVIEWER)),
            Transition("Under Review", "Approved", _roles(Role.ADMIN, Role.MANAGER)),
            Transition("Under Review", "Rejected", _roles(Role.ADMIN, Role.MANAGER)),
            Transition("Approved", "Closed", _roles(Role.ADMIN, Role.MANAGER)),
            Transition("Rejected", "Draft", _roles(Role.ADMIN, Role.MANAGER, Role.USER)),
        ],
        is_default=True,
        is_active=True,
    )
