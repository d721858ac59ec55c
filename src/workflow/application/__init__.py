"""
Workflow Application Layer
==========================

Contains:
- WorkflowEngine: transition validation and state lookups
- WorkflowService: definition CRUD with audit
- IWorkflowRepository: persistence port
- DTOs: API request/response models
"""

from src.workflow.application.dto import (
    TransitionDTO,
    WorkflowCreateRequest,
    WorkflowUpdateRequest,
    WorkflowResponse,
    WorkflowListResponse,
)
from src.workflow.application.services import (
    IWorkflowRepository,
    TransitionDecision,
    WorkflowEngine,
    WorkflowService,
)

__all__ = [
    # DTOs
    "TransitionDTO",
    "WorkflowCreateRequest",
    "WorkflowUpdateRequest",
    "WorkflowResponse",
    "WorkflowListResponse",
    # Services
    "WorkflowEngine",
    "WorkflowService",
    "TransitionDecision",
    # Repository Interfaces
    "IWorkflowRepository",
]
