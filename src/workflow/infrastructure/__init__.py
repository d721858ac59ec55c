"""
Workflow Infrastructure Layer
=============================

- Models: WorkflowModel (one default per organization, enforced by index)
- Repositories: SQLAlchemyWorkflowRepository
"""

from src.workflow.infrastructure.models import WorkflowModel
from src.workflow.infrastructure.repositories import SQLAlchemyWorkflowRepository

__all__ = ["WorkflowModel", "SQLAlchemyWorkflowRepository"]
