"""
Workflow Domain Layer
=====================

Contains:
- Entities: Workflow, Transition
- Factories: bootstrap_workflow (seeded for every new organization)

Pure Python; no infrastructure dependencies.
"""

from src.workflow.domain.entities import Transition, Workflow, bootstrap_workflow

__all__ = ["Transition", "Workflow", "bootstrap_workflow"]
