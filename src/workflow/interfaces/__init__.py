"""
Workflow Interfaces Layer
=========================

Contains:
- Controllers: /workflows routes
"""

from src.workflow.interfaces.controllers import workflow_router

__all__ = ["workflow_router"]
