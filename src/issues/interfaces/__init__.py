"""
Issue Interfaces Layer
======================

Contains:
- Controllers: /issues and /ai routes
"""

from src.issues.interfaces.controllers import issue_router, summary_router

__all__ = ["issue_router", "summary_router"]
