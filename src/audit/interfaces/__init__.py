"""
Audit Interfaces Layer
======================

Contains:
- Controllers: read-only /audit routes
"""

from src.audit.interfaces.controllers import audit_router

__all__ = ["audit_router"]
