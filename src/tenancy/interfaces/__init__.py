"""
Tenancy Interfaces Layer
========================

Contains:
- Controllers: /auth routes
- Dependencies: get_current_actor, require_roles
"""

from src.tenancy.interfaces.controllers import auth_router
from src.tenancy.interfaces.dependencies import get_current_actor, require_roles

__all__ = ["auth_router", "get_current_actor", "require_roles"]
