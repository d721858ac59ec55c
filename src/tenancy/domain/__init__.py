"""
Tenancy Domain Layer
====================

Pure Python entities for tenants and their members.
"""

from src.tenancy.domain.entities import Organization, User, Actor, slugify

__all__ = ["Organization", "User", "Actor", "slugify"]
