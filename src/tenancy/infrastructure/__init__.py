"""
Tenancy Infrastructure Layer
============================

- Models: OrganizationModel, UserModel
- Repositories: SQLAlchemyOrganizationRepository, SQLAlchemyUserRepository
"""

from src.tenancy.infrastructure.models import OrganizationModel, UserModel
from src.tenancy.infrastructure.repositories import (
    SQLAlchemyOrganizationRepository,
    SQLAlchemyUserRepository,
)

__all__ = [
    "OrganizationModel",
    "UserModel",
    "SQLAlchemyOrganizationRepository",
    "SQLAlchemyUserRepository",
]
