"""
Tenancy Domain Entities
=======================

Organizations, users and the authenticated Actor.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.config import Industry, Role


def slugify(name: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to '-', strip edge dashes."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


@dataclass
class Organization:
    """Tenant root. Every tenant-scoped record references one."""

    id: Optional[str]
    name: str
    slug: str
    industry: Industry = Industry.OTHER
    is_active: bool = True
    default_workflow_id: Optional[str] = None
    sla_default_days: int = 7
    created_at: Optional[datetime] = None

    @classmethod
    def new(cls, name: str, industry: Industry = Industry.OTHER, sla_default_days: int = 7) -> "Organization":
        name = name.strip()
        return cls(
            id=None,
            name=name,
            slug=slugify(name),
            industry=industry,
            sla_default_days=sla_default_days,
        )


@dataclass
class User:
    """A member of exactly one organization."""

    id: Optional[str]
    organization_id: str
    name: str
    email: str
    password_hash: str
    role: Role = Role.USER
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Actor:
    """
    The authenticated caller of an operation.

    Carries everything services need for tenant scoping, authorization
    and audit attribution.
    """

    user_id: str
    name: str
    role: Role
    tenant_id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
