"""
Tenancy Application DTOs
========================

Pydantic models for registration, login and user management.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from src.config import Industry, Role
from src.tenancy.domain import Organization, User


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v or v.startswith("@") or v.endswith("@"):
        raise ValueError("invalid email address")
    return v


# ========== Request DTOs ==========

class RegisterRequest(BaseModel):
    """Register a new organization together with its first Admin."""
    name: str = Field(..., min_length=1, max_length=255, description="Admin display name")
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=6, max_length=128)
    organization_name: str = Field(..., min_length=1, max_length=255)
    industry: Industry = Industry.OTHER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("organization_name")
    @classmethod
    def strip_organization_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("organization_name must not be blank")
        return v


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserCreateRequest(BaseModel):
    """Admin-created user inside the caller's organization."""
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=6, max_length=128)
    role: Role = Role.USER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


# ========== Response DTOs ==========

class OrganizationResponse(BaseModel):
    id: str
    name: str
    slug: str
    industry: Industry
    is_active: bool
    default_workflow_id: Optional[str] = None
    sla_default_days: int
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, organization: Organization) -> "OrganizationResponse":
        return cls(
            id=organization.id,
            name=organization.name,
            slug=organization.slug,
            industry=organization.industry,
            is_active=organization.is_active,
            default_workflow_id=organization.default_workflow_id,
            sla_default_days=organization.sla_default_days,
            created_at=organization.created_at,
        )


class UserResponse(BaseModel):
    """User without credentials."""
    id: str
    organization_id: str
    name: str
    email: str
    role: Role
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            organization_id=user.organization_id,
            name=user.name,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
        )


class AuthResponse(BaseModel):
    """Access token plus the authenticated user and organization."""
    success: bool = True
    token: str
    token_type: str = "bearer"
    user: UserResponse
    organization: OrganizationResponse


class MeResponse(BaseModel):
    user: UserResponse
    organization: OrganizationResponse


class UserListResponse(BaseModel):
    count: int
    data: List[UserResponse]
