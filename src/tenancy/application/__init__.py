"""
Tenancy Application Layer
=========================

Contains:
- TenancyService: register, login, authenticate, user management
- Repository interfaces: IOrganizationRepository, IUserRepository
- DTOs: API request/response models
"""

from src.tenancy.application.dto import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    OrganizationResponse,
    RegisterRequest,
    UserCreateRequest,
    UserListResponse,
    UserResponse,
)
from src.tenancy.application.services import (
    IOrganizationRepository,
    IUserRepository,
    TenancyService,
)

__all__ = [
    # DTOs
    "AuthResponse",
    "LoginRequest",
    "MeResponse",
    "OrganizationResponse",
    "RegisterRequest",
    "UserCreateRequest",
    "UserListResponse",
    "UserResponse",
    # Services
    "TenancyService",
    # Repository Interfaces
    "IOrganizationRepository",
    "IUserRepository",
]
