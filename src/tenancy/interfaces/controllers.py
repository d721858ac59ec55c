"""
Tenancy Controllers (API Routes)
================================

FastAPI routes for registration, login and user management.

Controllers are thin - they delegate to TenancyService.
"""

from fastapi import APIRouter, Depends, Request, status

from src.config import Role
from src.tenancy.application import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    OrganizationResponse,
    RegisterRequest,
    TenancyService,
    UserCreateRequest,
    UserListResponse,
    UserResponse,
)
from src.tenancy.domain import Actor
from src.tenancy.interfaces.dependencies import (
    client_info,
    get_current_actor,
    get_tenancy_service,
    require_roles,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an organization",
    description="""
    Create a new organization with its first Admin user.

    The organization is seeded with the default compliance workflow
    (Draft, Submitted, Under Review, Approved, Rejected, Closed), which
    becomes its active default.

    Fails with 409 when the email or the organization name is taken.
    """
)
async def register(
    body: RegisterRequest,
    request: Request,
    tenancy: TenancyService = Depends(get_tenancy_service)
):
    ip_address, user_agent = client_info(request)
    token, user, organization = await tenancy.register(body, ip_address, user_agent)
    return AuthResponse(
        token=token,
        user=UserResponse.from_entity(user),
        organization=OrganizationResponse.from_entity(organization),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log in",
    description="Exchange email and password for a bearer token."
)
async def login(
    body: LoginRequest,
    request: Request,
    tenancy: TenancyService = Depends(get_tenancy_service)
):
    ip_address, user_agent = client_info(request)
    token, user, organization = await tenancy.login(body.email, body.password, ip_address, user_agent)
    return AuthResponse(
        token=token,
        user=UserResponse.from_entity(user),
        organization=OrganizationResponse.from_entity(organization),
    )


@router.get("/me", response_model=MeResponse, summary="Current user")
async def get_me(
    actor: Actor = Depends(get_current_actor),
    tenancy: TenancyService = Depends(get_tenancy_service)
):
    user, organization = await tenancy.get_me(actor)
    return MeResponse(
        user=UserResponse.from_entity(user),
        organization=OrganizationResponse.from_entity(organization),
    )


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List organization users",
    description="Admin and Manager only."
)
async def list_users(
    actor: Actor = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    tenancy: TenancyService = Depends(get_tenancy_service)
):
    users = await tenancy.list_users(actor)
    return UserListResponse(count=len(users), data=[UserResponse.from_entity(u) for u in users])


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    description="Admin only. The user joins the caller's organization."
)
async def create_user(
    body: UserCreateRequest,
    actor: Actor = Depends(require_roles(Role.ADMIN)),
    tenancy: TenancyService = Depends(get_tenancy_service)
):
    user = await tenancy.create_user(actor, body)
    return UserResponse.from_entity(user)


# Export router
auth_router = router
