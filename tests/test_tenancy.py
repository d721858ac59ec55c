"""Organizations, users and authentication."""

import pytest

from src.config import AuditAction, EntityType, Role
from src.core import AuthenticationFailed, DuplicateEmail, DuplicateOrganizationName
from src.shared.infrastructure.security import create_access_token, decode_access_token
from src.tenancy.application import RegisterRequest, UserCreateRequest
from src.tenancy.domain import slugify


def registration(org="Acme Pharma", email="admin@acme.example"):
    return RegisterRequest(name="Ada Admin", email=email, password="s3cret-pass", organization_name=org)


class TestRegistration:

    async def test_register_creates_admin_org_and_default_workflow(self, tenancy, workflow_repo):
        token, admin, organization = await tenancy.register(registration())

        assert admin.role == Role.ADMIN
        assert admin.organization_id == organization.id
        assert organization.slug == "acme-pharma"

        default = await workflow_repo.get_active_default(organization.id)
        assert default is not None
        assert organization.default_workflow_id == default.id

        claims = decode_access_token(token)
        assert claims["sub"] == admin.id
        assert claims["organization"] == organization.id

    async def test_duplicate_email_rejected(self, tenancy):
        await tenancy.register(registration())
        with pytest.raises(DuplicateEmail):
            await tenancy.register(registration(org="Another Org", email="ADMIN@acme.example"))

    async def test_duplicate_organization_name_rejected(self, tenancy):
        await tenancy.register(registration())
        with pytest.raises(DuplicateOrganizationName):
            await tenancy.register(registration(org="Acme  Pharma!", email="other@acme.example"))

    def test_slugify(self):
        assert slugify("  Acme Pharma, Inc. ") == "acme-pharma-inc"


class TestLogin:

    async def test_login_returns_token_and_audits(self, tenancy, ledger):
        await tenancy.register(registration())

        token, user, _ = await tenancy.login("Admin@Acme.example", "s3cret-pass", "10.0.0.1", "pytest")
        actor = await tenancy.authenticate(token)
        assert actor.user_id == user.id

        entries = await ledger.query_for_entity(user.organization_id, EntityType.USER, user.id)
        login = next(e for e in entries if e.action == AuditAction.LOGIN)
        assert login.ip_address == "10.0.0.1"
        assert login.user_agent == "pytest"

    async def test_wrong_password(self, tenancy):
        await tenancy.register(registration())
        with pytest.raises(AuthenticationFailed):
            await tenancy.login("admin@acme.example", "wrong-password")

    async def test_unknown_email_has_same_message(self, tenancy):
        await tenancy.register(registration())
        with pytest.raises(AuthenticationFailed) as unknown:
            await tenancy.login("nobody@acme.example", "s3cret-pass")
        with pytest.raises(AuthenticationFailed) as wrong:
            await tenancy.login("admin@acme.example", "bad")
        assert unknown.value.message == wrong.value.message


class TestAuthentication:

    async def test_garbage_token_rejected(self, tenancy):
        with pytest.raises(AuthenticationFailed):
            await tenancy.authenticate("not-a-jwt")

    async def test_expired_token_rejected(self, tenancy, admin):
        token = create_access_token(admin.user_id, admin.role.value, admin.tenant_id, expires_minutes=-1)
        with pytest.raises(AuthenticationFailed):
            await tenancy.authenticate(token)

    async def test_token_for_wrong_tenant_rejected(self, tenancy, admin, register):
        other = await register("Other Org", "admin@other.example")
        forged = create_access_token(admin.user_id, admin.role.value, other.tenant_id)
        with pytest.raises(AuthenticationFailed):
            await tenancy.authenticate(forged)


class TestUsers:

    async def test_create_and_list_users(self, tenancy, admin, register):
        other = await register("Other Org", "admin@other.example")
        await tenancy.create_user(admin, UserCreateRequest(
            name="Rita Reviewer", email="rita@acme.example", password="s3cret-pass", role=Role.REVIEWER
        ))

        users = await tenancy.list_users(admin)
        assert {u.email for u in users} == {"admin@acme.example", "rita@acme.example"}
        assert all(u.organization_id == admin.tenant_id for u in users)
        assert len(await tenancy.list_users(other)) == 1

    async def test_created_user_can_log_in(self, tenancy, admin):
        await tenancy.create_user(admin, UserCreateRequest(
            name="Uma User", email="uma@acme.example", password="s3cret-pass"
        ))
        _, user, organization = await tenancy.login("uma@acme.example", "s3cret-pass")
        assert user.role == Role.USER
        assert organization.id == admin.tenant_id

    async def test_email_is_globally_unique(self, tenancy, admin, register):
        other = await register("Other Org", "admin@other.example")
        with pytest.raises(DuplicateEmail):
            await tenancy.create_user(other, UserCreateRequest(
                name="Copy", email="admin@acme.example", password="s3cret-pass"
            ))
