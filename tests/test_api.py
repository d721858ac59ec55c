"""HTTP surface: authentication, role gates and the error envelope."""

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from src.infrastructure.database import get_session, utcnow
from src.issues.interfaces.controllers import get_summary_generator
from src.main import app
from src.shared.infrastructure.notifications import get_notification_publisher


@pytest.fixture
async def client(session_maker, publisher, summary_generator):
    async def override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_notification_publisher] = lambda: publisher
    app.dependency_overrides[get_summary_generator] = lambda: summary_generator

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def register(client, org="Acme Pharma", email="admin@acme.example"):
    response = await client.post("/auth/register", json={
        "name": "Ada Admin",
        "email": email,
        "password": "s3cret-pass",
        "organization_name": org,
        "industry": "Pharma",
    })
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


async def add_user(client, admin_headers, role, email):
    response = await client.post("/auth/users", headers=admin_headers, json={
        "name": f"{role} Person", "email": email, "password": "s3cret-pass", "role": role,
    })
    assert response.status_code == 201, response.text

    login = await client.post("/auth/login", json={"email": email, "password": "s3cret-pass"})
    return {"Authorization": f"Bearer {login.json()['token']}"}


async def create_issue(client, headers, title="Deviation in batch 42", due_in=timedelta(days=3)):
    response = await client.post("/issues", headers=headers, json={
        "title": title,
        "description": "Out-of-spec assay result.",
        "category": "Quality",
        "priority": "High",
        "due_date": (utcnow() + due_in).isoformat(),
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthRoutes:

    async def test_register_login_me(self, client):
        await register(client)

        login = await client.post("/auth/login", json={"email": "admin@acme.example", "password": "s3cret-pass"})
        assert login.status_code == 200
        body = login.json()
        assert body["success"] is True
        assert body["user"]["role"] == "Admin"

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.json()["organization"]["slug"] == "acme-pharma"

    async def test_missing_token(self, client):
        response = await client.get("/issues")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "AUTHENTICATION_FAILED"
        assert body["message"] == "Not authorized, no token."

    async def test_duplicate_registration_is_conflict(self, client):
        await register(client)
        response = await client.post("/auth/register", json={
            "name": "Copy", "email": "admin@acme.example", "password": "s3cret-pass", "organization_name": "Else",
        })
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_EMAIL"

    async def test_only_admin_creates_users(self, client):
        admin = await register(client)
        manager = await add_user(client, admin, "Manager", "manager@acme.example")

        response = await client.post("/auth/users", headers=manager, json={
            "name": "X", "email": "x@acme.example", "password": "s3cret-pass",
        })
        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"

        listing = await client.get("/auth/users", headers=manager)
        assert listing.status_code == 200
        assert listing.json()["count"] == 2


class TestIssueRoutes:

    async def test_create_transition_and_fetch(self, client, publisher):
        admin = await register(client)
        issue = await create_issue(client, admin)
        assert issue["status"] == "Draft"

        response = await client.patch(
            f"/issues/{issue['id']}/transition", headers=admin, json={"new_status": "Submitted"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "Submitted"

        events = [event for room, event, _ in publisher.events if room.startswith("tenant-")]
        assert events == ["issue:created", "issue:transitioned"]

    async def test_illegal_transition_is_400(self, client):
        admin = await register(client)
        issue = await create_issue(client, admin)

        response = await client.patch(
            f"/issues/{issue['id']}/transition", headers=admin, json={"new_status": "Closed"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "ILLEGAL_TRANSITION"

    async def test_role_not_authorized_is_403(self, client):
        admin = await register(client)
        user = await add_user(client, admin, "User", "user@acme.example")
        issue = await create_issue(client, user)
        await client.patch(f"/issues/{issue['id']}/transition", headers=user, json={"new_status": "Submitted"})

        response = await client.patch(
            f"/issues/{issue['id']}/transition", headers=user, json={"new_status": "Under Review"}
        )
        assert response.status_code == 403
        assert response.json()["code"] == "ROLE_NOT_AUTHORIZED"

    async def test_cross_tenant_access_is_404(self, client):
        ours = await register(client)
        theirs = await register(client, "Other Org", "admin@other.example")
        issue = await create_issue(client, theirs)

        response = await client.get(f"/issues/{issue['id']}", headers=ours)
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_list_with_filters(self, client):
        admin = await register(client)
        for n in range(3):
            await create_issue(client, admin, f"Issue {n}")

        response = await client.get("/issues", headers=admin, params={"status": "Draft", "limit": 2})
        body = response.json()
        assert response.status_code == 200
        assert len(body["data"]) == 2
        assert body["pagination"] == {"total": 3, "page": 1, "limit": 2, "total_pages": 2}

    async def test_user_cannot_delete(self, client):
        admin = await register(client)
        user = await add_user(client, admin, "User", "user@acme.example")
        issue = await create_issue(client, admin)

        assert (await client.delete(f"/issues/{issue['id']}", headers=user)).status_code == 403
        assert (await client.delete(f"/issues/{issue['id']}", headers=admin)).status_code == 200
        assert (await client.get(f"/issues/{issue['id']}", headers=admin)).status_code == 404

    async def test_summaries(self, client):
        admin = await register(client)
        issue = await create_issue(client, admin)

        first = await client.post(f"/ai/summarize/{issue['id']}", headers=admin)
        second = await client.post(f"/ai/summarize/{issue['id']}", headers=admin)
        assert first.status_code == 201
        assert second.json()["total_versions"] == 2

        listing = await client.get(f"/ai/summaries/{issue['id']}", headers=admin)
        assert [s["version"] for s in listing.json()["summaries"]] == [2, 1]


class TestWorkflowRoutes:

    async def test_admin_only_writes(self, client):
        admin = await register(client)
        manager = await add_user(client, admin, "Manager", "manager@acme.example")
        definition = {
            "name": "Two Step",
            "states": ["Open", "Done"],
            "initial_state": "Open",
            "final_states": ["Done"],
            "transitions": [{"from": "Open", "to": "Done", "allowed_roles": []}],
        }

        assert (await client.post("/workflows", headers=manager, json=definition)).status_code == 403

        created = await client.post("/workflows", headers=admin, json=definition)
        assert created.status_code == 201
        assert created.json()["transitions"][0]["from"] == "Open"

        listing = await client.get("/workflows", headers=manager)
        assert listing.json()["count"] == 2

    async def test_invalid_definition(self, client):
        admin = await register(client)
        response = await client.post("/workflows", headers=admin, json={
            "name": "Broken",
            "states": ["Open"],
            "initial_state": "Missing",
        })
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INVALID_WORKFLOW_DEFINITION"
        assert body["details"]["field"] == "initial_state"

    async def test_default_cannot_be_deleted(self, client):
        admin = await register(client)
        default = (await client.get("/workflows", headers=admin)).json()["data"][0]

        response = await client.delete(f"/workflows/{default['id']}", headers=admin)
        assert response.status_code == 400
        assert response.json()["code"] == "CANNOT_DELETE_DEFAULT_WORKFLOW"


class TestAuditAndSlaRoutes:

    async def test_audit_log_requires_admin_or_manager(self, client):
        admin = await register(client)
        user = await add_user(client, admin, "User", "user@acme.example")

        assert (await client.get("/audit", headers=user)).status_code == 403

        response = await client.get("/audit", headers=admin, params={"action": "LOGIN"})
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1

    async def test_entity_history(self, client):
        admin = await register(client)
        issue = await create_issue(client, admin)

        response = await client.get(f"/audit/entity/Issue/{issue['id']}", headers=admin)
        assert response.status_code == 200
        assert [e["action"] for e in response.json()["data"]] == ["CREATE"]

    async def test_manual_scan_and_breach_listing(self, client):
        admin = await register(client)
        manager = await add_user(client, admin, "Manager", "manager@acme.example")
        issue = await create_issue(client, admin, due_in=timedelta(days=-1))

        assert (await client.post("/sla/scan", headers=manager)).status_code == 403

        scan = await client.post("/sla/scan", headers=admin)
        assert scan.status_code == 200
        assert scan.json()["breached"] == 1

        breaches = await client.get("/sla/breaches", headers=manager)
        assert [i["id"] for i in breaches.json()["data"]] == [issue["id"]]

    async def test_manual_scan_is_limited_to_callers_organization(self, client):
        ours = await register(client)
        theirs = await register(client, "Other Org", "admin@other.example")
        for n in range(2):
            await create_issue(client, theirs, f"Theirs {n}", due_in=timedelta(days=-1))

        scan = await client.post("/sla/scan", headers=ours)
        assert scan.status_code == 200
        assert scan.json() == {"scanned": 0, "breached": 0, "failed": 0}

        breaches = await client.get("/sla/breaches", headers=theirs)
        assert breaches.json()["count"] == 0


class TestAssigneeRoutes:

    async def test_assign_and_unassign(self, client):
        admin = await register(client)
        await add_user(client, admin, "Reviewer", "reviewer@acme.example")
        users = (await client.get("/auth/users", headers=admin)).json()["data"]
        reviewer_id = next(u["id"] for u in users if u["email"] == "reviewer@acme.example")
        issue = await create_issue(client, admin)

        assigned = await client.put(f"/issues/{issue['id']}", headers=admin, json={"assigned_to": reviewer_id})
        assert assigned.status_code == 200
        assert assigned.json()["assigned_to"] == reviewer_id

        cleared = await client.put(f"/issues/{issue['id']}", headers=admin, json={"assigned_to": None})
        assert cleared.status_code == 200
        assert cleared.json()["assigned_to"] is None

    async def test_malformed_assignee_is_400(self, client):
        admin = await register(client)
        issue = await create_issue(client, admin)

        response = await client.put(f"/issues/{issue['id']}", headers=admin, json={"assigned_to": "not-a-uuid"})
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"] == {"field": "assigned_to"}

    async def test_assignee_from_other_organization_is_400(self, client):
        admin = await register(client)
        other = await register(client, "Other Org", "admin@other.example")
        other_id = (await client.get("/auth/me", headers=other)).json()["user"]["id"]

        response = await client.post("/issues", headers=admin, json={
            "title": "Misrouted",
            "description": "Assigned across organizations.",
            "category": "Quality",
            "due_date": (utcnow() + timedelta(days=1)).isoformat(),
            "assigned_to": other_id,
        })
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
