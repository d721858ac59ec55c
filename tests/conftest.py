"""
Shared test fixtures.

Each test gets its own in-memory SQLite database (aiosqlite + StaticPool)
with the full schema, including the audit triggers.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import src.audit.infrastructure.models  # noqa: F401
import src.issues.infrastructure.models  # noqa: F401
import src.tenancy.infrastructure.models  # noqa: F401
import src.workflow.infrastructure.models  # noqa: F401
from src.audit.application import AuditLedger
from src.audit.infrastructure import SQLAlchemyAuditLogRepository
from src.config import IssueCategory, IssuePriority, Role
from src.infrastructure.database import Base, utcnow
from src.issues.application import IssueCreateRequest, IssueService, SummaryResult, ISummaryGenerator
from src.issues.infrastructure import SQLAlchemyIssueRepository
from src.shared.infrastructure.notifications import INotificationPublisher
from src.sla.application import SLABreachScanner
from src.tenancy.application import RegisterRequest, TenancyService, UserCreateRequest
from src.tenancy.domain import Actor, User
from src.tenancy.infrastructure import SQLAlchemyOrganizationRepository, SQLAlchemyUserRepository
from src.workflow.application import WorkflowEngine, WorkflowService
from src.workflow.infrastructure import SQLAlchemyWorkflowRepository


class RecordingPublisher(INotificationPublisher):
    """Collects published events instead of sending them."""

    def __init__(self):
        self.events: List[Tuple[str, str, Dict[str, Any]]] = []

    async def publish(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((room, event, payload))

    def named(self, event: str, room: Optional[str] = None) -> List[Tuple[str, str, Dict[str, Any]]]:
        return [e for e in self.events if e[1] == event and room in (None, e[0])]


class StaticSummaryGenerator(ISummaryGenerator):
    """Returns a fixed summary and counts calls."""

    def __init__(self, summary: str = "Root cause: calibration drift.", model: str = "test-model"):
        self.summary = summary
        self.model = model
        self.calls = 0

    async def generate(self, title, description, category, priority) -> SummaryResult:
        self.calls += 1
        return SummaryResult(summary=self.summary, model=self.model)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def summary_generator():
    return StaticSummaryGenerator()


@pytest.fixture
def ledger(session):
    return AuditLedger(SQLAlchemyAuditLogRepository(session))


@pytest.fixture
def workflow_repo(session):
    return SQLAlchemyWorkflowRepository(session)


@pytest.fixture
def issue_repo(session):
    return SQLAlchemyIssueRepository(session)


@pytest.fixture
def tenancy(session, workflow_repo, ledger):
    return TenancyService(
        SQLAlchemyOrganizationRepository(session),
        SQLAlchemyUserRepository(session),
        workflow_repo,
        ledger,
    )


@pytest.fixture
def engine_service(workflow_repo):
    return WorkflowEngine(workflow_repo)


@pytest.fixture
def workflow_service(workflow_repo, ledger):
    return WorkflowService(workflow_repo, ledger)


@pytest.fixture
def user_repo(session):
    return SQLAlchemyUserRepository(session)


@pytest.fixture
def issue_service(issue_repo, user_repo, engine_service, ledger, publisher, summary_generator):
    return IssueService(issue_repo, user_repo, engine_service, ledger, publisher, summary_generator)


@pytest.fixture
def scanner(issue_repo, workflow_repo, ledger, publisher):
    return SLABreachScanner(issue_repo, workflow_repo, ledger, publisher)


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, name=user.name, role=user.role, tenant_id=user.organization_id)


@pytest.fixture
def register(tenancy):
    """Factory: register an organization and return its Admin actor."""

    async def _register(org_name: str = "Acme Pharma", email: str = "admin@acme.example") -> Actor:
        _, admin, _ = await tenancy.register(RegisterRequest(
            name="Ada Admin",
            email=email,
            password="s3cret-pass",
            organization_name=org_name,
        ))
        return actor_for(admin)

    return _register


@pytest.fixture
def add_user(tenancy):
    """Factory: create a user with a given role inside the admin's tenant."""

    async def _add_user(admin: Actor, role: Role, email: str) -> Actor:
        user = await tenancy.create_user(admin, UserCreateRequest(
            name=f"{role.value} Person",
            email=email,
            password="s3cret-pass",
            role=role,
        ))
        return actor_for(user)

    return _add_user


@pytest.fixture
async def admin(register):
    return await register()


@pytest.fixture
def new_issue(issue_service):
    """Factory: create an issue due in one day unless told otherwise."""

    async def _new_issue(actor: Actor, title: str = "Deviation in batch 42", due_in=timedelta(days=1)):
        return await issue_service.create_issue(actor, IssueCreateRequest(
            title=title,
            description="Out-of-spec assay result recorded during release testing.",
            category=IssueCategory.QUALITY,
            priority=IssuePriority.HIGH,
            due_date=utcnow() + due_in,
        ))

    return _new_issue
