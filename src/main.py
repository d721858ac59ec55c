"""
Compliance Tracker - Main Application
=====================================

Multi-tenant compliance issue tracker with configurable workflows,
SLA breach detection, immutable audit logging and AI root-cause summaries.

Modules:
- Tenancy: Organizations, users, authentication
- Workflow: Per-tenant state machines with role-gated transitions
- Issues: Compliance issues, AI summaries, attachments
- Audit: Append-only audit ledger
- SLA Monitoring: Background breach scanner

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and business rules
- Infrastructure: Database, LLM, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

# Configuration and Core
from src.config import Industry, settings
from src.core import ApplicationException, DuplicateEmail, DuplicateOrganizationName

# Infrastructure
from src.infrastructure.database import (
    close_database,
    create_tables,
    get_engine,
    get_session_context,
    get_session_maker,
    init_database,
)
from src.infrastructure.llm import create_llm_client

# SLA Module - background scanner
from src.sla.infrastructure import SLAScheduler, run_sla_scan

# Module Routers
from src.audit.interfaces import audit_router
from src.issues.interfaces import issue_router, summary_router
from src.sla.interfaces import sla_router
from src.tenancy.interfaces import auth_router
from src.workflow.interfaces import workflow_router
from src.shared.api.websocket import websocket_router

# Logging and notifications
from src.shared.infrastructure.logging import get_logger, setup_logging
from src.shared.infrastructure.notifications import notification_hub

logger = get_logger(__name__)

# Global service instances
sla_scheduler: Optional[SLAScheduler] = None

DEMO_ORGANIZATION = "Demo Pharma Co"
DEMO_ADMIN_EMAIL = "admin@demo-pharma.example"
DEMO_ADMIN_PASSWORD = "demo-password"


async def seed_demo_data() -> None:
    """Register the demo tenant unless it already exists."""
    from src.audit.application import AuditLedger
    from src.audit.infrastructure import SQLAlchemyAuditLogRepository
    from src.tenancy.application import RegisterRequest, TenancyService
    from src.tenancy.infrastructure import SQLAlchemyOrganizationRepository, SQLAlchemyUserRepository
    from src.workflow.infrastructure import SQLAlchemyWorkflowRepository

    async with get_session_context() as session:
        tenancy = TenancyService(
            SQLAlchemyOrganizationRepository(session),
            SQLAlchemyUserRepository(session),
            SQLAlchemyWorkflowRepository(session),
            AuditLedger(SQLAlchemyAuditLogRepository(session)),
        )
        try:
            await tenancy.register(RegisterRequest(
                name="Demo Admin",
                email=DEMO_ADMIN_EMAIL,
                password=DEMO_ADMIN_PASSWORD,
                organization_name=DEMO_ORGANIZATION,
                industry=Industry.PHARMA,
            ))
            logger.info("Demo tenant created", extra={"email": DEMO_ADMIN_EMAIL})
        except (DuplicateEmail, DuplicateOrganizationName):
            logger.info("Demo tenant already present")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables
    4. Seed the demo tenant (optional)
    5. Start SLA scheduler

    SHUTDOWN:
    1. Stop SLA scheduler
    2. Close database connections
    """
    global sla_scheduler

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Compliance Tracker", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    # Initialize database
    logger.info("Initializing database")
    init_database()

    # Create tables (for development - use Alembic in production)
    # Note: If database is not available, the server will start but
    # database-dependent endpoints will fail
    logger.info("Creating database tables")
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    if settings.seed_demo_data:
        try:
            await seed_demo_data()
        except Exception as e:
            logger.warning(f"Demo data not seeded: {e}")

    # Start SLA scanner (disabled in serverless / when interval is 0)
    if settings.sla_scan_enabled and settings.sla_scan_interval_seconds > 0:
        session_maker = get_session_maker()

        async def sla_scan_job():
            """Background SLA scan job."""
            return await run_sla_scan(session_maker, notification_hub)

        sla_scheduler = SLAScheduler(interval_seconds=settings.sla_scan_interval_seconds)
        await sla_scheduler.start(sla_scan_job)
    else:
        logger.info("SLA scheduler disabled")

    logger.info("Compliance Tracker started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Compliance Tracker")

    if sla_scheduler:
        await sla_scheduler.stop()
        sla_scheduler = None

    await close_database()

    logger.info("Compliance Tracker shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Compliance Tracker API",
    description="""
    ## Multi-tenant Compliance Issue Tracker

    Track compliance incidents through configurable, role-gated workflows
    with SLA breach detection, an immutable audit trail and AI-generated
    root-cause summaries.

    ---

    ### Authentication
    - `POST /auth/register` - Register an organization and its Admin
    - `POST /auth/login` - Obtain a bearer token
    - `GET /auth/me`, `GET/POST /auth/users`

    ### Workflows
    - `GET/POST /workflows`, `GET/PUT/DELETE /workflows/{id}`

    ### Issues
    - `GET/POST /issues`, `GET/PUT/DELETE /issues/{id}`
    - `PATCH /issues/{id}/transition` - Workflow transition
    - `POST /issues/{id}/attachments`

    ### AI Summaries
    - `POST /ai/summarize/{issueId}`, `GET /ai/summaries/{issueId}`

    ### Audit
    - `GET /audit`, `GET /audit/entity/{entity}/{entityId}`

    ### SLA Monitoring
    - `POST /sla/scan`, `GET /sla/breaches`

    ### Realtime
    - `WS /ws?token=<jwt>` - tenant events (`issue:*`, `sla:breach`)
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
from src.shared.api.middleware import (  # noqa: E402
    CorrelationIDMiddleware,
    MetricsMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler
)

app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(auth_router)
app.include_router(workflow_router)
app.include_router(issue_router)
app.include_router(summary_router)
app.include_router(audit_router)
app.include_router(sla_router)
app.include_router(websocket_router)

# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "database": "connected",
                        "sla_scheduler": "running",
                        "llm_client": "available"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Returns service health status including:
    - Database connectivity
    - Scheduler state
    - LLM client availability
    """
    checks = {
        "database": "connected",
        "sla_scheduler": "running" if sla_scheduler and sla_scheduler.is_running else "stopped",
        "llm_client": "available" if create_llm_client() else "mock",
    }

    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        checks["database"] = f"error: {str(e)}"

    healthy = checks["database"] == "connected"
    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Compliance Tracker",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "auth": {"prefix": "/auth"},
            "workflows": {"prefix": "/workflows"},
            "issues": {"prefix": "/issues"},
            "ai": {"prefix": "/ai"},
            "audit": {"prefix": "/audit"},
            "sla": {"prefix": "/sla"},
            "realtime": {"prefix": "/ws"},
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
