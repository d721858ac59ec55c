"""
SLA External Service Integrations
=================================

Background execution of the SLA scanner:
- run_sla_scan: one pass in its own database session
- SLAScheduler: APScheduler interval job with skip-if-running protection
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.audit.application import AuditLedger
from src.audit.infrastructure import SQLAlchemyAuditLogRepository
from src.issues.infrastructure import SQLAlchemyIssueRepository
from src.shared.infrastructure.logging import get_logger, log_latency
from src.shared.infrastructure.notifications import INotificationPublisher
from src.sla.application import SLABreachScanner
from src.sla.domain import ScanResult
from src.workflow.infrastructure import SQLAlchemyWorkflowRepository

logger = get_logger(__name__)


def build_scanner(session: AsyncSession, publisher: INotificationPublisher) -> SLABreachScanner:
    return SLABreachScanner(
        SQLAlchemyIssueRepository(session),
        SQLAlchemyWorkflowRepository(session),
        AuditLedger(SQLAlchemyAuditLogRepository(session)),
        publisher,
    )


async def run_sla_scan(
    session_maker: async_sessionmaker[AsyncSession],
    publisher: INotificationPublisher,
    now: Optional[datetime] = None
) -> ScanResult:
    """Run one scan pass in a dedicated session."""
    async with session_maker() as session:
        with log_latency(logger, "sla_scan"):
            return await build_scanner(session, publisher).scan(now)


class SLAScheduler:
    """
    Wrapper for APScheduler for background SLA scans.

    Manages the lifecycle of the scheduler and jobs. Besides the
    scheduler's own max_instances=1, run_once() holds a lock and skips a
    trigger that fires while the previous pass is still running.
    """

    def __init__(self, interval_seconds: int = 300):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
        self._lock = asyncio.Lock()
        self._job_func: Optional[Callable[[], Awaitable[ScanResult]]] = None
        self.last_result: Optional[ScanResult] = None

    async def run_once(self) -> Optional[ScanResult]:
        """
        Execute the job unless a previous run is still in progress.

        Returns:
            The scan result, or None when skipped or failed (already logged)
        """
        if self._job_func is None:
            raise RuntimeError("SLA scheduler has no job. Call start() first.")

        if self._lock.locked():
            logger.info("SLA scan still running, skipping this trigger")
            return None

        async with self._lock:
            try:
                self.last_result = await self._job_func()
            except Exception as e:
                logger.error("SLA scan failed", extra={"error": str(e)})
                return None
        return self.last_result

    async def start(self, job_func: Callable[[], Awaitable[ScanResult]]) -> None:
        """Start the scheduler with the given job function."""
        if self._running:
            logger.warning("SLA scheduler already running")
            return

        self._job_func = job_func
        self._scheduler = AsyncIOScheduler()

        self._scheduler.add_job(
            self.run_once,
            "interval",
            seconds=self.interval_seconds,
            id="sla_breach_scan",
            name="SLA Breach Scan",
            misfire_grace_time=60,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )

        self._scheduler.start()
        self._running = True

        logger.info(
            "SLA scheduler started",
            extra={"interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running
