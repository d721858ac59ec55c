"""
SLA Infrastructure Layer
========================

- External: APScheduler wrapper and the session-scoped scan runner
"""

from src.sla.infrastructure.external import SLAScheduler, build_scanner, run_sla_scan

__all__ = ["SLAScheduler", "build_scanner", "run_sla_scan"]
