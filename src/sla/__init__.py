"""
SLA Monitoring Module
=====================

Bounded Context for due-date tracking of compliance issues.

Responsibilities:
- Periodically find issues past their due date that are still open
  under their tenant's workflow
- Flag each one as breached exactly once (audit + tenant broadcast)
- Expose a manual scan trigger and a per-tenant breach listing
"""

__version__ = "1.0.0"
