"""
SLA Application Layer
=====================

Contains:
- Services: SLABreachScanner (background and manual scans), SLAService
- DTOs: API response models

This layer depends on the issue and workflow repository interfaces,
but not on concrete infrastructure implementations.
"""

from src.sla.application.dto import BreachListResponse, ScanResultResponse
from src.sla.application.services import SLABreachScanner, SLAService

__all__ = [
    # DTOs
    "BreachListResponse",
    "ScanResultResponse",
    # Services
    "SLABreachScanner",
    "SLAService",
]
