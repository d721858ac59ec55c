"""
SLA Domain Layer
================

Contains:
- Entities: ScanResult

This layer has no dependencies on infrastructure - pure Python.
"""

from src.sla.domain.entities import ScanResult

__all__ = ["ScanResult"]
