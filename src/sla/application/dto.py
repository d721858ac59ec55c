"""
SLA Application DTOs
====================

Pydantic models for SLA API responses.
"""

from typing import List

from pydantic import BaseModel, Field

from src.issues.application import IssueResponse
from src.sla.domain import ScanResult


class ScanResultResponse(BaseModel):
    """Counts from one scan pass."""
    scanned: int = Field(..., ge=0, description="Overdue, unflagged, non-final issues matched")
    breached: int = Field(..., ge=0, description="Issues flagged by this pass")
    failed: int = Field(..., ge=0, description="Issues skipped after an error")

    @classmethod
    def from_result(cls, result: ScanResult) -> "ScanResultResponse":
        return cls(**result.as_dict())


class BreachListResponse(BaseModel):
    count: int
    data: List[IssueResponse]
