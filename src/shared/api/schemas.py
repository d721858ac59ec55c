"""
Shared API Schemas
==================

Response fragments reused by several modules.
"""

import math

from pydantic import BaseModel, Field


class PaginationResponse(BaseModel):
    """Server-computed pagination block."""
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PaginationResponse":
        return cls(total=total, page=page, limit=limit, total_pages=math.ceil(total / limit))


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    success: bool = True
    message: str
