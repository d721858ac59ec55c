"""
Issue Application Layer
=======================

Contains:
- IssueService: lifecycle, transitions, summaries, attachments
- IIssueRepository: persistence port
- ISummaryGenerator / SummaryResult: AI summary port
- DTOs: API request/response models
"""

from src.issues.application.dto import (
    AISummaryResponse,
    AttachmentRequest,
    AttachmentResponse,
    IssueCreateRequest,
    IssueListResponse,
    IssueResponse,
    IssueUpdateRequest,
    SummaryGeneratedResponse,
    SummaryListResponse,
    TransitionRequest,
)
from src.issues.application.services import (
    IIssueRepository,
    ISummaryGenerator,
    IssueService,
    SummaryResult,
)

__all__ = [
    # DTOs
    "AISummaryResponse",
    "AttachmentRequest",
    "AttachmentResponse",
    "IssueCreateRequest",
    "IssueListResponse",
    "IssueResponse",
    "IssueUpdateRequest",
    "SummaryGeneratedResponse",
    "SummaryListResponse",
    "TransitionRequest",
    # Services
    "IssueService",
    "SummaryResult",
    # Ports
    "IIssueRepository",
    "ISummaryGenerator",
]
