"""
Issue Infrastructure Layer
==========================

- Models: IssueModel, AISummaryModel, AttachmentModel
- Repositories: SQLAlchemyIssueRepository
- External: LLMSummaryGenerator (Groq with deterministic fallback)
"""

from src.issues.infrastructure.external import LLMSummaryGenerator, build_mock_summary
from src.issues.infrastructure.models import AISummaryModel, AttachmentModel, IssueModel
from src.issues.infrastructure.repositories import SQLAlchemyIssueRepository

__all__ = [
    "AISummaryModel",
    "AttachmentModel",
    "IssueModel",
    "LLMSummaryGenerator",
    "SQLAlchemyIssueRepository",
    "build_mock_summary",
]
