"""
Issue Domain Layer
==================

Contains:
- Entities: Issue, AISummary, Attachment
- Value Objects: IssueFilter
"""

from src.issues.domain.entities import AISummary, Attachment, Issue, IssueFilter

__all__ = ["AISummary", "Attachment", "Issue", "IssueFilter"]
