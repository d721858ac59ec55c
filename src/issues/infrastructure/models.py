"""
Issue Infrastructure Models
===========================

SQLAlchemy ORM models for issues and their append-only child records.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.config import IssuePriority
from src.infrastructure.database import Base, UTCDateTime, utcnow


class IssueModel(Base):
    """
    Database model for Issue entity.

    Maps to the 'issues' table.
    """
    __tablename__ = "issues"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), index=True, nullable=False
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=IssuePriority.MEDIUM.value)
    status: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    assigned_to: Mapped[Optional[UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    created_by: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    # SLA tracking
    due_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    sla_breached: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sla_breached_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    ai_summaries: Mapped[List["AISummaryModel"]] = relationship(
        back_populates="issue",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="AISummaryModel.version",
    )
    attachments: Mapped[List["AttachmentModel"]] = relationship(
        back_populates="issue",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="AttachmentModel.uploaded_at",
    )

    __table_args__ = (
        # SLA scan predicate: due_date < now AND sla_breached = false
        Index("ix_issues_sla_scan", "sla_breached", "due_date"),
        Index("ix_issues_org_created", "organization_id", "created_at"),
    )


class AISummaryModel(Base):
    """
    Database model for one AI summary version.

    Maps to the 'issue_ai_summaries' table; (issue_id, version) is unique.
    """
    __tablename__ = "issue_ai_summaries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    issue_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    generated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    issue: Mapped[IssueModel] = relationship(back_populates="ai_summaries")

    __table_args__ = (
        UniqueConstraint("issue_id", "version", name="uq_issue_ai_summaries_version"),
    )


class AttachmentModel(Base):
    """
    Database model for an issue attachment.

    Maps to the 'issue_attachments' table.
    """
    __tablename__ = "issue_attachments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    issue_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("issues.id", ondelete="CASCADE"), index=True, nullable=False
    )
    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(String(2000), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    issue: Mapped[IssueModel] = relationship(back_populates="attachments")
