"""
Workflow Infrastructure Models
==============================

SQLAlchemy ORM model for workflow definitions.

A partial unique index allows a single is_default row per organization,
so two concurrent "set as default" writes cannot both commit.
"""

from datetime import datetime
from typing import Any, List
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database import Base, JSONDocument, UTCDateTime, utcnow


class WorkflowModel(Base):
    """
    Database model for Workflow entity.

    Maps to the 'workflows' table. States and transitions are stored as
    JSON documents; transitions as [{"from", "to", "allowed_roles"}].
    """
    __tablename__ = "workflows"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    states: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False)
    initial_state: Mapped[str] = mapped_column(String(100), nullable=False)
    final_states: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    transitions: Mapped[List[Any]] = mapped_column(JSONDocument, nullable=False, default=list)

    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index(
            "uq_workflows_one_default_per_org",
            "organization_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
    )
