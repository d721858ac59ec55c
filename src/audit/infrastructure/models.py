"""
Audit Infrastructure Models
===========================

SQLAlchemy ORM model for audit log entries, with immutability enforced at
every layer below the repository:

- ORM flush: before_update / before_delete mapper events
- ORM bulk statements: a do_orm_execute hook rejecting UPDATE/DELETE
  aimed at the audit table
- Database: BEFORE UPDATE / BEFORE DELETE triggers (PostgreSQL and SQLite)
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import DDL, ForeignKey, Index, String, Uuid, event
from sqlalchemy.orm import Mapped, Session, mapped_column

from src.core import AuditImmutabilityViolation
from src.infrastructure.database import Base, JSONDocument, UTCDateTime, utcnow


class AuditLogModel(Base):
    """
    Database model for AuditLogEntry.

    Maps to the 'audit_logs' table. Rows are insert-only.
    """
    __tablename__ = "audit_logs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    action: Mapped[str] = mapped_column(String(40), index=True, nullable=False)
    entity: Mapped[str] = mapped_column(String(40), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)

    previous_value: Mapped[Optional[Any]] = mapped_column(JSONDocument, nullable=True)
    new_value: Mapped[Optional[Any]] = mapped_column(JSONDocument, nullable=True)

    performed_by: Mapped[UUID] = mapped_column(Uuid, index=True, nullable=False)
    organization_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=False
    )

    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_audit_logs_org_timestamp", "organization_id", "timestamp"),
        Index("ix_audit_logs_org_entity", "organization_id", "entity", "entity_id"),
    )


# ========== ORM guards ==========

def _violation(operation: str) -> AuditImmutabilityViolation:
    return AuditImmutabilityViolation(
        f"Audit log entries are immutable: {operation} is not allowed.",
        {"operation": operation}
    )


@event.listens_for(AuditLogModel, "before_update")
def _reject_update(mapper, connection, target):
    raise _violation("update")


@event.listens_for(AuditLogModel, "before_delete")
def _reject_delete(mapper, connection, target):
    raise _violation("delete")


@event.listens_for(Session, "do_orm_execute")
def _reject_bulk_mutation(orm_execute_state):
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return

    mapper = orm_execute_state.bind_mapper
    target_table = getattr(orm_execute_state.statement, "table", None)
    if (mapper is not None and mapper.class_ is AuditLogModel) or target_table is AuditLogModel.__table__:
        raise _violation("update" if orm_execute_state.is_update else "delete")


# ========== Database triggers ==========

_table = AuditLogModel.__table__

event.listen(_table, "after_create", DDL(
    "CREATE OR REPLACE FUNCTION audit_logs_immutable_guard() RETURNS trigger AS $$ "
    "BEGIN RAISE EXCEPTION 'audit_logs are append-only'; END "
    "$$ LANGUAGE plpgsql"
).execute_if(dialect="postgresql"))

for _op in ("UPDATE", "DELETE"):
    event.listen(_table, "after_create", DDL(
        f"CREATE TRIGGER audit_logs_no_{_op.lower()} BEFORE {_op} ON audit_logs "
        "FOR EACH ROW EXECUTE FUNCTION audit_logs_immutable_guard()"
    ).execute_if(dialect="postgresql"))

    event.listen(_table, "after_create", DDL(
        f"CREATE TRIGGER audit_logs_no_{_op.lower()} BEFORE {_op} ON audit_logs "
        "BEGIN SELECT RAISE(ABORT, 'audit_logs are append-only'); END"
    ).execute_if(dialect="sqlite"))
