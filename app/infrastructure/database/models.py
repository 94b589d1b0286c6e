# app/infrastructure/database/models.py

from sqlalchemy import JSON, Column, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from app.infrastructure.database.session import Base

JsonMapping = JSON().with_variant(JSONB(), "postgresql")


class HistoryEventRow(Base):
    """ORM model for the append-only timesheet history log."""

    __tablename__ = "timesheet_history"
    __table_args__ = (
        Index("ix_timesheet_history_company_user", "company_id", "user_id"),
        Index("ix_timesheet_history_company_target", "company_id", "target_type", "target_id"),
        Index("ix_timesheet_history_company_keyset", "company_id", "occurred_at", "id"),
    )

    id = Column(String(36), primary_key=True)
    company_id = Column(String(64), nullable=False)
    user_id = Column(String(64), nullable=False)
    target_type = Column(String(32), nullable=False)
    target_id = Column(String(64), nullable=False)
    action = Column(String(64), nullable=False)
    actor_user_id = Column(String(64), nullable=False)
    reason = Column(Text, nullable=True)
    diff = Column(JsonMapping, nullable=True)
    metadata_ = Column("metadata", JsonMapping, nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    # Unique on its own: NULLs never collide, so only keyed writes are deduplicated.
    idempotency_key = Column(String(255), nullable=True, unique=True)
