# backend/app/models/breach.py
"""
ORM models for per-user breach records.

Security: password_hash is the uppercase SHA-1 digest used for the
k-anonymity lookup. The plaintext password is NEVER stored.

risk_level and the recommended_actions rows are derived from the
breach_sources rows (see services/risk.py) and are rewritten only by the
record manager in the same transaction that appends a source.
"""
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from backend.app.db.base import Base


class BreachRecord(Base):
    """Aggregate of every detection of one password for one user."""

    __tablename__ = "breach_records"
    __table_args__ = (
        UniqueConstraint("user_id", "password_hash", name="uq_breach_records_user_hash"),
        Index("ix_breach_records_user_active", "user_id", "is_active"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # 40 hex chars, uppercase
    password_hash = Column(String(40), nullable=False, index=True)

    is_active = Column(Boolean, nullable=False, default=True)
    first_detected = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_checked = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    times_found = Column(Integer, nullable=False, default=1)

    # Only ever changed with an atomic SQL increment
    notifications_sent = Column(Integer, nullable=False, default=0)

    user_acknowledged = Column(Boolean, nullable=False, default=False)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)

    # Derived: low | medium | high | critical
    risk_level = Column(String(16), nullable=False, default="low")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    breach_sources = relationship(
        "BreachSource",
        order_by="BreachSource.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    recommended_actions = relationship(
        "RecommendedAction",
        order_by="RecommendedAction.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class BreachSource(Base):
    """One corpus in which the password was found. Unique per record by name."""

    __tablename__ = "breach_sources"
    __table_args__ = (
        UniqueConstraint("breach_record_id", "name", name="uq_breach_sources_record_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    breach_record_id = Column(
        Integer, ForeignKey("breach_records.id", ondelete="CASCADE"), nullable=False
    )

    name = Column(String(100), nullable=False)
    date_found = Column(DateTime(timezone=True), nullable=False)
    # low | medium | high | critical
    severity = Column(String(16), nullable=False, default="medium")
    description = Column(Text, nullable=True)
    affected_accounts = Column(Integer, nullable=False, default=0)


class RecommendedAction(Base):
    """Remedial step suggested for a record, in display order."""

    __tablename__ = "recommended_actions"
    __table_args__ = (
        UniqueConstraint("breach_record_id", "position", name="uq_recommended_actions_record_position"),
    )

    id = Column(Integer, primary_key=True, index=True)
    breach_record_id = Column(
        Integer, ForeignKey("breach_records.id", ondelete="CASCADE"), nullable=False
    )

    position = Column(Integer, nullable=False)
    action = Column(String(255), nullable=False)
    # low | medium | high
    priority = Column(String(16), nullable=False, default="medium")
    completed = Column(Boolean, nullable=False, default=False)
