# ecopoints/models.py
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Column,
    String,
    Numeric,
    DateTime,
    Integer,
    Boolean,
    Text,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
TERMINAL_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    # issued by the identity provider
    id = Column(String(64), primary_key=True)
    name = Column(String(128), nullable=False)
    username = Column(String(128), unique=True, nullable=True)
    email = Column(String(255), unique=True, nullable=True)

    # NULL for accounts created through the provider-only signup path
    password_hash = Column(String(128), nullable=True)

    points = Column(Integer, nullable=False, default=0)
    money = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    is_admin = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        CheckConstraint("money >= 0", name="ck_users_money_non_negative"),
    )


class RedemptionRequest(Base):
    __tablename__ = "redemption_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False)

    # fixed at creation
    points = Column(Integer, nullable=False)

    # pending / approved / rejected
    status = Column(String(16), nullable=False, default=STATUS_PENDING)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    processed_by = Column(String(64), ForeignKey("users.id"), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("points > 0", name="ck_redemption_requests_points_positive"),
        Index("ix_redemption_requests_user_id", "user_id"),
        Index("ix_redemption_requests_status", "status"),
    )


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(32), nullable=False)  # redemption_request / redemption_processed
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_notifications_user_unread", "user_id", "is_read"),
    )


class Recyclable(Base):
    __tablename__ = "recyclables"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), unique=True, nullable=False)
    points_per_piece = Column(Integer, nullable=False, default=0)


class Transaction(Base):
    """Per-user history of point and money movements."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False)

    type = Column(String(16), nullable=False)  # recycle / redemption
    points = Column(Integer, nullable=False, default=0)  # signed
    amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))  # money delta
    description = Column(Text, nullable=True)
    reference = Column(String(64), nullable=True)  # e.g. redemption request id

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_transactions_user_id", "user_id"),
    )
