# ecopoints/crud.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import case, desc, func
from sqlalchemy.orm import Session

from ecopoints import models
from ecopoints.errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)


def _d(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


# -------- Users --------

def get_user(db: Session, user_id: str) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def get_user_points(db: Session, user_id: str) -> int:
    return get_user(db, user_id).points or 0


def get_user_stats(db: Session, user_id: str) -> Dict[str, Any]:
    user = get_user(db, user_id)

    R = models.RedemptionRequest
    counts = dict(
        db.query(R.status, func.count(R.id))
        .filter(R.user_id == user_id)
        .group_by(R.status)
        .all()
    )
    redeemed = (
        db.query(func.coalesce(func.sum(R.points), 0))
        .filter(R.user_id == user_id, R.status == models.STATUS_APPROVED)
        .scalar()
    )

    T = models.Transaction
    recycled, tx_count = (
        db.query(
            func.coalesce(func.sum(case((T.type == "recycle", T.points), else_=0)), 0),
            func.count(T.id),
        )
        .filter(T.user_id == user_id)
        .one()
    )

    return {
        "user_id": user.id,
        "name": user.name,
        "points": user.points,
        "money": _d(user.money),
        "total_redemptions": sum(counts.values()),
        "pending_redemptions": counts.get(models.STATUS_PENDING, 0),
        "approved_redemptions": counts.get(models.STATUS_APPROVED, 0),
        "rejected_redemptions": counts.get(models.STATUS_REJECTED, 0),
        "total_points_redeemed": int(redeemed),
        "total_points_earned": int(recycled),
        "transaction_count": int(tx_count),
    }


def list_users(db: Session) -> List[models.User]:
    return db.query(models.User).order_by(models.User.id).all()


# -------- Transactions --------

def list_transactions(db: Session, user_id: str) -> List[models.Transaction]:
    get_user(db, user_id)
    return (
        db.query(models.Transaction)
        .filter(models.Transaction.user_id == user_id)
        .order_by(desc(models.Transaction.created_at), desc(models.Transaction.id))
        .all()
    )


# -------- Notifications --------

def list_unread_notifications(db: Session, user_id: str, *, limit: int = 5) -> List[models.Notification]:
    get_user(db, user_id)
    return (
        db.query(models.Notification)
        .filter(models.Notification.user_id == user_id, models.Notification.is_read.is_(False))
        .order_by(desc(models.Notification.created_at), desc(models.Notification.id))
        .limit(limit)
        .all()
    )


# -------- Recyclables --------

def list_recyclables(db: Session) -> List[models.Recyclable]:
    return db.query(models.Recyclable).order_by(models.Recyclable.name).all()


def update_recyclable_points(db: Session, recyclable_id: int, points_per_piece: int) -> models.Recyclable:
    if points_per_piece < 0:
        raise InvalidInput("points_per_piece must be >= 0")

    row = db.get(models.Recyclable, recyclable_id)
    if row is None:
        raise NotFound("Recyclable not found")

    row.points_per_piece = points_per_piece
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Recyclable %s (%s) now worth %s points", row.id, row.name, points_per_piece)
    return row
