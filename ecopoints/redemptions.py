# ecopoints/redemptions.py
"""Redemption workflow.

A request starts ``pending`` and moves exactly once to ``approved`` or
``rejected``. The move is a conditional UPDATE on ``status = 'pending'``
so concurrent attempts on the same row cannot both succeed; on approval
the balance change is written in the same transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, update
from sqlalchemy.orm import Session

from ecopoints import models
from ecopoints.errors import AlreadyProcessed, InsufficientPoints, InvalidInput, NotFound

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _get_user(db: Session, user_id: str) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


# -------- Create --------

def create_request(
    db: Session,
    *,
    user_id: str,
    points: int,
    status: Optional[str] = None,
) -> models.RedemptionRequest:
    if status is not None and status != models.STATUS_PENDING:
        raise InvalidInput("New redemption requests must be pending")
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        raise InvalidInput("points must be a positive integer")

    user = _get_user(db, user_id)
    if points > user.points:
        raise InvalidInput(f"Requested {points} points but only {user.points} are available")

    row = models.RedemptionRequest(
        user_id=user.id,
        points=points,
        status=models.STATUS_PENDING,
        created_at=_utcnow(),
    )
    db.add(row)
    db.flush()

    admin_ids = [a[0] for a in db.query(models.User.id).filter(models.User.is_admin.is_(True)).all()]
    for admin_id in admin_ids:
        db.add(
            models.Notification(
                user_id=admin_id,
                message=f"New redemption request for {points} points from user {user.id}",
                type="redemption_request",
                created_at=_utcnow(),
            )
        )

    db.commit()
    db.refresh(row)
    logger.info("Redemption request %s created: user=%s points=%s", row.id, user.id, points)
    return row


# -------- Process --------

def process_request(
    db: Session,
    *,
    request_id: int,
    admin: models.User,
    decision: str,
) -> models.RedemptionRequest:
    if decision not in models.TERMINAL_STATUSES:
        raise InvalidInput("status must be 'approved' or 'rejected'")

    now = _utcnow()
    result = db.execute(
        update(models.RedemptionRequest)
        .where(
            models.RedemptionRequest.id == request_id,
            models.RedemptionRequest.status == models.STATUS_PENDING,
        )
        .values(status=decision, processed_by=admin.id, processed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        if db.get(models.RedemptionRequest, request_id) is None:
            raise NotFound("Redemption request not found")
        raise AlreadyProcessed()

    req = db.get(models.RedemptionRequest, request_id, populate_existing=True)

    if decision == models.STATUS_APPROVED:
        credited = db.execute(
            update(models.User)
            .where(models.User.id == req.user_id, models.User.points >= req.points)
            .values(
                points=models.User.points - req.points,
                money=models.User.money + req.points,
            )
            .execution_options(synchronize_session=False)
        )
        if credited.rowcount == 0:
            db.rollback()
            raise InsufficientPoints(f"User no longer holds {req.points} points")

        db.add(
            models.Transaction(
                user_id=req.user_id,
                type="redemption",
                points=-req.points,
                amount=Decimal(req.points),
                description=f"Redeemed {req.points} points",
                reference=str(req.id),
                created_at=now,
            )
        )

    db.add(
        models.Notification(
            user_id=req.user_id,
            message=f"Your redemption request for {req.points} points was {decision}",
            type="redemption_processed",
            created_at=now,
        )
    )

    db.commit()
    db.refresh(req)
    logger.info("Redemption request %s %s by admin %s", req.id, decision, admin.id)
    return req


# -------- Listings --------

def list_user_pending(db: Session, user_id: str) -> List[models.RedemptionRequest]:
    _get_user(db, user_id)
    return (
        db.query(models.RedemptionRequest)
        .filter(
            models.RedemptionRequest.user_id == user_id,
            models.RedemptionRequest.status == models.STATUS_PENDING,
        )
        .order_by(desc(models.RedemptionRequest.created_at), desc(models.RedemptionRequest.id))
        .all()
    )


def _with_requester(req: models.RedemptionRequest, name: str, username: Optional[str]) -> Dict[str, Any]:
    return {
        "id": req.id,
        "user_id": req.user_id,
        "user_name": name,
        "username": username,
        "points": req.points,
        "status": req.status,
        "created_at": req.created_at,
        "processed_by": req.processed_by,
        "processed_at": req.processed_at,
    }


def list_pending(db: Session) -> List[Dict[str, Any]]:
    rows = (
        db.query(models.RedemptionRequest, models.User.name, models.User.username)
        .join(models.User, models.User.id == models.RedemptionRequest.user_id)
        .filter(models.RedemptionRequest.status == models.STATUS_PENDING)
        .order_by(desc(models.RedemptionRequest.created_at), desc(models.RedemptionRequest.id))
        .all()
    )
    return [_with_requester(req, name, username) for req, name, username in rows]


def list_approved(db: Session) -> List[Dict[str, Any]]:
    rows = (
        db.query(models.RedemptionRequest, models.User.name, models.User.username)
        .join(models.User, models.User.id == models.RedemptionRequest.user_id)
        .filter(models.RedemptionRequest.status == models.STATUS_APPROVED)
        .order_by(desc(models.RedemptionRequest.processed_at), desc(models.RedemptionRequest.id))
        .all()
    )
    return [_with_requester(req, name, username) for req, name, username in rows]
