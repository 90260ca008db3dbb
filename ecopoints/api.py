# ecopoints/api.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ecopoints import auth, crud, models, redemptions, schemas
from ecopoints.core.config import Settings
from ecopoints.database import get_db
from ecopoints.deps import admin_user, get_identity_provider, get_settings
from ecopoints.errors import Forbidden
from ecopoints.identity import IdentityProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# -------- Auth --------

@router.post("/login", response_model=schemas.LoginOut)
def login(
    payload: schemas.LoginIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    token, user = auth.authenticate(db, payload.username, payload.password, settings)
    return {"token": token, "user": user}


@router.post("/register", response_model=schemas.RegisterOut, status_code=status.HTTP_201_CREATED)
def register(
    payload: schemas.RegisterIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    token, user = auth.register(
        db,
        provider,
        name=payload.name,
        username=payload.username,
        password=payload.password,
        settings=settings,
    )
    return {"message": "Registration successful", "token": token, "user": user}


@router.post("/auth/signup", response_model=schemas.SignupOut, status_code=status.HTTP_201_CREATED)
def signup(
    payload: schemas.SignupIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    user = auth.signup(
        db,
        provider,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        settings=settings,
    )
    return {
        "message": "Registration successful! Please check your email for verification.",
        "user": user,
    }


# -------- User reads --------

@router.get("/notifications", response_model=List[schemas.NotificationOut])
def notifications(
    user_id: str = Query(..., alias="userId"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return crud.list_unread_notifications(db, user_id, limit=settings.NOTIFICATIONS_PAGE_SIZE)


@router.get("/user-points/{user_id}", response_model=schemas.PointsOut)
def user_points(user_id: str, db: Session = Depends(get_db)):
    return {"points": crud.get_user_points(db, user_id)}


@router.get("/user-stats/{user_id}", response_model=schemas.UserStatsOut)
def user_stats(user_id: str, db: Session = Depends(get_db)):
    return crud.get_user_stats(db, user_id)


@router.get("/transactions/{user_id}", response_model=List[schemas.TransactionOut])
def transactions(user_id: str, db: Session = Depends(get_db)):
    return crud.list_transactions(db, user_id)


# -------- Redemptions --------

@router.post("/redeem-request", response_model=schemas.RedeemRequestOut)
def redeem_request(payload: schemas.RedeemRequestIn, db: Session = Depends(get_db)):
    row = redemptions.create_request(
        db,
        user_id=payload.user_id,
        points=payload.points,
        status=payload.status,
    )
    return {"message": "Redemption request created successfully", "request": row}


@router.get("/pending-redemptions/{user_id}", response_model=List[schemas.PendingRedemptionOut])
def pending_redemptions(user_id: str, db: Session = Depends(get_db)):
    return redemptions.list_user_pending(db, user_id)


# -------- Admin --------

@router.get("/admin/users", response_model=List[schemas.UserAdminOut])
def admin_users(
    admin: models.User = Depends(admin_user),
    db: Session = Depends(get_db),
):
    return crud.list_users(db)


@router.get("/admin/pending-redemptions", response_model=List[schemas.AdminRedemptionOut])
def admin_pending_redemptions(
    admin: models.User = Depends(admin_user),
    db: Session = Depends(get_db),
):
    return redemptions.list_pending(db)


@router.get("/admin/approved-redemptions", response_model=List[schemas.AdminRedemptionOut])
def admin_approved_redemptions(
    admin: models.User = Depends(admin_user),
    db: Session = Depends(get_db),
):
    return redemptions.list_approved(db)


@router.get("/admin/recyclables", response_model=List[schemas.RecyclableOut])
def admin_recyclables(
    admin: models.User = Depends(admin_user),
    db: Session = Depends(get_db),
):
    return crud.list_recyclables(db)


@router.put("/admin/recyclables/{recyclable_id}", response_model=schemas.MessageOut)
def admin_update_recyclable(
    recyclable_id: int,
    payload: schemas.RecyclableUpdateIn,
    admin: models.User = Depends(admin_user),
    db: Session = Depends(get_db),
):
    crud.update_recyclable_points(db, recyclable_id, payload.points_per_piece)
    return {"message": "Value updated successfully"}


@router.post("/admin/process-redemption", response_model=schemas.ProcessRedemptionOut)
def admin_process_redemption(
    payload: schemas.ProcessRedemptionIn,
    admin: models.User = Depends(admin_user),
    db: Session = Depends(get_db),
):
    # adminId in the body is informational; it must agree with the session
    if payload.admin_id is not None and payload.admin_id != admin.id:
        raise Forbidden("adminId does not match the authenticated admin")

    row = redemptions.process_request(
        db,
        request_id=payload.request_id,
        admin=admin,
        decision=payload.status,
    )
    return {"message": f"Request {payload.status} successfully", "request": row}
