# ecopoints/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StringConstraints

NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


# -------- Requests --------

class LoginIn(BaseModel):
    username: NonBlankStr
    password: str


class RegisterIn(BaseModel):
    name: NonBlankStr
    username: NonBlankStr
    password: str


class SignupIn(BaseModel):
    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3)]
    password: str
    name: NonBlankStr


class RedeemRequestIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    points: StrictInt
    status: Optional[str] = None


class ProcessRedemptionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: StrictInt = Field(..., alias="requestId")
    status: str
    admin_id: Optional[str] = Field(None, alias="adminId")


class RecyclableUpdateIn(BaseModel):
    points_per_piece: StrictInt


# -------- Responses --------

class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    username: Optional[str] = None
    is_admin: bool = False


class SignupUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    name: str


class UserAdminOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    username: Optional[str] = None
    email: Optional[str] = None
    points: int
    money: float
    is_admin: bool
    created_at: Optional[datetime] = None


class LoginOut(BaseModel):
    token: str
    user: UserPublic


class RegisterOut(BaseModel):
    message: str
    token: str
    user: UserPublic


class SignupOut(BaseModel):
    message: str
    user: SignupUser


class MessageOut(BaseModel):
    message: str


class PointsOut(BaseModel):
    points: int


class UserStatsOut(BaseModel):
    user_id: str
    name: str
    points: int
    money: float
    total_redemptions: int
    pending_redemptions: int
    approved_redemptions: int
    rejected_redemptions: int
    total_points_redeemed: int
    total_points_earned: int
    transaction_count: int


class RedemptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    points: int
    status: str
    created_at: datetime
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None


class PendingRedemptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    points: int
    status: str
    created_at: datetime


class AdminRedemptionOut(RedemptionOut):
    user_name: str
    username: Optional[str] = None


class RedeemRequestOut(BaseModel):
    message: str
    request: RedemptionOut


class ProcessRedemptionOut(BaseModel):
    message: str
    request: RedemptionOut


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    message: str
    type: str
    is_read: bool
    created_at: datetime


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    points: int
    amount: float
    description: Optional[str] = None
    reference: Optional[str] = None
    created_at: datetime


class RecyclableOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    points_per_piece: int


class SelfTestOut(BaseModel):
    status: str
    checks: List[dict]
