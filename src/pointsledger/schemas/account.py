"""Pydantic schemas for accounts and point adjustments."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models import PointEventType


class AccountSummary(BaseModel):
    """Lightweight projection of account details."""

    model_config = ConfigDict(from_attributes=True)

    account_id: UUID
    display_name: str
    role: str


class AccountCreate(BaseModel):
    """Request body for opening an account."""

    display_name: str = Field(..., min_length=1, max_length=100)
    role: Literal["student", "teacher", "admin"] = "student"
    opening_balance: int = Field(0, ge=0, description="Points granted when the account opens.")


class AccountRead(AccountSummary):
    """Account response payload."""

    status: str
    balance: int
    created_at: datetime


class BalanceRead(BaseModel):
    account_id: UUID
    balance: int = Field(..., ge=0)


class PointsAward(BaseModel):
    """Incoming payload for a manual point adjustment."""

    points: int = Field(..., description="Signed, non-zero number of points to add or remove.")
    reason: str = Field(..., min_length=1, max_length=280)
    actor_id: Optional[UUID] = Field(None, description="Teacher applying the adjustment.")


class PointTransactionRead(BaseModel):
    """Represents a journal entry."""

    model_config = ConfigDict(from_attributes=True)

    entry_id: int
    event_type: PointEventType
    points_delta: int
    reason: Optional[str]
    related_redemption_id: Optional[UUID]
    actor_id: Optional[UUID]
    created_at: datetime


class PointsAwardReceipt(BaseModel):
    """Response returned after adjusting points."""

    account_id: UUID
    previous_balance: int
    new_balance: int
    points_changed: int
    entry: PointTransactionRead
