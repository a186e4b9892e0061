"""Pydantic schemas for redemption workflows."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models import RedemptionStatus
from .account import AccountSummary


class RedemptionCreate(BaseModel):
    """Incoming payload for redeeming a reward."""

    account_id: UUID
    quantity: int = Field(1, ge=1, le=10, description="Units of the reward to claim.")


class RedemptionStatusUpdate(BaseModel):
    """Administrative decision on a redemption."""

    status: RedemptionStatus
    actor_id: Optional[UUID] = Field(None, description="Administrator making the decision.")


class RedemptionRead(BaseModel):
    """Represents a redemption record."""

    model_config = ConfigDict(from_attributes=True)

    redemption_id: UUID
    account_id: UUID
    reward_id: Optional[UUID]
    quantity: int
    points_spent: int
    status: RedemptionStatus
    created_at: datetime
    updated_at: datetime


class RedemptionDetail(RedemptionRead):
    """Redemption with its account and reward name."""

    account: AccountSummary
    reward_name: Optional[str] = None


class RedemptionReceipt(BaseModel):
    """Response returned after processing a redemption."""

    redemption: RedemptionRead
    available_balance: int = Field(..., description="Balance after this redemption.")


class StatusTotals(BaseModel):
    count: int
    total_points: int
