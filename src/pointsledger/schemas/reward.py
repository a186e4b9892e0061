"""Pydantic schemas for the reward catalog."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models import RewardCategory


class RewardCreate(BaseModel):
    """Incoming payload for creating a reward."""

    name: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=500)
    cost: int = Field(..., ge=1, le=10000, description="Points per unit.")
    stock: Optional[int] = Field(None, ge=0, description="Units available; omit for unlimited.")
    category: RewardCategory = RewardCategory.OTHER
    image_url: Optional[str] = None
    active: bool = True
    created_by: Optional[UUID] = None


class RewardUpdate(BaseModel):
    """Partial reward edit; only supplied fields change."""

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=500)
    cost: Optional[int] = Field(None, ge=1, le=10000)
    stock: Optional[int] = Field(None, ge=0)
    category: Optional[RewardCategory] = None
    image_url: Optional[str] = None
    active: Optional[bool] = None


class RewardRead(BaseModel):
    """Represents a catalog entry."""

    model_config = ConfigDict(from_attributes=True)

    reward_id: UUID
    name: str
    description: str
    category: str
    cost: int
    stock: Optional[int] = Field(..., description="Null when stock is unlimited.")
    active: bool
    image_url: Optional[str]
    created_at: datetime
    total_redemptions: int = 0
    pending_redemptions: int = 0


class RewardPage(BaseModel):
    """One page of the catalog with the total number of matches."""

    items: List[RewardRead]
    total: int
    limit: int
    offset: int


class RewardStats(BaseModel):
    total_rewards: int
    active_rewards: int
    out_of_stock: int
