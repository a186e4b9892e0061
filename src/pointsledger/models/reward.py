"""Reward catalog model."""

import enum
import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow


class RewardCategory(str, enum.Enum):
    """Catalog groupings offered to students."""

    MATERIAL = "material"
    EXPERIENCE = "experience"
    PRIVILEGE = "privilege"
    DIGITAL = "digital"
    FOOD = "food"
    OTHER = "other"


class Reward(Base):
    """Redeemable catalog entry; a NULL stock means unlimited."""

    __tablename__ = "rewards"
    __table_args__ = (
        CheckConstraint("cost > 0", name="rewards_cost_positive"),
        CheckConstraint("stock IS NULL OR stock >= 0", name="rewards_stock_non_negative"),
    )

    reward_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)
    category = Column(String, nullable=False, default=RewardCategory.OTHER.value)
    cost = Column(Integer, nullable=False)
    stock = Column(Integer)
    active = Column(Boolean, nullable=False, default=True)
    image_url = Column(String)
    created_by = Column(Uuid(as_uuid=True))
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    redemptions = relationship("Redemption", back_populates="reward")

    @property
    def unlimited(self) -> bool:
        return self.stock is None
