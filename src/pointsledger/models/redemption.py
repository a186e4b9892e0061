"""Redemption domain model."""

import enum
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Enum as SAEnum, ForeignKey, Integer, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow


class RedemptionStatus(str, enum.Enum):
    """Possible redemption states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELIVERED = "delivered"


class Redemption(Base):
    """A claim against a reward that spent points and reserved stock."""

    __tablename__ = "redemptions"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="redemptions_quantity_positive"),
        CheckConstraint("points_spent > 0", name="redemptions_points_spent_positive"),
    )

    redemption_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.account_id", ondelete="RESTRICT"), nullable=False)
    reward_id = Column(Uuid(as_uuid=True), ForeignKey("rewards.reward_id", ondelete="SET NULL"))
    quantity = Column(Integer, nullable=False, default=1)
    points_spent = Column(Integer, nullable=False)
    status = Column(
        SAEnum(
            RedemptionStatus,
            name="redemption_status",
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        nullable=False,
        default=RedemptionStatus.PENDING,
    )
    decided_by = Column(Uuid(as_uuid=True))
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    account = relationship("Account", back_populates="redemptions")
    reward = relationship("Reward", back_populates="redemptions")
    ledger_entries = relationship("PointTransaction", back_populates="redemption")

    @property
    def reward_name(self):
        return self.reward.name if self.reward is not None else None
