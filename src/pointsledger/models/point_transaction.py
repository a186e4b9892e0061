"""Point transaction journal capturing balance movements."""

import enum

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow


class PointEventType(str, enum.Enum):
    """Journal event classification."""

    AWARD = "AWARD"
    DEDUCTION = "DEDUCTION"
    REDEMPTION = "REDEMPTION"
    REDEMPTION_REFUND = "REDEMPTION_REFUND"


CREDIT_EVENTS = frozenset({PointEventType.AWARD, PointEventType.REDEMPTION_REFUND})
DEBIT_EVENTS = frozenset({PointEventType.DEDUCTION, PointEventType.REDEMPTION})


class PointTransaction(Base):
    """Immutable journal of point deltas for each account."""

    __tablename__ = "point_transactions"
    __table_args__ = (
        CheckConstraint(
            "((event_type IN ('DEDUCTION', 'REDEMPTION') AND points_delta < 0) "
            "OR (event_type IN ('AWARD', 'REDEMPTION_REFUND') AND points_delta > 0))",
            name="point_transactions_delta_sign",
        ),
    )

    entry_id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("accounts.account_id", ondelete="RESTRICT"), nullable=False)
    related_redemption_id = Column(
        Uuid(as_uuid=True), ForeignKey("redemptions.redemption_id", ondelete="SET NULL")
    )
    event_type = Column(Enum(PointEventType, name="point_event_type"), nullable=False)
    points_delta = Column(Integer, nullable=False)
    reason = Column(String)
    actor_id = Column(Uuid(as_uuid=True))
    created_at = Column(DateTime, default=utcnow, nullable=False)

    account = relationship("Account", back_populates="transactions")
    redemption = relationship("Redemption", back_populates="ledger_entries")
