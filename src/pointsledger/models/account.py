"""Points account model."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow


class Account(Base):
    """Points-holding entity owned by a school user."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="accounts_balance_non_negative"),
        CheckConstraint("role IN ('student', 'teacher', 'admin')", name="accounts_role_check"),
    )

    account_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    display_name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="student")
    status = Column(String, nullable=False, default="ACTIVE")
    balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    transactions = relationship("PointTransaction", back_populates="account")
    redemptions = relationship("Redemption", back_populates="account")
