"""SQLAlchemy models for the points ledger."""

from .account import Account
from .point_transaction import CREDIT_EVENTS, DEBIT_EVENTS, PointEventType, PointTransaction
from .redemption import Redemption, RedemptionStatus
from .reward import Reward, RewardCategory

__all__ = [
    "Account",
    "CREDIT_EVENTS",
    "DEBIT_EVENTS",
    "PointEventType",
    "PointTransaction",
    "Redemption",
    "RedemptionStatus",
    "Reward",
    "RewardCategory",
]
